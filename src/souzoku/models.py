"""Data classes for family graphs, wizard inputs and calculation results."""

from dataclasses import dataclass, field, replace
from enum import Enum
from fractions import Fraction
from typing import Any


class PersonStatus(str, Enum):
    ALIVE = "alive"
    DECEASED = "deceased"
    DIVORCED = "divorced"


class UnionStatus(str, Enum):
    MARRIED = "married"
    PARTNERED = "partnered"
    DIVORCED = "divorced"


class Adoption(str, Enum):
    NONE = "none"
    ORDINARY = "ordinary"
    SPECIAL = "special"


class RelationKind(str, Enum):
    SELF = "self"
    SPOUSE = "spouse"
    CHILD = "child"
    PARENT = "parent"
    SIBLING = "sibling"
    ASCENDANT = "ascendant"
    DESCENDANT = "descendant"
    NEPHEW_NIECE = "nephew_niece"


class InheritanceRank(str, Enum):
    """Blood-relative tier that takes the estate alongside the spouse."""

    FIRST = "first"  # descendants
    SECOND = "second"  # ascendants
    THIRD = "third"  # siblings


class Step(str, Enum):
    """Wizard position stored with a saved profile."""

    INTRO = "intro"
    SPOUSE = "spouse"
    CHILDREN = "children"
    PARENTS = "parents"
    SIBLINGS = "siblings"
    DASHBOARD = "dashboard"
    ASSETS = "assets"
    RESULT = "result"


# ============================================================================
# Relationship graph
# ============================================================================


@dataclass(frozen=True)
class Person:
    id: str
    name: str
    status: PersonStatus = PersonStatus.ALIVE
    age: int | None = None
    sex: str | None = None  # "M", "F" or None
    renounced: bool = False
    disqualified: bool = False

    @property
    def is_alive(self) -> bool:
        return self.status != PersonStatus.DECEASED


@dataclass(frozen=True)
class ParentChildEdge:
    parent_id: str
    child_id: str
    adoption: Adoption = Adoption.NONE


@dataclass(frozen=True)
class UnionEdge:
    id: str
    a: str
    b: str
    status: UnionStatus = UnionStatus.MARRIED
    start_year: int | None = None
    end_year: int | None = None

    def other(self, person_id: str) -> str:
        return self.b if self.a == person_id else self.a


@dataclass(frozen=True)
class SiblingEdge:
    a: str
    b: str
    half_blood: bool = False


@dataclass(frozen=True)
class FamilyGraph:
    """
    Normalized family graph. Treat as immutable: every builder in
    `souzoku.graph` returns a new instance.
    """

    persons: dict[str, Person] = field(default_factory=dict)
    parent_child: tuple[ParentChildEdge, ...] = ()
    unions: tuple[UnionEdge, ...] = ()
    siblings: tuple[SiblingEdge, ...] = ()


# ============================================================================
# Wizard inputs
# ============================================================================


def _count(value: Any) -> int:
    """Coerce a loosely typed count to a non-negative int."""
    if isinstance(value, bool):
        return int(value)
    try:
        return max(0, int(value))
    except (TypeError, ValueError):
        return 0


def _resize(counts: tuple[int, ...], length: int) -> tuple[int, ...]:
    counts = tuple(_count(c) for c in counts[:length])
    return counts + (0,) * (length - len(counts))


@dataclass(frozen=True)
class FamilyData:
    """Counts-only family composition collected by the wizard."""

    has_spouse: bool = False
    children_count: int = 0  # living children, adoptees included
    deceased_children_count: int = 0
    deceased_children_grandchildren: tuple[int, ...] = ()
    ordinary_adoptions: int = 0
    special_adoptions: int = 0
    father_alive: bool = False
    mother_alive: bool = False
    grandparents_alive: bool = False
    full_blood_siblings: int = 0
    half_blood_siblings: int = 0
    deceased_siblings_count: int = 0
    deceased_siblings_children: tuple[int, ...] = ()

    def __post_init__(self):
        # Keep substitution tuples aligned with their counters
        for name in (
            "children_count",
            "deceased_children_count",
            "ordinary_adoptions",
            "special_adoptions",
            "full_blood_siblings",
            "half_blood_siblings",
            "deceased_siblings_count",
        ):
            object.__setattr__(self, name, _count(getattr(self, name)))
        object.__setattr__(
            self,
            "deceased_children_grandchildren",
            _resize(tuple(self.deceased_children_grandchildren), self.deceased_children_count),
        )
        object.__setattr__(
            self,
            "deceased_siblings_children",
            _resize(tuple(self.deceased_siblings_children), self.deceased_siblings_count),
        )

    def with_deceased_children(self, count: int) -> "FamilyData":
        return replace(self, deceased_children_count=count)

    def with_grandchildren(self, index: int, count: int) -> "FamilyData":
        """Set the substitute count for the deceased child at `index`."""
        if not 0 <= index < self.deceased_children_count:
            return self
        counts = list(self.deceased_children_grandchildren)
        counts[index] = count
        return replace(self, deceased_children_grandchildren=tuple(counts))

    def with_deceased_siblings(self, count: int) -> "FamilyData":
        return replace(self, deceased_siblings_count=count)

    def with_nephews_nieces(self, index: int, count: int) -> "FamilyData":
        """Set the substitute count for the deceased sibling at `index`."""
        if not 0 <= index < self.deceased_siblings_count:
            return self
        counts = list(self.deceased_siblings_children)
        counts[index] = count
        return replace(self, deceased_siblings_children=tuple(counts))

    @property
    def adoption_count(self) -> int:
        return self.ordinary_adoptions + self.special_adoptions

    @property
    def grandchildren_count(self) -> int:
        return sum(self.deceased_children_grandchildren)

    @property
    def nephews_nieces_count(self) -> int:
        return sum(self.deceased_siblings_children)

    @property
    def has_descendants(self) -> bool:
        return self.children_count > 0 or self.grandchildren_count > 0

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "FamilyData":
        """Build from the camelCase boundary shape; missing values become zero."""
        data = data or {}
        adoption = data.get("adoptionCount") or {}
        parents = data.get("parentsAlive") or {}
        siblings = data.get("siblingsCount") or {}
        return cls(
            has_spouse=bool(data.get("hasSpouse", False)),
            children_count=data.get("childrenCount", 0),
            deceased_children_count=data.get("deceasedChildrenCount", 0),
            deceased_children_grandchildren=tuple(data.get("deceasedChildrenGrandchildren") or ()),
            ordinary_adoptions=adoption.get("ordinary", 0),
            special_adoptions=adoption.get("special", 0),
            father_alive=bool(parents.get("father", False)),
            mother_alive=bool(parents.get("mother", False)),
            grandparents_alive=bool(data.get("grandparentsAlive", False)),
            full_blood_siblings=siblings.get("fullBlood", 0),
            half_blood_siblings=siblings.get("halfBlood", 0),
            deceased_siblings_count=data.get("deceasedSiblingsCount", 0),
            deceased_siblings_children=tuple(data.get("deceasedSiblingsChildren") or ()),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "hasSpouse": self.has_spouse,
            "childrenCount": self.children_count,
            "deceasedChildrenCount": self.deceased_children_count,
            "deceasedChildrenGrandchildren": list(self.deceased_children_grandchildren),
            "adoptionCount": {
                "ordinary": self.ordinary_adoptions,
                "special": self.special_adoptions,
            },
            "parentsAlive": {"father": self.father_alive, "mother": self.mother_alive},
            "grandparentsAlive": self.grandparents_alive,
            "siblingsCount": {
                "fullBlood": self.full_blood_siblings,
                "halfBlood": self.half_blood_siblings,
            },
            "deceasedSiblingsCount": self.deceased_siblings_count,
            "deceasedSiblingsChildren": list(self.deceased_siblings_children),
        }


ASSET_FIELDS = {
    "cash": "cash",
    "real_estate": "realEstate",
    "securities": "securities",
    "insurance": "insurance",
    "other": "other",
    "loans": "loans",
    "funeral_costs": "funeralCosts",
    "unpaid_taxes": "unpaidTaxes",
}


@dataclass(frozen=True)
class AssetData:
    """Asset and liability totals in 万円 (10,000 yen units)."""

    cash: int = 0
    real_estate: int = 0
    securities: int = 0
    insurance: int = 0
    other: int = 0
    loans: int = 0
    funeral_costs: int = 0
    unpaid_taxes: int = 0

    def to_dict(self) -> dict[str, int]:
        return {key: getattr(self, attr) for attr, key in ASSET_FIELDS.items()}


# ============================================================================
# Results
# ============================================================================


@dataclass(frozen=True)
class HeirClassification:
    id: str
    name: str
    relation: RelationKind
    share: Fraction
    included_in_tax_count: bool = True
    substitutes_for: str | None = None
    half_blood: bool = False
    adoption: Adoption = Adoption.NONE
    renounced: bool = False

    @property
    def numerator(self) -> int:
        return self.share.numerator

    @property
    def denominator(self) -> int:
        return self.share.denominator

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "relation": self.relation.value,
            "civilShare": {"numerator": self.numerator, "denominator": self.denominator},
            "includedForTaxCount": self.included_in_tax_count,
            "substitutesFor": self.substitutes_for,
            "isHalfBlood": self.half_blood,
            "adoption": self.adoption.value,
            "renounced": self.renounced,
        }


@dataclass(frozen=True)
class Classification:
    heirs: tuple[HeirClassification, ...] = ()
    rank: InheritanceRank | None = None
    heir_count: int = 0

    @property
    def total_share(self) -> Fraction:
        return sum((h.share for h in self.heirs), Fraction(0))

    def to_dict(self) -> dict[str, Any]:
        return {
            "rank": self.rank.value if self.rank else None,
            "heirCount": self.heir_count,
            "heirs": [h.to_dict() for h in self.heirs],
        }


@dataclass(frozen=True)
class TaxCalculation:
    basic_deduction: int = 0
    taxable_assets: int = 0
    estimated_tax: int = 0
    heir_count: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "basicDeduction": self.basic_deduction,
            "taxableAssets": self.taxable_assets,
            "estimatedTax": self.estimated_tax,
            "heirCount": self.heir_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "TaxCalculation":
        data = data or {}
        return cls(
            basic_deduction=_count(data.get("basicDeduction")),
            taxable_assets=_count(data.get("taxableAssets")),
            estimated_tax=_count(data.get("estimatedTax")),
            heir_count=_count(data.get("heirCount")),
        )


@dataclass(frozen=True)
class DiagnosisResult:
    total_assets: int = 0  # 万円
    total_liabilities: int = 0  # 万円
    net_assets: int = 0  # 万円
    estimated_tax: int = 0  # yen
    tax_rate: float = 0.0  # percent of the gross estate
    basic_deduction: int = 0  # yen

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalAssets": self.total_assets,
            "totalLiabilities": self.total_liabilities,
            "netAssets": self.net_assets,
            "estimatedTax": self.estimated_tax,
            "taxRate": self.tax_rate,
            "basicDeduction": self.basic_deduction,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "DiagnosisResult":
        data = data or {}
        return cls(
            total_assets=int(data.get("totalAssets") or 0),
            total_liabilities=int(data.get("totalLiabilities") or 0),
            net_assets=int(data.get("netAssets") or 0),
            estimated_tax=int(data.get("estimatedTax") or 0),
            tax_rate=float(data.get("taxRate") or 0.0),
            basic_deduction=int(data.get("basicDeduction") or 0),
        )


@dataclass(frozen=True)
class FamilyMember:
    id: str
    name: str
    relationship: str
    is_deceased: bool = False
    inheritance_share: float | None = None
    inheritance_amount: int | None = None  # 万円
    inheritance_tax: int | None = None  # 万円

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "relationship": self.relationship,
            "isDeceased": self.is_deceased,
            "inheritanceShare": self.inheritance_share,
            "inheritanceAmount": self.inheritance_amount,
            "inheritanceTax": self.inheritance_tax,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "FamilyMember":
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            relationship=str(data.get("relationship", "")),
            is_deceased=bool(data.get("isDeceased", False)),
            inheritance_share=data.get("inheritanceShare"),
            inheritance_amount=data.get("inheritanceAmount"),
            inheritance_tax=data.get("inheritanceTax"),
        )


@dataclass(frozen=True)
class ActionItem:
    id: str
    title: str
    description: str
    priority: str  # high, medium, low
    completed: bool = False
    due_date: str | None = None
    estimated_cost: int | None = None  # yen

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "priority": self.priority,
            "completed": self.completed,
            "dueDate": self.due_date,
            "estimatedCost": self.estimated_cost,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ActionItem":
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", "")),
            description=str(data.get("description", "")),
            priority=str(data.get("priority", "medium")),
            completed=bool(data.get("completed", False)),
            due_date=data.get("dueDate"),
            estimated_cost=data.get("estimatedCost"),
        )


@dataclass(frozen=True)
class DashboardData:
    family_members: tuple[FamilyMember, ...] = ()
    action_items: tuple[ActionItem, ...] = ()
    diagnosis_result: DiagnosisResult = DiagnosisResult()
    has_asset_data: bool = False

    def to_dict(self) -> dict[str, Any]:
        return {
            "familyMembers": [m.to_dict() for m in self.family_members],
            "actionItems": [a.to_dict() for a in self.action_items],
            "diagnosisResult": self.diagnosis_result.to_dict(),
            "hasAssetData": self.has_asset_data,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "DashboardData":
        data = data or {}
        return cls(
            family_members=tuple(FamilyMember.from_dict(m) for m in data.get("familyMembers") or ()),
            action_items=tuple(ActionItem.from_dict(a) for a in data.get("actionItems") or ()),
            diagnosis_result=DiagnosisResult.from_dict(data.get("diagnosisResult")),
            has_asset_data=bool(data.get("hasAssetData", False)),
        )
