"""
Statutory heir classification (法定相続人の判定).

Both the counts-only wizard form (`FamilyData`) and a full family graph are
reduced to *lines*: a slot that either inherits in person or, when the person
died before the decedent or is disqualified, passes its portion down to its own
children (代襲相続). One apportioning engine then assigns exact civil shares
and the heir count used for the basic deduction.
"""

import logging
from dataclasses import dataclass, field
from fractions import Fraction
from typing import Iterator

import networkx as nx

from souzoku.graph import (
    adoption_of,
    children_of,
    is_half_sibling,
    parent_graph,
    parents_of,
    siblings_of,
    unions_of,
)
from souzoku.models import (
    Adoption,
    Classification,
    FamilyData,
    FamilyGraph,
    HeirClassification,
    InheritanceRank,
    PersonStatus,
    RelationKind,
    UnionStatus,
)

logger = logging.getLogger(__name__)

# Spouse's civil share by the blood-relative tier inheriting alongside
SPOUSE_SHARES = {
    InheritanceRank.FIRST: Fraction(1, 2),
    InheritanceRank.SECOND: Fraction(2, 3),
    InheritanceRank.THIRD: Fraction(3, 4),
}

# Adopted children counted for the deduction (相続税法15条2項)
ADOPTION_CAP_WITH_BIOLOGICAL = 1
ADOPTION_CAP_WITHOUT_BIOLOGICAL = 2

# Grandparent generation counts as this many heirs regardless of headcount
GRANDPARENT_GENERATION_HEIRS = 2

FULL_BLOOD_WEIGHT = 2
HALF_BLOOD_WEIGHT = 1


@dataclass
class _Line:
    id: str
    name: str
    relation: RelationKind
    weight: int = 1
    inherits: bool = True  # False: represented by sub_lines
    renounced: bool = False
    adoption: Adoption = Adoption.NONE
    half_blood: bool = False
    substitutes_for: str | None = None
    sub_lines: list["_Line"] = field(default_factory=list)

    def takes_share(self) -> bool:
        if self.inherits:
            return not self.renounced
        return any(line.takes_share() for line in self.sub_lines)

    def heirs(self) -> Iterator["_Line"]:
        if self.inherits:
            yield self
        else:
            for line in self.sub_lines:
                yield from line.heirs()


def _apportion(lines: list[_Line], pool: Fraction) -> list[tuple[_Line, Fraction]]:
    """Split `pool` across lines by weight, recursing into substituted lines."""
    takers = [line.takes_share() for line in lines]
    total = sum(line.weight for line, takes in zip(lines, takers) if takes)
    result: list[tuple[_Line, Fraction]] = []
    for line, takes in zip(lines, takers):
        share = pool * line.weight / total if takes else Fraction(0)
        if line.inherits:
            result.append((line, share))
        else:
            result.extend(_apportion(line.sub_lines, share))
    return result


def _to_heir(line: _Line, share: Fraction, included: bool) -> HeirClassification:
    return HeirClassification(
        id=line.id,
        name=line.name,
        relation=line.relation,
        share=share,
        included_in_tax_count=included,
        substitutes_for=line.substitutes_for,
        half_blood=line.half_blood,
        adoption=line.adoption,
        renounced=line.renounced,
    )


def _adoptees_over_cap(lines: list[_Line]) -> set[str]:
    """Ids of adopted children left out of the tax count by the adoption cap."""
    direct = [line for line in lines if line.inherits]
    has_biological = any(line.adoption == Adoption.NONE for line in direct)
    cap = ADOPTION_CAP_WITH_BIOLOGICAL if has_biological else ADOPTION_CAP_WITHOUT_BIOLOGICAL
    adopted = [line.id for line in direct if line.adoption != Adoption.NONE]
    return set(adopted[cap:])


def _tier_count(rank: InheritanceRank, lines: list[_Line], grandparent_generation: bool) -> int:
    if rank == InheritanceRank.SECOND and grandparent_generation:
        return GRANDPARENT_GENERATION_HEIRS
    excluded = _adoptees_over_cap(lines) if rank == InheritanceRank.FIRST else set()
    return sum(1 for line in lines for heir in line.heirs() if heir.id not in excluded)


def _any_taker(lines: list[_Line]) -> bool:
    return any(line.takes_share() for line in lines)


def _classify(
    spouses: list[_Line],
    tiers: list[tuple[InheritanceRank, list[_Line]]],
    grandparent_generation: bool = False,
    ascendant_fallback: list[_Line] | None = None,
) -> Classification:
    """
    Pick the inheriting tier and assign shares.

    The tax count follows the first tier with any heir, renounced or not.
    Civil shares follow the first tier where someone actually takes a share;
    when every member of a tier renounced, the shares move down a tier while
    the count stays put. Ascendants are the exception: when the nearest
    generation renounced, `ascendant_fallback` (a higher generation) takes
    the second tier's shares before the siblings are considered.
    """
    tax_tier = next(((rank, lines) for rank, lines in tiers if lines), None)
    civil_tier = None
    for rank, lines in tiers:
        if rank == InheritanceRank.SECOND and not _any_taker(lines):
            lines = ascendant_fallback or []
        if _any_taker(lines):
            civil_tier = (rank, lines)
            break
    logger.debug(
        "Tax-count tier: %s, civil-share tier: %s",
        tax_tier[0].value if tax_tier else None,
        civil_tier[0].value if civil_tier else None,
    )

    spouse_takes = _any_taker(spouses)
    if civil_tier is None:
        spouse_pool = Fraction(1)
    elif spouse_takes:
        spouse_pool = SPOUSE_SHARES[civil_tier[0]]
    else:
        spouse_pool = Fraction(0)

    heirs = [_to_heir(line, share, True) for line, share in _apportion(spouses, spouse_pool)]
    heir_count = len(spouses)

    if tax_tier is not None:
        rank, lines = tax_tier
        excluded = _adoptees_over_cap(lines) if rank == InheritanceRank.FIRST else set()
        heir_count += _tier_count(rank, lines, grandparent_generation)
        if civil_tier is None or civil_tier[1] is not lines:
            # Everyone here renounced: listed for the count, no share
            heirs.extend(
                _to_heir(heir, Fraction(0), heir.id not in excluded)
                for line in lines
                for heir in line.heirs()
            )
        else:
            heirs.extend(
                _to_heir(line, share, line.id not in excluded)
                for line, share in _apportion(lines, 1 - spouse_pool)
            )

    if civil_tier is not None and (tax_tier is None or civil_tier[1] is not tax_tier[1]):
        heirs.extend(
            _to_heir(line, share, False) for line, share in _apportion(civil_tier[1], 1 - spouse_pool)
        )

    return Classification(
        heirs=tuple(heirs),
        rank=civil_tier[0] if civil_tier else None,
        heir_count=heir_count,
    )


# ============================================================================
# Counts-only form
# ============================================================================


def _family_descendant_lines(family: FamilyData) -> list[_Line]:
    special = min(family.special_adoptions, family.children_count)
    ordinary = min(family.ordinary_adoptions, family.children_count - special)
    biological = family.children_count - special - ordinary

    lines = [_Line(f"child-{i}", f"子{i}", RelationKind.CHILD) for i in range(1, biological + 1)]
    lines += [
        _Line(f"adopted-special-{i}", f"特別養子{i}", RelationKind.CHILD, adoption=Adoption.SPECIAL)
        for i in range(1, special + 1)
    ]
    lines += [
        _Line(f"adopted-{i}", f"養子{i}", RelationKind.CHILD, adoption=Adoption.ORDINARY)
        for i in range(1, ordinary + 1)
    ]
    for idx, count in enumerate(family.deceased_children_grandchildren, start=1):
        if count == 0:
            continue
        parent_id = f"deceased-child-{idx}"
        grandchildren = [
            _Line(
                f"grandchild-{idx}-{j}",
                f"孫{idx}-{j}",
                RelationKind.DESCENDANT,
                substitutes_for=parent_id,
            )
            for j in range(1, count + 1)
        ]
        lines.append(
            _Line(parent_id, f"亡き子{idx}", RelationKind.CHILD, inherits=False, sub_lines=grandchildren)
        )
    return lines


def _family_ascendant_lines(family: FamilyData) -> tuple[list[_Line], bool]:
    lines = []
    if family.father_alive:
        lines.append(_Line("father", "父", RelationKind.PARENT))
    if family.mother_alive:
        lines.append(_Line("mother", "母", RelationKind.PARENT))
    if lines or not family.grandparents_alive:
        return lines, False
    grandparents = [
        _Line(f"grandparent-{i}", f"祖父母{i}", RelationKind.ASCENDANT)
        for i in range(1, GRANDPARENT_GENERATION_HEIRS + 1)
    ]
    return grandparents, True


def _family_sibling_lines(family: FamilyData) -> list[_Line]:
    lines = [
        _Line(f"sibling-{i}", f"兄弟姉妹{i}", RelationKind.SIBLING, weight=FULL_BLOOD_WEIGHT)
        for i in range(1, family.full_blood_siblings + 1)
    ]
    lines += [
        _Line(
            f"half-sibling-{i}",
            f"半血兄弟姉妹{i}",
            RelationKind.SIBLING,
            weight=HALF_BLOOD_WEIGHT,
            half_blood=True,
        )
        for i in range(1, family.half_blood_siblings + 1)
    ]
    # The wizard does not ask about blood for deceased siblings: treated as full
    for idx, count in enumerate(family.deceased_siblings_children, start=1):
        if count == 0:
            continue
        sibling_id = f"deceased-sibling-{idx}"
        nephews = [
            _Line(
                f"nephew-niece-{idx}-{j}",
                f"甥姪{idx}-{j}",
                RelationKind.NEPHEW_NIECE,
                substitutes_for=sibling_id,
            )
            for j in range(1, count + 1)
        ]
        lines.append(
            _Line(
                sibling_id,
                f"亡き兄弟姉妹{idx}",
                RelationKind.SIBLING,
                weight=FULL_BLOOD_WEIGHT,
                inherits=False,
                sub_lines=nephews,
            )
        )
    return lines


def classify_family(family: FamilyData) -> Classification:
    """Classify statutory heirs from the counts-only wizard form."""
    spouses = [_Line("spouse", "配偶者", RelationKind.SPOUSE)] if family.has_spouse else []
    ascendants, grandparent_generation = _family_ascendant_lines(family)
    return _classify(
        spouses,
        [
            (InheritanceRank.FIRST, _family_descendant_lines(family)),
            (InheritanceRank.SECOND, ascendants),
            (InheritanceRank.THIRD, _family_sibling_lines(family)),
        ],
        grandparent_generation,
    )


# ============================================================================
# Graph form
# ============================================================================


def _can_inherit(graph: FamilyGraph, pid: str) -> bool:
    person = graph.persons.get(pid)
    return person is not None and person.is_alive and not person.disqualified


def _spouse_lines(graph: FamilyGraph, decedent_id: str) -> list[_Line]:
    # Only a living partner in a legal marriage inherits
    lines = []
    for union in unions_of(graph, decedent_id, include_divorced=False):
        if union.status != UnionStatus.MARRIED:
            continue
        person = graph.persons.get(union.other(decedent_id))
        if person is None or person.status != PersonStatus.ALIVE or person.disqualified:
            continue
        lines.append(_Line(person.id, person.name, RelationKind.SPOUSE, renounced=person.renounced))
    return lines


def _descendant_line(
    graph: FamilyGraph,
    pid: str,
    relation: RelationKind,
    adoption: Adoption = Adoption.NONE,
    substitutes_for: str | None = None,
    seen: frozenset[str] = frozenset(),
) -> _Line | None:
    """A line for `pid`, substituted by their own descendants when needed."""
    person = graph.persons.get(pid)
    if person is None or pid in seen:
        return None
    if _can_inherit(graph, pid):
        return _Line(
            pid,
            person.name,
            relation,
            renounced=person.renounced,
            adoption=adoption,
            substitutes_for=substitutes_for,
        )
    # Substitution repeats down the line for descendants
    sub_lines = []
    for child in children_of(graph, pid):
        line = _descendant_line(
            graph, child, RelationKind.DESCENDANT, substitutes_for=pid, seen=seen | {pid}
        )
        if line is not None:
            sub_lines.append(line)
    if not sub_lines:
        return None
    return _Line(
        pid,
        person.name,
        relation,
        inherits=False,
        adoption=adoption,
        substitutes_for=substitutes_for,
        sub_lines=sub_lines,
    )


def _graph_descendant_lines(graph: FamilyGraph, decedent_id: str) -> list[_Line]:
    lines = []
    for child in children_of(graph, decedent_id):
        line = _descendant_line(
            graph,
            child,
            RelationKind.CHILD,
            adoption=adoption_of(graph, decedent_id, child),
            seen=frozenset({decedent_id}),
        )
        if line is not None:
            lines.append(line)
    return lines


def _ascendant_levels(graph: FamilyGraph, decedent_id: str) -> Iterator[tuple[int, list[_Line]]]:
    """Living ascendants generation by generation, nearest first, with their depth."""
    level = parents_of(graph, decedent_id)
    seen = {decedent_id}
    depth = 1
    while level:
        alive = [pid for pid in level if _can_inherit(graph, pid)]
        if alive:
            relation = RelationKind.PARENT if depth == 1 else RelationKind.ASCENDANT
            yield depth, [
                _Line(
                    pid,
                    graph.persons[pid].name,
                    relation,
                    renounced=graph.persons[pid].renounced,
                )
                for pid in alive
            ]
        seen.update(level)
        level = list(
            dict.fromkeys(p for pid in level for p in parents_of(graph, pid) if p not in seen)
        )
        depth += 1


def _graph_ascendant_lines(
    graph: FamilyGraph, decedent_id: str
) -> tuple[list[_Line], list[_Line], bool]:
    """
    Living ascendants of the nearest generation that has any, and whether that
    generation is above the parents.

    The second list is the nearest higher generation with someone taking a
    share, used when the whole nearest generation renounced.
    """
    levels = _ascendant_levels(graph, decedent_id)
    nearest = next(levels, None)
    if nearest is None:
        return [], [], False
    depth, lines = nearest
    fallback: list[_Line] = []
    if not _any_taker(lines):
        fallback = next((higher for _, higher in levels if _any_taker(higher)), [])
    return lines, fallback, depth > 1


def _graph_sibling_lines(graph: FamilyGraph, decedent_id: str) -> list[_Line]:
    lines = []
    for sib in siblings_of(graph, decedent_id):
        person = graph.persons.get(sib)
        if person is None:
            continue
        half = is_half_sibling(graph, decedent_id, sib)
        weight = HALF_BLOOD_WEIGHT if half else FULL_BLOOD_WEIGHT
        if _can_inherit(graph, sib):
            lines.append(
                _Line(
                    sib,
                    person.name,
                    RelationKind.SIBLING,
                    weight=weight,
                    renounced=person.renounced,
                    half_blood=half,
                )
            )
            continue
        # Exactly one generation of substitution for siblings
        nephews = [
            _Line(
                child,
                graph.persons[child].name,
                RelationKind.NEPHEW_NIECE,
                renounced=graph.persons[child].renounced,
                half_blood=half,
                substitutes_for=sib,
            )
            for child in children_of(graph, sib)
            if child != decedent_id and _can_inherit(graph, child)
        ]
        if nephews:
            lines.append(
                _Line(
                    sib,
                    person.name,
                    RelationKind.SIBLING,
                    weight=weight,
                    inherits=False,
                    half_blood=half,
                    sub_lines=nephews,
                )
            )
    return lines


def classify_graph(graph: FamilyGraph, decedent_id: str) -> Classification:
    """Classify statutory heirs of `decedent_id` from the family graph."""
    if decedent_id not in graph.persons:
        return Classification()
    ascendants, fallback, grandparent_generation = _graph_ascendant_lines(graph, decedent_id)
    return _classify(
        _spouse_lines(graph, decedent_id),
        [
            (InheritanceRank.FIRST, _graph_descendant_lines(graph, decedent_id)),
            (InheritanceRank.SECOND, ascendants),
            (InheritanceRank.THIRD, _graph_sibling_lines(graph, decedent_id)),
        ],
        grandparent_generation,
        fallback,
    )


def classify_heirs(source: FamilyData | FamilyGraph, decedent_id: str | None = None) -> Classification:
    """Classify heirs from either input form."""
    if isinstance(source, FamilyGraph):
        if decedent_id is None:
            raise TypeError("decedent_id is required when classifying a family graph")
        return classify_graph(source, decedent_id)
    return classify_family(source)


# ============================================================================
# Graph -> counts
# ============================================================================


def family_data_from_graph(graph: FamilyGraph, decedent_id: str) -> FamilyData:
    """
    Reduce a family graph to the counts-only wizard form.

    Only what the wizard can express survives: one generation of substitution,
    no renunciation, and a yes/no for the grandparent generation.
    """
    if decedent_id not in graph.persons:
        return FamilyData()

    living_children = []
    grandchildren = []
    for child in children_of(graph, decedent_id):
        if child not in graph.persons:
            continue
        if _can_inherit(graph, child):
            living_children.append(child)
        else:
            count = sum(1 for gc in children_of(graph, child) if _can_inherit(graph, gc))
            grandchildren.append(count)
    adoptions = [adoption_of(graph, decedent_id, c) for c in living_children]

    father_alive = mother_alive = False
    for parent in parents_of(graph, decedent_id):
        if not _can_inherit(graph, parent):
            continue
        # Sex picks the slot; a second parent takes whichever slot is still free
        prefers_mother = graph.persons[parent].sex == "F"
        if father_alive or (prefers_mother and not mother_alive):
            mother_alive = True
        else:
            father_alive = True

    parents = set(parents_of(graph, decedent_id))
    higher = nx.ancestors(parent_graph(graph), decedent_id) - parents
    grandparents_alive = any(_can_inherit(graph, pid) for pid in higher)

    full = half = 0
    nephews = []
    for sib in siblings_of(graph, decedent_id):
        if sib not in graph.persons:
            continue
        if _can_inherit(graph, sib):
            if is_half_sibling(graph, decedent_id, sib):
                half += 1
            else:
                full += 1
        else:
            nephews.append(
                sum(
                    1
                    for c in children_of(graph, sib)
                    if c != decedent_id and _can_inherit(graph, c)
                )
            )

    return FamilyData(
        has_spouse=bool(_spouse_lines(graph, decedent_id)),
        children_count=len(living_children),
        deceased_children_count=len(grandchildren),
        deceased_children_grandchildren=tuple(grandchildren),
        ordinary_adoptions=adoptions.count(Adoption.ORDINARY),
        special_adoptions=adoptions.count(Adoption.SPECIAL),
        father_alive=father_alive,
        mother_alive=mother_alive,
        grandparents_alive=grandparents_alive,
        full_blood_siblings=full,
        half_blood_siblings=half,
        deceased_siblings_count=len(nephews),
        deceased_siblings_children=tuple(nephews),
    )
