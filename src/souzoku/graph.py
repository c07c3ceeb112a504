"""Family graph builders, selectors and NetworkX views."""

import itertools
import logging
from dataclasses import dataclass, replace
from typing import Any

import networkx as nx

from souzoku.models import (
    Adoption,
    FamilyGraph,
    ParentChildEdge,
    Person,
    PersonStatus,
    SiblingEdge,
    UnionEdge,
    UnionStatus,
)

logger = logging.getLogger(__name__)

MAX_PARENTS = 2


# ============================================================================
# Constructors
# ============================================================================


def empty_graph() -> FamilyGraph:
    return FamilyGraph()


def start_graph(name: str, person_id: str = "self") -> FamilyGraph:
    """Start a graph holding only the deceased focus person."""
    return add_person(empty_graph(), Person(id=person_id, name=name, status=PersonStatus.DECEASED))


def union_id(a: str, b: str) -> str:
    """Deterministic id for the single union allowed between two persons."""
    first, second = sorted((a, b))
    return f"union:{first}:{second}"


def add_person(graph: FamilyGraph, person: Person) -> FamilyGraph:
    if person.id in graph.persons:
        return graph
    return replace(graph, persons={**graph.persons, person.id: person})


def update_person(graph: FamilyGraph, person_id: str, **changes: Any) -> FamilyGraph:
    """Replace fields of an existing person. The id itself cannot change."""
    person = graph.persons.get(person_id)
    if person is None:
        return graph
    changes.pop("id", None)
    return replace(graph, persons={**graph.persons, person_id: replace(person, **changes)})


def add_parent_child(
    graph: FamilyGraph, parent_id: str, child_id: str, adoption: Adoption = Adoption.NONE
) -> FamilyGraph:
    """
    Record `parent_id` as a parent of `child_id`.

    Invalid requests leave the graph unchanged instead of raising: unknown
    persons, self-parenting, duplicate edges, a third parent, or an edge that
    would close a parent/child cycle.
    """
    if parent_id not in graph.persons or child_id not in graph.persons:
        logger.debug("Ignoring parent edge with unknown person: %s -> %s", parent_id, child_id)
        return graph
    if parent_id == child_id or is_ancestor_of(graph, child_id, parent_id):
        logger.debug("Ignoring parent edge that would create a cycle: %s -> %s", parent_id, child_id)
        return graph
    if any(e.parent_id == parent_id and e.child_id == child_id for e in graph.parent_child):
        return graph
    if len(parents_of(graph, child_id)) >= MAX_PARENTS:
        logger.debug("Ignoring parent edge, %s already has two parents", child_id)
        return graph
    edge = ParentChildEdge(parent_id=parent_id, child_id=child_id, adoption=adoption)
    return replace(graph, parent_child=graph.parent_child + (edge,))


def add_union(
    graph: FamilyGraph,
    a: str,
    b: str,
    status: UnionStatus = UnionStatus.MARRIED,
    start_year: int | None = None,
    end_year: int | None = None,
) -> FamilyGraph:
    if a == b or a not in graph.persons or b not in graph.persons:
        return graph
    # At most one union record per unordered pair
    if any({u.a, u.b} == {a, b} for u in graph.unions):
        return graph
    union = UnionEdge(
        id=union_id(a, b), a=a, b=b, status=status, start_year=start_year, end_year=end_year
    )
    return replace(graph, unions=graph.unions + (union,))


def set_union_status(graph: FamilyGraph, union_id: str, status: UnionStatus) -> FamilyGraph:
    if not any(u.id == union_id for u in graph.unions):
        return graph
    unions = tuple(replace(u, status=status) if u.id == union_id else u for u in graph.unions)
    return replace(graph, unions=unions)


def add_sibling(graph: FamilyGraph, a: str, b: str, half_blood: bool = False) -> FamilyGraph:
    if a == b or a not in graph.persons or b not in graph.persons:
        return graph
    if any({e.a, e.b} == {a, b} for e in graph.siblings):
        return graph
    return replace(graph, siblings=graph.siblings + (SiblingEdge(a=a, b=b, half_blood=half_blood),))


def remove_person(graph: FamilyGraph, person_id: str) -> FamilyGraph:
    """Remove a person together with every edge that references them."""
    if person_id not in graph.persons:
        return graph
    persons = {pid: p for pid, p in graph.persons.items() if pid != person_id}
    return FamilyGraph(
        persons=persons,
        parent_child=tuple(
            e for e in graph.parent_child if person_id not in (e.parent_id, e.child_id)
        ),
        unions=tuple(u for u in graph.unions if person_id not in (u.a, u.b)),
        siblings=tuple(e for e in graph.siblings if person_id not in (e.a, e.b)),
    )


# ============================================================================
# Operations (reducer)
# ============================================================================


@dataclass(frozen=True)
class AddPerson:
    person: Person


@dataclass(frozen=True)
class UpdatePerson:
    person_id: str
    changes: dict[str, Any]


@dataclass(frozen=True)
class AddParentChild:
    parent_id: str
    child_id: str
    adoption: Adoption = Adoption.NONE


@dataclass(frozen=True)
class AddUnion:
    a: str
    b: str
    status: UnionStatus = UnionStatus.MARRIED
    start_year: int | None = None
    end_year: int | None = None


@dataclass(frozen=True)
class SetUnionStatus:
    union_id: str
    status: UnionStatus


@dataclass(frozen=True)
class AddSibling:
    a: str
    b: str
    half_blood: bool = False


@dataclass(frozen=True)
class RemovePerson:
    person_id: str


GraphOp = AddPerson | UpdatePerson | AddParentChild | AddUnion | SetUnionStatus | AddSibling | RemovePerson


def reduce_graph(graph: FamilyGraph, op: GraphOp) -> FamilyGraph:
    """Apply one operation and return the resulting graph."""
    if isinstance(op, AddPerson):
        return add_person(graph, op.person)
    if isinstance(op, UpdatePerson):
        return update_person(graph, op.person_id, **op.changes)
    if isinstance(op, AddParentChild):
        return add_parent_child(graph, op.parent_id, op.child_id, op.adoption)
    if isinstance(op, AddUnion):
        return add_union(graph, op.a, op.b, op.status, op.start_year, op.end_year)
    if isinstance(op, SetUnionStatus):
        return set_union_status(graph, op.union_id, op.status)
    if isinstance(op, AddSibling):
        return add_sibling(graph, op.a, op.b, op.half_blood)
    if isinstance(op, RemovePerson):
        return remove_person(graph, op.person_id)
    raise TypeError(f"Unknown graph operation: {op!r}")


# ============================================================================
# Selectors
# ============================================================================


def parents_of(graph: FamilyGraph, child_id: str) -> list[str]:
    return [e.parent_id for e in graph.parent_child if e.child_id == child_id]


def children_of(graph: FamilyGraph, parent_id: str) -> list[str]:
    return [e.child_id for e in graph.parent_child if e.parent_id == parent_id]


def adoption_of(graph: FamilyGraph, parent_id: str, child_id: str) -> Adoption:
    for e in graph.parent_child:
        if e.parent_id == parent_id and e.child_id == child_id:
            return e.adoption
    return Adoption.NONE


def unions_of(graph: FamilyGraph, person_id: str, include_divorced: bool = True) -> list[UnionEdge]:
    return [
        u
        for u in graph.unions
        if person_id in (u.a, u.b) and (include_divorced or u.status != UnionStatus.DIVORCED)
    ]


def spouses_of(graph: FamilyGraph, person_id: str, include_divorced: bool = True) -> list[str]:
    # dict.fromkeys de-duplicates while preserving order
    return list(dict.fromkeys(u.other(person_id) for u in unions_of(graph, person_id, include_divorced)))


def siblings_of(graph: FamilyGraph, person_id: str) -> list[str]:
    """Siblings derived from shared parents, plus explicit sibling edges."""
    sibs: dict[str, None] = {}
    for parent in parents_of(graph, person_id):
        for child in children_of(graph, parent):
            if child != person_id:
                sibs[child] = None
    for e in graph.siblings:
        if e.a == person_id:
            sibs[e.b] = None
        elif e.b == person_id:
            sibs[e.a] = None
    return list(sibs)


def is_half_sibling(graph: FamilyGraph, person_id: str, sibling_id: str) -> bool:
    """
    Whether `sibling_id` shares only one parent with `person_id`.

    An explicit sibling edge decides when present. Otherwise a sibling counts
    as half-blood only when both persons have two recorded parents and share
    exactly one of them.
    """
    for e in graph.siblings:
        if {e.a, e.b} == {person_id, sibling_id}:
            return e.half_blood
    mine = set(parents_of(graph, person_id))
    theirs = set(parents_of(graph, sibling_id))
    return len(mine) == MAX_PARENTS and len(theirs) == MAX_PARENTS and len(mine & theirs) == 1


# ============================================================================
# NetworkX views
# ============================================================================


def to_networkx(graph: FamilyGraph) -> nx.DiGraph:
    """
    Build a NetworkX directed graph with PARENT_OF, SPOUSE_OF and SIBLING_OF
    edges. Person fields become node attributes.
    """
    G = nx.DiGraph()

    # Note: use 'person_name' instead of 'name' to avoid conflict with pydot
    for pid, person in graph.persons.items():
        G.add_node(
            pid,
            person_name=person.name,
            status=person.status.value,
            age=person.age,
            sex=person.sex,
        )

    for e in graph.parent_child:
        G.add_edge(e.parent_id, e.child_id, relationship_type="PARENT_OF", adoption=e.adoption.value)
    for u in graph.unions:
        G.add_edge(u.a, u.b, relationship_type="SPOUSE_OF", status=u.status.value, union_id=u.id)
    for e in graph.siblings:
        G.add_edge(e.a, e.b, relationship_type="SIBLING_OF", half_blood=e.half_blood)

    return G


def parent_graph(graph: FamilyGraph) -> nx.DiGraph:
    """A graph of every person with only parent -> child edges."""
    G = nx.DiGraph()
    G.add_nodes_from(graph.persons)
    G.add_edges_from((e.parent_id, e.child_id) for e in graph.parent_child)
    return G


def is_ancestor_of(graph: FamilyGraph, maybe_ancestor: str, target: str) -> bool:
    """
    Whether `maybe_ancestor` is a strict ancestor of `target` through
    parent/child edges. A person is their own ancestor only on a cycle.
    """
    G = parent_graph(graph)
    if target not in G or maybe_ancestor not in G:
        return False
    # nx.ancestors never includes the source node itself, so walk from each
    # direct parent instead
    return any(
        parent == maybe_ancestor or maybe_ancestor in nx.ancestors(G, parent)
        for parent in G.predecessors(target)
    )


def build_union_layout_graph(graph: FamilyGraph) -> nx.DiGraph:
    """
    Build a layout graph using the union-node model.

    Creates "family nodes" that connect couples to their children, so couples
    sit on the same generation and all children hang from one connector.

    Args:
        graph: The family graph

    Returns:
        A NetworkX graph with person and family nodes suitable for hierarchical layout
    """
    G = to_networkx(graph)
    H = nx.DiGraph()

    for n, data in G.nodes(data=True):
        H.add_node(n, node_type="person", **data)

    # Map couple -> family node id; divorced couples still share their children
    fam_for_pair: dict[tuple[str, str], str] = {}
    for u in graph.unions:
        a, b = sorted((u.a, u.b))
        fam_id = f"FAM_{a}_{b}"
        fam_for_pair[(a, b)] = fam_id
        H.add_node(fam_id, node_type="family", spouses=(a, b), status=u.status.value)
        H.add_edge(a, fam_id, edge_type="spouse_to_family")
        H.add_edge(b, fam_id, edge_type="spouse_to_family")

    parents_by_child: dict[str, list[str]] = {}
    for e in graph.parent_child:
        parents_by_child.setdefault(e.child_id, []).append(e.parent_id)

    for child, parents in parents_by_child.items():
        parents = list(dict.fromkeys(parents))

        fam_id = None
        if len(parents) >= 2:
            for p1, p2 in itertools.combinations(parents, 2):
                pair = tuple(sorted((p1, p2)))
                if pair in fam_for_pair:
                    fam_id = fam_for_pair[pair]
                    break

        # No recorded union among the parents: single-parent family node
        if fam_id is None:
            fam_id = f"FAM_{'_'.join(sorted(parents))}"
            if fam_id not in H:
                H.add_node(fam_id, node_type="family", spouses=tuple(sorted(parents)))
                for p in parents:
                    H.add_edge(p, fam_id, edge_type="spouse_to_family")

        H.add_edge(fam_id, child, edge_type="family_to_child")

    return H


# ============================================================================
# Plain-data boundary
# ============================================================================


def _optional_int(value: Any) -> int | None:
    if value is None or value == "":
        return None
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def graph_to_dict(graph: FamilyGraph) -> dict[str, Any]:
    """Serialize to plain camelCase data for storage or transport."""
    return {
        "persons": {
            pid: {
                "id": p.id,
                "name": p.name,
                "status": p.status.value,
                "age": p.age,
                "sex": p.sex,
                "renounced": p.renounced,
                "disqualified": p.disqualified,
            }
            for pid, p in graph.persons.items()
        },
        "parentChild": [
            {"parentId": e.parent_id, "childId": e.child_id, "adoption": e.adoption.value}
            for e in graph.parent_child
        ],
        "unions": [
            {
                "id": u.id,
                "a": u.a,
                "b": u.b,
                "status": u.status.value,
                "startYear": u.start_year,
                "endYear": u.end_year,
            }
            for u in graph.unions
        ],
        "siblings": [{"a": e.a, "b": e.b, "halfBlood": e.half_blood} for e in graph.siblings],
    }


def graph_from_dict(data: dict[str, Any]) -> FamilyGraph:
    """
    Rebuild a graph from `graph_to_dict` output.

    Edges are restored as given, without the builder checks; run
    `souzoku.validation.validate_graph` to diagnose the result.
    Persons may be given as a mapping keyed by id or as a list.
    """
    raw_persons = data.get("persons") or {}
    if isinstance(raw_persons, dict):
        raw_persons = list(raw_persons.values())

    persons: dict[str, Person] = {}
    for raw in raw_persons:
        pid = str(raw["id"])
        persons[pid] = Person(
            id=pid,
            name=str(raw.get("name", "")),
            status=PersonStatus(raw.get("status", PersonStatus.ALIVE.value)),
            age=_optional_int(raw.get("age")),
            sex=raw.get("sex"),
            renounced=bool(raw.get("renounced", False)),
            disqualified=bool(raw.get("disqualified", False)),
        )

    parent_child = tuple(
        ParentChildEdge(
            parent_id=str(e["parentId"]),
            child_id=str(e["childId"]),
            adoption=Adoption(e.get("adoption", Adoption.NONE.value)),
        )
        for e in data.get("parentChild") or ()
    )
    unions = tuple(
        UnionEdge(
            id=str(u.get("id") or union_id(str(u["a"]), str(u["b"]))),
            a=str(u["a"]),
            b=str(u["b"]),
            status=UnionStatus(u.get("status", UnionStatus.MARRIED.value)),
            start_year=_optional_int(u.get("startYear")),
            end_year=_optional_int(u.get("endYear")),
        )
        for u in data.get("unions") or ()
    )
    siblings = tuple(
        SiblingEdge(a=str(e["a"]), b=str(e["b"]), half_blood=bool(e.get("halfBlood", False)))
        for e in data.get("siblings") or ()
    )
    return FamilyGraph(persons=persons, parent_child=parent_child, unions=unions, siblings=siblings)
