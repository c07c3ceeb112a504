"""Graph validation for family graphs."""

from dataclasses import dataclass
from enum import Enum

import networkx as nx

from souzoku.graph import MAX_PARENTS, parents_of
from souzoku.models import FamilyGraph


class ViolationKind(str, Enum):
    UNKNOWN_PERSON = "unknown_person"
    CYCLE = "cycle"
    TOO_MANY_PARENTS = "too_many_parents"
    SELF_RELATION = "self_relation"
    AGE_ORDER = "age_order"


@dataclass(frozen=True)
class Violation:
    kind: ViolationKind
    message: str
    person_ids: tuple[str, ...] = ()


def validate_graph(G: FamilyGraph) -> list[Violation]:
    """
    Validate the family graph for:
    - Edges referencing persons that do not exist
    - Cycles in parent-child relationships
    - More than two recorded parents
    - Unions or sibling edges joining a person to themselves
    - Impossible ages (parent not older than child)

    Returns a list of violations; nothing is raised so partial graphs can be
    diagnosed while they are being edited.
    """
    violations: list[Violation] = []
    persons = G.persons

    def unknown(pid: str, role: str):
        violations.append(
            Violation(ViolationKind.UNKNOWN_PERSON, f"Unknown {role} {pid}", (pid,))
        )

    for e in G.parent_child:
        if e.parent_id not in persons:
            unknown(e.parent_id, "parent")
        if e.child_id not in persons:
            unknown(e.child_id, "child")
    for u in G.unions:
        for pid in (u.a, u.b):
            if pid not in persons:
                unknown(pid, f"union member in {u.id}")
        if u.a == u.b:
            violations.append(
                Violation(ViolationKind.SELF_RELATION, f"Union {u.id} joins {u.a} to themselves", (u.a,))
            )
    for e in G.siblings:
        for pid in (e.a, e.b):
            if pid not in persons:
                unknown(pid, "sibling")
        if e.a == e.b:
            violations.append(
                Violation(ViolationKind.SELF_RELATION, f"{e.a} is recorded as their own sibling", (e.a,))
            )

    # Cycles: only PARENT_OF edges matter
    parent_graph = nx.DiGraph((e.parent_id, e.child_id) for e in G.parent_child)
    for cycle in nx.simple_cycles(parent_graph):
        violations.append(
            Violation(
                ViolationKind.CYCLE,
                f"Cycle detected in parent-child relationships: {cycle}",
                tuple(cycle),
            )
        )

    for pid in persons:
        parents = parents_of(G, pid)
        if len(parents) > MAX_PARENTS:
            violations.append(
                Violation(
                    ViolationKind.TOO_MANY_PARENTS,
                    f"More than two parents for {pid}: {parents}",
                    (pid, *parents),
                )
            )

    for e in G.parent_child:
        parent = persons.get(e.parent_id)
        child = persons.get(e.child_id)
        if parent is None or child is None:
            continue
        if parent.age is not None and child.age is not None and parent.age <= child.age:
            violations.append(
                Violation(
                    ViolationKind.AGE_ORDER,
                    f"Impossible: {parent.name} ({parent.age}) is not older than child "
                    f"{child.name} ({child.age})",
                    (parent.id, child.id),
                )
            )

    return violations


def is_valid(G: FamilyGraph) -> bool:
    return not validate_graph(G)
