"""Generation numbering and relation labels relative to a focus person."""

from collections import deque

import networkx as nx

from souzoku.graph import children_of, parent_graph, parents_of, siblings_of, spouses_of
from souzoku.models import FamilyGraph, RelationKind


def compute_generations(graph: FamilyGraph, focus_id: str) -> dict[str, int]:
    """
    Assign a generation number to every person reachable from `focus_id`.

    Breadth-first from the focus (generation 0): parents are +1, children -1,
    spouses and explicit siblings share the current generation. The first
    generation assigned to a person is kept, so unions and sibling loops
    cannot make the walk revisit anyone.
    """
    if focus_id not in graph.persons:
        return {}

    gen: dict[str, int] = {focus_id: 0}
    queue = deque([focus_id])
    while queue:
        cur = queue.popleft()
        cur_gen = gen[cur]

        neighbours = (
            [(p, cur_gen + 1) for p in parents_of(graph, cur)]
            + [(c, cur_gen - 1) for c in children_of(graph, cur)]
            + [(s, cur_gen) for s in spouses_of(graph, cur)]
        )
        # Explicit siblings only; derived siblings are reached through parents
        for e in graph.siblings:
            if e.a == cur:
                neighbours.append((e.b, cur_gen))
            elif e.b == cur:
                neighbours.append((e.a, cur_gen))

        for pid, g in neighbours:
            if pid not in gen:
                gen[pid] = g
                queue.append(pid)

    return gen


def generation_buckets(graph: FamilyGraph, focus_id: str) -> dict[int, list[str]]:
    """
    Group reachable persons by generation, oldest generation first.

    Each bucket is sorted by name, then id, so layouts are stable.
    """
    gens = compute_generations(graph, focus_id)
    buckets: dict[int, list[str]] = {}
    for pid, g in gens.items():
        buckets.setdefault(g, []).append(pid)

    def sort_key(pid: str) -> tuple[str, str]:
        person = graph.persons.get(pid)
        return (person.name if person else "", pid)

    return {g: sorted(buckets[g], key=sort_key) for g in sorted(buckets, reverse=True)}


def label_relations(graph: FamilyGraph, focus_id: str) -> dict[str, RelationKind]:
    """
    Tag every blood relative and spouse of the focus with a RelationKind.

    In-laws and other persons reachable only through marriage are left out.
    """
    if focus_id not in graph.persons:
        return {}

    G = parent_graph(graph)
    ancestors = nx.ancestors(G, focus_id)
    descendants = nx.descendants(G, focus_id)
    parents = set(parents_of(graph, focus_id))
    children = set(children_of(graph, focus_id))
    siblings = set(siblings_of(graph, focus_id))
    spouses = set(spouses_of(graph, focus_id))

    labels: dict[str, RelationKind] = {}
    # Iterate in generation order so the output is stable
    for pid in compute_generations(graph, focus_id):
        if pid == focus_id:
            labels[pid] = RelationKind.SELF
        elif pid in parents:
            labels[pid] = RelationKind.PARENT
        elif pid in children:
            labels[pid] = RelationKind.CHILD
        elif pid in ancestors:
            labels[pid] = RelationKind.ASCENDANT
        elif pid in descendants:
            labels[pid] = RelationKind.DESCENDANT
        elif pid in spouses:
            labels[pid] = RelationKind.SPOUSE
        elif pid in siblings:
            labels[pid] = RelationKind.SIBLING
        elif any(p in siblings for p in parents_of(graph, pid)):
            labels[pid] = RelationKind.NEPHEW_NIECE
    return labels
