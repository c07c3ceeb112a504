"""Graphviz family charts for family graphs."""

import logging
from pathlib import Path

import pydot

from souzoku.generations import generation_buckets
from souzoku.graph import build_union_layout_graph
from souzoku.heirs import classify_graph
from souzoku.models import FamilyGraph

logger = logging.getLogger(__name__)

RENDER_FORMATS = ("png", "svg", "pdf")


def _person_label(data: dict, share: str | None) -> str:
    name = data.get("person_name", "")
    age = data.get("age")
    label = f"{name}\n({age})" if age is not None else name
    if data.get("status") == "deceased":
        label += " †"
    if share:
        label += f"\n{share}"
    return label


def build_chart(graph: FamilyGraph, focus_id: str) -> pydot.Dot:
    """
    Build a genealogical chart centred on `focus_id`.

    - Each generation is one rank, ancestors at the top
    - Union nodes connect couples to their children
    - Statutory heirs are highlighted with their civil share
    - Deceased persons are drawn dashed

    Persons not reachable from the focus are left out.
    """
    buckets = generation_buckets(graph, focus_id)
    reachable = {pid for ids in buckets.values() for pid in ids}
    shares = {
        h.id: f"{h.numerator}/{h.denominator}"
        for h in classify_graph(graph, focus_id).heirs
        if h.share > 0
    }

    H = build_union_layout_graph(graph)

    P = pydot.Dot(graph_type="digraph")
    P.set("rankdir", "TB")  # Top-to-bottom (ancestors at top)
    P.set("splines", "ortho")
    P.set("nodesep", "0.4")
    P.set("ranksep", "0.6")

    included: set[str] = set()
    for node, data in H.nodes(data=True):
        if data.get("node_type") == "family":
            members = data.get("spouses", ())
            if not all(m in reachable for m in members):
                continue
            P.add_node(pydot.Node(str(node), shape="point", width="0.1", height="0.1", label=""))
            included.add(node)
            continue

        if node not in reachable:
            continue
        if node == focus_id:
            fillcolor = "gray80"
        elif node in shares:
            fillcolor = "lightgoldenrod1"
        else:
            fillcolor = "white"
        style = "rounded,filled,dashed" if data.get("status") == "deceased" else "rounded,filled"
        P.add_node(
            pydot.Node(
                str(node),
                label=_person_label(data, shares.get(node)),
                shape="box",
                style=style,
                fillcolor=fillcolor,
                fontsize="10",
            )
        )
        included.add(node)

    for u, v, data in H.edges(data=True):
        if u not in included or v not in included:
            continue
        if data.get("edge_type") == "spouse_to_family":
            P.add_edge(pydot.Edge(str(u), str(v), dir="none", color="darkgray"))
        else:
            P.add_edge(pydot.Edge(str(u), str(v), color="darkgray"))

    # Explicit siblings without recorded parents get a dotted link
    for e in graph.siblings:
        if e.a in included and e.b in included:
            P.add_edge(pydot.Edge(e.a, e.b, dir="none", style="dotted", constraint="false"))

    # One rank per generation
    for generation, ids in buckets.items():
        sg = pydot.Subgraph(f"generation_{generation}".replace("-", "m"), rank="same")
        for pid in ids:
            sg.add_node(pydot.Node(str(pid)))
        P.add_subgraph(sg)

    return P


def write_chart(graph: FamilyGraph, focus_id: str, output_path: Path) -> Path:
    """
    Write the chart. A `.dot` path gets the DOT source; png, svg and pdf are
    rendered through Graphviz (which must be installed). Other extensions
    render as png.
    """
    P = build_chart(graph, focus_id)
    ext = output_path.suffix.lower().lstrip(".")
    if ext == "dot":
        output_path.write_text(P.to_string(), encoding="utf-8")
    else:
        if ext not in RENDER_FORMATS:
            ext = "png"
        P.write(str(output_path), format=ext)
    logger.info("Chart saved to %s", output_path)
    return output_path
