from souzoku.generations import compute_generations, generation_buckets, label_relations
from souzoku.graph import add_parent_child, add_person, add_sibling, add_union, empty_graph
from souzoku.models import Person, RelationKind


def test_generations_relative_to_focus(family_graph):
    gens = compute_generations(family_graph, "taro")
    assert gens == {
        "taro": 0,
        "father": 1,
        "mother": 1,
        "hanako": 0,
        "saburo": 0,
        "ichiro": -1,
        "jiro": -1,
        "ken": -2,
        "yui": -2,
    }


def test_generations_follow_other_focus(family_graph):
    gens = compute_generations(family_graph, "ken")
    assert gens["ken"] == 0
    assert gens["taro"] == 2
    assert gens["father"] == 3


def test_unknown_focus_gives_nothing(family_graph):
    assert compute_generations(family_graph, "ghost") == {}
    assert generation_buckets(family_graph, "ghost") == {}
    assert label_relations(family_graph, "ghost") == {}


def test_unreachable_persons_are_left_out(family_graph):
    g = add_person(family_graph, Person("stranger", "Stranger"))
    assert "stranger" not in compute_generations(g, "taro")


def test_explicit_siblings_and_unions_terminate():
    g = empty_graph()
    for pid in ("a", "b", "c"):
        g = add_person(g, Person(pid, pid.upper()))
    g = add_sibling(g, "a", "b")
    g = add_sibling(g, "b", "c")
    g = add_sibling(g, "c", "a")
    g = add_union(g, "a", "c")
    assert compute_generations(g, "a") == {"a": 0, "b": 0, "c": 0}


def test_buckets_oldest_first_sorted_by_name(family_graph):
    buckets = generation_buckets(family_graph, "taro")
    assert list(buckets) == [1, 0, -1, -2]
    assert buckets[1] == ["father", "mother"]
    assert buckets[0] == ["hanako", "saburo", "taro"]
    assert buckets[-2] == ["ken", "yui"]


def test_label_relations(family_graph):
    labels = label_relations(family_graph, "taro")
    assert labels["taro"] == RelationKind.SELF
    assert labels["hanako"] == RelationKind.SPOUSE
    assert labels["father"] == RelationKind.PARENT
    assert labels["ichiro"] == RelationKind.CHILD
    assert labels["ken"] == RelationKind.DESCENDANT
    assert labels["saburo"] == RelationKind.SIBLING


def test_label_relations_skips_in_laws(family_graph):
    g = add_person(family_graph, Person("hanako-mother", "Hanako's mother"))
    g = add_parent_child(g, "hanako-mother", "hanako")
    labels = label_relations(g, "taro")
    assert "hanako-mother" not in labels
    assert compute_generations(g, "taro")["hanako-mother"] == 1
