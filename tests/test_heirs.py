from fractions import Fraction

import pytest

from souzoku.graph import (
    add_parent_child,
    add_person,
    add_sibling,
    add_union,
    set_union_status,
    start_graph,
    union_id,
    update_person,
)
from souzoku.heirs import classify_family, classify_graph, classify_heirs, family_data_from_graph
from souzoku.models import (
    Adoption,
    FamilyData,
    InheritanceRank,
    Person,
    PersonStatus,
    RelationKind,
    UnionStatus,
)


def _shares(classification):
    return {h.id: h.share for h in classification.heirs}


def _graph(persons, edges=(), focus="me"):
    """Focus `me` (deceased) plus alive persons unless listed as deceased."""
    g = start_graph("Me", person_id=focus)
    for pid, status in persons.items():
        g = add_person(g, Person(pid, pid.title(), status=status))
    for parent, child in edges:
        g = add_parent_child(g, parent, child)
    return g


ALIVE = PersonStatus.ALIVE
DEAD = PersonStatus.DECEASED


# ============================================================================
# Counts-only form
# ============================================================================


@pytest.mark.parametrize(
    "family, rank, spouse_share",
    [
        (FamilyData(has_spouse=True, children_count=1), InheritanceRank.FIRST, Fraction(1, 2)),
        (FamilyData(has_spouse=True, father_alive=True), InheritanceRank.SECOND, Fraction(2, 3)),
        (FamilyData(has_spouse=True, full_blood_siblings=1), InheritanceRank.THIRD, Fraction(3, 4)),
        (FamilyData(has_spouse=True), None, Fraction(1)),
    ],
)
def test_spouse_share_by_tier(family, rank, spouse_share):
    result = classify_family(family)
    assert result.rank == rank
    assert _shares(result)["spouse"] == spouse_share
    assert result.total_share == 1


def test_spouse_and_two_children(spouse_two_children):
    result = classify_family(spouse_two_children)
    assert _shares(result) == {
        "spouse": Fraction(1, 2),
        "child-1": Fraction(1, 4),
        "child-2": Fraction(1, 4),
    }
    assert result.heir_count == 3


def test_first_tier_excludes_parents_and_siblings():
    result = classify_family(
        FamilyData(children_count=1, father_alive=True, mother_alive=True, full_blood_siblings=2)
    )
    assert [h.id for h in result.heirs] == ["child-1"]
    assert result.heir_count == 1


def test_substituted_grandchildren_split_parent_share():
    family = FamilyData(
        has_spouse=True,
        children_count=1,
        deceased_children_count=1,
        deceased_children_grandchildren=(2,),
    )
    result = classify_family(family)
    assert _shares(result) == {
        "spouse": Fraction(1, 2),
        "child-1": Fraction(1, 4),
        "grandchild-1-1": Fraction(1, 8),
        "grandchild-1-2": Fraction(1, 8),
    }
    assert result.heir_count == 4
    grandchild = result.heirs[2]
    assert grandchild.relation == RelationKind.DESCENDANT
    assert grandchild.substitutes_for == "deceased-child-1"


def test_deceased_child_without_children_drops_out():
    family = FamilyData(children_count=1, deceased_children_count=2, deceased_children_grandchildren=(0, 1))
    assert _shares(classify_family(family)) == {
        "child-1": Fraction(1, 2),
        "grandchild-2-1": Fraction(1, 2),
    }


def test_adoption_cap_with_biological_child():
    result = classify_family(FamilyData(children_count=4, ordinary_adoptions=3))
    assert result.heir_count == 2
    assert all(h.share == Fraction(1, 4) for h in result.heirs)
    counted = {h.id: h.included_in_tax_count for h in result.heirs}
    assert counted == {"child-1": True, "adopted-1": True, "adopted-2": False, "adopted-3": False}


def test_adoption_cap_without_biological_child():
    result = classify_family(FamilyData(children_count=3, ordinary_adoptions=2, special_adoptions=1))
    assert result.heir_count == 2
    assert [h.adoption for h in result.heirs] == [Adoption.SPECIAL, Adoption.ORDINARY, Adoption.ORDINARY]


def test_adoptions_beyond_children_count_are_clamped():
    result = classify_family(FamilyData(children_count=1, ordinary_adoptions=5))
    assert [h.id for h in result.heirs] == ["adopted-1"]
    assert result.heir_count == 1


def test_grandparent_generation_counts_as_two():
    result = classify_family(FamilyData(has_spouse=True, grandparents_alive=True))
    assert result.rank == InheritanceRank.SECOND
    assert result.heir_count == 3
    assert _shares(result) == {
        "spouse": Fraction(2, 3),
        "grandparent-1": Fraction(1, 6),
        "grandparent-2": Fraction(1, 6),
    }


def test_living_parent_shuts_out_grandparents():
    result = classify_family(FamilyData(mother_alive=True, grandparents_alive=True))
    assert _shares(result) == {"mother": Fraction(1)}
    assert result.heir_count == 1


def test_half_blood_sibling_gets_half_share():
    result = classify_family(FamilyData(full_blood_siblings=1, half_blood_siblings=1))
    assert _shares(result) == {"sibling-1": Fraction(2, 3), "half-sibling-1": Fraction(1, 3)}


def test_siblings_with_spouse_and_nephews():
    family = FamilyData(
        has_spouse=True,
        full_blood_siblings=1,
        half_blood_siblings=1,
        deceased_siblings_count=1,
        deceased_siblings_children=(2,),
    )
    result = classify_family(family)
    assert _shares(result) == {
        "spouse": Fraction(3, 4),
        "sibling-1": Fraction(1, 10),
        "half-sibling-1": Fraction(1, 20),
        "nephew-niece-1-1": Fraction(1, 20),
        "nephew-niece-1-2": Fraction(1, 20),
    }
    assert result.heir_count == 5
    assert result.total_share == 1


def test_no_heirs_at_all():
    result = classify_family(FamilyData())
    assert result.heirs == ()
    assert result.heir_count == 0
    assert result.rank is None


def test_sibling_only_scenario():
    result = classify_family(FamilyData(full_blood_siblings=1))
    assert result.heir_count == 1
    assert _shares(result) == {"sibling-1": Fraction(1)}


# ============================================================================
# Graph form
# ============================================================================


def test_graph_fixture(family_graph):
    result = classify_graph(family_graph, "taro")
    assert result.rank == InheritanceRank.FIRST
    assert result.heir_count == 4
    assert _shares(result) == {
        "hanako": Fraction(1, 2),
        "ichiro": Fraction(1, 4),
        "ken": Fraction(1, 8),
        "yui": Fraction(1, 8),
    }
    ken = next(h for h in result.heirs if h.id == "ken")
    assert ken.substitutes_for == "jiro"


def test_graph_matches_counts_form(family_graph):
    from_graph = classify_graph(family_graph, "taro")
    from_counts = classify_family(family_data_from_graph(family_graph, "taro"))
    assert from_graph.heir_count == from_counts.heir_count
    assert sorted(h.share for h in from_graph.heirs) == sorted(h.share for h in from_counts.heirs)


def test_family_data_from_graph(family_graph):
    family = family_data_from_graph(family_graph, "taro")
    assert family == FamilyData(
        has_spouse=True,
        children_count=1,
        deceased_children_count=1,
        deceased_children_grandchildren=(2,),
        father_alive=True,
        mother_alive=True,
        full_blood_siblings=1,
    )


def test_substitution_repeats_for_descendants():
    g = _graph(
        {"c": DEAD, "gc": DEAD, "ggc": ALIVE},
        [("me", "c"), ("c", "gc"), ("gc", "ggc")],
    )
    result = classify_graph(g, "me")
    assert _shares(result) == {"ggc": Fraction(1)}
    assert result.heirs[0].substitutes_for == "gc"
    assert result.heir_count == 1


def test_substitution_stops_after_nephews():
    g = _graph(
        {"f": DEAD, "m": DEAD, "sis": ALIVE, "bro": DEAD, "nephew": DEAD, "grandnephew": ALIVE},
        [
            ("f", "me"),
            ("m", "me"),
            ("f", "sis"),
            ("m", "sis"),
            ("f", "bro"),
            ("m", "bro"),
            ("bro", "nephew"),
            ("nephew", "grandnephew"),
        ],
    )
    result = classify_graph(g, "me")
    assert result.rank == InheritanceRank.THIRD
    assert _shares(result) == {"sis": Fraction(1)}


def test_graph_nephews_substitute_sibling():
    g = _graph(
        {"f": DEAD, "m": DEAD, "sis": ALIVE, "bro": DEAD, "n1": ALIVE, "n2": ALIVE},
        [("f", "me"), ("m", "me"), ("f", "sis"), ("m", "sis"), ("f", "bro"), ("m", "bro")]
        + [("bro", "n1"), ("bro", "n2")],
    )
    result = classify_graph(g, "me")
    assert _shares(result) == {"sis": Fraction(1, 2), "n1": Fraction(1, 4), "n2": Fraction(1, 4)}
    assert {h.id: h.relation for h in result.heirs}["n1"] == RelationKind.NEPHEW_NIECE


def test_graph_half_blood_from_shared_parent():
    g = _graph(
        {"f": DEAD, "m": DEAD, "w": ALIVE, "full": ALIVE, "half": ALIVE},
        [("f", "me"), ("m", "me"), ("f", "full"), ("m", "full"), ("f", "half"), ("w", "half")],
    )
    result = classify_graph(g, "me")
    assert _shares(result) == {"full": Fraction(2, 3), "half": Fraction(1, 3)}
    assert {h.id: h.half_blood for h in result.heirs} == {"full": False, "half": True}


def test_explicit_and_derived_siblings_are_combined():
    g = _graph({"f": DEAD, "a": ALIVE, "b": ALIVE}, [("f", "me"), ("f", "a")])
    g = add_sibling(g, "me", "b")
    result = classify_graph(g, "me")
    assert _shares(result) == {"a": Fraction(1, 2), "b": Fraction(1, 2)}


def test_graph_grandparent_generation():
    g = _graph({"f": DEAD, "gf": ALIVE}, [("f", "me"), ("gf", "f")])
    result = classify_graph(g, "me")
    assert result.rank == InheritanceRank.SECOND
    assert result.heir_count == 2
    heir = result.heirs[0]
    assert (heir.id, heir.relation, heir.share) == ("gf", RelationKind.ASCENDANT, Fraction(1))


def test_only_living_married_spouse_inherits():
    g = _graph({"wife": ALIVE, "ex": ALIVE, "partner": ALIVE, "kid": ALIVE}, [("me", "kid")])
    g = add_union(g, "me", "wife")
    g = add_union(g, "me", "ex")
    g = add_union(g, "me", "partner", UnionStatus.PARTNERED)
    g = set_union_status(g, union_id("me", "ex"), UnionStatus.DIVORCED)
    result = classify_graph(g, "me")
    assert _shares(result) == {"wife": Fraction(1, 2), "kid": Fraction(1, 2)}

    g = update_person(g, "wife", status=PersonStatus.DECEASED)
    assert _shares(classify_graph(g, "me")) == {"kid": Fraction(1)}


def test_graph_adoption_cap():
    g = _graph({"bio": ALIVE, "a1": ALIVE, "a2": ALIVE})
    g = add_parent_child(g, "me", "bio")
    g = add_parent_child(g, "me", "a1", Adoption.ORDINARY)
    g = add_parent_child(g, "me", "a2", Adoption.SPECIAL)
    result = classify_graph(g, "me")
    assert result.heir_count == 2
    assert {h.id: h.included_in_tax_count for h in result.heirs} == {
        "bio": True,
        "a1": True,
        "a2": False,
    }


def test_disqualified_child_is_substituted():
    g = _graph({"kid": ALIVE, "gk": ALIVE}, [("me", "kid"), ("kid", "gk")])
    g = update_person(g, "kid", disqualified=True)
    assert _shares(classify_graph(g, "me")) == {"gk": Fraction(1)}


def test_renounced_child_counts_but_takes_nothing():
    g = _graph({"wife": ALIVE, "a": ALIVE, "b": ALIVE}, [("me", "a"), ("me", "b")])
    g = add_union(g, "me", "wife")
    g = update_person(g, "a", renounced=True)
    result = classify_graph(g, "me")
    assert result.heir_count == 3
    assert _shares(result) == {"wife": Fraction(1, 2), "a": Fraction(0), "b": Fraction(1, 2)}
    assert result.total_share == 1


def test_whole_tier_renouncing_passes_shares_down():
    g = _graph({"wife": ALIVE, "kid": ALIVE, "mom": ALIVE}, [("me", "kid"), ("mom", "me")])
    g = add_union(g, "me", "wife")
    g = update_person(g, "kid", renounced=True)
    result = classify_graph(g, "me")
    assert result.rank == InheritanceRank.SECOND
    # Deduction count still follows the first tier
    assert result.heir_count == 2
    assert _shares(result) == {"wife": Fraction(2, 3), "kid": Fraction(0), "mom": Fraction(1, 3)}
    mom = next(h for h in result.heirs if h.id == "mom")
    assert not mom.included_in_tax_count


def test_renouncing_parents_pass_shares_to_grandparents():
    g = _graph(
        {"f": ALIVE, "gf": ALIVE, "sis": ALIVE},
        [("f", "me"), ("gf", "f"), ("f", "sis")],
    )
    g = update_person(g, "f", renounced=True)
    result = classify_graph(g, "me")
    assert result.rank == InheritanceRank.SECOND
    assert result.heir_count == 1
    assert {h.id: (h.share, h.included_in_tax_count) for h in result.heirs} == {
        "f": (Fraction(0), True),
        "gf": (Fraction(1), False),
    }

    g = add_person(g, Person("wife", "Wife"))
    g = add_union(g, "me", "wife")
    assert _shares(classify_graph(g, "me")) == {
        "wife": Fraction(2, 3),
        "f": Fraction(0),
        "gf": Fraction(1, 3),
    }


def test_siblings_inherit_when_every_ascendant_renounced():
    g = _graph(
        {"f": ALIVE, "gf": ALIVE, "sis": ALIVE},
        [("f", "me"), ("gf", "f"), ("f", "sis")],
    )
    g = update_person(g, "f", renounced=True)
    g = update_person(g, "gf", renounced=True)
    result = classify_graph(g, "me")
    assert result.rank == InheritanceRank.THIRD
    assert _shares(result) == {"f": Fraction(0), "sis": Fraction(1)}


def test_unknown_decedent():
    g = start_graph("Me")
    result = classify_graph(g, "ghost")
    assert result.heirs == ()
    assert result.heir_count == 0


def test_classify_heirs_dispatch(family_graph, spouse_two_children):
    assert classify_heirs(spouse_two_children).heir_count == 3
    assert classify_heirs(family_graph, "taro").heir_count == 4
    with pytest.raises(TypeError):
        classify_heirs(family_graph)


def test_family_data_from_graph_two_mothers():
    g = start_graph("Me", person_id="me")
    g = add_person(g, Person("m1", "M1", sex="F"))
    g = add_person(g, Person("m2", "M2", sex="F"))
    g = add_parent_child(g, "m1", "me")
    g = add_parent_child(g, "m2", "me")
    family = family_data_from_graph(g, "me")
    assert family.father_alive and family.mother_alive
    assert classify_family(family).heir_count == classify_graph(g, "me").heir_count == 2


# ============================================================================
# FamilyData
# ============================================================================


def test_family_data_keeps_substitutes_in_step():
    family = FamilyData().with_deceased_children(2).with_grandchildren(1, 3)
    assert family.deceased_children_grandchildren == (0, 3)
    family = family.with_deceased_children(1)
    assert family.deceased_children_grandchildren == (0,)
    assert family.with_grandchildren(5, 1) is family

    family = family.with_deceased_siblings(1).with_nephews_nieces(0, 2)
    assert family.nephews_nieces_count == 2


def test_family_data_from_loose_dict():
    family = FamilyData.from_dict(
        {
            "hasSpouse": True,
            "childrenCount": "2",
            "deceasedChildrenCount": 1,
            "adoptionCount": {"ordinary": None, "special": -1},
            "siblingsCount": {"fullBlood": "x"},
        }
    )
    assert family.children_count == 2
    assert family.deceased_children_grandchildren == (0,)
    assert family.adoption_count == 0
    assert family.full_blood_siblings == 0
    assert FamilyData.from_dict(family.to_dict()) == family
    assert FamilyData.from_dict(None) == FamilyData()
