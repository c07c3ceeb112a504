import pytest

from souzoku.graph import add_parent_child, add_person, add_union, start_graph
from souzoku.models import AssetData, FamilyData, Person, PersonStatus


@pytest.fixture
def family_graph():
    """
    Taro (deceased) married to Hanako, with:
      - Ichiro (alive) and Jiro (deceased, survived by Ken and Yui)
      - living parents Father and Mother, and a brother Saburo
    """
    g = start_graph("Taro", person_id="taro")
    for person in [
        Person("hanako", "Hanako", age=68, sex="F"),
        Person("ichiro", "Ichiro", age=40, sex="M"),
        Person("jiro", "Jiro", status=PersonStatus.DECEASED, sex="M"),
        Person("ken", "Ken", age=12, sex="M"),
        Person("yui", "Yui", age=9, sex="F"),
        Person("father", "Father", age=95),
        Person("mother", "Mother", age=92),
        Person("saburo", "Saburo", age=66, sex="M"),
    ]:
        g = add_person(g, person)
    g = add_union(g, "taro", "hanako")
    for parent, child in [
        ("taro", "ichiro"),
        ("hanako", "ichiro"),
        ("taro", "jiro"),
        ("hanako", "jiro"),
        ("jiro", "ken"),
        ("jiro", "yui"),
        ("father", "taro"),
        ("mother", "taro"),
        ("father", "saburo"),
        ("mother", "saburo"),
    ]:
        g = add_parent_child(g, parent, child)
    return g


@pytest.fixture
def spouse_two_children():
    return FamilyData(has_spouse=True, children_count=2)


@pytest.fixture
def hundred_million():
    # 10,000万円 = 100,000,000 yen
    return AssetData(cash=6_000, real_estate=4_000)
