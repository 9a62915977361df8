from datetime import date

import pytest

from archgraph.errors import InvalidArgumentError
from archgraph.graph.filters import EntityFilter, RelationshipFilter
from archgraph.graph.schema import (
    Entity,
    EntityType,
    LifecycleState,
    Relationship,
    RelationshipType,
    parse_date,
)


def test_relationship_type_rank_follows_declaration_order():
    ranks = [rel_type.rank for rel_type in RelationshipType]
    assert ranks == sorted(ranks)
    assert RelationshipType.DEPENDS_ON.rank < RelationshipType.CONFLICTS_WITH.rank
    assert all(rel_type.description for rel_type in RelationshipType)


@pytest.mark.parametrize(
    "raw, expected",
    [
        ("depends_on", RelationshipType.DEPENDS_ON),
        ("DEPENDS_ON", RelationshipType.DEPENDS_ON),
        ("dependsOn", RelationshipType.DEPENDS_ON),
        ("conflictsWith", RelationshipType.CONFLICTS_WITH),
    ],
)
def test_relationship_type_parse_accepts_portal_spellings(raw, expected):
    assert RelationshipType.parse(raw) is expected


def test_unknown_types_are_invalid_arguments():
    with pytest.raises(InvalidArgumentError):
        RelationshipType.parse("owns")
    with pytest.raises(InvalidArgumentError):
        EntityType.parse("Spaceship")


def test_self_loop_is_rejected():
    with pytest.raises(InvalidArgumentError):
        Relationship(id="r1", source_id="a", target_id="a", type=RelationshipType.DEPENDS_ON)


def test_strength_must_be_within_unit_interval():
    with pytest.raises(InvalidArgumentError):
        Relationship(id="r1", source_id="a", target_id="b", type=RelationshipType.DEPENDS_ON, strength=1.5)


def test_entity_from_dict_reads_criticality_from_attributes():
    entity = Entity.from_dict(
        {"id": "app-1", "name": "CRM", "type": "application", "attributes": {"criticality": 70}}
    )
    assert entity.type is EntityType.APPLICATION
    assert entity.criticality_base == 70.0
    assert entity.to_dict()["criticalityBase"] == 70.0


def test_relationship_from_dict_accepts_portal_keys():
    rel = Relationship.from_dict(
        {
            "fromCardId": "a",
            "toCardId": "b",
            "relationshipType": "implements",
            "confidence": 0.7,
            "validFrom": "2024-01-01",
        }
    )
    assert rel.source_id == "a"
    assert rel.target_id == "b"
    assert rel.type is RelationshipType.IMPLEMENTS
    assert rel.strength == 0.7
    assert rel.valid_from == date(2024, 1, 1)
    assert rel.id == "a->b:implements"


def test_parse_date_handles_datetimes_and_blanks():
    assert parse_date("2024-03-05T10:00:00Z") == date(2024, 3, 5)
    assert parse_date("") is None
    with pytest.raises(InvalidArgumentError):
        parse_date("not-a-date")


def test_filter_build_splits_comma_joined_types():
    rel_filter = RelationshipFilter.build(["depends_on,implements"])
    assert rel_filter.types == frozenset({RelationshipType.DEPENDS_ON, RelationshipType.IMPLEMENTS})


def test_filter_rejects_out_of_range_confidence_and_unknown_state():
    with pytest.raises(InvalidArgumentError):
        RelationshipFilter.build(min_confidence=1.2)
    with pytest.raises(InvalidArgumentError):
        RelationshipFilter.build(lifecycle_state="retired")


def test_lifecycle_filters_split_current_and_planned_relationships():
    as_of = date(2025, 6, 1)
    live = Relationship(
        id="live", source_id="a", target_id="b", type=RelationshipType.DEPENDS_ON,
        valid_from=date(2024, 1, 1),
    )
    retired = Relationship(
        id="retired", source_id="a", target_id="c", type=RelationshipType.DEPENDS_ON,
        valid_to=date(2025, 1, 1),
    )
    planned = Relationship(
        id="planned", source_id="a", target_id="d", type=RelationshipType.DEPENDS_ON,
        valid_from=date(2026, 1, 1),
    )

    current = RelationshipFilter.build(lifecycle_state="current", as_of=as_of)
    target = RelationshipFilter.build(lifecycle_state="TARGET", as_of=as_of)

    assert current.lifecycle_state is LifecycleState.CURRENT
    assert [rel.id for rel in (live, retired, planned) if current.admits(rel)] == ["live"]
    assert [rel.id for rel in (live, retired, planned) if target.admits(rel)] == ["planned"]


def test_min_confidence_drops_weak_edges():
    rel_filter = RelationshipFilter.build(min_confidence=0.6)
    weak = Relationship(id="w", source_id="a", target_id="b", type=RelationshipType.SIMILAR_TO, strength=0.5)
    strong = Relationship(id="s", source_id="a", target_id="b", type=RelationshipType.SIMILAR_TO, strength=0.6)
    assert not rel_filter.admits(weak)
    assert rel_filter.admits(strong)


def test_cache_keys_distinguish_filters():
    assert RelationshipFilter.build(["depends_on"]).cache_key() != RelationshipFilter().cache_key()
    assert (
        RelationshipFilter.build(["implements", "depends_on"]).cache_key()
        == RelationshipFilter.build(["depends_on", "implements"]).cache_key()
    )
    assert EntityFilter.build(["Application"]).cache_key() == "cards=Application"
    assert EntityFilter().cache_key() == "cards=*"
