from dataclasses import replace

import pytest

from archgraph.analysis.impact_analyzer import DEFAULT_IMPACT_SETTINGS, ImpactAnalyzer
from archgraph.analysis.models import RiskLevel, classify_risk
from archgraph.errors import EntityNotFoundError


def test_scenario_upstream_of_leaf(scenario_index):
    result = ImpactAnalyzer(scenario_index).analyze("Z")

    assert result.upstream == ["X", "Y"]
    assert result.downstream == []
    assert result.fan_in == 1
    assert result.fan_out == 0
    assert result.max_strength == 0.8
    assert result.safe_to_refactor is False
    # Two dependents lift Z above its intrinsic score alone.
    assert result.criticality > ImpactAnalyzer(scenario_index).score(0.0, 0, 0, 0.0)
    assert result.to_dict()["riskLevel"] == result.risk_level.value


def test_isolated_entity_is_low_risk(scenario_index):
    result = ImpactAnalyzer(scenario_index).analyze("W")

    assert result.upstream == []
    assert result.downstream == []
    assert result.risk_level is RiskLevel.LOW
    assert result.safe_to_refactor is True
    assert result.consider_decomposing is False


def test_unknown_entity_is_not_found(scenario_index):
    with pytest.raises(EntityNotFoundError):
        ImpactAnalyzer(scenario_index).analyze("ghost")


def test_extra_downstream_dependent_never_lowers_criticality(index_factory):
    index = index_factory(
        [
            ("A", "shared", "depends_on", 0.7),
            ("B", "shared", "depends_on", 0.7),
            ("B", "extra", "depends_on", 0.7),
        ],
        criticality={"A": 55, "B": 55},
    )
    analyzer = ImpactAnalyzer(index)
    assert analyzer.analyze("B").criticality >= analyzer.analyze("A").criticality


@pytest.mark.parametrize("base", [0.0, 35.0, 100.0])
@pytest.mark.parametrize("strength", [0.0, 0.5, 1.0])
def test_score_is_monotonic_in_reach(index_factory, base, strength):
    analyzer = ImpactAnalyzer(index_factory([], isolated=["solo"]))
    for upstream in range(0, 6):
        scores = [analyzer.score(base, upstream, downstream, strength) for downstream in range(0, 30)]
        assert scores == sorted(scores)
        assert all(0.0 <= score <= 100.0 for score in scores)


def test_repeated_analysis_is_idempotent(index_factory):
    index = index_factory(
        [("a", "b", "depends_on", 0.4), ("b", "c", "implements", 0.9), ("d", "b", "similar_to", 0.2)],
        criticality={"b": 65},
    )
    first = ImpactAnalyzer(index).analyze("b").to_dict()
    second = ImpactAnalyzer(index).analyze("b").to_dict()
    assert first == second


def test_cycle_members_are_counted_once(index_factory):
    index = index_factory([("a", "b"), ("b", "c"), ("c", "a")])
    result = ImpactAnalyzer(index).analyze("a")

    assert result.upstream == ["b", "c"]
    assert result.downstream == ["b", "c"]


def test_max_depth_bounds_the_reach(index_factory):
    index = index_factory([("a", "b"), ("b", "c"), ("c", "d")])
    settings = replace(DEFAULT_IMPACT_SETTINGS, max_depth=2)

    assert ImpactAnalyzer(index, settings).analyze("a").downstream == ["b", "c"]
    assert ImpactAnalyzer(index).analyze("a").downstream == ["b", "c", "d"]


def test_wide_fan_out_suggests_decomposing(index_factory):
    index = index_factory([("hub", f"leaf-{i}") for i in range(6)])
    result = ImpactAnalyzer(index).analyze("hub")

    assert result.fan_out == 6
    assert result.consider_decomposing is True


@pytest.mark.parametrize(
    "criticality, expected",
    [
        (0.0, RiskLevel.LOW),
        (39.99, RiskLevel.LOW),
        (40.0, RiskLevel.MEDIUM),
        (59.99, RiskLevel.MEDIUM),
        (60.0, RiskLevel.HIGH),
        (79.99, RiskLevel.HIGH),
        (80.0, RiskLevel.CRITICAL),
        (100.0, RiskLevel.CRITICAL),
    ],
)
def test_risk_bands_are_inclusive_at_lower_bound(criticality, expected):
    assert classify_risk(criticality) is expected


def test_every_score_maps_to_exactly_one_band():
    order = [RiskLevel.LOW, RiskLevel.MEDIUM, RiskLevel.HIGH, RiskLevel.CRITICAL]
    previous = 0
    for tenth in range(0, 1001):
        level = classify_risk(tenth / 10.0)
        assert level in order
        assert order.index(level) >= previous
        previous = order.index(level)
