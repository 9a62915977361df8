import itertools
import re
from dataclasses import replace

import pytest

from archgraph.analysis.critical_paths import (
    DEFAULT_CRITICAL_PATH_SETTINGS,
    CriticalPathDetector,
    path_id,
)
from archgraph.errors import InvalidArgumentError
from archgraph.graph.index import GraphIndex


def test_stronger_prefix_outranks_its_weaker_continuation(index_factory):
    index = index_factory(
        [
            ("s", "m", "depends_on", 0.9),
            ("m", "t", "depends_on", 0.8),
            ("u", "v", "depends_on", 0.1),
        ],
        criticality={"s": 90, "m": 90, "t": 90},
    )
    paths = CriticalPathDetector(index).detect()

    # The 0.9 prefix outscores its 0.8 continuation, so both are reported.
    assert [path.cards for path in paths] == [["s", "m"], ["s", "m", "t"]]
    longest = paths[1]
    assert longest.min_strength == 0.8
    assert longest.risk_score == round(longest.mean_criticality * longest.min_strength, 2)
    assert longest.to_dict()["id"] == path_id(["s", "m", "t"])
    assert paths[0].risk_score > longest.risk_score


def test_paths_never_repeat_a_card_on_cycles(index_factory):
    index = index_factory(
        [("a", "b", "depends_on", 0.9), ("b", "c", "depends_on", 0.9), ("c", "a", "depends_on", 0.9)],
        criticality={"a": 90, "b": 90, "c": 90},
    )
    paths = CriticalPathDetector(index).detect()

    assert paths
    for path in paths:
        assert len(path.cards) == len(set(path.cards))
    assert paths[0].cards == ["a", "b", "c"]


def test_dense_cyclic_graph_terminates_without_repeats(index_factory):
    nodes = ["n1", "n2", "n3", "n4", "n5"]
    edges = [(a, b, "depends_on", 0.9) for a, b in itertools.permutations(nodes, 2)]
    index = index_factory(edges, criticality={node: 95 for node in nodes})

    paths = CriticalPathDetector(index).detect(limit=5)

    assert len(paths) == 5
    assert all(len(path.cards) == len(set(path.cards)) for path in paths)
    scores = [path.risk_score for path in paths]
    assert scores == sorted(scores, reverse=True)


def test_empty_graph_returns_no_paths():
    assert CriticalPathDetector(GraphIndex([], [])).detect() == []


def test_insignificant_paths_are_dropped(index_factory):
    index = index_factory([("a", "b", "similar_to", 0.1)], isolated=["w"])
    assert CriticalPathDetector(index).detect() == []


def test_limit_must_be_positive_and_bounded(index_factory):
    detector = CriticalPathDetector(index_factory([("a", "b")]))
    with pytest.raises(InvalidArgumentError):
        detector.detect(limit=0)
    with pytest.raises(InvalidArgumentError):
        detector.detect(limit=DEFAULT_CRITICAL_PATH_SETTINGS.max_paths + 1)


def test_expansion_cap_returns_best_paths_so_far(index_factory):
    nodes = ["a", "b", "c", "d", "e", "f"]
    edges = [(a, b) for a, b in itertools.permutations(nodes, 2)]
    settings = replace(DEFAULT_CRITICAL_PATH_SETTINGS, max_expansions=5)
    detector = CriticalPathDetector(
        index_factory(edges, criticality={node: 90 for node in nodes}), settings
    )

    paths = detector.detect()

    assert detector.exhausted is True
    assert [path.cards for path in paths] == [["a", "b", "c", "d", "e", "f"]]


def test_max_path_length_caps_walks(index_factory):
    chain = [(f"c{i}", f"c{i + 1}", "depends_on", 1.0) for i in range(8)]
    index = index_factory(chain, criticality={f"c{i}": 100 for i in range(9)})
    settings = replace(DEFAULT_CRITICAL_PATH_SETTINGS, max_path_length=4)

    paths = CriticalPathDetector(index, settings).detect()

    assert all(len(path.cards) <= 4 for path in paths)
    assert paths[0].cards == ["c0", "c1", "c2", "c3"]
    # Cards past the cap are scanned again as their own starting point.
    assert paths[1].cards == ["c4", "c5", "c6", "c7"]


def test_path_ids_are_stable():
    assert path_id(["a", "b"]) == path_id(["a", "b"])
    assert path_id(["a", "b"]) != path_id(["b", "a"])
    assert re.fullmatch(r"path-[0-9a-f]{12}", path_id(["a", "b"]))


def test_weak_tail_edge_does_not_hide_a_strong_chain(index_factory):
    chain = [("s", "m", "depends_on", 0.9), ("m", "t", "depends_on", 0.9)]
    criticality = {"s": 90, "m": 90, "t": 90}

    before = CriticalPathDetector(index_factory(chain, criticality=criticality)).detect()
    assert [path.cards for path in before] == [["s", "m", "t"]]

    with_tail = chain + [("t", "u", "similar_to", 0.05)]
    after = CriticalPathDetector(index_factory(with_tail, criticality=criticality)).detect()

    assert [path.cards for path in after] == [["s", "m", "t"]]
    assert after[0].min_strength == 0.9


def _layered_edges(layers, width, fan_out):
    edges = []
    for layer in range(layers - 1):
        for i in range(width):
            for j in range(fan_out):
                target = (i * 7 + layer + j * 3) % width
                edges.append((f"L{layer}-{i}", f"L{layer + 1}-{target}", "depends_on", 0.7))
    return edges


def test_layered_portal_graph_is_ranked_without_hitting_the_cap(index_factory):
    edges = _layered_edges(layers=6, width=20, fan_out=4)
    criticality = {
        f"L{layer}-{i}": (i * 37 + layer * 11) % 100 for layer in range(6) for i in range(20)
    }
    index = index_factory(edges, criticality=criticality)
    assert len(edges) == 400
    assert len(index.entity_ids()) == 120

    detector = CriticalPathDetector(index)
    paths = detector.detect()

    assert detector.exhausted is False
    assert detector.expansions < DEFAULT_CRITICAL_PATH_SETTINGS.max_expansions
    assert len(paths) == DEFAULT_CRITICAL_PATH_SETTINGS.max_paths
    scores = [path.risk_score for path in paths]
    assert scores == sorted(scores, reverse=True)
    for path in paths:
        assert 2 <= len(path.cards) <= 6
        assert len(path.cards) == len(set(path.cards))
        assert path.min_strength == 0.7


def test_smaller_limit_returns_the_head_of_the_full_ranking(index_factory):
    edges = _layered_edges(layers=4, width=6, fan_out=2)
    criticality = {f"L{layer}-{i}": (i * 37 + layer * 11) % 100 for layer in range(4) for i in range(6)}
    index = index_factory(edges, criticality=criticality)

    top = CriticalPathDetector(index).detect(limit=3)
    everything = CriticalPathDetector(index).detect(limit=DEFAULT_CRITICAL_PATH_SETTINGS.max_paths)

    assert [path.cards for path in top] == [path.cards for path in everything[:3]]
