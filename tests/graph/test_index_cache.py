from archgraph.graph import cache as index_cache
from archgraph.graph.cache import GraphIndexCache
from archgraph.graph.filters import RelationshipFilter
from archgraph.graph.schema import Relationship, RelationshipType


def test_cache_hits_until_ttl_expires(monkeypatch, store_factory):
    current = {"value": 1000.0}

    def fake_time():
        return current["value"]

    monkeypatch.setattr(index_cache.time, "time", fake_time)

    cache = GraphIndexCache(store_factory([("a", "b")]), ttl_seconds=10, label="test")
    first = cache.get_index()
    assert cache.get_index() is first

    current["value"] += 11
    assert cache.get_index() is not first

    stats = cache.describe()
    assert stats.label == "test"
    assert stats.hits == 1
    assert stats.misses == 2  # one cold build, one after expiry


def test_relationship_write_invalidates_cached_index(store_factory):
    store = store_factory([("a", "b")], isolated=["c"])
    cache = GraphIndexCache(store, ttl_seconds=300)
    before = cache.get_index()
    assert before.successors("b") == set()

    store.add_relationship(
        Relationship(id="b->c", source_id="b", target_id="c", type=RelationshipType.DEPENDS_ON)
    )
    after = cache.get_index()

    assert after is not before
    assert {rel.target_id for rel in after.successors("b")} == {"c"}
    assert cache.describe().invalidations == 1


def test_filters_are_cached_separately(store_factory):
    store = store_factory([("a", "b", "depends_on"), ("a", "c", "implements")])
    cache = GraphIndexCache(store)
    everything = cache.get_index()
    depends_only = cache.get_index(RelationshipFilter.build(["depends_on"]))

    assert everything.edge_count == 2
    assert depends_only.edge_count == 1
    assert cache.describe().size == 2


def test_disabled_cache_always_rebuilds(store_factory):
    cache = GraphIndexCache(store_factory([("a", "b")]), enabled=False)
    assert cache.get_index() is not cache.get_index()
    assert cache.describe().size == 0


def test_manual_invalidate_clears_entries(store_factory):
    cache = GraphIndexCache(store_factory([("a", "b")]))
    cache.get_index()
    cache.invalidate()
    assert cache.describe().size == 0
