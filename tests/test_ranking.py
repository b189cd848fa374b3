from datetime import date, datetime, timedelta, timezone

from client.order_store import ORDER_KEY
from client.ranking import (
    RankAggregator,
    countdown_label,
    is_challenge_completed,
    merge_group_order,
    rank_label,
)

from conftest import make_group


NOW = datetime(2025, 3, 10, 12, 0)


def fixed_clock():
    return NOW


def test_stable_merge_respects_persisted_then_fetch_order():
    groups = [make_group("a"), make_group("b"), make_group("c")]
    ordered, updated = merge_group_order(groups, ["b", "a"])
    assert [g.id for g in ordered] == ["b", "a", "c"]
    assert updated == ["b", "a", "c"]


def test_newcomers_keep_fetch_order_after_known_groups():
    groups = [make_group(x) for x in ["n1", "k2", "n2", "k1", "n3"]]
    ordered, updated = merge_group_order(groups, ["k1", "gone", "k2"])
    assert [g.id for g in ordered] == ["k1", "k2", "n1", "n2", "n3"]
    assert updated == ["k1", "gone", "k2", "n1", "n2", "n3"]


def test_aggregate_persists_newcomers_once(order_store, kv_store):
    aggregator = RankAggregator(order_store, clock=fixed_clock)
    groups = [make_group("a"), make_group("b")]

    aggregator.aggregate(groups, order_store.load_order(), {})
    assert order_store.load_order() == ["a", "b"]

    kv_store.set(ORDER_KEY, '["b", "a"]')
    items = aggregator.aggregate(groups, order_store.load_order(), {})
    assert [i.group_id for i in items] == ["b", "a"]
    assert kv_store.get(ORDER_KEY) == '["b", "a"]'


def test_aggregate_empty_input_writes_nothing(order_store, kv_store):
    aggregator = RankAggregator(order_store, clock=fixed_clock)
    assert aggregator.aggregate([], ["x"], {}) == []
    assert kv_store.get(ORDER_KEY) is None


def test_stale_persisted_ids_are_ignored(order_store):
    aggregator = RankAggregator(order_store, clock=fixed_clock)
    order_store.save_order(["hidden", "b", "a"])
    items = aggregator.aggregate([make_group("a"), make_group("b")], order_store.load_order(), {})
    assert [i.group_id for i in items] == ["b", "a"]
    assert order_store.load_order() == ["hidden", "b", "a"]


def test_aggregate_is_deterministic(order_store):
    aggregator = RankAggregator(order_store, clock=fixed_clock, language="en")
    groups = [make_group("a", date(2025, 3, 12)), make_group("b")]
    first = aggregator.aggregate(groups, ["b", "a"], {"a": 2})
    second = aggregator.aggregate(groups, ["b", "a"], {"a": 2})
    assert first == second


def test_rank_labels(order_store):
    aggregator = RankAggregator(order_store, clock=fixed_clock, language="en")
    items = aggregator.aggregate([make_group("a"), make_group("b")], ["a", "b"], {"a": 1, "b": None})
    by_id = {i.group_id: i for i in items}

    assert by_id["a"].rank == 1
    assert by_id["a"].rank_label == "#1"
    assert by_id["b"].rank is None
    assert by_id["b"].rank_label == "No rank yet"
    assert "0" not in by_id["b"].rank_label
    assert by_id["a"].rank_label != by_id["b"].rank_label


def test_rank_label_never_renders_zero():
    assert rank_label(0, "en") == rank_label(None, "en")
    assert rank_label(-3, "he") == rank_label(None, "he")
    assert rank_label(None, "he") == "אין דירוג עדיין"


def test_completion_boundary_is_local_midnight():
    end = date(2025, 3, 10)
    last_moment = datetime(2025, 3, 10, 23, 59, 59, 999000)
    assert is_challenge_completed(end, last_moment) is False
    assert is_challenge_completed(end, datetime(2025, 3, 10, 23, 59, 59, 999999)) is False
    assert is_challenge_completed(end, datetime(2025, 3, 11, 0, 0, 0, 0)) is True
    assert is_challenge_completed(None, last_moment) is False


def test_completion_with_aware_clock():
    tz = timezone(timedelta(hours=2))
    end = date(2025, 3, 10)
    assert is_challenge_completed(end, datetime(2025, 3, 10, 23, 0, tzinfo=tz)) is False
    assert is_challenge_completed(end, datetime(2025, 3, 11, 0, 0, tzinfo=tz)) is True


def test_countdown_label():
    end = date(2025, 3, 12)
    assert countdown_label(end, NOW, "en") == "2d 12h left"
    assert countdown_label(end, NOW, "he") == "נותרו 2 ימים 12 שעות"
    assert countdown_label(date(2025, 3, 9), NOW, "en") == "Completed"
    assert countdown_label(None, NOW, "en") is None


def test_aggregate_attaches_challenge_and_countdown(order_store):
    aggregator = RankAggregator(order_store, clock=fixed_clock, language="en")
    items = aggregator.aggregate(
        [make_group("a", date(2025, 3, 12)), make_group("b", date(2025, 3, 1)), make_group("c")],
        [],
        {},
    )
    by_id = {i.group_id: i for i in items}
    assert by_id["a"].challenge.id == "ch-a"
    assert by_id["a"].countdown_label == "2d 12h left"
    assert by_id["a"].completed is False
    assert by_id["b"].completed is True
    assert by_id["b"].countdown_label == "Completed"
    assert by_id["c"].challenge is None
    assert by_id["c"].countdown_label is None
