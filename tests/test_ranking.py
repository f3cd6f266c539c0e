from datetime import datetime, timezone

from discovery import ranking
from discovery.ranking import SORT_LABELS, SORT_STRATEGIES, register_strategy, sort_businesses

HOME = {"lat": 40.7128, "lng": -74.0060}


def biz(bid, overall=0.0, count=0, sponsored=False, price=0, name=None, created=None, coords=None):
    return {
        "id": bid,
        "name": name if name is not None else bid,
        "rating": {"overall": overall, "count": count},
        "sponsored": sponsored,
        "price_level": price,
        "created_at": created,
        "coordinates": coords,
    }


def ids(items):
    return [b["id"] for b in items]


def test_relevance_puts_sponsored_first_then_rating():
    items = [biz("a", 4.0), biz("b", 3.0, sponsored=True), biz("c", 5.0), biz("d", 4.5, sponsored=True)]
    assert ids(sort_businesses(items, "relevance")) == ["d", "b", "c", "a"]


def test_rating_ties_break_on_review_count():
    items = [biz("a", 4.0, 10), biz("b", 4.5, 1), biz("c", 4.0, 30)]
    assert ids(sort_businesses(items, "rating")) == ["b", "c", "a"]


def test_reviews_ties_break_on_rating():
    items = [biz("a", 3.0, 10), biz("b", 4.0, 10), biz("c", 1.0, 50)]
    assert ids(sort_businesses(items, "reviews")) == ["c", "b", "a"]


def test_distance_puts_missing_coordinates_last():
    items = [
        biz("far", coords={"lat": 34.0522, "lng": -118.2437}),
        biz("nowhere"),
        biz("near", coords={"lat": 40.7130, "lng": -74.0070}),
    ]
    assert ids(sort_businesses(items, "distance", HOME)) == ["near", "far", "nowhere"]


def test_distance_without_location_falls_back_to_relevance():
    items = [biz("a", 4.0, coords={"lat": 0, "lng": 0}), biz("b", 2.0, sponsored=True)]
    assert ids(sort_businesses(items, "distance")) == ["b", "a"]


def test_name_is_case_insensitive():
    items = [biz("1", name="banana"), biz("2", name="Apple"), biz("3", name="cherry"), biz("4", name=None)]
    assert ids(sort_businesses(items, "name")) == ["4", "2", "1", "3"]


def test_name_ignores_accents():
    items = [biz("z", name="Zed"), biz("e", name="\u00c9clair"), biz("a", name="apple"), biz("d", name="d\u00e9j\u00e0 vu")]
    assert ids(sort_businesses(items, "name")) == ["a", "d", "e", "z"]


def test_price_ascending():
    items = [biz("a", price=3), biz("b", price=1), biz("c", price=2)]
    assert ids(sort_businesses(items, "price")) == ["b", "c", "a"]


def test_newest_and_oldest_treat_missing_date_as_epoch():
    items = [
        biz("mid", created=datetime(2024, 6, 1, tzinfo=timezone.utc)),
        biz("undated"),
        biz("new", created=datetime(2025, 1, 1)),  # naive, read back from SQLite
        biz("old", created="2020-01-01T00:00:00+00:00"),
    ]
    assert ids(sort_businesses(items, "newest")) == ["new", "mid", "old", "undated"]
    assert ids(sort_businesses(items, "oldest")) == ["undated", "old", "mid", "new"]


def test_unknown_sort_key_uses_relevance():
    items = [biz("a", 1.0), biz("b", 5.0)]
    assert sort_businesses(items, "bogus") == sort_businesses(items, "relevance")
    assert sort_businesses(items, None) == sort_businesses(items, "relevance")


def test_ties_keep_input_order():
    items = [biz(str(i), 4.0, 3) for i in range(6)]
    for key in SORT_STRATEGIES:
        assert ids(sort_businesses(items, key, HOME)) == [str(i) for i in range(6)]


def test_sorting_is_idempotent_and_returns_new_list():
    items = [
        biz("a", 4.0, 2, price=2, created=datetime(2023, 1, 1)),
        biz("b", 4.0, 9, sponsored=True, price=1, coords={"lat": 40.8, "lng": -74.0}),
        biz("c", 2.5, 9, price=2, name="Zed"),
        biz("d", 4.0, 2, coords={"lat": 40.72, "lng": -74.01}),
    ]
    snapshot = list(items)
    for key in SORT_STRATEGIES:
        once = sort_businesses(items, key, HOME)
        assert once is not items
        assert sort_businesses(once, key, HOME) == once
    assert items == snapshot


def test_malformed_records_do_not_raise():
    items = [{"id": "x"}, {"id": "y", "rating": "n/a", "price_level": "?", "created_at": "not a date"}, biz("z", 3.0)]
    for key in SORT_STRATEGIES:
        assert sorted(ids(sort_businesses(items, key, HOME))) == ["x", "y", "z"]


def test_register_strategy_adds_a_sort_key(monkeypatch):
    monkeypatch.setattr(ranking, "SORT_STRATEGIES", dict(SORT_STRATEGIES))
    register_strategy("most_expensive", lambda items, loc=None: sorted(items, key=lambda b: -b["price_level"]))
    items = [biz("a", price=1), biz("b", price=4)]
    assert ids(sort_businesses(items, "most_expensive")) == ["b", "a"]
    assert "most_expensive" not in SORT_STRATEGIES


def test_every_builtin_key_has_a_label():
    assert set(SORT_LABELS) == set(SORT_STRATEGIES)
