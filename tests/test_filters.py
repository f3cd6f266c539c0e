import copy

from discovery.filters import FilterCriteria, apply_filters, category_matches, matches

HOME = {"lat": 40.7128, "lng": -74.0060}


def business(bid, **fields):
    record = {
        "id": bid,
        "name": fields.pop("name", f"Business {bid}"),
        "description": fields.pop("description", ""),
        "categories": fields.pop("categories", []),
        "tags": fields.pop("tags", []),
        "coordinates": fields.pop("coordinates", None),
        "rating": {"overall": fields.pop("overall", 0.0), "count": fields.pop("count", 0)},
        "price_level": fields.pop("price_level", 0),
        "verified": fields.pop("verified", False),
        "sponsored": fields.pop("sponsored", False),
        "open_now": fields.pop("open_now", False),
    }
    record.update(fields)
    return record


CANDIDATES = [
    business("a", name="Bean There Coffee", categories=["Coffee Shop"], overall=4.5, price_level=1,
             coordinates={"lat": 40.7130, "lng": -74.0070}, verified=True, open_now=True),
    business("b", name="Clip Joint", categories=["Hair Salon"], tags=["barber"], overall=3.9, price_level=2,
             coordinates={"lat": 40.7580, "lng": -73.9855}),
    business("c", name="Auto Fixers", description="Brakes and tyres", categories=["Automotive"],
             overall=2.0, price_level=3, sponsored=True),
    business("d", name="Late Night Diner", categories=["Restaurant"], overall=4.9, price_level=2,
             coordinates={"lat": 34.0522, "lng": -118.2437}, open_now=True),
]


def ids(items):
    return [b["id"] for b in items]


def test_empty_candidates():
    assert apply_filters([], FilterCriteria(keywords="coffee")) == []


def test_no_criteria_returns_everything_in_order():
    assert ids(apply_filters(CANDIDATES, FilterCriteria())) == ["a", "b", "c", "d"]


def test_keywords_search_name_description_categories_and_tags():
    assert ids(apply_filters(CANDIDATES, FilterCriteria(keywords="COFFEE"))) == ["a"]
    assert ids(apply_filters(CANDIDATES, FilterCriteria(keywords="tyres"))) == ["c"]
    assert ids(apply_filters(CANDIDATES, FilterCriteria(keywords="barber"))) == ["b"]
    assert ids(apply_filters(CANDIDATES, FilterCriteria(keywords="restaurant"))) == ["d"]


def test_rating_range_is_inclusive():
    assert ids(apply_filters(CANDIDATES, FilterCriteria(rating_range=(3.9, 4.5)))) == ["a", "b"]


def test_price_range_is_inclusive():
    assert ids(apply_filters(CANDIDATES, FilterCriteria(price_range=(2, 3)))) == ["b", "c", "d"]


def test_distance_range_needs_user_location():
    criteria = FilterCriteria(distance_range=(0, 1))
    # No location: criterion skipped
    assert ids(apply_filters(CANDIDATES, criteria)) == ["a", "b", "c", "d"]
    # With location: only the shop next door; "c" has no coordinates
    assert ids(apply_filters(CANDIDATES, criteria, HOME)) == ["a"]


def test_distance_range_excludes_businesses_without_coordinates():
    wide = FilterCriteria(distance_range=(0, 100000))
    assert "c" not in ids(apply_filters(CANDIDATES, wide, HOME))


def test_categories_symmetric_substring():
    # "Salon" is inside "Hair Salon"
    assert ids(apply_filters(CANDIDATES, FilterCriteria(categories=("salon",)))) == ["b"]
    # and the other way round: the request contains the business category
    shop = [business("x", categories=["Shop"])]
    assert ids(apply_filters(shop, FilterCriteria(categories=("Coffee Shop",)))) == ["x"]


def test_categories_exact_mode():
    criteria = FilterCriteria(categories=("salon",), category_match="exact")
    assert apply_filters(CANDIDATES, criteria) == []
    criteria = FilterCriteria(categories=("hair salon", "nothing"), category_match="exact")
    assert ids(apply_filters(CANDIDATES, criteria)) == ["b"]


def test_category_matches_any_of_many():
    assert category_matches(["Bakery", "Auto"], ["Automotive"], "substring")
    assert not category_matches(["Bakery"], ["Automotive"], "substring")


def test_boolean_flags_use_equality():
    assert ids(apply_filters(CANDIDATES, FilterCriteria(open_now=True))) == ["a", "d"]
    assert ids(apply_filters(CANDIDATES, FilterCriteria(verified=False))) == ["b", "c", "d"]
    assert ids(apply_filters(CANDIDATES, FilterCriteria(sponsored=True))) == ["c"]


def test_criteria_combine_with_and():
    criteria = FilterCriteria(open_now=True, rating_range=(4.6, 5))
    assert ids(apply_filters(CANDIDATES, criteria)) == ["d"]


def test_missing_fields_do_not_match_and_do_not_raise():
    broken = [{"id": "z"}, {"id": "y", "rating": "bad", "price_level": "cheap", "verified": "yes"}]
    assert apply_filters(broken, FilterCriteria(rating_range=(0, 5))) == []
    assert apply_filters(broken, FilterCriteria(price_range=(0, 10))) == []
    assert apply_filters(broken, FilterCriteria(verified=True)) == []
    assert apply_filters(broken, FilterCriteria(categories=("x",))) == []
    assert ids(apply_filters(broken, FilterCriteria())) == ["z", "y"]


def test_input_is_not_mutated():
    before = copy.deepcopy(CANDIDATES)
    apply_filters(CANDIDATES, FilterCriteria(keywords="a", rating_range=(0, 5), categories=("x",)), HOME)
    assert CANDIDATES == before


def test_result_is_subset_satisfying_every_criterion():
    grid = [
        FilterCriteria(keywords="o"),
        FilterCriteria(rating_range=(2, 4.5), open_now=True),
        FilterCriteria(price_range=(1, 2), categories=("salon", "coffee")),
        FilterCriteria(distance_range=(0, 10), verified=True),
        FilterCriteria(sponsored=False, keywords="night"),
    ]
    for criteria in grid:
        result = apply_filters(CANDIDATES, criteria, HOME)
        assert all(b in CANDIDATES for b in result)
        assert all(matches(b, criteria, HOME) for b in result)
        # relative order preserved
        positions = [CANDIDATES.index(b) for b in result]
        assert positions == sorted(positions)
