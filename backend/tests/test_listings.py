from __future__ import annotations

import typing

import pytest

from pickup_api.services import errors
from pickup_api.services.listings import ListingCatalog


@pytest.fixture()
def catalog(db, clock, ids) -> ListingCatalog:
    return ListingCatalog(db, clock=clock, id_factory=ids)


@pytest.fixture()
def stocked(catalog, clock) -> dict:
    items = {}
    items["cardboard"] = catalog.create("Cardboard bales", "Clean, dry", 0.12, 10.78, 106.70)
    clock.advance(minutes=1)
    items["copper"] = catalog.create("Copper wire", "Stripped CARDBOARD-free", 6.5, 10.80, 106.72)
    clock.advance(minutes=1)
    items["remote"] = catalog.create("Cardboard offcuts", "", 0.05, 21.03, 105.85)
    clock.advance(minutes=1)
    items["nowhere"] = catalog.create("Cardboard tubes", "no pin on the map", 0.08)
    return items


def test_list_method_does_not_shadow_builtin_in_annotations() -> None:
    assert typing.get_type_hints(ListingCatalog.search)["return"] == list[dict]


def test_create_validation(catalog) -> None:
    with pytest.raises(errors.ValidationError):
        catalog.create("  ", "x", 1.0)
    with pytest.raises(errors.ValidationError):
        catalog.create("Glass", "x", 1.0, lat=10.0)


def test_list_is_newest_first(catalog, stocked) -> None:
    assert [i["listing_id"] for i in catalog.list()] == [
        stocked["nowhere"]["listing_id"],
        stocked["remote"]["listing_id"],
        stocked["copper"]["listing_id"],
        stocked["cardboard"]["listing_id"],
    ]


def test_keyword_search_is_case_insensitive(catalog, stocked) -> None:
    hits = catalog.search(q="cardboard")

    assert {h["listing_id"] for h in hits} == {i["listing_id"] for i in stocked.values()}
    assert catalog.search(q="COPPER")[0]["listing_id"] == stocked["copper"]["listing_id"]
    assert catalog.search(q="aluminium") == []


def test_radius_search_sorts_by_distance(catalog, stocked) -> None:
    hits = catalog.search(q="cardboard", lat=10.78, lng=106.70, radius_km=10)

    assert [h["listing_id"] for h in hits] == [stocked["cardboard"]["listing_id"], stocked["copper"]["listing_id"]]
    assert hits[0]["distance_km"] == 0.0
    assert 0 < hits[1]["distance_km"] < 10
    assert hits[1]["distance_km"] == round(hits[1]["distance_km"], 3)


def test_radius_filter_needs_all_three_parameters(catalog, stocked) -> None:
    assert len(catalog.search(lat=10.78, lng=106.70)) == 4
    assert len(catalog.search(lat=10.78, radius_km=5)) == 4


@pytest.mark.parametrize(("top", "expected"), [(2, 2), (0, 4), (500, 4), (None, 4)])
def test_top_is_clamped(catalog, stocked, top, expected) -> None:
    assert len(catalog.search(top=top)) == expected
