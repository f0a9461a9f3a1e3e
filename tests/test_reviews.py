"""Unit tests for the Google Places review client."""

from __future__ import annotations

import typing as typ

import pytest
import requests

from petal_pages.reviews import (
    PlaceMatch,
    PlacesApiError,
    PlacesClient,
    Review,
    normalise_website,
)

if typ.TYPE_CHECKING:
    from pytest_mock import MockerFixture


def _response(mocker: MockerFixture, payload: object, status: int = 200) -> typ.Any:
    response = mocker.Mock(status_code=status)
    response.json.return_value = payload
    return response


@pytest.fixture
def session(mocker: MockerFixture) -> typ.Any:
    return mocker.Mock(spec=requests.Session)


def test_requires_api_key() -> None:
    """An empty API key should be rejected up front."""
    with pytest.raises(ValueError, match="API key"):
        PlacesClient("")


def test_fetch_reviews_filters_by_rating(session: typ.Any, mocker: MockerFixture) -> None:
    """Reviews below the minimum rating should be dropped."""
    session.get.return_value = _response(
        mocker,
        {
            "status": "OK",
            "result": {
                "reviews": [
                    {"author_name": "Ada", "rating": 5, "text": "Lovely", "time": 1700000000},
                    {"author_name": "Bob", "rating": 3, "text": "Fine"},
                    "garbage",
                ]
            },
        },
    )
    client = PlacesClient("key", session=session, timeout=3)
    reviews = client.fetch_reviews("place-1", min_rating=4)

    assert reviews == [Review(author_name="Ada", rating=5, text="Lovely", time=1700000000)]
    session.get.assert_called_once_with(
        "https://maps.googleapis.com/maps/api/place/details/json",
        params={"place_id": "place-1", "fields": "reviews", "key": "key"},
        timeout=3,
    )


@pytest.mark.parametrize(
    "failure",
    [
        {"side_effect": requests.ConnectionError("offline")},
        {"status": 500, "payload": {}},
        {"payload": {"status": "REQUEST_DENIED", "error_message": "bad key"}},
        {"payload": ["not", "an", "object"]},
    ],
)
def test_fetch_reviews_degrades_to_empty(
    session: typ.Any, mocker: MockerFixture, failure: dict[str, typ.Any]
) -> None:
    """Any transport or API failure should yield no reviews."""
    if "side_effect" in failure:
        session.get.side_effect = failure["side_effect"]
    else:
        session.get.return_value = _response(
            mocker, failure["payload"], failure.get("status", 200)
        )
    assert PlacesClient("key", session=session).fetch_reviews("place-1") == []


def test_error_status_is_reported(session: typ.Any, mocker: MockerFixture) -> None:
    """Place lookups should surface API error statuses."""
    session.get.return_value = _response(
        mocker, {"status": "REQUEST_DENIED", "error_message": "bad key"}
    )
    with pytest.raises(PlacesApiError, match="REQUEST_DENIED - bad key"):
        PlacesClient("key", session=session).find_place_id("example.com")


def test_find_place_prefers_matching_website(session: typ.Any, mocker: MockerFixture) -> None:
    """A result listing the same website should win over earlier results."""
    session.get.return_value = _response(
        mocker,
        {
            "status": "OK",
            "results": [
                {"place_id": "other", "name": "Other Florist", "website": "https://other.example"},
                {
                    "place_id": "ours",
                    "name": "Petal and Stem",
                    "formatted_address": "1 High St",
                    "website": "https://www.petal.example/",
                },
            ],
        },
    )
    match = PlacesClient("key", session=session).find_place_id("https://petal.example")
    assert match == PlaceMatch(
        place_id="ours",
        name="Petal and Stem",
        address="1 High St",
        website="https://www.petal.example/",
        matched_website=True,
    )
    assert session.get.call_args.kwargs["params"]["query"] == "petal.example"


def test_find_place_falls_back_to_first_result(session: typ.Any, mocker: MockerFixture) -> None:
    """Without a website match the first result should be used."""
    session.get.return_value = _response(
        mocker, {"status": "OK", "results": [{"place_id": "first", "name": "First"}]}
    )
    match = PlacesClient("key", session=session).find_place_id("petal.example")
    assert match.place_id == "first"
    assert match.matched_website is False


def test_find_place_without_results(session: typ.Any, mocker: MockerFixture) -> None:
    """No results should mean no match."""
    session.get.return_value = _response(mocker, {"status": "ZERO_RESULTS", "results": []})
    assert PlacesClient("key", session=session).find_place_id("petal.example") is None


def test_normalise_website() -> None:
    """Websites should reduce to a lower-case bare domain and path."""
    assert normalise_website(" HTTPS://www.Petal.example/ ") == "petal.example"
    assert normalise_website("petal.example/shop") == "petal.example/shop"


def test_find_place_skips_results_without_place_id(
    session: typ.Any, mocker: MockerFixture
) -> None:
    """Results lacking a place id should be passed over in both searches."""
    session.get.return_value = _response(
        mocker,
        {
            "status": "OK",
            "results": [
                {"name": "Unlisted", "website": "https://petal.example"},
                {"place_id": "", "name": "Blank"},
                {"place_id": "second", "name": "Second"},
            ],
        },
    )
    match = PlacesClient("key", session=session).find_place_id("petal.example")
    assert match is not None, "expected the first result that has a place id"
    assert match.place_id == "second"
    assert match.matched_website is False
