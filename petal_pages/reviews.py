r"""Client for the Google Places reviews shown on the site.

Reviews are decoration: when the API is unreachable, misconfigured, or
returns an error status, :meth:`PlacesClient.fetch_reviews` logs the problem
and serves an empty list rather than failing the caller.

Example
-------
>>> from petal_pages.reviews import PlacesClient
>>> client = PlacesClient(api_key="AIza-example", timeout=5)  # doctest: +SKIP
>>> [r.author_name for r in client.fetch_reviews("ChIJ...", min_rating=5)]  # doctest: +SKIP
['Jane Doe']
"""

from __future__ import annotations

import dataclasses as dc
import json
import logging
import re
import typing as typ
from http import HTTPStatus

import requests

logger = logging.getLogger(__name__)

DEFAULT_API_BASE = "https://maps.googleapis.com/maps/api/place"
_ACCEPTED_STATUSES = frozenset({"OK", "ZERO_RESULTS"})
_SCHEME_PATTERN = re.compile(r"^https?://", re.IGNORECASE)


class PlacesApiError(RuntimeError):
    """Raised when the Places API cannot be reached or reports an error."""


@dc.dataclass(slots=True)
class Review:
    """One customer review as returned by the place details endpoint."""

    author_name: str
    rating: int
    text: str = ""
    relative_time: str | None = None
    time: int | None = None
    profile_photo_url: str | None = None


@dc.dataclass(slots=True)
class PlaceMatch:
    """A place found by :meth:`PlacesClient.find_place_id`."""

    place_id: str
    name: str | None = None
    address: str | None = None
    website: str | None = None
    matched_website: bool = False


def normalise_website(website: str) -> str:
    """Strip scheme, ``www.``, and trailing slashes from a site address."""
    text = _SCHEME_PATTERN.sub("", website.strip())
    if text.lower().startswith("www."):
        text = text[4:]
    return text.rstrip("/").lower()


class PlacesClient:
    """Thin wrapper around the place details and text search endpoints."""

    default_api_base = DEFAULT_API_BASE

    def __init__(
        self,
        api_key: str,
        *,
        api_base: str = DEFAULT_API_BASE,
        session: requests.Session | None = None,
        timeout: float = 10.0,
    ) -> None:
        """Initialise the client.

        Parameters
        ----------
        api_key : str
            Places API key; sent as the ``key`` query parameter.
        api_base : str, optional
            Base URL of the Places web service.
        session : requests.Session, optional
            Session to reuse connections; a new one is created by default.
        timeout : float, optional
            Per-request timeout in seconds. Requests are not retried.
        """
        if not api_key:
            msg = "A Places API key is required"
            raise ValueError(msg)
        self._api_key = api_key
        self._api_base = api_base.rstrip("/") or DEFAULT_API_BASE
        self._session = session or requests.Session()
        self.timeout = timeout

    def fetch_reviews(self, place_id: str, *, min_rating: int | None = None) -> list[Review]:
        """Return the reviews of ``place_id``, or an empty list on any failure.

        Parameters
        ----------
        place_id : str
            Google place identifier.
        min_rating : int, optional
            Drop reviews rated below this value.

        Returns
        -------
        list[Review]
            Reviews in the order the API returned them.
        """
        try:
            payload = self._get_json(
                "details/json", {"place_id": place_id, "fields": "reviews"}
            )
        except PlacesApiError as exc:
            logger.warning("Serving no reviews: %s", exc)
            return []
        result = payload.get("result") or {}
        reviews = [
            review
            for raw in result.get("reviews") or []
            if (review := _parse_review(raw)) is not None
        ]
        if min_rating is not None:
            reviews = [review for review in reviews if review.rating >= min_rating]
        return reviews

    def find_place_id(self, website: str) -> PlaceMatch | None:
        """Search for the place whose listing links to ``website``.

        The domain is used as a text query. A result whose listed website
        matches the domain is preferred; otherwise the first result that
        carries a place id is returned.

        Raises
        ------
        PlacesApiError
            If the request fails or the API reports an error status.
        """
        domain = normalise_website(website)
        if not domain:
            msg = "Website cannot be empty"
            raise ValueError(msg)
        payload = self._get_json("textsearch/json", {"query": domain})
        results = [item for item in payload.get("results") or [] if isinstance(item, dict)]
        for item in results:
            listed = item.get("website")
            if isinstance(listed, str) and domain in normalise_website(listed):
                match = _parse_match(item, matched=True)
                if match is not None:
                    return match
        for item in results:
            match = _parse_match(item, matched=False)
            if match is not None:
                return match
        return None

    def _get_json(self, endpoint: str, params: dict[str, str]) -> dict[str, typ.Any]:
        url = f"{self._api_base}/{endpoint}"
        try:
            response = self._session.get(
                url, params={**params, "key": self._api_key}, timeout=self.timeout
            )
        except requests.RequestException as exc:
            msg = f"Failed to reach the Places API ({endpoint}): {type(exc).__name__}"
            raise PlacesApiError(msg) from exc

        if response.status_code >= HTTPStatus.BAD_REQUEST:
            msg = f"Places API {endpoint} returned HTTP {response.status_code}"
            raise PlacesApiError(msg)
        try:
            payload = response.json()
        except (json.JSONDecodeError, ValueError) as exc:
            msg = f"Places API {endpoint} response was not valid JSON"
            raise PlacesApiError(msg) from exc
        if not isinstance(payload, dict):
            msg = f"Places API {endpoint} response was not a JSON object"
            raise PlacesApiError(msg)

        status = payload.get("status")
        if status not in _ACCEPTED_STATUSES:
            detail = payload.get("error_message") or "Unknown error"
            msg = f"Places API error: {status} - {detail}"
            raise PlacesApiError(msg)
        return payload


def _parse_review(raw: object) -> Review | None:
    if not isinstance(raw, dict):
        return None
    try:
        rating = int(raw.get("rating", 0))
    except (TypeError, ValueError):
        return None
    time_value = raw.get("time")
    return Review(
        author_name=str(raw.get("author_name") or "Anonymous"),
        rating=rating,
        text=str(raw.get("text") or ""),
        relative_time=raw.get("relative_time_description"),
        time=time_value if isinstance(time_value, int) else None,
        profile_photo_url=raw.get("profile_photo_url"),
    )


def _parse_match(item: dict[str, typ.Any], *, matched: bool) -> PlaceMatch | None:
    place_id = item.get("place_id")
    if not isinstance(place_id, str) or not place_id:
        return None
    return PlaceMatch(
        place_id=place_id,
        name=item.get("name"),
        address=item.get("formatted_address"),
        website=item.get("website"),
        matched_website=matched,
    )


__all__ = [
    "PlaceMatch",
    "PlacesApiError",
    "PlacesClient",
    "Review",
    "normalise_website",
]
