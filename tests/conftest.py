"""
Pytest configuration and shared fixtures.

Builders for search API payloads, listings and fake collaborators used
across the immo-trakt test suite.
"""

import pytest

from immo_trakt.errors import SinkError
from immo_trakt.fetcher.immoscout import Listing, PageResult


def make_listing(listing_id="1", title="Schöne 2-Zimmer Wohnung", warm_rent=800.0, **kwargs):
    kwargs.setdefault("cold_rent", warm_rent - 150.0)
    kwargs.setdefault("living_space", 55.0)
    kwargs.setdefault("number_of_rooms", 2.0)
    return Listing(id=listing_id, title=title, warm_rent=warm_rent, **kwargs)


def make_entry(listing_id, title="Wohnung", total_rent=800.0, price=650.0, living_space=55.0, rooms=2.0):
    """Build one ``resultlistEntry`` item the way the search API returns it."""
    return {
        "@id": listing_id,
        "@publishDate": "2024-01-01T12:00:00.000+01:00",
        "resultlist.realEstate": {
            "@id": listing_id,
            "title": title,
            "price": {"value": price, "currency": "EUR"},
            "livingSpace": living_space,
            "numberOfRooms": rooms,
            "calculatedTotalRent": {
                "totalRent": {"value": total_rent, "currency": "EUR"},
            },
        },
    }


def make_payload(entries, number_of_pages=1, page_number=1):
    """Wrap result entries into a full search response body."""
    return {
        "searchResponseModel": {
            "resultlist.resultlist": {
                "paging": {
                    "pageNumber": page_number,
                    "pageSize": 20,
                    "numberOfPages": number_of_pages,
                    "numberOfHits": len(entries),
                    "numberOfListings": len(entries),
                },
                "resultlistEntries": [{"resultlistEntry": entries}],
            }
        }
    }


class FakeSource:
    """Serves prepared pages; an exception instance in place of a page is raised."""

    def __init__(self, pages):
        self.pages = pages
        self.requested = []

    def fetch_page(self, page_number):
        self.requested.append(page_number)
        page = self.pages[page_number]
        if isinstance(page, Exception):
            raise page
        return page


class RecordingNotifier:
    name = "recording"

    def __init__(self, fail=False):
        self.fail = fail
        self.messages = []

    def send(self, text):
        if self.fail:
            raise SinkError("delivery failed")
        self.messages.append(text)


def page(page_number, number_of_pages, *listings):
    return PageResult(
        page_number=page_number,
        number_of_pages=number_of_pages,
        number_of_hits=len(listings),
        listings=list(listings),
    )


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    """Write a config.yml and clear environment overrides."""
    for var in (
        "IMMO_TRAKT_FREQUENCY",
        "IMMO_SEARCH_URL",
        "TELEGRAM_TOKEN",
        "TELEGRAM_CHAT_ID",
        "SLACK_WEBHOOK_URL",
        "DISCORD_WEBHOOK_URL",
        "SMTP_PASSWORD",
    ):
        monkeypatch.delenv(var, raising=False)

    def write(content):
        path = tmp_path / "config.yml"
        path.write_text(content, encoding="utf-8")
        return path

    return write
