"""Tests for output formatters."""

import json

import pytest

from tripmatch.models import Itinerary
from tripmatch.output import get_formatter
from tripmatch.output.json_formatter import JsonFormatter
from tripmatch.output.plain_formatter import PlainFormatter
from tripmatch.output.rich_formatter import RichFormatter
from tripmatch.search.models import SearchState


@pytest.fixture
def candidates(make_record):
    return [
        Itinerary.model_validate(make_record(id="a", destination="Paris, France")),
        Itinerary.model_validate(
            make_record(id="b", destination="Rome", description="Pasta tour")
        ),
    ]


@pytest.fixture
def state(candidates):
    return SearchState(has_more=True, matching_itineraries=candidates)


STATS = {"memorySize": 2, "localStorageSize": 3, "totalKeys": 3, "hits": 5, "misses": 1}


class TestGetFormatter:
    @pytest.mark.parametrize(
        "name,cls", [("rich", RichFormatter), ("plain", PlainFormatter), ("json", JsonFormatter)]
    )
    def test_known(self, name, cls):
        assert isinstance(get_formatter(name), cls)

    def test_unknown(self):
        with pytest.raises(ValueError, match="Unknown formatter"):
            get_formatter("xml")


class TestPlainFormatter:
    def test_search(self, state):
        out = PlainFormatter().format_search(state)
        assert "Matching Itineraries" in out
        assert "[1] a" in out
        assert "Paris, France" in out
        assert "Pasta tour" in out
        assert "More on server: yes" in out
        assert "\x1b[" not in out

    def test_search_empty(self):
        out = PlainFormatter().format_search(SearchState(has_more=False))
        assert "No matching itineraries." in out
        assert "More on server: no" in out

    def test_search_error(self):
        out = PlainFormatter().format_search(SearchState(error="Request timeout"))
        assert "Error: Request timeout" in out

    def test_candidate(self, candidates):
        out = PlainFormatter().format_candidate(candidates[0])
        assert "Sam" in out
        assert "2026-07-05 to 2026-07-12" in out
        assert "ages 25-40" in out

    def test_cache_stats(self):
        out = PlainFormatter().format_cache_stats(STATS)
        assert "hits" in out
        assert "5" in out

    def test_viewed(self):
        out = PlainFormatter().format_viewed(["x", "y"])
        assert "Viewed Itineraries (2)" in out
        assert "  x" in out


class TestJsonFormatter:
    def test_search(self, state):
        data = json.loads(JsonFormatter().format_search(state))
        assert data["type"] == "search_result"
        assert data["summary"] == {"error": None, "has_more": True, "matching": 2}
        assert [i["id"] for i in data["itineraries"]] == ["a", "b"]
        assert data["itineraries"][0]["userInfo"]["uid"] == "other-user-456"
        assert "startDay" in data["itineraries"][0]

    def test_candidate(self, candidates):
        data = json.loads(JsonFormatter().format_candidate(candidates[1]))
        assert data["destination"] == "Rome"

    def test_cache_stats(self):
        data = json.loads(JsonFormatter().format_cache_stats(STATS))
        assert data["type"] == "cache_stats"
        assert data["hits"] == 5

    def test_viewed(self):
        data = json.loads(JsonFormatter().format_viewed(["x"]))
        assert data == {"type": "viewed_itineraries", "count": 1, "ids": ["x"]}


class TestRichFormatter:
    def test_search(self, state):
        out = RichFormatter().format_search(state)
        assert "Matching Itineraries" in out
        assert "Rome" in out

    def test_search_error(self):
        out = RichFormatter().format_search(SearchState(error="Request timeout"))
        assert "Request timeout" in out

    def test_candidate(self, candidates):
        assert "Paris, France" in RichFormatter().format_candidate(candidates[0])

    def test_cache_stats_and_viewed(self):
        assert "Search Cache" in RichFormatter().format_cache_stats(STATS)
        assert "(none)" in RichFormatter().format_viewed([])
