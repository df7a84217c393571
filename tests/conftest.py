"""Shared test fixtures for TripMatch."""

import datetime

import yaml
import pytest
from pathlib import Path

from tripmatch.models import Itinerary
from tripmatch.predicates import parse_epoch_ms
from tripmatch.viewed import ViewedSet

FIXTURES_DIR = Path(__file__).parent / "fixtures"


def _make_record(**overrides) -> dict:
    """Build a raw wire-format candidate itinerary.

    Defaults describe a 30-year-old in Paris whose trip overlaps the
    fixture user's 2026-07-01..2026-07-10 window.
    """
    start = overrides.pop("startDate", "2026-07-05")
    end = overrides.pop("endDate", "2026-07-12")
    user_info = {
        "uid": "other-user-456",
        "username": "Sam",
        "dob": "1996-01-15",
        "gender": "female",
        "status": "single",
        "sexualOrientation": "heterosexual",
        "blocked": [],
    }
    user_info.update(overrides.pop("userInfo", {}))
    record = {
        "id": "itin-1",
        "destination": "Paris, France",
        "startDate": start,
        "endDate": end,
        "startDay": parse_epoch_ms(start),
        "endDay": parse_epoch_ms(end),
        "lowerRange": 25,
        "upperRange": 40,
        "likes": [],
        "userInfo": user_info,
    }
    record.update(overrides)
    return record


@pytest.fixture
def load_yaml():
    """Return a function that loads a YAML fixture file."""

    def _load(name: str) -> dict:
        path = FIXTURES_DIR / name
        with open(path) as f:
            return yaml.safe_load(f)

    return _load


@pytest.fixture
def current_itinerary(load_yaml) -> Itinerary:
    """The searching user's itinerary."""
    return Itinerary.model_validate(load_yaml("current_itinerary.yaml"))


@pytest.fixture
def current_user_id() -> str:
    return "me-123"


@pytest.fixture
def viewed(tmp_path) -> ViewedSet:
    """An empty viewed set backed by a temp file."""
    return ViewedSet(tmp_path / "viewed_itineraries.json")


@pytest.fixture(autouse=True)
def _isolated_home(tmp_path, monkeypatch):
    """Keep every persisted slot inside the test's temp directory."""
    monkeypatch.setenv("TRIPMATCH_HOME", str(tmp_path / "home"))
    monkeypatch.delenv("TRIPMATCH_RPC_TOKEN", raising=False)
    monkeypatch.setattr("tripmatch.config.keyring_token", lambda: None)


@pytest.fixture
def make_record():
    """Return a factory for raw wire-format candidate records."""
    return _make_record


@pytest.fixture
def today() -> datetime.date:
    """Fixed "today" so ages computed from fixture birth dates never drift."""
    return datetime.date(2026, 6, 1)
