"""
Shared test fixtures for prt-arrivals.

Provides:
- TrueTime fixture data loaders
- A controllable clock
- Fake TrueTime server for E2E tests
"""

import json
from pathlib import Path

import pytest
from pytest_httpserver import HTTPServer

FIXTURES_DIR = Path(__file__).parent / "fixtures" / "prt"


# ---------------------------------------------------------------------------
# Fixture data loaders
# ---------------------------------------------------------------------------

def load_fixture(name: str) -> dict:
    """Load a JSON fixture from test/fixtures/prt/."""
    with open(FIXTURES_DIR / name) as f:
        return json.load(f)


def load_fixture_text(name: str) -> str:
    return (FIXTURES_DIR / name).read_text()


class FakeClock:
    """Controllable clock for deterministic cache tests."""

    def __init__(self, start: float = 1000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# ---------------------------------------------------------------------------
# E2E fixtures
# ---------------------------------------------------------------------------

@pytest.fixture(scope="module")
def fake_prt_server():
    """
    A real HTTP server that impersonates the TrueTime v3 API.

    Tests configure what the server returns by clearing it and registering
    new expectations before making requests.
    """
    server = HTTPServer(host="127.0.0.1")
    server.expect_request("/getpredictions").respond_with_json(
        load_fixture("empty.json")
    )
    server.start()
    yield server
    server.clear()
    if server.is_running():
        server.stop()

