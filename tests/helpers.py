"""Shared test helpers."""

import re
from datetime import datetime, timedelta


class FakeClock:
    """Clock that only moves when told to."""

    def __init__(self, now: datetime) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: int) -> None:
        self.now += timedelta(seconds=seconds)


def request_count(mock) -> int:
    """Return how many requests an aioresponses mock has seen."""
    return sum(len(calls) for calls in mock.requests.values())


def request_calls(mock) -> list:
    """Return every recorded aioresponses call."""
    return [call for calls in mock.requests.values() for call in calls]


LICENSE_API = "https://licenses.test/wp-json/hizzle/v1/licenses"
VERSIONS_API = "https://licenses.test/wp-json/hizzle/v1/versions"
VERSIONS_PATTERN = re.compile(r"^https://licenses\.test/wp-json/hizzle/v1/versions(\?.*)?$")


def license_pattern(license_key: str, action: str = "") -> re.Pattern:
    """Match a license endpoint URL, with or without a query string."""
    url = f"{LICENSE_API}/{license_key}/{action}"
    return re.compile("^" + re.escape(url) + r"(\?.*)?$")
