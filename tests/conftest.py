"""Pytest configuration and fixtures."""

from collections.abc import AsyncGenerator
from datetime import UTC, datetime

import pytest
from helpers import LICENSE_API, VERSIONS_API, FakeClock

from addon_updates.cache import MemoryCacheStore
from addon_updates.config import UpdaterConfig
from addon_updates.inventory import StaticInventory
from addon_updates.licenses import LicenseManager
from addon_updates.models import Component
from addon_updates.options import MemoryOptionStore
from addon_updates.remote import RemoteClient
from addon_updates.updates import UpdateReconciler
from addon_updates.versions import VersionCheckEngine


@pytest.fixture
def clock() -> FakeClock:
    """Clock frozen at a fixed point in time."""
    return FakeClock(datetime(2026, 1, 1, 12, 0, tzinfo=UTC))


@pytest.fixture
def config() -> UpdaterConfig:
    return UpdaterConfig(
        site_url="https://shop.example.com",
        license_api_url=LICENSE_API,
        versions_api_url=VERSIONS_API,
        api_headers={"X-Requested-With": "AddonUpdates"},
        prefix="acme",
    )


@pytest.fixture
def cache(clock) -> MemoryCacheStore:
    return MemoryCacheStore(clock=clock)


@pytest.fixture
def options() -> MemoryOptionStore:
    return MemoryOptionStore("acme")


@pytest.fixture
def components() -> list[Component]:
    """Installed components used across tests."""
    return [
        Component(identifier="acme-forms", slug="acme-forms", installed_version="1.9.0"),
        Component(identifier="acme-sync", slug="acme-sync", installed_version="2.0.0-beta"),
        Component(identifier="acme-pay", slug="acme-pay", installed_version="1.2.3"),
    ]


@pytest.fixture
def inventory(components) -> StaticInventory:
    return StaticInventory(components)


@pytest.fixture
async def remote(config) -> AsyncGenerator[RemoteClient, None]:
    """Create a remote client and close its session after the test."""
    client = RemoteClient(config)
    yield client
    await client.close()


@pytest.fixture
def engine(config, cache, options, inventory, remote, clock) -> VersionCheckEngine:
    return VersionCheckEngine(config, cache, options, inventory, remote, clock=clock)


@pytest.fixture
def licenses(config, cache, options, remote, engine) -> LicenseManager:
    return LicenseManager(config, cache, options, remote, engine)


@pytest.fixture
def reconciler(engine, cache, clock) -> UpdateReconciler:
    return UpdateReconciler(engine, cache, clock=clock)


@pytest.fixture
def versions_response() -> dict:
    """A successful versions response for the installed components.

    acme-forms has a downloadable update, acme-sync has an update that
    needs a license and acme-pay is up to date.
    """
    return {
        "acme-forms": {
            "version": "1.10.0",
            "download_link": "https://licenses.test/download/acme-forms.zip",
            "requires_php": "7.4",
            "name": "Acme Forms",
        },
        "acme-sync": {
            "version": "2.0.0",
            "download_link": "",
            "name": "Acme Sync",
        },
        "acme-pay": {
            "version": "1.2.3",
            "download_link": "https://licenses.test/download/acme-pay.zip",
        },
    }
