from datetime import UTC, datetime

from addon_updates.models import (
    Component,
    ErrorInfo,
    License,
    UpdateOffer,
    VersionCheckCacheEntry,
    VersionInfo,
)


def test_version_info_from_api_keeps_extra_fields():
    """Test that unknown response fields end up in extra."""
    info = VersionInfo.from_api(
        {
            "version": "1.2.0",
            "download_link": "https://example.com/a.zip",
            "requires_php": "7.4",
            "name": "A",
            "tested": "6.5",
        }
    )

    assert info.version == "1.2.0"
    assert info.is_downloadable is True
    assert info.extra == {"tested": "6.5"}


def test_version_info_without_download_link_is_not_downloadable():
    info = VersionInfo.from_api({"version": "1.2.0", "download_link": None})

    assert info.download_link == ""
    assert info.is_downloadable is False


def test_error_info_from_string_and_dict():
    assert ErrorInfo.from_api("License expired").message == "License expired"

    error = ErrorInfo.from_api(
        {"error_code": "download_file_not_found", "message": "No file"}
    )
    assert error.code == "download_file_not_found"
    assert error.message == "No file"


def test_license_is_membership():
    license = License.from_details(
        "KEY", {"is_active_on_site": True, "is_membership": True}
    )

    assert license.is_active_on_site is True
    assert license.is_membership is True
    assert License(key="KEY").is_membership is False


def test_cache_entry_survives_serialization():
    """Test that VersionInfo and ErrorInfo items are restored with their types."""
    entry = VersionCheckCacheEntry(
        fingerprint_hash="abc",
        fetched_at=datetime(2026, 1, 1, tzinfo=UTC),
        downloads={
            "a": VersionInfo(version="1.0.0", extra={"tested": "6.5"}),
            "b": ErrorInfo(message="Nope", code="no_license"),
        },
        had_errors=True,
    )

    restored = VersionCheckCacheEntry.from_dict(entry.to_dict())

    assert restored == entry
    assert isinstance(restored.downloads["a"], VersionInfo)
    assert isinstance(restored.downloads["b"], ErrorInfo)


def test_update_offer_needs_license():
    component = Component(identifier="a", slug="a", installed_version="1.0.0")

    locked = UpdateOffer(component, VersionInfo(version="2.0.0"), has_update=True)
    open_ = UpdateOffer(
        component,
        VersionInfo(version="2.0.0", download_link="https://example.com/a.zip"),
        has_update=True,
    )
    current = UpdateOffer(component, VersionInfo(version="1.0.0"), has_update=False)

    assert locked.needs_license is True
    assert open_.needs_license is False
    assert current.needs_license is False
