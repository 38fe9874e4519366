"""Core data models for addon_updates.

This module defines the data structures shared by the license manager,
the version check engine and the update reconciler, together with the
helpers that move them in and out of the JSON-serializable cache.
"""

from dataclasses import asdict, dataclass, field
from datetime import datetime
from typing import Any, Optional, Union

# Keys of a versions-endpoint item that map onto VersionInfo fields.
_VERSION_INFO_FIELDS = (
    "version",
    "download_link",
    "requires_php",
    "name",
    "description",
    "slug",
)


@dataclass(frozen=True)
class Component:
    """Immutable description of one locally installed add-on.

    Created by an inventory on every read and never persisted.

    Attributes:
        identifier: Remote-facing name sent to the versions endpoint.
        slug: Local inventory key (may differ from identifier).
        installed_version: Version string currently installed.
    """

    identifier: str
    slug: str
    installed_version: str


@dataclass
class License:
    """A license key together with its remote validity details.

    Attributes:
        key: The license key as stored locally.
        is_active_on_site: True if the remote reports the key active here.
        raw_details: The decoded ``license`` object returned remotely.
    """

    key: str
    is_active_on_site: bool = False
    raw_details: dict[str, Any] = field(default_factory=dict)

    @property
    def is_membership(self) -> bool:
        """Return True if the key applies to every add-on of the vendor."""
        return bool(self.raw_details.get("is_membership"))

    @classmethod
    def from_details(cls, key: str, details: dict[str, Any]) -> "License":
        return cls(
            key=key,
            is_active_on_site=bool(details.get("is_active_on_site")),
            raw_details=dict(details),
        )


@dataclass
class VersionInfo:
    """Latest version data for one identifier.

    An empty ``download_link`` means the version is known but the remote
    refused the download (usually no valid license).

    Attributes:
        version: Latest available version string.
        download_link: Package URL, or empty when not entitled.
        requires_php: Minimum runtime requirement reported remotely.
        name: Optional display name.
        description: Optional description.
        slug: Local slug, filled in for single-component lookups.
        extra: Any other fields returned by the remote.
    """

    version: str
    download_link: str = ""
    requires_php: str = ""
    name: Optional[str] = None
    description: Optional[str] = None
    slug: Optional[str] = None
    extra: dict[str, Any] = field(default_factory=dict)

    @property
    def is_downloadable(self) -> bool:
        return bool(self.download_link)

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "VersionInfo":
        """Build a VersionInfo from one item of a versions response."""
        extra = {k: v for k, v in data.items() if k not in _VERSION_INFO_FIELDS}
        return cls(
            version=str(data.get("version") or ""),
            download_link=str(data.get("download_link") or ""),
            requires_php=str(data.get("requires_php") or ""),
            name=data.get("name"),
            description=data.get("description"),
            slug=data.get("slug"),
            extra=extra,
        )


@dataclass
class ErrorInfo:
    """A per-identifier error inside an otherwise successful response."""

    message: str
    code: Optional[str] = None

    @classmethod
    def from_api(cls, error: Any) -> "ErrorInfo":
        if isinstance(error, dict):
            message = error.get("message") or error.get("error_message") or ""
            code = error.get("error_code") or error.get("code")
            return cls(message=str(message or code or "Unknown error"), code=code)
        return cls(message=str(error))


UpdateData = dict[str, Union[VersionInfo, ErrorInfo]]


@dataclass
class VersionCheckCacheEntry:
    """The single cached result of a batched version check.

    The entry is valid only while ``fingerprint_hash`` matches the hash of
    the current identifier batch and license key.

    Attributes:
        fingerprint_hash: Fingerprint of the batch this entry answers.
        fetched_at: When the remote was queried.
        downloads: Mapping identifier -> VersionInfo or ErrorInfo.
        had_errors: True if the fetch failed or any item reported an error.
    """

    fingerprint_hash: str
    fetched_at: datetime
    downloads: UpdateData = field(default_factory=dict)
    had_errors: bool = False

    def to_dict(self) -> dict[str, Any]:
        downloads = {}
        for identifier, item in self.downloads.items():
            kind = "error" if isinstance(item, ErrorInfo) else "version"
            downloads[identifier] = {"kind": kind, "data": asdict(item)}

        return {
            "hash": self.fingerprint_hash,
            "updated": self.fetched_at.isoformat(),
            "downloads": downloads,
            "had_errors": self.had_errors,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VersionCheckCacheEntry":
        """Rebuild an entry from its cached form.

        Raises:
            KeyError, TypeError, ValueError: If the cached data is corrupted.
        """
        downloads: UpdateData = {}
        for identifier, item in data["downloads"].items():
            if item["kind"] == "error":
                downloads[identifier] = ErrorInfo(**item["data"])
            else:
                downloads[identifier] = VersionInfo(**item["data"])

        return cls(
            fingerprint_hash=data["hash"],
            fetched_at=datetime.fromisoformat(data["updated"]),
            downloads=downloads,
            had_errors=bool(data.get("had_errors", False)),
        )


@dataclass
class UpdateCountCacheEntry:
    """Cached number of components with a newer remote version."""

    count: int
    computed_at: datetime

    def to_dict(self) -> dict[str, Any]:
        return {"count": self.count, "computed_at": self.computed_at.isoformat()}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "UpdateCountCacheEntry":
        return cls(
            count=int(data["count"]),
            computed_at=datetime.fromisoformat(data["computed_at"]),
        )


@dataclass
class UpdateOffer:
    """Reconciled update state for one installed component.

    Attributes:
        component: The installed component.
        info: Latest version data reported for it.
        has_update: True if ``info.version`` is newer than the installed one.
    """

    component: Component
    info: VersionInfo
    has_update: bool

    @property
    def needs_license(self) -> bool:
        """Return True if an update exists but cannot be downloaded."""
        return self.has_update and not self.info.is_downloadable


@dataclass
class ActivationResult:
    """Outcome of a remote license activation or deactivation."""

    success: bool
    message: str
    license_key: Optional[str] = None
    is_membership: bool = False
    data: dict[str, Any] = field(default_factory=dict)
