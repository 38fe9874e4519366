"""Addon Updates - license and update checks for vendor add-ons.

This package decides, for the locally installed add-ons of one vendor,
whether each is licensed for updates and what its latest version is,
caching the answers of the remote licensing service.
"""

__version__ = "0.1.0"

from addon_updates.errors import (
    ApplicationError,
    InvalidResponse,
    MissingConfiguration,
    TransportError,
    UpdatesError,
)
from addon_updates.models import (
    ActivationResult,
    Component,
    ErrorInfo,
    License,
    UpdateOffer,
    VersionInfo,
)
from addon_updates.updater import AddonUpdater

__all__ = [
    "__version__",
    "ActivationResult",
    "AddonUpdater",
    "ApplicationError",
    "Component",
    "ErrorInfo",
    "InvalidResponse",
    "License",
    "MissingConfiguration",
    "TransportError",
    "UpdateOffer",
    "UpdatesError",
    "VersionInfo",
]
