"""Semantic checks shared by the config loader and the adapter."""

from __future__ import annotations

import re

from outletctl.core.errors import ConfigurationError
from outletctl.core.model import CATEGORIES, AccessoryRegistration, Credentials

_USERNAME_RE = re.compile(r"^[0-9A-F]{2}(?::[0-9A-F]{2}){5}$", re.IGNORECASE)
_PINCODE_RE = re.compile(r"^\d{3}-\d{2}-\d{3}$")


def check_credentials(credentials: Credentials | None, *, context: str) -> None:
    if credentials is None:
        raise ConfigurationError(f"{context} has no credentials")
    if not credentials.username or not _USERNAME_RE.match(credentials.username):
        raise ConfigurationError(f"{context} username must look like 1A:2B:3C:4D:5E:FF")
    if not credentials.pincode or not _PINCODE_RE.match(credentials.pincode):
        raise ConfigurationError(f"{context} pincode must look like 031-45-154")


def check_category(category: str | None, *, context: str) -> None:
    if not category:
        raise ConfigurationError(f"{context} has no category")
    if category not in CATEGORIES:
        known = ", ".join(sorted(CATEGORIES))
        raise ConfigurationError(f"{context} has unknown category '{category}'. Known: {known}")


def validate_registration(registration: AccessoryRegistration) -> None:
    context = f"Accessory '{registration.display_name}'"
    check_credentials(registration.credentials, context=context)
    check_category(registration.category, context=context)
