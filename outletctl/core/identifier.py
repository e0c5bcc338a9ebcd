"""Deterministic accessory identifiers."""

from __future__ import annotations

import uuid


def generate(namespace: str, name: str) -> uuid.UUID:
    """Derive a stable UUID for ``name`` within ``namespace``.

    The namespace string is first folded into a UUID of its own, so two
    accessories with the same name under different namespaces never share
    an identity.
    """
    if not namespace:
        raise ValueError("namespace must not be empty")
    if not name:
        raise ValueError("name must not be empty")
    return uuid.uuid5(uuid.uuid5(uuid.NAMESPACE_URL, namespace), name)
