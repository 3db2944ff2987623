"""Deterministic identifiers for engine entities."""

import uuid
from typing import Any

ENGINE_NAMESPACE = uuid.uuid5(uuid.NAMESPACE_URL, "insight-engine")


def make_id(kind: str, *parts: Any) -> str:
    """
    Build a stable id from an entity kind and its identifying content.

    Identical input always yields the identical id, so repeated analyses
    of the same data are comparable.
    """
    key = ":".join(str(p) for p in parts)
    return f"{kind}-{uuid.uuid5(ENGINE_NAMESPACE, f'{kind}:{key}')}"
