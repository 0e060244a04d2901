"""Content-addressed identifiers for variants.

Both identifiers are UUIDv5 hashes, so re-running an extraction over
unchanged source data reproduces them byte for byte.
"""

from __future__ import annotations

import uuid

MPN_NAMESPACE = uuid.UUID("6ba7b810-9dad-11d1-80b4-00c04fd430c8")
VARIANT_NAMESPACE = uuid.UUID("6ba7b810-9dad-11d1-80b4-00c04fd430c1")


def stable_id(namespace: uuid.UUID, *parts: object) -> str:
    name = "-".join("" if part is None else str(part) for part in parts)
    return str(uuid.uuid5(namespace, name))


def mpn_for(parent_product_id: str, color: str, size: str | None = None) -> str:
    """Color-level MPN, or color+size level when ``size`` is given."""
    if size is None:
        return stable_id(MPN_NAMESPACE, parent_product_id, color)
    return stable_id(MPN_NAMESPACE, parent_product_id, color, size)


def variant_id_for(parent_product_id: str, source_variant_id: str, size: str, color: str) -> str:
    return stable_id(VARIANT_NAMESPACE, parent_product_id, source_variant_id, size, color)


def accepted_mpns(parent_product_id: str, color: str, size: str) -> set[str]:
    return {mpn_for(parent_product_id, color), mpn_for(parent_product_id, color, size)}
