"""ULID primary keys for every table."""

import ulid


def generate_ulid() -> str:
    """26-character Crockford base32 ULID, sortable by creation time."""
    return str(ulid.ULID())
