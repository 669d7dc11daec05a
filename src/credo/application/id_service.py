"""Identifiers for user-created records."""

from ulid import ULID


def new_id() -> str:
    """
    Generate a record ID using ULID.

    ULIDs sort by creation time like the old timestamp IDs, but two records
    created in the same millisecond still get distinct values.
    """
    return str(ULID())
