"""Collection identifier generation."""

from uuid import uuid4

COLLECTION_ID_PREFIX = "mm-"


def new_collection_id() -> str:
    """Random collection id, e.g. ``mm-3f2b...``."""
    return f"{COLLECTION_ID_PREFIX}{uuid4()}"
