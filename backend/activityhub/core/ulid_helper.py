"""ULID primary keys: sortable by creation time, safe to generate in-process."""

import ulid


def generate_ulid() -> str:
    return str(ulid.ULID())
