"""Identifier helpers."""

from uuid import UUID, uuid4


def new_uuid() -> str:
    return str(uuid4())


def coerce_uuid(value: UUID | str) -> str:
    if isinstance(value, UUID):
        return str(value)
    return str(UUID(str(value)))
