from typing import Any, Dict, List, Optional


class StoreError(Exception):
    """Base class for errors raised by the entity store."""


class RecordValidationError(StoreError, ValueError):
    """A payload does not satisfy the schema of its entity kind."""

    def __init__(self, kind: str, errors: List[Dict[str, Any]]):
        self.kind = kind
        self.errors = errors
        fields = ", ".join(".".join(str(p) for p in e["loc"]) or "<root>" for e in errors)
        super().__init__(f"Invalid {kind} record: {fields}")


class StorageError(StoreError):
    """The storage backend could not read or write a key."""

    def __init__(self, message: str, key: Optional[str] = None):
        self.key = key
        super().__init__(message)


class UnknownEntityKindError(StoreError, KeyError):
    def __init__(self, kind: Any):
        self.kind = kind
        super().__init__(f"Unknown entity kind: {kind!r}")

    def __str__(self) -> str:
        return self.args[0]
