from pydantic import BaseModel
from typing import Optional

class StorageResult(BaseModel):
    """Outcome of a read or write against the storage backend."""
    ok: bool
    operation: str
    reason: Optional[str] = None

    @classmethod
    def success(cls, operation: str) -> "StorageResult":
        return cls(ok=True, operation=operation)

    @classmethod
    def failure(cls, operation: str, reason: str) -> "StorageResult":
        return cls(ok=False, operation=operation, reason=reason)
