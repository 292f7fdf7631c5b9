from pydantic import BaseModel
from typing import Optional
from enum import Enum

class AuditStatus(str, Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"

class AuditLogEntry(BaseModel):
    """Audit record written by the HTTP layer; the store adds id and timestamps."""
    endpoint: str
    method: str
    action_type: str
    actor: str = "system"
    input_hash: Optional[str] = None
    output_hash: Optional[str] = None
    status: AuditStatus

    def to_record(self) -> dict:
        return {
            "endpoint": self.endpoint,
            "method": self.method,
            "actionType": self.action_type,
            "actor": self.actor,
            "inputHash": self.input_hash,
            "outputHash": self.output_hash,
            "status": self.status.value,
        }
