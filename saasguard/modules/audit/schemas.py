# saasguard/modules/audit/schemas.py

from pydantic import BaseModel, Field
from typing import Dict, Any


class AuditLogCreate(BaseModel):
    action_type: str
    resource_type: str
    resource_id: str
    details: Dict[str, Any] = Field(default_factory=dict)
