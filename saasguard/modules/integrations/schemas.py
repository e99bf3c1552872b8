# saasguard/modules/integrations/schemas.py

from pydantic import BaseModel, Field, model_validator
from typing import Optional, Dict, Any, List
from uuid import UUID
from datetime import datetime


# Top-level request fields folded into the stored settings object.
SETTINGS_FIELDS = (
    "connection_type",
    "environment",
    "oauth_data",
    "api_key",
    "client_id",
    "client_secret",
    "webhook_url",
)


class IntegrationInput(BaseModel):
    # "tool_name" is the older name the dashboard still sends
    provider: Optional[str] = None
    tool_name: Optional[str] = None
    status: str = "connected"

    connection_type: str = "api_key"
    environment: str = "production"
    oauth_data: Optional[Dict[str, Any]] = None
    api_key: Optional[str] = None
    client_id: Optional[str] = None
    client_secret: Optional[str] = None
    webhook_url: Optional[str] = None

    # free-form provider settings, merged last
    settings: Dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode="after")
    def require_provider(self):
        if not (self.provider or self.tool_name):
            raise ValueError("Integration must have either 'tool_name' or 'provider' field")
        return self

    @property
    def provider_name(self) -> str:
        return self.tool_name or self.provider

    def to_settings(self, only_set: bool = False) -> Dict[str, Any]:
        """
        Build the settings object stored for this integration.

        With only_set=True, fields the caller did not send are left out so
        that merging over existing settings does not wipe them.
        """
        sent = self.model_fields_set
        out: Dict[str, Any] = {}
        for name in SETTINGS_FIELDS:
            if only_set and name not in sent:
                continue
            out[name] = getattr(self, name)
        out.update(self.settings)
        return out


class IntegrationUpsertRequest(BaseModel):
    integrations: List[IntegrationInput] = Field(..., min_length=1)


class IntegrationResponse(BaseModel):
    id: UUID
    company_id: UUID
    provider: str
    settings: Dict[str, Any]
    status: str
    created_at: datetime
    updated_at: Optional[datetime] = None


class IntegrationListResponse(BaseModel):
    integrations: List[IntegrationResponse]


class EncryptionStatus(BaseModel):
    enabled: bool
    strict: bool
