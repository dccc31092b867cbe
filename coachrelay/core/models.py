"""Relay transport models."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

from coachrelay.config.settings import settings

UUID_PATTERN = r"^[0-9a-fA-F]{8}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{4}-[0-9a-fA-F]{12}$"


class RelayPayload(BaseModel):
    """Inbound chat message. Unknown keys are dropped."""

    model_config = ConfigDict(extra="ignore", str_strip_whitespace=True)

    message: str = Field(min_length=1, max_length=settings.max_message_chars)
    dateCode: str | None = Field(default=None, max_length=settings.max_date_code_chars)
    system_prompt: str | None = Field(default=None, min_length=1, max_length=settings.max_system_prompt_chars)
    chat_id: str | None = Field(default=None, pattern=UUID_PATTERN)
    user_id: str = Field(pattern=UUID_PATTERN)

    @field_validator("chat_id", "user_id")
    @classmethod
    def _lower_uuid(cls, value: str | None) -> str | None:
        return value.lower() if value is not None else None

    def upstream_body(self, default_system_prompt: str) -> dict[str, Any]:
        body: dict[str, Any] = {
            "message": self.message,
            "system_prompt": self.system_prompt or default_system_prompt,
            "chat_id": self.chat_id,
            "user_id": self.user_id,
        }
        # absent dateCode is omitted rather than sent as null
        if self.dateCode is not None:
            body["dateCode"] = self.dateCode
        return body


class EndpointCandidate(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    name: str = ""
    url: str
    priority: int = 0
    is_active: bool = True

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> str:
        return str(value)


class ChatRecord(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    user_id: str | None = None

    @field_validator("id", "user_id", mode="before")
    @classmethod
    def _stringify(cls, value: Any) -> str | None:
        return None if value is None else str(value).lower()


def fallback_candidate() -> EndpointCandidate:
    return EndpointCandidate(
        id="fallback",
        name=settings.fallback_webhook_name,
        url=settings.fallback_webhook_url,
        priority=settings.fallback_webhook_priority,
        is_active=True,
    )
