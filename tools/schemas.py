from __future__ import annotations
from typing import Any, Dict, List, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

Language = Literal["ru-RU", "en-US", "th-TH"]
TestType = Literal["ping", "parse_command", "voice_booking", "full_cycle"]

DEFAULT_PING_MESSAGE = "Hello from Voice Server!"


def _not_blank(v: str, what: str) -> str:
    if not v or not v.strip():
        raise ValueError(f"{what} cannot be empty")
    return v


class PingArgs(BaseModel):
    message: str = Field(default=DEFAULT_PING_MESSAGE, description="Optional message echoed back")


class ParseCommandArgs(BaseModel):
    text: str = Field(description="Voice command text to parse")
    language: Language = Field(default="ru-RU", description="Command language")

    @field_validator("text")
    @classmethod
    def _text(cls, v: str) -> str:
        return _not_blank(v, "Text")


class VoiceBookingArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    text: str = Field(description="Voice command for booking")
    user_id: str = Field(alias="userId", description="User ID (internal or Telegram)")
    session_id: str = Field(alias="sessionId", description="Session ID for tracing")
    language: Language = Field(default="ru-RU", description="Command language")

    @field_validator("text")
    @classmethod
    def _text(cls, v: str) -> str:
        return _not_blank(v, "Voice command text")

    @field_validator("user_id")
    @classmethod
    def _user(cls, v: str) -> str:
        return _not_blank(v, "User ID")

    @field_validator("session_id")
    @classmethod
    def _session(cls, v: str) -> str:
        return _not_blank(v, "Session ID")


class SelfTestArgs(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    test_type: TestType = Field(default="ping", alias="testType", description="Which self-test to run")
    test_data: Optional[str] = Field(
        default=None,
        alias="testData",
        description="Utterance for parse/booking tests; a Russian booking phrase when omitted",
    )


def validation_details(err: ValidationError) -> List[Dict[str, Any]]:
    out = []
    for e in err.errors():
        out.append({
            "field": ".".join(str(p) for p in e.get("loc", ())) or None,
            "message": e.get("msg"),
            "type": e.get("type"),
        })
    return out
