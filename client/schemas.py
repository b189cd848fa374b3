from datetime import date, datetime
from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator, model_validator


POINTS_PER_REPORT = 10
MAX_PROOF_WORDS = 100
MIN_INVITE_CODE_LENGTH = 4


class Challenge(BaseModel):
    id: str
    name: str = ""
    type: Literal["binary", "numeric"] = "binary"
    frequency: Literal["daily", "weekly"] = "weekly"
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    reminder_enabled: bool = False
    description: Optional[str] = None

    # Optional columns are null on rows created before they existed
    @field_validator("name", mode="before")
    @classmethod
    def _null_name(cls, v):
        return "" if v is None else v

    @field_validator("reminder_enabled", mode="before")
    @classmethod
    def _null_reminder(cls, v):
        return False if v is None else v

    @field_validator("type", "frequency", mode="before")
    @classmethod
    def _null_choice(cls, v, info):
        if v is None:
            return cls.model_fields[info.field_name].default
        return v

    @model_validator(mode="after")
    def _check_window(self):
        if self.start_date and self.end_date and self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class Group(BaseModel):
    id: str
    name: str = ""
    icon: Optional[str] = None
    created_at: Optional[datetime] = None
    # Rows arrive with a nested `challenges` list; the newest one is the active challenge
    challenges: list[Challenge] = Field(default_factory=list)

    @field_validator("name", mode="before")
    @classmethod
    def _null_name(cls, v):
        return "" if v is None else v

    @field_validator("challenges", mode="before")
    @classmethod
    def _null_challenges(cls, v):
        return [] if v is None else v

    @property
    def challenge(self) -> Optional[Challenge]:
        return self.challenges[0] if self.challenges else None


class NewChallenge(BaseModel):
    name: str
    type: Literal["binary", "numeric"] = "binary"
    frequency: Literal["daily", "weekly"] = "weekly"
    start_date: date
    end_date: date
    reminder_enabled: bool = True
    description: Optional[str] = None
    icon: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _name_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("challenge name is required")
        return v

    @field_validator("description")
    @classmethod
    def _blank_description(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        return v or None

    @model_validator(mode="after")
    def _check_window(self):
        if self.start_date > self.end_date:
            raise ValueError("start_date must not be after end_date")
        return self


class JoinRequest(BaseModel):
    invite_code: str

    @field_validator("invite_code")
    @classmethod
    def _normalise_code(cls, v: str) -> str:
        v = (v or "").strip()
        if len(v) < MIN_INVITE_CODE_LENGTH:
            raise ValueError(f"invite code must have at least {MIN_INVITE_CODE_LENGTH} characters")
        return v


class ReportDraft(BaseModel):
    challenge_id: str
    group_id: str
    challenge_type: Literal["binary", "numeric"] = "binary"
    is_done: bool = True
    value: Optional[float] = None
    proof_text: Optional[str] = None

    @field_validator("proof_text")
    @classmethod
    def _proof_length(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            return None
        if len(v.split()) > MAX_PROOF_WORDS:
            raise ValueError(f"text proof is limited to {MAX_PROOF_WORDS} words")
        return v

    @model_validator(mode="after")
    def _check_value(self):
        if self.challenge_type == "numeric":
            if self.value is None or self.value <= 0:
                raise ValueError("numeric reports need a positive value")
            self.is_done = True
        return self

    @property
    def points(self) -> int:
        # "no" reports on binary challenges earn nothing
        return POINTS_PER_REPORT if self.is_done else 0


class MemberStanding(BaseModel):
    user_id: str
    name: str
    points: int = 0
    streak: int = 0
    avatar_url: Optional[str] = None
    rank: int
