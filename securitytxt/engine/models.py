"""
securitytxt/engine/models.py
Run configuration, signing key identity and the validation report.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from dataclasses import dataclass, field
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from securitytxt.base.config import DEFAULT_MAX_AGE_DAYS

FINGERPRINT_RE = re.compile(r"^[0-9A-F]{40}$")


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Interpret naive datetimes as UTC and convert aware ones to UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def normalize_fingerprint(value: str) -> str:
    fpr = re.sub(r"\s+", "", value).upper()
    if fpr.startswith("0X"):
        fpr = fpr[2:]
    if not FINGERPRINT_RE.match(fpr):
        raise ValueError(f"Fingerprint must be 40 hex characters: {value}")
    return fpr


class SigningKey(BaseModel):
    """The key that will sign the validated document."""
    model_config = ConfigDict(frozen=True)

    fingerprint: str
    expires_at: Optional[datetime] = None

    @field_validator("fingerprint")
    @classmethod
    def validate_fingerprint(cls, v: str) -> str:
        return normalize_fingerprint(v)

    @field_validator("expires_at")
    @classmethod
    def validate_expires_at(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)


class RunConfig(BaseModel):
    """Options of a single validation run."""
    model_config = ConfigDict(frozen=True)

    max_age_days: int = Field(default=DEFAULT_MAX_AGE_DAYS, ge=1)
    key_fingerprint: Optional[str] = None
    key_expiry: Optional[datetime] = None
    now: Optional[datetime] = None
    fetch_workers: int = Field(default=1, ge=1)

    @field_validator("key_fingerprint")
    @classmethod
    def validate_key_fingerprint(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return normalize_fingerprint(v)

    @field_validator("key_expiry", "now")
    @classmethod
    def validate_timestamps(cls, v: Optional[datetime]) -> Optional[datetime]:
        return as_utc(v)

    @classmethod
    def for_key(cls, key: Optional[SigningKey], **kwargs) -> "RunConfig":
        if key is None:
            return cls(**kwargs)
        return cls(key_fingerprint=key.fingerprint, key_expiry=key.expires_at, **kwargs)

    def signing_key(self) -> Optional[SigningKey]:
        if self.key_fingerprint is None:
            return None
        return SigningKey(fingerprint=self.key_fingerprint, expires_at=self.key_expiry)

    def current_time(self) -> datetime:
        return self.now or datetime.now(timezone.utc)


class ValidationReport(BaseModel):
    """Outcome of a successful run: the canonical document plus diagnostics."""
    document: str
    expires: str
    warnings: List[str] = Field(default_factory=list)
    errors: List[str] = Field(default_factory=list)


@dataclass
class RunState:
    """Mutable counters and output buffer of one validation run."""
    contact_seen: int = 0
    expires_seen: int = 0
    languages_seen: int = 0
    canonical_seen: int = 0
    output: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    errors: List[str] = field(default_factory=list)
