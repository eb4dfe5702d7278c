"""Data records produced by the visa orchestrators."""

from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field, field_validator


class VisaStatus(str, Enum):
    """Closed set of entry requirements."""

    VISA_REQUIRED = "visa_required"
    VISA_FREE = "visa_free"
    E_VISA = "e_visa"
    ON_ARRIVAL = "on_arrival"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, value: Any) -> VisaStatus:
        """Map a raw model value onto the enum; unrecognised values become UNKNOWN."""
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            normalized = value.strip().lower().replace("-", "_").replace(" ", "_")
            for status in cls:
                if status.value == normalized:
                    return status
        return cls.UNKNOWN

    @property
    def label(self) -> str:
        """Display text for the status."""
        return STATUS_LABELS[self]


STATUS_LABELS: dict[VisaStatus, str] = {
    VisaStatus.VISA_REQUIRED: "Visa Required",
    VisaStatus.VISA_FREE: "Visa Free",
    VisaStatus.E_VISA: "E-Visa Required",
    VisaStatus.ON_ARRIVAL: "Visa On Arrival",
    VisaStatus.UNKNOWN: "Status Unknown",
}


class ConfidenceTier(str, Enum):
    """How much of a result a caller should present."""

    CRITICAL = "critical"  # < 3: block details
    PRELIMINARY = "preliminary"  # 3 to < 8: show behind a warning
    HIGH = "high"  # >= 8

    @classmethod
    def from_score(cls, score: float) -> ConfidenceTier:
        if not math.isfinite(score) or score < 3:
            return cls.CRITICAL
        if score < 8:
            return cls.PRELIMINARY
        return cls.HIGH


class DocTemplate(str, Enum):
    """Document kinds the drafter can write."""

    COVER_LETTER = "cover-letter"
    ITINERARY = "itinerary"
    EMPLOYMENT_PROOF = "employment-proof"

    @property
    def display_name(self) -> str:
        return {
            DocTemplate.COVER_LETTER: "Cover Letter",
            DocTemplate.ITINERARY: "Travel Itinerary",
            DocTemplate.EMPLOYMENT_PROOF: "Proof of Employment",
        }[self]


class SourceCitation(BaseModel):
    """A cited web page."""

    title: str = ""
    uri: str

    @field_validator("title", mode="before")
    @classmethod
    def _title_or_blank(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""


class VisaStep(BaseModel):
    """One 'what's next' entry."""

    title: str = ""
    description: str = ""


class Verification(BaseModel):
    """Auditor verdict for a single attempt."""

    score: float = Field(allow_inf_nan=False)
    passed: bool = Field(False, alias="pass")
    reasoning: str = ""

    model_config = {"populate_by_name": True}

    @field_validator("reasoning", mode="before")
    @classmethod
    def _reasoning_or_blank(cls, value: Any) -> str:
        return value if isinstance(value, str) else ""

    @classmethod
    def failed(cls, reasoning: str = "Evaluation failed") -> Verification:
        """Zero-confidence verdict used when the auditor's output is unusable."""
        return cls(score=0, passed=False, reasoning=reasoning)

    @property
    def confidence(self) -> ConfidenceTier:
        return ConfidenceTier.from_score(self.score)


class VisaPurpose(BaseModel):
    """A candidate travel purpose."""

    id: str
    label: str

    model_config = {"coerce_numbers_to_str": True}
    description: str = ""


class SafetyTip(BaseModel):
    """A safety or etiquette tip for a destination."""

    category: str = "General"
    tip: str


class DocumentItem(BaseModel):
    """A checklist entry. ``completed`` is owned by the caller."""

    id: str
    name: str
    description: str = ""
    required: bool = Field(True, alias="isRequired")
    completed: bool = False

    model_config = {"populate_by_name": True, "coerce_numbers_to_str": True}


class VisaPolicy(BaseModel):
    """Result of a visa search."""

    country: str
    citizenship: str
    residency: str
    purpose: str
    visa_status: VisaStatus = Field(VisaStatus.UNKNOWN, alias="visaStatus")
    summary: str
    whats_next: list[VisaStep] = Field(default_factory=list, alias="whatsNext")
    timeline: str
    requirements: list[str] = Field(default_factory=list)
    sources: list[SourceCitation] = Field(default_factory=list)
    verification: Verification
    travel_tips: list[SafetyTip] | None = Field(None, alias="travelTips")
    last_updated: datetime = Field(default_factory=datetime.now, alias="lastUpdated")

    model_config = {"populate_by_name": True, "frozen": True}

    @property
    def confidence(self) -> ConfidenceTier:
        return self.verification.confidence


class PassportDetails(BaseModel):
    """Identity fields read from a document image; each may be missing."""

    full_name: str | None = Field(None, alias="fullName")
    passport_number: str | None = Field(None, alias="passportNumber")
    citizenship: str | None = None
    date_of_birth: str | None = Field(None, alias="dateOfBirth")
    passport_expiry: str | None = Field(None, alias="passportExpiry")

    model_config = {"populate_by_name": True}

    @field_validator("*", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> str | None:
        if value is None:
            return None
        text = str(value).strip()
        return text or None


class UserProfile(BaseModel):
    """Traveller profile. Persisted by the caller, never by this package."""

    citizenship: str = ""
    residency: str = ""
    full_name: str | None = Field(None, alias="fullName")
    passport_number: str | None = Field(None, alias="passportNumber")
    date_of_birth: str | None = Field(None, alias="dateOfBirth")
    passport_expiry: str | None = Field(None, alias="passportExpiry")
    email: str | None = None
    phone: str | None = None
    home_address: str | None = Field(None, alias="homeAddress")

    model_config = {"populate_by_name": True}

    def merge(self, details: PassportDetails) -> UserProfile:
        """Return a copy where every extracted field replaces the stored one."""
        extracted = details.model_dump(exclude_none=True)
        return self.model_copy(update=extracted)
