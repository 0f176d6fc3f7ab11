"""Data models for inbound emails, parsed postings and evaluations."""
from __future__ import annotations

import enum
from dataclasses import asdict, dataclass, field
from datetime import datetime, timezone

UNKNOWN_COMPANY = "unknown"


class Provider(str, enum.Enum):
    LINKEDIN = "LinkedIn"
    INDEED = "Indeed"
    WEBBJOBB = "Webbjobb"
    DEMANDO = "Demando"
    ARBETSFORMEDLINGEN = "Arbetsformedlingen"
    GLASSDOOR = "Glassdoor"
    UNKNOWN = "Unknown"

    def __str__(self) -> str:
        return self.value


@dataclass(frozen=True)
class InboundEmail:
    message_id: str
    sender: str
    subject: str
    body: str
    html: str
    received_at: datetime
    links: tuple[str, ...] = ()


@dataclass
class ParsedJobPosting:
    title: str
    company: str
    location: str
    provider: Provider
    details: str
    links: list[str] = field(default_factory=list)

    @property
    def has_company(self) -> bool:
        return bool(self.company) and self.company != UNKNOWN_COMPANY


@dataclass(frozen=True)
class JobEvaluation:
    message_id: str
    score: int
    category: str
    title: str
    company: str
    location: str
    provider: Provider
    reasoning: str
    links: tuple[str, ...] = ()
    evaluated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def has_company(self) -> bool:
        return bool(self.company) and self.company != UNKNOWN_COMPANY

    def to_dict(self) -> dict:
        data = asdict(self)
        data["provider"] = self.provider.value
        data["links"] = list(self.links)
        data["evaluated_at"] = self.evaluated_at.isoformat()
        return data
