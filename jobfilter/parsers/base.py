"""Shared base class and text helpers for provider digest parsers."""
from __future__ import annotations

import re
from abc import ABC, abstractmethod

from bs4 import BeautifulSoup

from jobfilter.log import get_logger
from jobfilter.models import UNKNOWN_COMPANY, ParsedJobPosting, Provider

log = get_logger(__name__)

MIN_TITLE_LEN = 3
_WS_RE = re.compile(r"\s+")


def clean_text(text: str) -> str:
    return _WS_RE.sub(" ", text or "").strip()


def build_details(*parts: str) -> str:
    return " - ".join(p for p in parts if p and p != UNKNOWN_COMPANY)


class JobDigestParser(ABC):
    """One provider's digest layout: ``parse(html) -> postings``."""

    provider: Provider

    def parse(self, html: str) -> list[ParsedJobPosting]:
        if not html:
            return []
        try:
            soup = BeautifulSoup(html, "html.parser")
            postings = self.extract(soup)
        except Exception as exc:
            log.warning("[%s] HTML parse failed: %s", self.provider, exc)
            return []
        unresolved = sum(1 for p in postings if not p.has_company)
        if unresolved:
            log.warning(
                "[%s] %d of %d posting(s) without a recognisable company, layout may have changed",
                self.provider, unresolved, len(postings),
            )
        return postings

    @abstractmethod
    def extract(self, soup: BeautifulSoup) -> list[ParsedJobPosting]:
        pass

    def posting(
        self,
        title: str,
        company: str,
        location: str,
        link: str,
        *extra: str,
    ) -> ParsedJobPosting:
        company = company or UNKNOWN_COMPANY
        return ParsedJobPosting(
            title=title,
            company=company,
            location=location,
            provider=self.provider,
            details=build_details(title, company, location, *extra),
            links=[link] if link else [],
        )
