"""Webbjobb weekly digests, as HTML or as plain text.

HTML: each ``div.link`` holds ``<strong><a>Title →</a></strong>``, then
``Company, <em>City</em>`` and a row of ``span.tag`` technology tags. Links
go through Webbjobb's click tracker, which exposes no job id, so they are
kept as-is.

Text: the same layout flattened to lines::

    Title →
    Company, City
    Tag1 Tag2 Tag3
"""
from __future__ import annotations

import re

from bs4 import BeautifulSoup

from jobfilter.links import extract_links
from jobfilter.models import UNKNOWN_COMPANY, ParsedJobPosting, Provider
from jobfilter.parsers.base import MIN_TITLE_LEN, JobDigestParser, build_details, clean_text

ARROW = "→"
_TRAILING_ARROW_RE = re.compile(r"\s*→\s*$")
_LEADING_NOISE_RE = re.compile(r"^[\s→]+")
_COMPANY_RE = re.compile(r"^([^,]+),")

# Arrow-marked lines that are newsletter furniture, not jobs:
# blog teaser, settings link, payment system announcements.
NON_JOB_MARKERS: tuple[str, ...] = ("bloggen", "inställningar", "betalnings")


def strip_arrow(text: str) -> str:
    return _TRAILING_ARROW_RE.sub("", text).strip()


class WebbjobbParser(JobDigestParser):
    provider = Provider.WEBBJOBB

    def extract(self, soup: BeautifulSoup) -> list[ParsedJobPosting]:
        postings: list[ParsedJobPosting] = []
        seen: set[str] = set()

        for card in soup.select("div.link"):
            title_link = card.select_one("strong a")
            if title_link is None:
                continue
            title = strip_arrow(clean_text(title_link.get_text()))
            if len(title) < MIN_TITLE_LEN:
                continue
            key = title.lower()
            if key in seen:
                continue
            seen.add(key)

            href = title_link.get("href", "")
            em = card.find("em")
            location = clean_text(em.get_text()) if em is not None else ""

            company = ""
            paragraph = card.find("p")
            if paragraph is not None:
                full = paragraph.get_text()
                idx = full.find(title)
                after = full[idx + len(title):] if idx >= 0 else ""
                match = _COMPANY_RE.match(_LEADING_NOISE_RE.sub("", after))
                if match:
                    company = clean_text(match.group(1))
            if not company:
                location = ""

            tags = [clean_text(t.get_text()) for t in card.select("span.tag-tech, span.tag")]
            postings.append(self.posting(title, company, location, href, ", ".join(t for t in tags if t)))

        return postings

    def parse_text(self, body: str) -> list[ParsedJobPosting]:
        """Recover postings from the plain-text alternative."""
        postings: list[ParsedJobPosting] = []
        seen: set[str] = set()
        lines = [line.strip() for line in (body or "").split("\n")]

        for i, line in enumerate(lines):
            if not line.endswith(ARROW):
                continue
            title = strip_arrow(line)
            if len(title) < MIN_TITLE_LEN:
                continue
            lower = title.lower()
            if any(marker in lower for marker in NON_JOB_MARKERS):
                continue
            if lower in seen:
                continue
            seen.add(lower)

            company = UNKNOWN_COMPANY
            location = ""
            if i + 1 < len(lines):
                parts = lines[i + 1].split(",")
                if len(parts) >= 2 and parts[0].strip():
                    company = parts[0].strip()
                    location = ",".join(parts[1:]).strip()

            tags = ""
            if i + 2 < len(lines):
                tag_line = lines[i + 2]
                if tag_line and not tag_line.endswith(ARROW) and "," not in tag_line:
                    tags = tag_line

            postings.append(
                ParsedJobPosting(
                    title=title,
                    company=company,
                    location=location,
                    provider=self.provider,
                    details=build_details(title, company, location, tags),
                    links=extract_links(" ".join(lines[i:i + 3])),
                )
            )

        return postings
