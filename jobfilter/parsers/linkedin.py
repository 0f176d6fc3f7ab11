"""LinkedIn job alert digests.

Each posting is a ``/comm/jobs/view/<id>`` link; the card around it holds a
``Company · Location`` paragraph. Logo, title and "view job" links share the
same id, so postings are keyed by that id.
"""
from __future__ import annotations

import re

from bs4 import BeautifulSoup, Tag

from jobfilter.models import ParsedJobPosting, Provider
from jobfilter.parsers.base import MIN_TITLE_LEN, JobDigestParser, clean_text

_JOB_ID_RE = re.compile(r"linkedin\.com/(?:comm/)?jobs/view/(\d+)")
_COMPANY_LOCATION_RE = re.compile(r"^([^·]+)\s*·\s*(.+)$")
_LOCATION_NOISE_RE = re.compile(
    r"\s+(Easy Apply|Actively recruiting|\d+ school alum\w*|\d+ connection\w*|Fast growing).*",
    re.IGNORECASE,
)
_NON_JOB_TEXT = ("see all jobs", "easy apply")
_NON_JOB_FRAGMENTS = ("view job", "linkedin")


def job_id_from_url(href: str) -> str | None:
    match = _JOB_ID_RE.search(href or "")
    return match.group(1) if match else None


def canonical_job_url(job_id: str) -> str:
    return f"https://www.linkedin.com/jobs/view/{job_id}/"


def _is_title_link(a: Tag) -> bool:
    if "font-bold" in (a.get("class") or []):
        return True
    cell = a.find_parent("td")
    return cell is None or len(cell.find_all("a")) <= 1


def _is_non_job_text(text: str) -> bool:
    lower = text.lower()
    return lower in _NON_JOB_TEXT or any(f in lower for f in _NON_JOB_FRAGMENTS)


def _card_for(a: Tag) -> Tag | None:
    card = a.find_parent(attrs={"data-test-id": "job-card"})
    if card is not None:
        return card
    table = a.find_parent("table")
    if table is None:
        return None
    return table.find_parent(["td", "div"])


def _company_and_location(card: Tag | None) -> tuple[str, str]:
    if card is None:
        return "", ""
    for p in card.find_all("p"):
        match = _COMPANY_LOCATION_RE.match(clean_text(p.get_text()))
        if match:
            company = match.group(1).strip()
            location = _LOCATION_NOISE_RE.sub("", match.group(2).strip()).strip()
            return company, location
    return "", ""


class LinkedInParser(JobDigestParser):
    provider = Provider.LINKEDIN

    def extract(self, soup: BeautifulSoup) -> list[ParsedJobPosting]:
        postings: dict[str, ParsedJobPosting] = {}

        for a in soup.select('a[href*="/jobs/view/"]'):
            job_id = job_id_from_url(a.get("href", ""))
            if job_id is None or job_id in postings:
                continue
            if not _is_title_link(a):
                continue

            title = clean_text(a.get_text())
            if len(title) < MIN_TITLE_LEN or _is_non_job_text(title):
                continue

            company, location = _company_and_location(_card_for(a))
            if not company:
                location = ""
            postings[job_id] = self.posting(title, company, location, canonical_job_url(job_id))

        return list(postings.values())
