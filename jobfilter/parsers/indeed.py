"""Indeed job alert digests.

Each ``td.pb-24`` wraps one posting with the title in ``h2 a``. Below the
title, presentation tables hold 14px cells: first the company, then the
location; grey (#767676) cells carry a description snippet.
"""
from __future__ import annotations

from bs4 import BeautifulSoup

from jobfilter.models import ParsedJobPosting, Provider
from jobfilter.parsers.base import MIN_TITLE_LEN, JobDigestParser, clean_text

_BODY_SIZE = "font-size:14px"
_MUTED = "color:#767676"


class IndeedParser(JobDigestParser):
    provider = Provider.INDEED

    def extract(self, soup: BeautifulSoup) -> list[ParsedJobPosting]:
        postings: list[ParsedJobPosting] = []
        seen: set[str] = set()

        for card in soup.select("td.pb-24"):
            title_link = card.select_one("h2 a")
            if title_link is None:
                continue
            title = clean_text(title_link.get_text())
            if len(title) < MIN_TITLE_LEN:
                continue
            key = title.lower()
            if key in seen:
                continue
            seen.add(key)

            first_link = card.find("a")
            href = first_link.get("href", "") if first_link is not None else ""

            company = location = description = ""
            for row in card.select('table[role="presentation"] tr'):
                cell = row.find("td")
                if cell is None:
                    continue
                style = (cell.get("style") or "").replace(" ", "")
                text = clean_text(cell.get_text())
                muted = _MUTED in style
                body_size = _BODY_SIZE in style

                if not company and row.find("h2") is None and body_size and not muted:
                    if 1 < len(text) < 100:
                        company = text
                elif company and not location and body_size and not muted:
                    location = text
                elif muted and body_size:
                    description = text

            postings.append(self.posting(title, company, location, href, description))

        return postings
