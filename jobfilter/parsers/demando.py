"""Demando match digests: ``h3.title`` per posting, company in the first
plain ``h3`` of the same table, location in the paragraph with the pin icon."""
from __future__ import annotations

from bs4 import BeautifulSoup, Tag

from jobfilter.models import ParsedJobPosting, Provider
from jobfilter.parsers.base import MIN_TITLE_LEN, JobDigestParser, clean_text


def _is_container(tag: Tag) -> bool:
    return tag.name == "table" or "content-item" in (tag.get("class") or [])


class DemandoParser(JobDigestParser):
    provider = Provider.DEMANDO

    def extract(self, soup: BeautifulSoup) -> list[ParsedJobPosting]:
        postings: list[ParsedJobPosting] = []
        seen: set[str] = set()

        for heading in soup.select("h3.title"):
            link = heading.find("a")
            title = clean_text(link.get_text()) if link is not None else ""
            title = title or clean_text(heading.get_text())
            if len(title) < MIN_TITLE_LEN:
                continue
            key = title.lower()
            if key in seen:
                continue
            seen.add(key)

            href = link.get("href", "") if link is not None else ""
            container = heading.find_parent(_is_container)

            company = location = ""
            if container is not None:
                for h3 in container.find_all("h3"):
                    if "title" in (h3.get("class") or []):
                        continue
                    company_link = h3.find("a")
                    company = clean_text((company_link or h3).get_text())
                    if company:
                        break
                for p in container.find_all("p"):
                    if p.select_one('img[src*="icon-pin"]') is not None:
                        location = clean_text(p.get_text())
            if not company:
                location = ""

            postings.append(self.posting(title, company, location, href))

        return postings
