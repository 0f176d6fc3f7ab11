"""Pull URLs out of free text."""
from __future__ import annotations

import re

URL_RE = re.compile(r"https?://[^\s<>\"')\]]+")


def extract_links(text: str) -> list[str]:
    """Unique URLs in order of first appearance."""
    if not text:
        return []
    return list(dict.fromkeys(URL_RE.findall(text)))
