"""Classify an inbound email by the job platform that sent it."""
from __future__ import annotations

from jobfilter.models import InboundEmail, Provider

# Checked in this order. Sender matches always win over content sniffing
# because tracking domains of one platform can appear in another's markup.
SENDER_MARKERS: dict[Provider, tuple[str, ...]] = {
    Provider.LINKEDIN: ("linkedin",),
    Provider.INDEED: ("indeed",),
    Provider.DEMANDO: ("demando",),
    Provider.WEBBJOBB: ("webbjobb",),
    Provider.ARBETSFORMEDLINGEN: ("arbetsformedlingen",),
    Provider.GLASSDOOR: ("glassdoor",),
}

HTML_MARKERS: dict[Provider, tuple[str, ...]] = {
    Provider.LINKEDIN: ("linkedin.com/comm/jobs",),
    Provider.INDEED: ("indeed.com",),
    Provider.DEMANDO: ("demando.io", "demando.se"),
    Provider.WEBBJOBB: ("webbjobb.io",),
    Provider.ARBETSFORMEDLINGEN: ("arbetsformedlingen.se",),
    Provider.GLASSDOOR: ("glassdoor.com",),
}

# Webbjobb sometimes sends plain-text only mail from a generic relay.
BODY_MARKERS: dict[Provider, tuple[str, ...]] = {
    Provider.WEBBJOBB: ("webbjobb.io",),
}


def _first_match(text: str, markers: dict[Provider, tuple[str, ...]]) -> Provider | None:
    if not text:
        return None
    for provider, needles in markers.items():
        if any(n in text for n in needles):
            return provider
    return None


def detect_provider(email: InboundEmail) -> Provider:
    sender = (email.sender or "").lower()
    html = (email.html or "").lower()
    body = (email.body or "").lower()
    return (
        _first_match(sender, SENDER_MARKERS)
        or _first_match(html, HTML_MARKERS)
        or _first_match(body, BODY_MARKERS)
        or Provider.UNKNOWN
    )
