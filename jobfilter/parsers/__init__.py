"""Digest parser registry and the HTML, text, whole-email fallback cascade."""
from .base import JobDigestParser
from .demando import DemandoParser
from .indeed import IndeedParser
from .linkedin import LinkedInParser
from .webbjobb import WebbjobbParser

from jobfilter.detect import detect_provider
from jobfilter.log import get_logger
from jobfilter.models import UNKNOWN_COMPANY, InboundEmail, ParsedJobPosting, Provider

log = get_logger(__name__)

__all__ = [
    "JobDigestParser", "LinkedInParser", "IndeedParser", "WebbjobbParser",
    "DemandoParser", "HTML_PARSERS", "TEXT_PARSERS", "parse_job_digest",
    "single_posting_fallback",
]

# Every provider has an entry; None means "no structural parser, use the
# whole-email fallback". Adding a provider means adding it here.
HTML_PARSERS: dict[Provider, JobDigestParser | None] = {
    Provider.LINKEDIN: LinkedInParser(),
    Provider.INDEED: IndeedParser(),
    Provider.WEBBJOBB: WebbjobbParser(),
    Provider.DEMANDO: DemandoParser(),
    Provider.ARBETSFORMEDLINGEN: None,
    Provider.GLASSDOOR: None,
    Provider.UNKNOWN: None,
}

TEXT_PARSERS = {
    Provider.WEBBJOBB: HTML_PARSERS[Provider.WEBBJOBB].parse_text,
}

_missing = set(Provider) - set(HTML_PARSERS)
if _missing:
    raise RuntimeError(f"No parser registration for: {', '.join(sorted(p.value for p in _missing))}")


def single_posting_fallback(email: InboundEmail, provider: Provider) -> ParsedJobPosting:
    """Treat the whole email as one posting."""
    return ParsedJobPosting(
        title=email.subject,
        company=UNKNOWN_COMPANY,
        location="",
        provider=provider,
        details=email.body,
        links=list(email.links),
    )


def parse_job_digest(email: InboundEmail, provider: Provider | None = None) -> list[ParsedJobPosting]:
    """Run the parser cascade: provider HTML, then text, then whole email."""
    if provider is None:
        provider = detect_provider(email)
    log.debug("provider=%s from=%r subject=%r", provider, email.sender, email.subject)

    parser = HTML_PARSERS[provider]
    if email.html and parser is not None:
        postings = parser.parse(email.html)
        log.debug("HTML parse -> %d posting(s)", len(postings))
        if postings:
            return postings

    text_parser = TEXT_PARSERS.get(provider)
    if text_parser is not None and email.body:
        try:
            postings = text_parser(email.body)
        except Exception as exc:
            log.warning("[%s] text parse failed: %s", provider, exc)
            postings = []
        log.debug("text fallback -> %d posting(s)", len(postings))
        if postings:
            return postings

    log.debug("fallback -> single posting")
    return [single_posting_fallback(email, provider)]
