"""Compose the ranked digest email for one source email (HTML-formatted)."""
from __future__ import annotations

from datetime import datetime
from html import escape

from jobfilter.log import get_logger
from jobfilter.models import InboundEmail, JobEvaluation, Provider

log = get_logger(__name__)

HIGHLIGHT_THRESHOLD = 3

PROVIDER_URLS: dict[Provider, str] = {
    Provider.LINKEDIN: "https://www.linkedin.com/jobs/",
    Provider.INDEED: "https://se.indeed.com/",
    Provider.WEBBJOBB: "https://webbjobb.io/",
    Provider.DEMANDO: "https://demando.se/",
    Provider.ARBETSFORMEDLINGEN: "https://arbetsformedlingen.se/",
    Provider.GLASSDOOR: "https://www.glassdoor.com/",
}

_LINK_STYLE = "color:#1a73e8;text-decoration:none"


def _score_color(score: int) -> str:
    if score >= 4:
        return "#16a34a"
    if score == 3:
        return "#eab308"
    return "#9ca3af"


def _job_link(ev: JobEvaluation) -> str:
    if ev.links:
        return f'<a href="{escape(ev.links[0])}" style="{_LINK_STYLE}">{escape(ev.title)}</a>'
    return escape(ev.title)


def _provider_link(provider: Provider) -> str:
    url = PROVIDER_URLS.get(provider)
    if url:
        return f'<a href="{url}" style="{_LINK_STYLE}">{escape(provider.value)}</a>'
    return escape(provider.value)


def _company_line(ev: JobEvaluation) -> str:
    parts = []
    if ev.has_company:
        parts.append(escape(ev.company))
    if ev.location:
        parts.append(escape(ev.location))
    return " &middot; ".join(parts)


def _format_date(when: datetime) -> str:
    return when.strftime("%Y-%m-%d %H:%M")


def digest_subject(evaluations: list[JobEvaluation]) -> str:
    ranked = sorted(evaluations, key=lambda e: -e.score)
    top = ranked[0]
    if len(ranked) == 1:
        at = f" at {top.company}" if top.has_company else ""
        return f"JobFilter – {top.title}{at} – {top.score}/5"
    return f"JobFilter – {len(ranked)} jobs – top match {top.score}/5"


def format_digest_email(
    evaluations: list[JobEvaluation],
    original: InboundEmail,
    *,
    now: datetime | None = None,
) -> tuple[str, str]:
    """Return ``(subject, html)``; evaluations must be non-empty."""
    if not evaluations:
        raise ValueError("format_digest_email needs at least one evaluation")
    now = now or datetime.now()

    ranked = sorted(evaluations, key=lambda e: -e.score)
    highlighted = [e for e in ranked if e.score >= HIGHLIGHT_THRESHOLD]
    rest = [e for e in ranked if e.score < HIGHLIGHT_THRESHOLD]
    provider = evaluations[0].provider
    count = len(evaluations)
    plural = "s" if count != 1 else ""

    parts: list[str] = [
        '<div style="font-family:-apple-system,BlinkMacSystemFont,\'Segoe UI\',Roboto,sans-serif;max-width:600px;margin:0 auto;color:#333">',
        '<div style="padding:20px 0;border-bottom:2px solid #e5e7eb">',
        '<div style="font-size:18px;font-weight:600;margin:0 0 8px">Job Filter Results</div>',
        f'<div style="font-size:13px;color:#6b7280">{count} job{plural} from {_provider_link(provider)} &middot; {_format_date(now)}</div>',
        f'<div style="font-size:12px;color:#9ca3af;margin-top:4px">Original: {escape(original.subject)}</div>',
        "</div>",
    ]

    if highlighted:
        parts.append('<div style="margin-top:20px">')
        parts.append('<div style="font-size:12px;text-transform:uppercase;letter-spacing:0.05em;color:#374151;font-weight:600;margin-bottom:12px">Worth checking out</div>')
        for ev in highlighted:
            company_line = _company_line(ev)
            parts.append('<div style="padding:12px 0;border-bottom:1px solid #f3f4f6">')
            parts.append(
                f'<div><span style="font-size:14px;font-weight:700;color:{_score_color(ev.score)}">{ev.score}/5</span>'
                f'<span style="font-size:14px;font-weight:500;margin-left:8px">{_job_link(ev)}</span></div>'
            )
            if company_line:
                parts.append(f'<div style="font-size:13px;color:#6b7280;margin-top:2px">{company_line}</div>')
            parts.append(f'<div style="font-size:13px;color:#4b5563;margin-top:4px">{escape(ev.reasoning)}</div>')
            parts.append("</div>")
        parts.append("</div>")

    if rest:
        parts.append('<div style="margin-top:20px">')
        parts.append('<div style="font-size:12px;text-transform:uppercase;letter-spacing:0.05em;color:#9ca3af;font-weight:600;margin-bottom:12px">Skipped</div>')
        parts.append('<div style="font-size:13px;color:#6b7280">')
        for ev in rest:
            company = f' <span style="color:#9ca3af">({escape(ev.company)})</span>' if ev.has_company else ""
            parts.append(
                f'<div style="padding:4px 0"><span style="font-weight:600">{ev.score}/5</span> – {_job_link(ev)}{company}'
                f' <span style="color:#9ca3af;font-style:italic">– {escape(ev.reasoning)}</span></div>'
            )
        parts.append("</div></div>")

    parts.append(
        f'<div style="margin-top:24px;padding-top:12px;border-top:1px solid #f3f4f6;font-size:11px;color:#9ca3af">'
        f"Processed {_format_date(now)} &middot; Source: {escape(provider.value)}</div>"
    )
    parts.append("</div>")

    log.debug("Built digest: %d jobs, %d highlighted", count, len(highlighted))
    return digest_subject(evaluations), "\n".join(parts)
