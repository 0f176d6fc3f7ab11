"""Fetch unread messages over IMAP and turn them into InboundEmail."""
from __future__ import annotations

import email
import imaplib
import socket
from datetime import datetime, timezone
from email.message import EmailMessage
from email.policy import default as default_policy
from email.utils import parsedate_to_datetime

from jobfilter.config import Settings
from jobfilter.errors import MailError
from jobfilter.links import extract_links
from jobfilter.log import get_logger
from jobfilter.models import InboundEmail

log = get_logger(__name__)

IMAP_TIMEOUT = 15


def build_inbound_email(
    *,
    message_id: str | None = None,
    sender: str | None = None,
    subject: str | None = None,
    body: str | None = None,
    html: str | None = None,
    received_at: datetime | None = None,
) -> InboundEmail:
    """InboundEmail with defaults for anything the message left out."""
    now = datetime.now(timezone.utc)
    body = body or ""
    return InboundEmail(
        message_id=message_id or f"unknown-{int(now.timestamp() * 1000)}",
        sender=sender or "unknown",
        subject=subject or "(no subject)",
        body=body,
        html=html or "",
        received_at=received_at or now,
        links=tuple(extract_links(body)),
    )


def _part_text(msg: EmailMessage, subtype: str) -> str:
    part = msg.get_body(preferencelist=(subtype,))
    if part is None:
        return ""
    try:
        return part.get_content()
    except (LookupError, UnicodeDecodeError):
        payload = part.get_payload(decode=True) or b""
        return payload.decode(part.get_content_charset() or "utf-8", errors="replace")


def _received_at(msg: EmailMessage) -> datetime | None:
    raw = msg.get("Date")
    if not raw:
        return None
    try:
        return parsedate_to_datetime(str(raw))
    except (TypeError, ValueError):
        return None


def parse_raw_message(raw: bytes) -> InboundEmail:
    msg = email.message_from_bytes(raw, policy=default_policy)
    return build_inbound_email(
        message_id=str(msg.get("Message-ID") or "").strip() or None,
        sender=str(msg.get("From") or "").strip() or None,
        subject=str(msg.get("Subject") or "").strip() or None,
        body=_part_text(msg, "plain"),
        html=_part_text(msg, "html"),
        received_at=_received_at(msg),
    )


class ImapMailbox:
    """Mail source: unread INBOX messages, marked read as they are fetched."""

    def __init__(self, settings: Settings, folder: str = "INBOX") -> None:
        self.host = settings.imap_host
        self.port = settings.imap_port
        self.user = settings.mail_user
        self.password = settings.mail_password
        self.folder = folder

    def fetch_unread(self) -> list[InboundEmail]:
        try:
            conn = imaplib.IMAP4_SSL(self.host, self.port, timeout=IMAP_TIMEOUT)
        except (OSError, socket.timeout) as exc:
            raise MailError(f"Cannot connect to {self.host}:{self.port}: {exc}") from exc

        try:
            conn.login(self.user, self.password)
            status, _ = conn.select(self.folder)
            if status != "OK":
                raise MailError(f"Cannot select folder: {self.folder}")

            status, data = conn.search(None, "UNSEEN")
            if status != "OK":
                raise MailError("Failed to search mailbox")
            ids = (data[0] or b"").split()
            log.debug("IMAP: %d unread message(s)", len(ids))

            emails: list[InboundEmail] = []
            for num in ids:
                # RFC822 (not BODY.PEEK) so the server flags the message \Seen.
                status, fetched = conn.fetch(num, "(RFC822)")
                if status != "OK" or not fetched or not isinstance(fetched[0], tuple):
                    log.warning("IMAP: fetch failed for message %s", num.decode())
                    continue
                try:
                    emails.append(parse_raw_message(fetched[0][1]))
                except Exception as exc:
                    log.error("Failed to parse message %s: %s", num.decode(), exc)
            return emails
        except imaplib.IMAP4.error as exc:
            raise MailError(f"IMAP error: {exc}") from exc
        finally:
            try:
                conn.logout()
            except Exception as exc:
                log.debug("IMAP logout failed: %s", exc)
