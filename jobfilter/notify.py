"""Best-effort Discord webhook notifications. Never raises."""
from __future__ import annotations

from datetime import datetime, timezone

import requests

from jobfilter.log import get_logger
from jobfilter.stats import BufferedError

log = get_logger(__name__)

COLOR_GREEN = 0x059669
COLOR_RED = 0xDC2626
COLOR_YELLOW = 0xD97706

# Discord rejects embed descriptions longer than this.
_MAX_DESCRIPTION = 4096


class Notifier:
    def __init__(self, webhook_url: str = "", *, timeout: float = 10.0) -> None:
        self.webhook_url = webhook_url
        self.timeout = timeout

    @property
    def enabled(self) -> bool:
        return bool(self.webhook_url)

    def send(self, title: str, message: str, color: int = COLOR_GREEN) -> None:
        if not self.enabled:
            return
        embed = {
            "title": title,
            "description": message[:_MAX_DESCRIPTION],
            "color": color,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        try:
            r = requests.post(self.webhook_url, json={"embeds": [embed]}, timeout=self.timeout)
            if not r.ok:
                log.error("Discord webhook failed: %s %s", r.status_code, r.reason)
        except Exception as exc:
            log.error("Discord webhook error: %s", exc)

    def critical(self, title: str, message: str) -> None:
        self.send(title, message, COLOR_RED)

    def startup(self, provider: str, model: str, interval_minutes: int, notify_email: str) -> None:
        self.send("JobFilter Started", "\n".join([
            f"Provider: {provider}",
            f"Model: {model}",
            f"Schedule: every {interval_minutes} minutes",
            f"Notify: {notify_email}",
        ]), COLOR_GREEN)

    def cycle_errors(self, errors: list[BufferedError]) -> None:
        if not errors:
            return
        lines = [f"{len(errors)} error(s) in this cycle:", ""]
        lines.extend(f"**{e.context}**: {e.message}" for e in errors)
        self.send("Cycle Errors", "\n".join(lines), COLOR_YELLOW)
