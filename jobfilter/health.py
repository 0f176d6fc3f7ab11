"""Health file for container checks, and a tiny ``GET /health`` server.

Run ``python -m jobfilter.health`` to check the file: exit 0 when healthy.
"""
from __future__ import annotations

import json
import os
import sys
import threading
from datetime import datetime, timezone
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from pathlib import Path

from jobfilter.log import get_logger

log = get_logger(__name__)

HEALTH_FILE = "health.json"
# Longer than the longest check interval plus a slow cycle.
MAX_STALE_SECONDS = 90 * 60


def health_file_path(log_dir: Path) -> Path:
    return Path(log_dir).resolve().parent / HEALTH_FILE


def write_health_file(log_dir: Path, stats: dict) -> None:
    health = {
        "status": "ok",
        "updated_at": datetime.now(timezone.utc).isoformat(),
        "total_cycles": stats.get("total_cycles", 0),
        "total_errors": stats.get("total_errors", 0),
        "last_cycle_duration_ms": stats.get("last_cycle_duration_ms"),
    }
    path = health_file_path(log_dir)
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(health, indent=2), encoding="utf-8")
    except OSError as exc:
        log.error("Failed to write health file: %s", exc)


def check_health(log_dir: Path, *, now: datetime | None = None) -> bool:
    path = health_file_path(log_dir)
    try:
        health = json.loads(path.read_text(encoding="utf-8"))
        updated = datetime.fromisoformat(health["updated_at"])
    except (OSError, ValueError, KeyError, TypeError):
        return False
    now = now or datetime.now(timezone.utc)
    age = (now - updated).total_seconds()
    return health.get("status") == "ok" and age < MAX_STALE_SECONDS


class _HealthHandler(BaseHTTPRequestHandler):
    def do_GET(self) -> None:
        if self.path == "/health":
            self._reply(200, {"status": "ok"})
        else:
            self._reply(404, {"error": "Not found"})

    def _reply(self, code: int, payload: dict) -> None:
        body = json.dumps(payload).encode("utf-8")
        self.send_response(code)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def log_message(self, format: str, *args) -> None:
        log.debug("health: " + format, *args)


class HealthServer:
    def __init__(self, port: int, host: str = "0.0.0.0") -> None:
        self.host = host
        self.port = port
        self._server: ThreadingHTTPServer | None = None
        self._thread: threading.Thread | None = None

    def start(self) -> None:
        self._server = ThreadingHTTPServer((self.host, self.port), _HealthHandler)
        self.port = self._server.server_address[1]
        self._thread = threading.Thread(target=self._server.serve_forever, name="health", daemon=True)
        self._thread.start()
        log.info("Health endpoint listening on port %d", self.port)

    def stop(self) -> None:
        if self._server is None:
            return
        self._server.shutdown()
        self._server.server_close()
        self._server = None


if __name__ == "__main__":
    healthy = check_health(Path(os.environ.get("LOG_DIR", "./data/logs")))
    print("healthy" if healthy else "unhealthy")
    sys.exit(0 if healthy else 1)
