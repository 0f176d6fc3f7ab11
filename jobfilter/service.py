"""
Run the filter on a fixed interval until SIGINT/SIGTERM.

Usage:
  python run_filter.py           # run now, then every MAILBOX_CHECK_INTERVAL_MINUTES
  python run_filter.py --once    # single cycle, then exit
"""
from __future__ import annotations

import os
import signal
import sys
import threading

from jobfilter.config import Settings, ensure_dirs, load_profile, load_settings
from jobfilter.errors import ConfigError
from jobfilter.evaluator import build_system_prompt
from jobfilter.health import HealthServer, write_health_file
from jobfilter.journal import log_error, rotate_logs
from jobfilter.llm import create_chat_client
from jobfilter.log import get_logger
from jobfilter.mailbox import ImapMailbox
from jobfilter.mailer import SmtpMailer
from jobfilter.notify import COLOR_YELLOW, Notifier
from jobfilter.pipeline import CycleCoordinator

log = get_logger(__name__)

SHUTDOWN_GRACE_SECONDS = 60


class FilterService:
    def __init__(self, settings: Settings, coordinator: CycleCoordinator, notifier: Notifier) -> None:
        self.settings = settings
        self.coordinator = coordinator
        self.notifier = notifier
        self.shutdown = coordinator.shutdown
        self._worker: threading.Thread | None = None
        self._health: HealthServer | None = None

    @classmethod
    def from_settings(cls, settings: Settings) -> "FilterService":
        ensure_dirs(settings)
        notifier = Notifier(settings.discord_webhook_url)
        coordinator = CycleCoordinator(
            mailbox=ImapMailbox(settings),
            mailer=SmtpMailer(settings),
            client=create_chat_client(settings),
            notifier=notifier,
            system_prompt=build_system_prompt(load_profile(settings.profile_path)),
            notify_email=settings.notify_email,
            log_dir=settings.log_dir,
        )
        return cls(settings, coordinator, notifier)

    def trigger(self) -> bool:
        """Start a cycle in the worker thread unless one is still running."""
        if self.shutdown.is_set():
            return False
        if self.coordinator.running or (self._worker is not None and self._worker.is_alive()):
            log.warning("Previous cycle still running, skipping this trigger")
            return False
        self._worker = threading.Thread(target=self.coordinator.run_cycle, name="cycle", daemon=True)
        self._worker.start()
        return True

    def run_once(self) -> None:
        self.coordinator.run_cycle()

    def serve(self) -> None:
        s = self.settings
        interval = s.check_interval_minutes * 60
        log.info(
            "JobFilter started. AI: %s (%s). Checking every %d minutes.",
            self.coordinator.client.provider, s.ai_model, s.check_interval_minutes,
        )
        self.notifier.startup(s.ai_provider, s.ai_model, s.check_interval_minutes, s.notify_email)
        rotate_logs(s.log_dir, s.log_retention_days)
        write_health_file(s.log_dir, self.coordinator.state.stats.snapshot())

        self._health = HealthServer(s.health_port)
        try:
            self._health.start()
        except OSError as exc:
            log.error("Health endpoint failed to start on port %d: %s", s.health_port, exc)
            self._health = None

        self.trigger()
        while not self.shutdown.wait(interval):
            self.trigger()

    def request_stop(self, reason: str) -> None:
        if self.shutdown.is_set():
            return
        log.info("%s received. Shutting down gracefully...", reason)
        self.shutdown.set()

    def finish(self, reason: str) -> None:
        """Wait for the in-flight cycle (bounded), then report the stop."""
        if self._health is not None:
            self._health.stop()
            log.info("Health server stopped.")
        if self._worker is not None and self._worker.is_alive():
            log.info("Waiting for current cycle to finish...")
            self._worker.join(SHUTDOWN_GRACE_SECONDS)
            if self._worker.is_alive():
                log.warning("Cycle did not finish within %ds, forcing exit.", SHUTDOWN_GRACE_SECONDS)
        self.notifier.send("JobFilter Stopped", f"Received {reason}. Graceful shutdown complete.", COLOR_YELLOW)
        log.info("Shutdown complete.")


def install_crash_handlers(settings: Settings, notifier: Notifier) -> None:
    """Uncaught exceptions anywhere are journalled, notified and fatal."""

    def fatal(kind: str, exc: BaseException) -> None:
        log.critical("[FATAL] %s: %s", kind, exc, exc_info=(type(exc), exc, exc.__traceback__))
        log_error(settings.log_dir, kind, exc)
        notifier.critical(f"FATAL: {kind}", str(exc) or exc.__class__.__name__)

    def excepthook(exc_type, exc, tb) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            sys.__excepthook__(exc_type, exc, tb)
            return
        # The interpreter exits with status 1 after the hook returns.
        fatal("Uncaught Exception", exc)

    def thread_excepthook(args: threading.ExceptHookArgs) -> None:
        if args.exc_value is None or issubclass(args.exc_type, SystemExit):
            return
        fatal(f"Uncaught Exception in thread {args.thread.name if args.thread else '?'}", args.exc_value)
        # sys.exit here would only end the worker thread.
        os._exit(1)

    sys.excepthook = excepthook
    threading.excepthook = thread_excepthook


def main(argv: list[str] | None = None, settings: Settings | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    try:
        if settings is None:
            settings = load_settings()
        service = FilterService.from_settings(settings)
    except ConfigError as exc:
        log.error("%s", exc)
        return 1
    install_crash_handlers(settings, service.notifier)

    if "--once" in argv:
        service.run_once()
        return 0

    stop_reason = {"signal": "shutdown"}

    def on_signal(signum, _frame) -> None:
        stop_reason["signal"] = signal.Signals(signum).name
        service.request_stop(stop_reason["signal"])

    signal.signal(signal.SIGINT, on_signal)
    signal.signal(signal.SIGTERM, on_signal)

    service.serve()
    service.finish(stop_reason["signal"])
    return 0
