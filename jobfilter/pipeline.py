"""
One filter cycle: fetch unread digests → detect provider → parse postings →
evaluate each posting → send one ranked digest per source email.

Fetch failure ends the cycle early. Every other failure is isolated to the
posting or email it happened in, counted, and reported in one batched
notification at the end of the cycle.
"""
from __future__ import annotations

import threading
import time
from dataclasses import replace
from pathlib import Path
from typing import Any, Callable, Protocol

from jobfilter.detect import detect_provider
from jobfilter.digest import format_digest_email
from jobfilter.evaluator import ChatCompleter, evaluate_job, is_transient_error
from jobfilter.health import write_health_file
from jobfilter.journal import log_error, log_evaluation
from jobfilter.log import get_logger
from jobfilter.models import InboundEmail, JobEvaluation, Provider
from jobfilter.notify import Notifier
from jobfilter.parsers import parse_job_digest
from jobfilter.retry import EVALUATE_POLICY, FETCH_POLICY, SEND_POLICY, call_with_retry
from jobfilter.stats import CycleState

log = get_logger(__name__)

POSTING_DELAY_SECONDS = 0.75


class MailSource(Protocol):
    def fetch_unread(self) -> list[InboundEmail]: ...


class MailSink(Protocol):
    def send(self, to_addr: str, subject: str, html: str) -> None: ...


def _msg(exc: BaseException) -> str:
    return str(exc) or exc.__class__.__name__


class CycleCoordinator:
    def __init__(
        self,
        *,
        mailbox: MailSource,
        mailer: MailSink,
        client: ChatCompleter,
        notifier: Notifier,
        system_prompt: str,
        notify_email: str,
        log_dir: Path,
        state: CycleState | None = None,
        shutdown: threading.Event | None = None,
        sleep: Callable[[float], Any] = time.sleep,
        posting_delay: float = POSTING_DELAY_SECONDS,
    ) -> None:
        self.mailbox = mailbox
        self.mailer = mailer
        self.client = client
        self.notifier = notifier
        self.system_prompt = system_prompt
        self.notify_email = notify_email
        self.log_dir = Path(log_dir)
        self.state = state or CycleState()
        self.shutdown = shutdown or threading.Event()
        self.sleep = sleep
        self.posting_delay = posting_delay

    @property
    def running(self) -> bool:
        return self.state.running

    def run_cycle(self) -> bool:
        """Run one cycle. Returns False if a cycle was already running."""
        if self.state.running:
            log.warning("Previous cycle still running, skipping this trigger")
            return False
        if self.shutdown.is_set():
            return False

        self.state.running = True
        started = time.monotonic()
        self.state.stats.start_cycle()
        try:
            self._cycle_body()
        finally:
            self.state.stats.finish_cycle(int((time.monotonic() - started) * 1000))
            log.info(self.state.stats.format_log())
            write_health_file(self.log_dir, self.state.stats.snapshot())
            self.state.running = False
        return True

    def _cycle_body(self) -> None:
        stats = self.state.stats
        log.info("Checking for new emails...")

        try:
            emails = call_with_retry(self.mailbox.fetch_unread, self._fetch_policy(), sleep=self.sleep)
        except Exception as exc:
            log.error("IMAP failed after %d attempts: %s", FETCH_POLICY.max_attempts, exc)
            log_error(self.log_dir, "imap-fetch", exc)
            stats.add_error()
            self.notifier.critical(
                "IMAP Failure",
                f"Failed to fetch emails after {FETCH_POLICY.max_attempts} attempts:\n{_msg(exc)}",
            )
            return

        if not emails:
            log.info("No new emails.")
            return
        log.info("Found %d email(s).", len(emails))

        for email in emails:
            if self.shutdown.is_set():
                log.info("Shutdown requested, stopping before %r", email.subject)
                break
            try:
                self._process_email(email)
            except Exception as exc:
                log.error("FAILED: %r: %s", email.subject, exc)
                log_error(self.log_dir, f"process-email:{email.subject}", exc)
                stats.add_error()
                self.state.errors.add(f"Email: {email.subject}", _msg(exc))

        self.notifier.cycle_errors(self.state.errors.drain())

    def _process_email(self, email: InboundEmail) -> None:
        stats = self.state.stats
        provider = detect_provider(email)
        if provider is Provider.UNKNOWN:
            log.info("SKIP %r (unknown provider, from: %s)", email.subject, email.sender)
            stats.add_skipped()
            return

        stats.add_email()
        postings = parse_job_digest(email, provider)
        log.info("%r -> %d job(s) parsed", email.subject, len(postings))

        evaluations: list[JobEvaluation] = []
        total = len(postings)
        for i, posting in enumerate(postings):
            if self.shutdown.is_set():
                log.info("Shutdown requested, %d posting(s) left unevaluated", total - i)
                break
            if i > 0:
                self.sleep(self.posting_delay)

            try:
                evaluation = call_with_retry(
                    lambda: evaluate_job(self.client, posting, email.message_id, self.system_prompt),
                    self._evaluate_policy(posting.title),
                    sleep=self.sleep,
                )
            except Exception as exc:
                log.error("[%d/%d] FAILED: %s (%s): %s", i + 1, total, posting.title, posting.company, exc)
                log_error(self.log_dir, f"ai-eval:{posting.title}", exc)
                stats.add_error()
                self.state.errors.add(f"AI ({self.client.provider}): {posting.title}", _msg(exc))
                continue

            evaluations.append(evaluation)
            stats.add_evaluated()
            log_evaluation(self.log_dir, evaluation)
            log.info(
                "[%d/%d] %s %d/5 %s (%s)",
                i + 1, total, evaluation.category, evaluation.score, evaluation.title, evaluation.company,
            )

        if evaluations:
            self._send_digest(email, evaluations)

    def _send_digest(self, email: InboundEmail, evaluations: list[JobEvaluation]) -> None:
        subject, html = format_digest_email(evaluations, email)
        try:
            call_with_retry(
                lambda: self.mailer.send(self.notify_email, subject, html),
                self._send_policy(),
                sleep=self.sleep,
            )
        except Exception as exc:
            log.error("SMTP FAILED for %r: %s", email.subject, exc)
            log_error(self.log_dir, f"smtp-send:{email.subject}", exc)
            self.state.stats.add_error()
            self.state.errors.add(f"SMTP: {email.subject}", _msg(exc))
            return
        log.info("-> Digest email sent (%d jobs)", len(evaluations))

    def _fetch_policy(self):
        def on_retry(exc: BaseException, attempt: int) -> None:
            log.warning("[retry] IMAP attempt %d failed: %s", attempt, exc)

        return replace(FETCH_POLICY, on_retry=on_retry)

    def _evaluate_policy(self, title: str):
        def on_retry(exc: BaseException, attempt: int) -> None:
            log.warning("[retry] AI (%s) attempt %d for %r: %s", self.client.provider, attempt, title, exc)

        return replace(EVALUATE_POLICY, should_retry=is_transient_error, on_retry=on_retry)

    def _send_policy(self):
        def on_retry(exc: BaseException, attempt: int) -> None:
            log.warning("[retry] SMTP attempt %d failed: %s", attempt, exc)

        return replace(SEND_POLICY, on_retry=on_retry)
