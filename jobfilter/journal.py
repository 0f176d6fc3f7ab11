"""Daily JSON journals of evaluations and errors, with file locking."""
from __future__ import annotations

import fcntl
import json
import re
import traceback
from datetime import datetime, timedelta, timezone
from pathlib import Path

from jobfilter.log import get_logger
from jobfilter.models import JobEvaluation

log = get_logger(__name__)

_JOURNAL_RE = re.compile(r"^(?:errors-)?(\d{4}-\d{2}-\d{2})\.json$")


def _lock(f, exclusive: bool = True) -> None:
    """Advisory file lock (Unix fcntl)."""
    try:
        op = fcntl.LOCK_EX if exclusive else fcntl.LOCK_SH
        fcntl.flock(f.fileno(), op)
    except (OSError, AttributeError):
        pass


def _unlock(f) -> None:
    try:
        fcntl.flock(f.fileno(), fcntl.LOCK_UN)
    except (OSError, AttributeError):
        pass


def _today() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d")


def evaluation_log_path(log_dir: Path) -> Path:
    return log_dir / f"{_today()}.json"


def error_log_path(log_dir: Path) -> Path:
    return log_dir / f"errors-{_today()}.json"


def read_journal(path: Path) -> list[dict]:
    if not path.exists():
        return []
    with open(path, "r", encoding="utf-8") as f:
        _lock(f, exclusive=False)
        content = f.read()
        _unlock(f)
    if not content.strip():
        return []
    return json.loads(content)


def _append(path: Path, entry: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a+", encoding="utf-8") as f:
        _lock(f)
        f.seek(0)
        content = f.read()
        entries = json.loads(content) if content.strip() else []
        entries.append(entry)
        f.seek(0)
        f.truncate()
        json.dump(entries, f, indent=2, ensure_ascii=False)
        _unlock(f)


def log_evaluation(log_dir: Path, evaluation: JobEvaluation) -> None:
    try:
        _append(evaluation_log_path(log_dir), evaluation.to_dict())
    except (OSError, ValueError) as exc:
        log.error("Could not journal evaluation of %r: %s", evaluation.title, exc)
        return
    log.debug("Journaled: %s %d/5", evaluation.title, evaluation.score)


def log_error(log_dir: Path, context: str, error: BaseException | str) -> None:
    if isinstance(error, BaseException):
        message = str(error) or error.__class__.__name__
        stack = "".join(traceback.format_exception(type(error), error, error.__traceback__))
    else:
        message, stack = str(error), None
    entry = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "context": context,
        "message": message,
        "stack": stack,
    }
    try:
        _append(error_log_path(log_dir), entry)
    except (OSError, ValueError) as exc:
        log.error("Could not write error journal: %s", exc)


def rotate_logs(log_dir: Path, max_age_days: int) -> int:
    """Delete dated journal files older than ``max_age_days``."""
    if not log_dir.exists():
        return 0
    cutoff = datetime.now(timezone.utc).date() - timedelta(days=max_age_days)
    deleted = 0
    for path in log_dir.iterdir():
        match = _JOURNAL_RE.match(path.name)
        if not match:
            continue
        try:
            file_date = datetime.strptime(match.group(1), "%Y-%m-%d").date()
        except ValueError:
            continue
        if file_date < cutoff:
            path.unlink()
            deleted += 1
    if deleted:
        log.info("Deleted %d journal file(s) older than %d days", deleted, max_age_days)
    return deleted
