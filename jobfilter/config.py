"""Load environment settings and the candidate profile."""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv

from jobfilter.errors import ConfigError
from jobfilter.log import get_logger

log = get_logger(__name__)

load_dotenv()

AI_PROVIDERS: tuple[str, ...] = ("mistral", "berget")


@dataclass(frozen=True)
class Settings:
    mail_user: str
    mail_password: str
    imap_host: str
    smtp_host: str
    notify_email: str
    profile_path: Path
    ai_provider: str = "mistral"
    mistral_api_key: str = ""
    mistral_model: str = "mistral-small-latest"
    berget_api_key: str = ""
    berget_model: str = "mistralai/Mistral-Small-3.1-24B-Instruct-2503"
    imap_port: int = 993
    smtp_port: int = 587
    check_interval_minutes: int = 15
    log_dir: Path = Path("./data/logs")
    discord_webhook_url: str = ""
    health_port: int = 3000
    log_retention_days: int = 30

    @property
    def ai_model(self) -> str:
        return self.berget_model if self.ai_provider == "berget" else self.mistral_model


def get_env(key: str, default: str = "") -> str:
    return os.environ.get(key, default).strip()


def _int_env(key: str, default: int, errors: list[str], *, low: int = 1, high: int | None = None) -> int:
    raw = get_env(key)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        errors.append(f"{key}: must be an integer (got {raw!r})")
        return default
    if value < low or (high is not None and value > high):
        bound = f"{low}..{high}" if high is not None else f">= {low}"
        errors.append(f"{key}: must be {bound} (got {value})")
    return value


def load_settings() -> Settings:
    """Build Settings from the environment, reporting every problem at once."""
    errors: list[str] = []

    required = {
        key: get_env(key)
        for key in ("MAIL_USER", "MAIL_PASSWORD", "IMAP_HOST", "SMTP_HOST", "NOTIFY_EMAIL", "PROFILE_PATH")
    }
    for key, value in required.items():
        if not value:
            errors.append(f"{key}: is required")
    for key in ("MAIL_USER", "NOTIFY_EMAIL"):
        if required[key] and "@" not in required[key]:
            errors.append(f"{key}: must be a valid email")

    ai_provider = get_env("AI_PROVIDER", "mistral").lower()
    if ai_provider not in AI_PROVIDERS:
        errors.append(f"AI_PROVIDER: must be one of {', '.join(AI_PROVIDERS)} (got {ai_provider!r})")
    mistral_key = get_env("MISTRAL_API_KEY")
    berget_key = get_env("BERGET_API_KEY")
    if ai_provider == "mistral" and not mistral_key:
        errors.append("MISTRAL_API_KEY: is required when AI_PROVIDER=mistral")
    if ai_provider == "berget" and not berget_key:
        errors.append("BERGET_API_KEY: is required when AI_PROVIDER=berget")

    webhook = get_env("DISCORD_WEBHOOK_URL")
    if webhook and not webhook.startswith(("http://", "https://")):
        errors.append("DISCORD_WEBHOOK_URL: must be a URL")

    imap_port = _int_env("IMAP_PORT", 993, errors, high=65535)
    smtp_port = _int_env("SMTP_PORT", 587, errors, high=65535)
    interval = _int_env("MAILBOX_CHECK_INTERVAL_MINUTES", 15, errors)
    health_port = _int_env("HEALTH_PORT", 3000, errors, high=65535)
    retention = _int_env("LOG_RETENTION_DAYS", 30, errors)

    if errors:
        raise ConfigError("Environment validation failed:\n" + "\n".join(f"  - {e}" for e in errors))

    return Settings(
        mail_user=required["MAIL_USER"],
        mail_password=required["MAIL_PASSWORD"],
        imap_host=required["IMAP_HOST"],
        smtp_host=required["SMTP_HOST"],
        notify_email=required["NOTIFY_EMAIL"],
        profile_path=Path(required["PROFILE_PATH"]),
        ai_provider=ai_provider,
        mistral_api_key=mistral_key,
        mistral_model=get_env("MISTRAL_MODEL") or Settings.mistral_model,
        berget_api_key=berget_key,
        berget_model=get_env("BERGET_MODEL") or Settings.berget_model,
        imap_port=imap_port,
        smtp_port=smtp_port,
        check_interval_minutes=interval,
        log_dir=Path(get_env("LOG_DIR") or "./data/logs"),
        discord_webhook_url=webhook,
        health_port=health_port,
        log_retention_days=retention,
    )


def ensure_dirs(settings: Settings) -> None:
    settings.log_dir.mkdir(parents=True, exist_ok=True)


def _render_profile(data: Any, depth: int = 0) -> list[str]:
    """Flatten a YAML profile into indented Markdown-ish lines."""
    pad = "  " * depth
    lines: list[str] = []
    if isinstance(data, dict):
        for key, value in data.items():
            if isinstance(value, (dict, list)):
                lines.append(f"{pad}- **{key}**:")
                lines.extend(_render_profile(value, depth + 1))
            else:
                lines.append(f"{pad}- **{key}**: {value}")
    elif isinstance(data, list):
        for item in data:
            if isinstance(item, (dict, list)):
                lines.extend(_render_profile(item, depth))
            else:
                lines.append(f"{pad}- {item}")
    elif data is not None:
        lines.append(f"{pad}{data}")
    return lines


def load_profile(path: Path) -> str:
    """Candidate profile as text. YAML profiles are rendered to a list."""
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigError(f"Failed to read profile file: {path}") from exc

    if path.suffix.lower() in (".yaml", ".yml"):
        try:
            data = yaml.safe_load(content)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Profile file is not valid YAML: {path}") from exc
        content = "\n".join(_render_profile(data))

    if not content.strip():
        raise ConfigError(f"Profile file is empty: {path}")
    log.debug("Loaded candidate profile from %s (%d chars)", path, len(content))
    return content
