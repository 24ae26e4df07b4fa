"""Logging setup for the bots, the scheduler and the CLI.

Call ``configure_logging()`` once from the entry point before building the
service.

Level guide:
- DEBUG: cron evaluation, timer sleeps
- INFO: schedule lifecycle (created, paused, fired, delivered)
- WARNING: skipped schedules, rejected commands
- ERROR: failed fetches and sends, persistence failures

Log calls use a short event name as the message and put details in
``extra`` under dotted keys, e.g.
``logger.info("schedule_fired", extra={"schedule.id": schedule.id})``.
"""

import json
import logging
import os
import re
import time
from datetime import UTC, datetime
from pathlib import Path
from typing import Any, TextIO

LOG_LEVEL_ENV = "ARTFEED_LOG_LEVEL"
LOG_RETENTION_DAYS = 7

_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")

# Anything on a LogRecord beyond these came in through ``extra``
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord("", 0, "", 0, "", None, None))
) | {"message", "asctime", "component"}

SECRET_PATTERNS: dict[str, str] = {
    "telegram_token": r"\b(\d{8,}:[A-Za-z0-9_-]{30,})\b",
    "discord_token": r"\b([A-Za-z0-9_-]{24,}\.[A-Za-z0-9_-]{6}\.[A-Za-z0-9_-]{27,})\b",
    "env_secret": r"\b[A-Z0-9_]+(?:KEY|TOKEN|SECRET)\s*[=:]\s*([^\s\"']{8,})",
    "bearer": r"\bBearer\s+([A-Za-z0-9._\-+=]{20,})\b",
}

# Third-party loggers that flood INFO with connection chatter
NOISY_LOGGERS = ("httpx", "httpcore", "aiogram", "discord")


class SecretRedactor:
    """Masks bot tokens and API keys in log output.

    A masked secret keeps its first and last four characters, so two
    different tokens stay distinguishable.
    """

    def __init__(self, patterns: list[str] | None = None, enabled: bool = True):
        sources = patterns if patterns is not None else list(SECRET_PATTERNS.values())
        self.patterns = [re.compile(p, re.IGNORECASE) for p in sources]
        self.enabled = enabled

    def redact(self, text: str) -> str:
        if not self.enabled or not text:
            return text
        for pattern in self.patterns:
            text = pattern.sub(self._mask, text)
        return text

    def scrub(self, value: Any) -> Any:
        """Redact strings nested anywhere inside ``value``."""
        if isinstance(value, str):
            return self.redact(value)
        if isinstance(value, dict):
            return {key: self.scrub(item) for key, item in value.items()}
        if isinstance(value, list | tuple):
            return [self.scrub(item) for item in value]
        return value

    @staticmethod
    def _mask(match: re.Match[str]) -> str:
        whole = match.group(0)
        secret = match.group(1) if match.lastindex else whole
        if "****" in secret or len(secret) < 12:
            return whole
        return whole.replace(secret, f"{secret[:4]}****{secret[-4:]}")


redactor = SecretRedactor()


def prune_old_logs(logs_dir: Path, retention_days: int = LOG_RETENTION_DAYS) -> int:
    """Remove ``*.jsonl`` files not modified within ``retention_days``.

    Returns the number of files removed.
    """
    if not logs_dir.is_dir():
        return 0

    cutoff = time.time() - retention_days * 86400
    removed = 0
    for path in logs_dir.glob("*.jsonl"):
        try:
            if path.stat().st_mtime < cutoff:
                path.unlink()
                removed += 1
        except OSError:
            logging.getLogger(__name__).debug("log_prune_failed", extra={"path": str(path)})
    return removed


def component_for(logger_name: str) -> str:
    """``artfeed.scheduling.engine`` -> ``scheduling``."""
    head, _, rest = logger_name.partition(".")
    if head == "artfeed" and rest:
        return rest.split(".", 1)[0]
    return head


def extract_extra(record: logging.LogRecord) -> dict[str, Any]:
    return {
        key: value
        for key, value in vars(record).items()
        if key not in _STANDARD_ATTRS and not key.startswith("_")
    }


class JSONLHandler(logging.Handler):
    """Appends one JSON object per record to ``<logs_dir>/<YYYY-MM-DD>.jsonl``.

    A new file is opened when the UTC date changes, and files past the
    retention window are pruned at that point.
    """

    def __init__(self, logs_dir: Path, retention_days: int = LOG_RETENTION_DAYS):
        super().__init__()
        logs_dir.mkdir(parents=True, exist_ok=True)
        self.logs_dir = logs_dir
        self.retention_days = retention_days
        self._day: str | None = None
        self._stream: TextIO | None = None

    def _stream_for(self, day: str) -> TextIO:
        if self._stream is None or day != self._day:
            if self._stream is not None:
                self._stream.close()
            self._day = day
            self._stream = (self.logs_dir / f"{day}.jsonl").open("a", encoding="utf-8")
            prune_old_logs(self.logs_dir, self.retention_days)
        return self._stream

    def build_entry(self, record: logging.LogRecord) -> dict[str, Any]:
        created = datetime.fromtimestamp(record.created, UTC)
        entry: dict[str, Any] = {
            "ts": created.isoformat(),
            "level": record.levelname,
            "component": component_for(record.name),
            "logger": record.name,
            "event": redactor.redact(record.getMessage()),
        }
        if fields := extract_extra(record):
            entry["fields"] = redactor.scrub(json.loads(json.dumps(fields, default=str)))
        if record.exc_info:
            formatter = self.formatter or logging.Formatter()
            entry["exception"] = redactor.redact(formatter.formatException(record.exc_info))
        return entry

    def emit(self, record: logging.LogRecord) -> None:
        try:
            entry = self.build_entry(record)
            stream = self._stream_for(entry["ts"][:10])
            stream.write(json.dumps(entry, ensure_ascii=False) + "\n")
            stream.flush()
        except Exception:
            self.handleError(record)

    def close(self) -> None:
        if self._stream is not None:
            self._stream.close()
            self._stream = None
        super().close()


class ComponentFormatter(logging.Formatter):
    """Adds ``%(component)s`` and appends ``extra`` fields as ``key=value``."""

    def format(self, record: logging.LogRecord) -> str:
        record.component = component_for(record.name)
        line = super().format(record)
        fields = extract_extra(record)
        if fields:
            line += " " + " ".join(f"{key}={value}" for key, value in fields.items())
        return redactor.redact(line)


def _resolve_level(level: str | None) -> int:
    name = (level or os.environ.get(LOG_LEVEL_ENV) or "INFO").upper()
    if name not in _LEVELS:
        name = "INFO"
    return getattr(logging, name)


def _console_handler(use_rich: bool) -> logging.Handler:
    if use_rich:
        from rich.logging import RichHandler

        handler: logging.Handler = RichHandler(
            show_path=False, show_time=True, markup=False, rich_tracebacks=False
        )
        handler.setFormatter(ComponentFormatter("%(component)s | %(message)s"))
        return handler

    handler = logging.StreamHandler()
    handler.setFormatter(
        ComponentFormatter(
            "%(asctime)s %(levelname)-7s %(component)s | %(message)s", datefmt="%H:%M:%S"
        )
    )
    return handler


def configure_logging(
    level: str | None = None,
    use_rich: bool = False,
    log_to_file: bool = False,
) -> None:
    """Install handlers on the root logger.

    Args:
        level: DEBUG, INFO, WARNING or ERROR. Defaults to ``ARTFEED_LOG_LEVEL``,
            then INFO.
        use_rich: Render console output with rich (server mode).
        log_to_file: Also write JSONL files under the artfeed logs directory.
    """
    from artfeed.config.paths import get_logs_path

    log_level = _resolve_level(level)
    handlers = [_console_handler(use_rich)]
    if log_to_file:
        handlers.append(JSONLHandler(get_logs_path()))

    logging.basicConfig(level=log_level, handlers=handlers, force=True)

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)
