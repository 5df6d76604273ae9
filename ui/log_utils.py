"""Shared logging utilities."""

import json
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from urllib.parse import urlsplit, urlunsplit

LOG_ROOT = Path.cwd() / "logs"
CLI_LOG_FILE = LOG_ROOT / "proxy.log"
REQUEST_LOG_FILE = LOG_ROOT / "requests.jsonl"


def write_cli_log(
    level: str,
    message: str,
    *,
    log_file: Path | None = None,
    **extra: Any,
) -> None:
    """Append a line to the rolling CLI log file."""
    log_file = log_file or CLI_LOG_FILE
    log_file.parent.mkdir(parents=True, exist_ok=True)
    timestamp = datetime.now(UTC).strftime("%Y-%m-%d %H:%M:%S")
    extra_str = " ".join(f"{k}={v}" for k, v in extra.items()) if extra else ""
    line = f"[{timestamp}] {level}: {message}"
    if extra_str:
        line += f" {extra_str}"
    line += "\n"
    with log_file.open("a") as f:
        f.write(line)


def write_request_log(
    event: str,
    *,
    log_file: Path | None = None,
    **fields: Any,
) -> None:
    """Append one structured event as a JSON line."""
    log_file = log_file or REQUEST_LOG_FILE
    log_file.parent.mkdir(parents=True, exist_ok=True)
    payload = {"timestamp": _utc_now(), "event": event, **fields}
    with log_file.open("a") as f:
        f.write(json.dumps(payload, default=str) + "\n")


def clear_logs(log_root: Path = LOG_ROOT) -> None:
    """Remove log files left by a previous run."""
    for log_file in (log_root / CLI_LOG_FILE.name, log_root / REQUEST_LOG_FILE.name):
        log_file.unlink(missing_ok=True)


def redact_url(url: str) -> str:
    """Drop userinfo and query string, which may carry secrets."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return "<unparseable url>"
    # Host as written, minus any "user:password@"
    netloc = parts.netloc.rpartition("@")[2]
    query = "..." if parts.query else ""
    return urlunsplit((parts.scheme, netloc, parts.path, query, ""))


def _utc_now() -> str:
    return datetime.now(UTC).isoformat()
