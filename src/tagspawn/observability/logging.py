"""Queue-backed JSON-lines logging with invocation correlation and secret redaction."""

from __future__ import annotations

import atexit
import contextvars
import json
import logging
import logging.handlers
import math
import queue
import re
import sys
import threading
import time
from collections.abc import Callable, Iterator, Mapping
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Final, cast

try:
    from datetime import UTC
except ImportError:
    UTC = timezone.utc  # noqa: UP017

JSONScalar = str | int | float | bool | None
JSONValue = JSONScalar | list["JSONValue"] | dict[str, "JSONValue"]
LogRedactor = Callable[[JSONValue], JSONValue]

REDACTED: Final[str] = "***REDACTED***"
ROOT_LOGGER_NAME: Final[str] = "tagspawn"
_DEFAULT_LOG_FILENAME: Final[str] = "tagspawn.jsonl"
_DEFAULT_QUEUE_SIZE: Final[int] = 2048

CORRELATION_KEYS: Final[tuple[str, ...]] = ("invocation_id", "project_name", "resource_id")

_SENSITIVE_KEY_TERMS: Final[tuple[str, ...]] = (
    "secret",
    "token",
    "password",
    "passwd",
    "passphrase",
    "api_key",
    "apikey",
    "authorization",
    "credential",
    "cookie",
    "private_key",
)

# Catches ``GITHUB_TOKEN=abc`` inside ``env`` prefixes as well as ``password: x``.
_SENSITIVE_ASSIGNMENT_PATTERN: Final[re.Pattern[str]] = re.compile(
    r"(?i)\b([A-Za-z0-9_]*(?:api[_-]?key|token|password|passwd|secret|authorization)[A-Za-z0-9_]*)"
    r"(\s*[:=]\s*)('[^']*'|\"[^\"]*\"|[^\s,;]+)"
)
_BEARER_TOKEN_PATTERN: Final[re.Pattern[str]] = re.compile(r"(?i)\bbearer\s+[A-Za-z0-9._~+/-]+=*")
_GITHUB_TOKEN_PATTERN: Final[re.Pattern[str]] = re.compile(r"\bgh[pousr]_[A-Za-z0-9]{20,}\b")

_STANDARD_RECORD_FIELDS: Final[frozenset[str]] = frozenset(
    logging.LogRecord("", 0, "", 0, "", None, None).__dict__.keys() | {"message", "asctime"}
)

_CorrelationState = tuple[tuple[str, str], ...]
_CORRELATION: contextvars.ContextVar[_CorrelationState] = contextvars.ContextVar(
    "tagspawn_correlation", default=()
)

_ACTIVE_LOCK = threading.Lock()
_ACTIVE: LoggingHandle | None = None
_ATEXIT_REGISTERED = False


@dataclass(frozen=True, slots=True)
class LoggingConfig:
    """Settings for one invocation's logging setup.

    ``base_log_dir=None`` disables the file sink; records then go to stderr only
    (when ``log_to_stderr`` is set).
    """

    invocation_id: str
    base_log_dir: Path | str | None = Path("logs")
    logger_name: str = ROOT_LOGGER_NAME
    level: int | str = "INFO"
    queue_size: int = _DEFAULT_QUEUE_SIZE
    log_filename: str = _DEFAULT_LOG_FILENAME
    log_to_stderr: bool = False
    redact_secrets: bool = True


class _CorrelatingQueueHandler(logging.handlers.QueueHandler):
    """Attach correlation context at emit time and drop records when the queue is full."""

    def __init__(self, log_queue: queue.Queue[object]) -> None:
        super().__init__(log_queue)
        self.dropped = 0

    def prepare(self, record: logging.LogRecord) -> logging.LogRecord:
        record.correlation = get_correlation_context()
        return cast("logging.LogRecord", super().prepare(record))

    def enqueue(self, record: logging.LogRecord) -> None:
        try:
            self.queue.put_nowait(record)
        except queue.Full:
            self.dropped += 1


class JsonLineFormatter(logging.Formatter):
    """One canonical JSON object per record."""

    def __init__(self, *, redactor: LogRedactor, base_context: Mapping[str, str]) -> None:
        super().__init__()
        self._redactor = redactor
        self._base_context = dict(base_context)

    def format(self, record: logging.LogRecord) -> str:
        event: dict[str, JSONValue] = {
            "timestamp": _iso8601z(record.created),
            "level": record.levelname,
            "logger": record.name,
            "message": _as_text(self._redactor(record.getMessage())),
        }
        event.update(sorted(_correlation_for(record, self._base_context).items()))

        extras = _extra_fields(record)
        if extras:
            event["fields"] = self._redactor(_to_json(extras))
        if record.exc_info is not None:
            event["exception"] = _as_text(self._redactor(self.formatException(record.exc_info)))
        return json.dumps(event, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


class LoggingHandle:
    """Active logging setup; call :meth:`shutdown` to drain and close sinks."""

    def __init__(
        self,
        *,
        logger: logging.Logger,
        invocation_id: str,
        log_path: Path | None,
        log_queue: queue.Queue[object],
        queue_handler: _CorrelatingQueueHandler,
        sinks: tuple[logging.Handler, ...],
        listener: logging.handlers.QueueListener,
    ) -> None:
        self.logger = logger
        self.invocation_id = invocation_id
        self.log_path = log_path
        self._queue = log_queue
        self._queue_handler = queue_handler
        self._sinks = sinks
        self._listener = listener
        self._lock = threading.Lock()
        self._closed = False

    @property
    def dropped_records(self) -> int:
        return self._queue_handler.dropped

    @property
    def is_shutdown(self) -> bool:
        return self._closed

    def flush(self, *, timeout_seconds: float = 2.0) -> None:
        deadline = time.monotonic() + max(timeout_seconds, 0.0)
        while self._queue.unfinished_tasks > 0 and time.monotonic() < deadline:
            time.sleep(0.01)
        for sink in self._sinks:
            sink.flush()

    def shutdown(self, *, timeout_seconds: float = 2.0) -> None:
        with self._lock:
            if self._closed:
                return
            self.flush(timeout_seconds=timeout_seconds)
            self._listener.stop()
            self.logger.removeHandler(self._queue_handler)
            self._queue_handler.close()
            for sink in self._sinks:
                sink.close()
            self._closed = True


def setup_structured_logging(config: LoggingConfig) -> LoggingHandle:
    """Install queue-backed JSON logging on the ``tagspawn`` logger tree."""

    shutdown_logging()

    invocation_id = _require_text(config.invocation_id, "invocation_id")
    logger_name = _require_text(config.logger_name, "logger_name")
    level = parse_log_level(config.level)
    if not isinstance(config.queue_size, int) or config.queue_size <= 0:
        raise ValueError("queue_size must be a positive integer")

    redactor: LogRedactor = default_log_redactor if config.redact_secrets else _identity
    formatter = JsonLineFormatter(redactor=redactor, base_context={"invocation_id": invocation_id})

    sinks: list[logging.Handler] = []
    log_path: Path | None = None
    if config.base_log_dir is not None:
        filename = _require_text(config.log_filename, "log_filename")
        if Path(filename).name != filename:
            raise ValueError("log_filename must not include path separators")
        invocation_dir = Path(config.base_log_dir) / invocation_id
        invocation_dir.mkdir(parents=True, exist_ok=True)
        log_path = invocation_dir / filename
        sinks.append(logging.FileHandler(log_path, encoding="utf-8"))
    if config.log_to_stderr:
        sinks.append(logging.StreamHandler(sys.stderr))
    if not sinks:
        sinks.append(logging.NullHandler())
    for sink in sinks:
        sink.setLevel(level)
        sink.setFormatter(formatter)

    logger = logging.getLogger(logger_name)
    logger.setLevel(level)
    logger.propagate = False
    for existing in list(logger.handlers):
        logger.removeHandler(existing)
        existing.close()

    log_queue: queue.Queue[object] = queue.Queue(maxsize=config.queue_size)
    queue_handler = _CorrelatingQueueHandler(log_queue)
    queue_handler.setLevel(level)
    listener = logging.handlers.QueueListener(log_queue, *sinks, respect_handler_level=True)
    listener.start()
    logger.addHandler(queue_handler)

    handle = LoggingHandle(
        logger=logger,
        invocation_id=invocation_id,
        log_path=log_path,
        log_queue=log_queue,
        queue_handler=queue_handler,
        sinks=tuple(sinks),
        listener=listener,
    )
    global _ACTIVE, _ATEXIT_REGISTERED
    with _ACTIVE_LOCK:
        _ACTIVE = handle
        if not _ATEXIT_REGISTERED:
            atexit.register(shutdown_logging)
            _ATEXIT_REGISTERED = True
    return handle


def configure_from_settings(
    observability: Mapping[str, object],
    *,
    invocation_id: str,
) -> LoggingHandle:
    """Build a :class:`LoggingConfig` from the ``[observability]`` config section."""

    raw_dir = observability.get("log_dir")
    return setup_structured_logging(
        LoggingConfig(
            invocation_id=invocation_id,
            base_log_dir=raw_dir if isinstance(raw_dir, (str, Path)) and raw_dir else None,
            level=cast("str", observability.get("log_level", "INFO")),
            log_to_stderr=bool(observability.get("log_to_stderr", False)),
            redact_secrets=bool(observability.get("redact_secrets", True)),
        )
    )


def get_active_logging_handle() -> LoggingHandle | None:
    with _ACTIVE_LOCK:
        return _ACTIVE


def flush_logging(*, timeout_seconds: float = 2.0) -> None:
    handle = get_active_logging_handle()
    if handle is not None:
        handle.flush(timeout_seconds=timeout_seconds)


def shutdown_logging(*, timeout_seconds: float = 2.0) -> None:
    """Drain and close the active setup, if any."""

    global _ACTIVE
    with _ACTIVE_LOCK:
        handle, _ACTIVE = _ACTIVE, None
    if handle is not None:
        handle.shutdown(timeout_seconds=timeout_seconds)


# ---------------------------------------------------------------------------
# Correlation
# ---------------------------------------------------------------------------


def get_correlation_context() -> dict[str, str]:
    return dict(_CORRELATION.get())


@contextmanager
def correlation_scope(**fields: str | None) -> Iterator[None]:
    """Bind correlation fields for log records emitted inside the block.

    A ``None`` value unbinds the key for the duration of the block.
    """

    state = get_correlation_context()
    for key, value in fields.items():
        name = _require_text(key, "correlation key")
        if value is None:
            state.pop(name, None)
        else:
            state[name] = _require_text(value, f"correlation value for {name}")
    token = _CORRELATION.set(tuple(state.items()))
    try:
        yield
    finally:
        _CORRELATION.reset(token)


# ---------------------------------------------------------------------------
# Redaction
# ---------------------------------------------------------------------------


def default_log_redactor(value: JSONValue) -> JSONValue:
    """Mask values under secret-looking keys and secret-looking substrings."""

    return _redact(value, key=None)


def redact_text(text: str) -> str:
    masked = _SENSITIVE_ASSIGNMENT_PATTERN.sub(
        lambda match: f"{match.group(1)}{match.group(2)}{REDACTED}", text
    )
    masked = _BEARER_TOKEN_PATTERN.sub(f"Bearer {REDACTED}", masked)
    return _GITHUB_TOKEN_PATTERN.sub(REDACTED, masked)


def _redact(value: JSONValue, *, key: str | None) -> JSONValue:
    if key is not None and any(term in key.lower() for term in _SENSITIVE_KEY_TERMS):
        return REDACTED
    if isinstance(value, str):
        return redact_text(value)
    if isinstance(value, list):
        return [_redact(item, key=None) for item in value]
    if isinstance(value, dict):
        return {name: _redact(item, key=name) for name, item in value.items()}
    return value


def _identity(value: JSONValue) -> JSONValue:
    return value


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def parse_log_level(value: int | str) -> int:
    if isinstance(value, bool):
        raise ValueError("level must be int or str, got bool")
    if isinstance(value, int):
        return value
    if not isinstance(value, str):
        raise ValueError(f"level must be int or str, got {type(value).__name__}")
    parsed = logging.getLevelName(value.strip().upper())
    if isinstance(parsed, int):
        return parsed
    raise ValueError(f"unsupported logging level {value!r}")


def _require_text(value: object, label: str) -> str:
    if not isinstance(value, str):
        raise ValueError(f"{label} must be a string, got {type(value).__name__}")
    normalized = value.strip()
    if not normalized:
        raise ValueError(f"{label} must not be empty")
    return normalized


def _iso8601z(epoch_seconds: float) -> str:
    stamp = datetime.fromtimestamp(epoch_seconds, tz=UTC)
    return stamp.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _as_text(value: JSONValue) -> str:
    if isinstance(value, str):
        return value
    return json.dumps(value, sort_keys=True, separators=(",", ":"), ensure_ascii=False)


def _correlation_for(record: logging.LogRecord, base: Mapping[str, str]) -> dict[str, str]:
    merged = dict(base)
    bound = getattr(record, "correlation", None)
    if isinstance(bound, Mapping):
        merged.update({k: v for k, v in bound.items() if isinstance(v, str)})
    for key in CORRELATION_KEYS:
        value = getattr(record, key, None)
        if isinstance(value, str) and value.strip():
            merged[key] = value.strip()
    return merged


def _extra_fields(record: logging.LogRecord) -> dict[str, object]:
    return {
        key: value
        for key, value in record.__dict__.items()
        if key not in _STANDARD_RECORD_FIELDS
        and key not in CORRELATION_KEYS
        and key != "correlation"
        and not key.startswith("_")
    }


def _to_json(value: object) -> JSONValue:
    if value is None or isinstance(value, (bool, int, str)):
        return value
    if isinstance(value, float):
        return value if math.isfinite(value) else str(value)
    if isinstance(value, datetime):
        aware = value if value.tzinfo is not None else value.replace(tzinfo=UTC)
        return aware.astimezone(UTC).isoformat(timespec="microseconds").replace("+00:00", "Z")
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, Mapping):
        return {str(key): _to_json(item) for key, item in value.items()}
    if isinstance(value, (list, tuple, set, frozenset)):
        return [_to_json(item) for item in value]
    return repr(value)


__all__ = [
    "CORRELATION_KEYS",
    "REDACTED",
    "ROOT_LOGGER_NAME",
    "JSONValue",
    "JsonLineFormatter",
    "LogRedactor",
    "LoggingConfig",
    "LoggingHandle",
    "configure_from_settings",
    "correlation_scope",
    "default_log_redactor",
    "flush_logging",
    "get_active_logging_handle",
    "get_correlation_context",
    "parse_log_level",
    "redact_text",
    "setup_structured_logging",
    "shutdown_logging",
]
