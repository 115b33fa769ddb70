"""Public observability primitives: structured logging and correlation."""

from tagspawn.observability.logging import (
    CORRELATION_KEYS,
    JsonLineFormatter,
    LoggingConfig,
    LoggingHandle,
    LogRedactor,
    configure_from_settings,
    correlation_scope,
    default_log_redactor,
    flush_logging,
    get_active_logging_handle,
    get_correlation_context,
    redact_text,
    setup_structured_logging,
    shutdown_logging,
)

__all__ = [
    "CORRELATION_KEYS",
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
    "redact_text",
    "setup_structured_logging",
    "shutdown_logging",
]
