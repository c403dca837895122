"""Logging Hardening and Redaction.

This module provides filters to prevent secret material (encoded envelopes,
share-link keys) from appearing in application logs.
"""
import logging
import re

SECRET_PATTERNS = [
    (re.compile(r'("encryptedData"\s*:\s*")[A-Za-z0-9_-]+(")'), r'\1[REDACTED]\2'),
    (re.compile(r"('encryptedData'\s*:\s*')[A-Za-z0-9_-]+(')"), r'\1[REDACTED]\2'),
    (re.compile(r'(encrypted_data=)[A-Za-z0-9_-]+'), r'\1[REDACTED]'),
    # Share links carry the key in the fragment
    (re.compile(r'(/share/[A-Za-z0-9_-]{21})#[A-Za-z0-9_-]+'), r'\1#[REDACTED]'),
    # Any long base64url run is treated as key or ciphertext
    (re.compile(r'(?<![A-Za-z0-9_-])[A-Za-z0-9_-]{43,}(?![A-Za-z0-9_-])'), '[REDACTED_BLOB]'),
]


def redact_string(text: str) -> str:
    for pattern, replacement in SECRET_PATTERNS:
        text = pattern.sub(replacement, text)
    return text


class SecretRedactionFilter(logging.Filter):
    """Filter that redacts secret-like patterns from log records."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = redact_string(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = {
                    k: redact_string(v) if isinstance(v, str) else v
                    for k, v in record.args.items()
                }
            else:
                record.args = tuple(
                    redact_string(arg) if isinstance(arg, str) else arg
                    for arg in record.args
                )

        return True


def setup_logging_redaction() -> None:
    """Apply the SecretRedactionFilter to the root logger and its handlers."""
    redact_filter = SecretRedactionFilter()

    root_logger = logging.getLogger()

    # Remove existing filters if any (to avoid duplicates)
    for f in root_logger.filters[:]:
        if isinstance(f, SecretRedactionFilter):
            root_logger.removeFilter(f)
    root_logger.addFilter(redact_filter)

    # Logger filters do not apply to records propagated from child loggers,
    # handler filters do
    for handler in root_logger.handlers:
        for f in handler.filters[:]:
            if isinstance(f, SecretRedactionFilter):
                handler.removeFilter(f)
        handler.addFilter(redact_filter)

    for name in logging.root.manager.loggerDict:
        logger = logging.getLogger(name)
        if not any(isinstance(f, SecretRedactionFilter) for f in logger.filters):
            logger.addFilter(redact_filter)

    logging.info("Logging redaction filters active.")
