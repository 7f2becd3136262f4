"""Logging filter that redacts credentials before they reach any log sink.

The console handles three kinds of secrets: AWS key pairs stored per user,
login passwords (and the root passwords baked into instance user data), and
session cookies. The filter scrubs them from the message string, from
positional args and from ``extra`` fields.

Usage::

    import logging
    from app.core.logging_filters import SensitiveDataFilter

    logging.getLogger().addFilter(SensitiveDataFilter())
"""

import logging
import re

REDACTED = "[REDACTED]"

# Extra-field names whose values are always redacted (substring match)
_SENSITIVE_FIELD_NAMES: tuple[str, ...] = (
    "password",
    "passwd",
    "secret",
    "secret_key",
    "access_key",
    "aws_secret",
    "token",
    "cookie",
    "session_id",
    "authorization",
    "user_data",
)

_SENSITIVE_PATTERNS: list[re.Pattern] = [
    # key=value and "key": "value" pairs
    re.compile(
        r'("?(?:password|passwd|secret_key|secret|access_key|token|session_id)"?\s*[=:]\s*["\']?)([^"\'&\s,}{]+)',
        re.IGNORECASE,
    ),
    # Cookie headers carrying the session id
    re.compile(r"(Cookie:\s*)(\S+)", re.IGNORECASE),
    # AWS access key ids (long-term and temporary)
    re.compile(r"\b(?:AKIA|ASIA)[A-Z0-9]{16}\b"),
]


def _redact_string(value: str) -> str:
    for pattern in _SENSITIVE_PATTERNS:
        if pattern.groups == 0:
            value = pattern.sub(REDACTED, value)
        else:
            value = pattern.sub(lambda m: m.group(1) + REDACTED, value)
    return value


def _is_sensitive_key(key: str) -> bool:
    key_lower = key.lower()
    return any(name in key_lower for name in _SENSITIVE_FIELD_NAMES)


class SensitiveDataFilter(logging.Filter):
    """Scrubs secrets from log records; never suppresses a record."""

    def filter(self, record: logging.LogRecord) -> bool:
        if isinstance(record.msg, str):
            record.msg = _redact_string(record.msg)

        if record.args:
            if isinstance(record.args, dict):
                record.args = {
                    k: REDACTED if _is_sensitive_key(k) else (
                        _redact_string(v) if isinstance(v, str) else v
                    )
                    for k, v in record.args.items()
                }
            elif isinstance(record.args, tuple):
                record.args = tuple(
                    _redact_string(a) if isinstance(a, str) else a for a in record.args
                )

        for attr in list(vars(record).keys()):
            if attr.startswith("_") or attr in logging.LogRecord.__dict__:
                continue
            if attr in ("msg", "args", "message"):
                continue
            if _is_sensitive_key(attr):
                setattr(record, attr, REDACTED)
            elif isinstance(getattr(record, attr), str):
                setattr(record, attr, _redact_string(getattr(record, attr)))

        return True
