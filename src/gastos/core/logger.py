"""
Shared logging utilities.
"""

import json
import logging
import re
import sys

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

# Statement descriptions routinely carry account and card identifiers.
SENSITIVE_PATTERNS = [
    # Spanish IBAN (ES + 22 digits, optionally grouped)
    (re.compile(r"\bES\d{2}(?:[\s-]?\d{4}){5}\b", re.I), "[IBAN]"),
    # Card numbers (13-19 digits, with or without spaces/dashes)
    (re.compile(r"\b\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{1,7}\b"), "[CARD]"),
    # DNI / NIE
    (re.compile(r"\b[XYZ]?\d{7,8}[A-Z]\b"), "[DNI]"),
    # Email addresses
    (re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"), "[EMAIL]"),
    # Spanish phone numbers
    (re.compile(r"(?:\+34[\s-]?)?\b[6789]\d{2}[\s-]?\d{3}[\s-]?\d{3}\b"), "[PHONE]"),
]

# LogRecord attributes that are not user supplied ``extra=`` context.
_RESERVED_ATTRS = set(vars(logging.LogRecord("", 0, "", 0, "", (), None))) | {"message", "asctime"}


def mask_sensitive(text: str) -> str:
    """Replace account numbers and personal identifiers with placeholders.

    Args:
        text: Input text that may contain identifiers

    Returns:
        Text with identifiers replaced by placeholders
    """
    if not text:
        return text

    masked = text
    for pattern, replacement in SENSITIVE_PATTERNS:
        masked = pattern.sub(replacement, masked)
    return masked


class JSONLogFormatter(logging.Formatter):
    """Format log records as JSON for structured logging."""

    def format(self, record: logging.LogRecord) -> str:
        log_data = {
            "timestamp": self.formatTime(record, DATE_FORMAT),
            "level": record.levelname,
            "logger": record.name,
            "message": mask_sensitive(record.getMessage()),
        }

        # Everything passed through ``extra=`` ends up as record attributes.
        for key, value in vars(record).items():
            if key in _RESERVED_ATTRS or key.startswith("_"):
                continue
            if isinstance(value, str):
                value = mask_sensitive(value)
            log_data[key] = value

        if record.exc_info:
            log_data["exception"] = mask_sensitive(self.formatException(record.exc_info))

        return json.dumps(log_data, default=str)


def setup_logging(level: str = "INFO", json_format: bool = False) -> None:
    """
    Configure the root logger.

    Args:
        level: Log level ('DEBUG', 'INFO', 'WARNING', 'ERROR')
        json_format: Emit one JSON object per line instead of plain text
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    if json_format:
        handler.setFormatter(JSONLogFormatter())
    else:
        handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT))

    root_logger = logging.getLogger()
    root_logger.setLevel(log_level)
    for existing in list(root_logger.handlers):
        if getattr(existing, "_gastos_handler", False):
            root_logger.removeHandler(existing)
    handler._gastos_handler = True
    root_logger.addHandler(handler)
