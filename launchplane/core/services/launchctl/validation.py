"""
Service label validation — labels end up in argv, so only safe
identifier characters are accepted.
"""

from __future__ import annotations

import re

SAFE_LABEL = re.compile(r"[a-zA-Z0-9._-]+")
MAX_LABEL_LENGTH = 256


class InvalidLabelError(ValueError):
    """Raised when a service label fails validation."""


def is_valid_service_label(label: str) -> bool:
    """Alphanumerics, dots, hyphens and underscores; 1–256 characters."""
    if not label or len(label) > MAX_LABEL_LENGTH:
        return False
    return SAFE_LABEL.fullmatch(label) is not None


def validate_label(label: str) -> str:
    """Return the label unchanged, or raise InvalidLabelError."""
    if not is_valid_service_label(label):
        raise InvalidLabelError(f"Invalid service label: {label}")
    return label
