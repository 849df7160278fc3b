"""Profile helpers — email validation and display names.

No I/O: this module only transforms data.
"""

from __future__ import annotations

import re
from dataclasses import replace

from moffittboard.data.models import UserRecord

MAX_DISPLAY_NAME_LENGTH = 32

_LOCAL_PART = re.compile(r"^[^@\s]+$")


def normalize_email(raw: str) -> str:
    """Strip surrounding whitespace and lowercase."""
    return raw.strip().lower()


def is_allowed_email(email: str, domain: str) -> bool:
    """Check that email is `<local>@<domain>` with a non-empty local part.

    The domain comparison is case-insensitive; subdomains do not match.
    """
    email = normalize_email(email)
    local, sep, email_domain = email.rpartition("@")
    if not sep or not local:
        return False
    if not _LOCAL_PART.match(local):
        return False
    return email_domain == domain.strip().lower()


def name_from_email(email: str) -> str:
    """Fallback label: the part before the @."""
    return normalize_email(email).split("@", 1)[0]


def set_display_name(record: UserRecord, raw: str) -> UserRecord:
    """Return a copy of record with a new display name.

    Whitespace is collapsed; an empty name clears the display name so the
    email-derived name is shown again.
    """
    cleaned = " ".join(raw.split())
    if len(cleaned) > MAX_DISPLAY_NAME_LENGTH:
        raise ValueError(
            f"Display name too long ({len(cleaned)} > {MAX_DISPLAY_NAME_LENGTH})"
        )
    return replace(record, display_name=cleaned or None)
