#!/usr/bin/env python3
"""
Identity - One shape for "who is this" across every source.

Each source names people differently (Canvas display/user names, the
registration form's Name/Email columns, Zoom's "Name (original name)" and
"User Email" headers). The converters below are the only place those
headers are probed; matching works on Identity alone.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple, List

from .models import CanvasUser, Participant, RawRecord


class IdentitySource(str, Enum):
    CANVAS = "canvas"
    REGISTRATION = "registration"
    SESSION = "session"
    PARTICIPANT = "participant"


@dataclass(frozen=True)
class Identity:
    """Name and email signals for one person from one source."""
    source: IdentitySource
    display_name: str = ""
    user_name: str = ""
    email: str = ""
    source_id: str = ""
    generic_name: str = ""
    header_variants: Tuple[str, ...] = ()

    def names(self) -> List[str]:
        """Non-empty name fields in probe order, without duplicates."""
        names = []
        for name in (self.display_name, self.user_name, self.generic_name) + tuple(self.header_variants):
            if name and name not in names:
                names.append(name)
        return names

    @property
    def primary_name(self) -> str:
        names = self.names()
        return names[0] if names else ""

    @property
    def is_empty(self) -> bool:
        return not self.names() and not self.email


def _clean(value: Optional[str]) -> str:
    return str(value).strip() if value is not None else ""


def _first(row: RawRecord, *headers: str) -> str:
    for header in headers:
        value = _clean(row.get(header))
        if value:
            return value
    return ""


def identity_from_canvas_user(user: CanvasUser) -> Identity:
    return Identity(
        source=IdentitySource.CANVAS,
        display_name=_clean(user.display_name),
        user_name=_clean(user.user_name),
        email=_clean(user.email),
        source_id=_clean(user.user_id),
    )


def identity_from_registration(row: RawRecord) -> Identity:
    """Registration form rows carry Name and Email columns."""
    return Identity(
        source=IdentitySource.REGISTRATION,
        generic_name=_first(row, "Name", "Full Name", "name"),
        email=_first(row, "Email", "Email Address", "email"),
    )


def identity_from_session_row(row: RawRecord) -> Identity:
    """
    Zoom participant exports name people under "Name (original name)",
    "Name" or, in some hand-made sheets, "Topic".
    """
    generic = _first(row, "Name (original name)", "Name", "Topic")
    variants = []
    for header in ("Name", "Topic"):
        value = _clean(row.get(header))
        if value and value != generic and value not in variants:
            variants.append(value)
    return Identity(
        source=IdentitySource.SESSION,
        generic_name=generic,
        header_variants=tuple(variants),
        email=_first(row, "User Email", "Email"),
    )


def identity_from_participant(participant: Participant) -> Identity:
    return Identity(
        source=IdentitySource.PARTICIPANT,
        display_name=_clean(participant.canvas_display_name),
        user_name=_clean(participant.canvas_user_name),
        email=_clean(participant.email),
        source_id=_clean(participant.id),
    )
