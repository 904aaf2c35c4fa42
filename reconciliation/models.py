#!/usr/bin/env python3
"""
Reconciliation Models - Participants, attendance records and discrepancies.

All objects are rebuilt on every reconciliation run; nothing is persisted.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, List, Dict, Any

RawRecord = Dict[str, str]

# Self-reported attendance values
PRESENT = "present"
ABSENT = "absent"
UNKNOWN = "unknown"


class DiscrepancyType(str, Enum):
    FALSE_ABSENT = "false_absent"
    FALSE_PRESENT = "false_present"
    SHORT_DURATION = "short_duration"


class Severity(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class ParticipantOrigin(str, Enum):
    """Which source seeded a participant."""
    CANVAS = "canvas"
    REGISTRATION = "registration"
    SESSION = "session"


@dataclass
class CanvasUser:
    """A unique discussion author extracted from Canvas posts."""
    display_name: str = ""
    user_name: str = ""
    user_id: str = ""
    email: str = ""
    post_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "display_name": self.display_name,
            "user_name": self.user_name,
            "user_id": self.user_id,
            "email": self.email,
            "post_count": self.post_count,
        }


@dataclass
class SessionAttendance:
    """One person's Zoom record for one session."""
    name: str
    duration_minutes: int = 0
    guest: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "duration_minutes": self.duration_minutes, "guest": self.guest}


@dataclass
class Discrepancy:
    """Mismatch between self-reported and observed attendance."""
    type: DiscrepancyType
    session: str
    message: str
    severity: Severity

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type.value,
            "session": self.session,
            "message": self.message,
            "severity": self.severity.value,
        }


@dataclass
class Participant:
    """Canonical record merging Canvas, registration and Zoom data for one person."""
    id: str
    canvas_display_name: str = ""
    canvas_user_name: str = ""
    canvas_email: str = ""
    canvas_post_count: int = 0
    registration_data: Optional[RawRecord] = None
    zoom_sessions: Dict[str, Optional[SessionAttendance]] = field(default_factory=dict)
    ai_attendance: Dict[str, str] = field(default_factory=dict)
    discrepancies: List[Discrepancy] = field(default_factory=list)
    origin: ParticipantOrigin = ParticipantOrigin.CANVAS

    @classmethod
    def empty(cls, participant_id: str, sessions: List[str], **kwargs) -> "Participant":
        """Create a participant with every session absent from Zoom and unknown in self-report."""
        return cls(
            id=participant_id,
            zoom_sessions={s: None for s in sessions},
            ai_attendance={s: UNKNOWN for s in sessions},
            **kwargs
        )

    @property
    def email(self) -> str:
        """Best known email: Canvas first, then the registration form."""
        if self.canvas_email:
            return self.canvas_email
        if self.registration_data:
            return self.registration_data.get("Email", "") or ""
        return ""

    @property
    def has_discrepancies(self) -> bool:
        return bool(self.discrepancies)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "canvas_display_name": self.canvas_display_name,
            "canvas_user_name": self.canvas_user_name,
            "canvas_email": self.canvas_email,
            "canvas_post_count": self.canvas_post_count,
            "registration_data": self.registration_data,
            "zoom_sessions": {
                k: (v.to_dict() if v else None) for k, v in self.zoom_sessions.items()
            },
            "ai_attendance": dict(self.ai_attendance),
            "discrepancies": [d.to_dict() for d in self.discrepancies],
            "origin": self.origin.value,
        }


@dataclass
class ProcessingNotes:
    """
    Side-channel report of what a run filtered, synthesized or lost.

    Bad rows never raise; they are counted here instead.
    """
    filtered_registrations: int = 0
    matched_registrations: int = 0
    registration_only: int = 0
    matched_session_rows: int = 0
    session_only: int = 0
    dropped_session_rows: int = 0
    failed_assignments: int = 0
    skipped_posts: int = 0
    messages: List[str] = field(default_factory=list)

    def note(self, message: str):
        self.messages.append(message)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "filtered_registrations": self.filtered_registrations,
            "matched_registrations": self.matched_registrations,
            "registration_only": self.registration_only,
            "matched_session_rows": self.matched_session_rows,
            "session_only": self.session_only,
            "dropped_session_rows": self.dropped_session_rows,
            "failed_assignments": self.failed_assignments,
            "skipped_posts": self.skipped_posts,
            "messages": list(self.messages),
        }
