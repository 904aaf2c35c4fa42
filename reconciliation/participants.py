#!/usr/bin/env python3
"""
Participant Reconciler - Merge Canvas, registration and Zoom records.

Workflow:
1. Seed one participant per Canvas discussion author
2. Drop malformed registration rows
3. Attach registration rows by exact or normalized name, adding
   registration-only participants for people missing from Canvas
4. Attach Zoom rows per session by fuzzy identity match, adding
   session-only participants for people nobody else knows about
5. Flag attendance discrepancies

Nothing raises on bad input: rows are dropped or turned into new
participants, and the counts land in ProcessingNotes.
"""

import logging
import re
from typing import Dict, List, Mapping, Optional, Sequence

from .discrepancies import SHORT_DURATION_MINUTES, analyze_participants
from .identity import (
    Identity,
    identity_from_participant,
    identity_from_registration,
    identity_from_session_row,
)
from .matcher import DEFAULT_THRESHOLD, IdentityMatcher
from .models import (
    ABSENT,
    PRESENT,
    UNKNOWN,
    CanvasUser,
    Participant,
    ParticipantOrigin,
    ProcessingNotes,
    RawRecord,
    SessionAttendance,
)
from .normalizer import extract_email_username, normalize_name

logger = logging.getLogger(__name__)

DEFAULT_SESSIONS = ["session1", "session2", "session3"]

MAX_NAME_LENGTH = 100

# Free-text answers that landed in the Name column of the registration form
JUNK_NAME_FRAGMENTS = [
    "but i will view",
    "thank you for offering",
    "including summarizing events",
]
PLACEHOLDER_NAMES = {"unknown", "n/a", "na", "none", "test"}

# "Attendence" is how the registration sheet spells it
ATTENDANCE_HEADERS = ["Attendence {n}", "Attendance {n}"]

DURATION_HEADERS = ["Total duration (minutes)", "Duration (minutes)"]

_LEADING_INT_RE = re.compile(r"^\s*([+-]?\d+)")


def is_valid_registration(row: RawRecord) -> bool:
    """
    Check whether a registration row describes a real person.

    Rejects rows with no name, an email without "@", names over 100
    characters and known placeholder or free-text junk.
    """
    name = (row.get("Name") or "").strip()
    email = (row.get("Email") or "").strip()

    if not name:
        return False
    if "@" not in email:
        return False
    if len(name) > MAX_NAME_LENGTH:
        return False

    lowered = name.lower()
    if lowered in PLACEHOLDER_NAMES:
        return False
    if any(fragment in lowered for fragment in JUNK_NAME_FRAGMENTS):
        return False

    return True


def parse_attendance_status(value: Optional[str]) -> str:
    """Map a self-reported attendance cell to present, absent or unknown."""
    normalized = (value or "").strip().lower()
    if normalized == PRESENT:
        return PRESENT
    if normalized == ABSENT:
        return ABSENT
    return UNKNOWN


def registration_attendance(row: RawRecord, sessions: Sequence[str]) -> Dict[str, str]:
    """
    Read per-session self-reported attendance from a registration row.

    Session N (1-based, in report order) reads the "Attendence N" column.
    """
    attendance = {}
    for number, session in enumerate(sessions, start=1):
        value = ""
        for template in ATTENDANCE_HEADERS:
            header = template.format(n=number)
            if header in row:
                value = row[header]
                break
        attendance[session] = parse_attendance_status(value)
    return attendance


def parse_duration_minutes(row: RawRecord) -> int:
    """Leading integer of the Zoom duration column, 0 if missing or unparsable."""
    for header in DURATION_HEADERS:
        raw = row.get(header)
        if raw:
            match = _LEADING_INT_RE.match(raw)
            return int(match.group(1)) if match else 0
    return 0


def is_guest_row(row: RawRecord) -> bool:
    return (row.get("Guest") or "").strip().lower() == "yes" or (row.get("Host") or "").strip().lower() == "yes"


class ParticipantReconciler:
    """
    Builds the master participant list from all data sources.

    One instance can be reused; each reconcile() call starts from scratch
    and replaces `notes`.
    """

    def __init__(
        self,
        sessions: Optional[Sequence[str]] = None,
        match_threshold: float = DEFAULT_THRESHOLD,
        short_duration_minutes: int = SHORT_DURATION_MINUTES,
    ):
        """
        Initialize the reconciler.

        Args:
            sessions: Session keys in report order (default session1..3)
            match_threshold: Minimum identity score for Zoom rows (0-1)
            short_duration_minutes: Zoom time below this is flagged
        """
        self.sessions = list(sessions or DEFAULT_SESSIONS)
        self.matcher = IdentityMatcher(match_threshold)
        self.short_duration_minutes = short_duration_minutes
        self.notes = ProcessingNotes()
        self._participants: Dict[str, Participant] = {}

    def reconcile(
        self,
        canvas_users: Sequence[CanvasUser],
        registration_rows: Sequence[RawRecord],
        session_rows_by_session: Mapping[str, Sequence[RawRecord]],
    ) -> List[Participant]:
        """
        Merge all sources into participants with discrepancies populated.

        Args:
            canvas_users: Unique Canvas authors with post counts
            registration_rows: Parsed registration form rows
            session_rows_by_session: Parsed Zoom rows keyed by session key

        Returns:
            Participants: Canvas-seeded first, then registration-only, then
            session-only, each in the order they were created
        """
        self.notes = ProcessingNotes()
        self._participants = {}

        sessions = list(self.sessions)
        for session in session_rows_by_session:
            if session not in sessions:
                sessions.append(session)

        self._seed_canvas_users(canvas_users, sessions)
        self._merge_registrations(registration_rows, sessions)
        for session in sessions:
            rows = session_rows_by_session.get(session) or []
            if rows:
                self._merge_session(session, rows, sessions)

        participants = list(self._participants.values())
        analyze_participants(participants, sessions, self.short_duration_minutes)

        logger.info(
            f"Reconciled {len(participants)} participants "
            f"({len(canvas_users)} Canvas, {self.notes.registration_only} registration-only, "
            f"{self.notes.session_only} session-only)"
        )
        return participants

    # -------------------------------------------------------------------------
    # Canvas
    # -------------------------------------------------------------------------

    def _seed_canvas_users(self, canvas_users: Sequence[CanvasUser], sessions: List[str]):
        for user in canvas_users:
            key = user.display_name or user.user_name or "unknown"

            existing = self._participants.get(key)
            if existing:
                existing.canvas_post_count += user.post_count
                continue

            self._participants[key] = Participant.empty(
                str(user.user_id) if user.user_id else f"canvas-{key}",
                sessions,
                canvas_display_name=user.display_name,
                canvas_user_name=user.user_name,
                canvas_email=user.email,
                canvas_post_count=user.post_count,
                origin=ParticipantOrigin.CANVAS,
            )
            logger.debug(f"Canvas user: {user.display_name} -> key: {key}")

    # -------------------------------------------------------------------------
    # Registration form
    # -------------------------------------------------------------------------

    def _merge_registrations(self, rows: Sequence[RawRecord], sessions: List[str]):
        valid = [row for row in rows if is_valid_registration(row)]
        self.notes.filtered_registrations = len(rows) - len(valid)
        if self.notes.filtered_registrations:
            logger.info(f"Filtered {self.notes.filtered_registrations} invalid registration entries")

        for row in valid:
            identity = identity_from_registration(row)
            name = identity.generic_name
            attendance = registration_attendance(row, sessions)

            participant = self._find_by_name(name)
            if participant:
                participant.registration_data = dict(row)
                participant.ai_attendance.update(attendance)
                self.notes.matched_registrations += 1
                logger.debug(f"Name match: {name} ({identity.email}) -> {participant.canvas_display_name}")
                continue

            logger.warning(f"Person in registration not found in Canvas: {name}")
            if not name or not identity.email:
                continue

            email = identity.email.lower()
            created = Participant.empty(
                f"no-canvas-{email}",
                sessions,
                canvas_display_name=name,
                canvas_user_name=extract_email_username(email),
                canvas_email=identity.email,
                canvas_post_count=0,
                origin=ParticipantOrigin.REGISTRATION,
            )
            participant = self._add(name, created)
            participant.registration_data = dict(row)
            participant.ai_attendance.update(attendance)

            if participant is created:
                self.notes.registration_only += 1
                self.notes.note(f"Registration-only participant: {name}")
            else:
                self.notes.matched_registrations += 1

    def _find_by_name(self, name: str) -> Optional[Participant]:
        """Exact display-name match first, then normalized-name equality."""
        for participant in self._participants.values():
            if participant.canvas_display_name and participant.canvas_display_name == name:
                return participant

        normalized = normalize_name(name)
        if not normalized:
            return None
        for participant in self._participants.values():
            if normalize_name(participant.canvas_display_name) == normalized:
                return participant
        return None

    # -------------------------------------------------------------------------
    # Zoom sessions
    # -------------------------------------------------------------------------

    def _merge_session(self, session: str, rows: Sequence[RawRecord], sessions: List[str]):
        participants = list(self._participants.values())
        identities: List[Identity] = [identity_from_participant(p) for p in participants]

        for row in rows:
            identity = identity_from_session_row(row)
            if identity.is_empty:
                self.notes.dropped_session_rows += 1
                continue

            name = identity.primary_name or identity.email
            record = SessionAttendance(
                name=name,
                duration_minutes=parse_duration_minutes(row),
                guest=is_guest_row(row),
            )

            match = self.matcher.find_best_match(identity, identities)
            if match:
                participant = participants[match.index]
                participant.zoom_sessions[session] = record
                self.notes.matched_session_rows += 1
                logger.debug(
                    f"Matched Zoom data for {participant.canvas_display_name} in {session}: "
                    f"{record.duration_minutes} min"
                )
                continue

            logger.info(f"Creating session-only participant for {session}: {name}")
            created = Participant.empty(
                f"session-only-{session}-{name}",
                sessions,
                canvas_display_name=name,
                canvas_email=identity.email,
                origin=ParticipantOrigin.SESSION,
            )
            participant = self._add(f"session-only-{name}", created)
            participant.zoom_sessions[session] = record
            # being in the meeting counts as attending it
            participant.ai_attendance[session] = PRESENT

            if participant is created:
                participants.append(participant)
                identities.append(identity_from_participant(participant))
                self.notes.session_only += 1
                self.notes.note(f"Session-only participant ({session}): {name}")

    def _add(self, key: str, participant: Participant) -> Participant:
        """Insert under key unless the key is taken, in which case the holder is returned."""
        existing = self._participants.get(key)
        if existing:
            return existing
        self._participants[key] = participant
        return participant


def reconcile(
    canvas_users: Sequence[CanvasUser],
    registration_rows: Sequence[RawRecord],
    session_rows_by_session: Mapping[str, Sequence[RawRecord]],
    sessions: Optional[Sequence[str]] = None,
    match_threshold: float = DEFAULT_THRESHOLD,
    short_duration_minutes: int = SHORT_DURATION_MINUTES,
) -> List[Participant]:
    """
    Convenience function to reconcile all sources in one call.

    Returns:
        Participants with discrepancies populated
    """
    reconciler = ParticipantReconciler(sessions, match_threshold, short_duration_minutes)
    return reconciler.reconcile(canvas_users, registration_rows, session_rows_by_session)
