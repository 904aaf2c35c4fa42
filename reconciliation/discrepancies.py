#!/usr/bin/env python3
"""
Discrepancy Analyzer - Compare self-reported attendance with Zoom records.

Rules per participant and session (several can apply at once):
- false_absent (high): reported absent, but Zoom shows time in the session
- false_present (medium): reported present, but no Zoom time
- short_duration (low): Zoom time under the short-duration limit
"""

import logging
from typing import List, Sequence

from .models import (
    ABSENT,
    PRESENT,
    Discrepancy,
    DiscrepancyType,
    Participant,
    Severity,
)

logger = logging.getLogger(__name__)

SHORT_DURATION_MINUTES = 30


def detect_discrepancies(
    participant: Participant,
    sessions: Sequence[str],
    short_duration_minutes: int = SHORT_DURATION_MINUTES,
) -> List[Discrepancy]:
    """
    Derive attendance discrepancies for one participant.

    Args:
        participant: Reconciled participant
        sessions: Session keys to check, in report order
        short_duration_minutes: Zoom time below this is flagged as short

    Returns:
        List of discrepancies (empty when everything agrees)
    """
    found = []

    for session in sessions:
        reported = participant.ai_attendance.get(session)
        record = participant.zoom_sessions.get(session)
        minutes = record.duration_minutes if record else 0

        if reported == ABSENT and record and minutes > 0:
            found.append(Discrepancy(
                type=DiscrepancyType.FALSE_ABSENT,
                session=session,
                message=f"Registration marked absent but Zoom shows {minutes} minutes",
                severity=Severity.HIGH,
            ))

        if reported == PRESENT and (not record or minutes == 0):
            found.append(Discrepancy(
                type=DiscrepancyType.FALSE_PRESENT,
                session=session,
                message="Registration marked present but no Zoom data found",
                severity=Severity.MEDIUM,
            ))

        if record and minutes < short_duration_minutes:
            found.append(Discrepancy(
                type=DiscrepancyType.SHORT_DURATION,
                session=session,
                message=f"Very short attendance: {minutes} minutes",
                severity=Severity.LOW,
            ))

    return found


def analyze_participants(
    participants: Sequence[Participant],
    sessions: Sequence[str],
    short_duration_minutes: int = SHORT_DURATION_MINUTES,
) -> int:
    """
    Replace every participant's discrepancies with a fresh analysis.

    Returns:
        Total number of discrepancies found
    """
    total = 0
    for participant in participants:
        participant.discrepancies = detect_discrepancies(participant, sessions, short_duration_minutes)
        total += len(participant.discrepancies)

    logger.info(f"Found {total} attendance discrepancies across {len(participants)} participants")
    return total
