#!/usr/bin/env python3
"""
Participation Analysis - Summaries over reconciled participants.

Attendance totals, reflection (graded discussion) completion and
discrepancy counts for the verification report.
"""

import logging
from collections import Counter
from typing import Any, Dict, Iterable, List, Sequence

from grading.models import DiscussionPost, id_key
from reconciliation.models import PRESENT, Participant

logger = logging.getLogger(__name__)

INSTRUCTOR_KEYWORDS = [
    "instructor", "teacher", "faculty", "professor", "admin",
    "staff", "coordinator", "director", "manager",
]


def filter_student_participants(participants: Sequence[Participant], teacher_ids: Iterable[Any] = ()) -> List[Participant]:
    """
    Drop teaching staff from a participant list.

    A participant is staff when their id is a Canvas teaching-staff id, or
    when their email or registration department mentions an instructor
    keyword.
    """
    teacher_keys = {id_key(t) for t in teacher_ids if id_key(t)}
    students = []

    for participant in participants:
        email = participant.email.lower()
        department = ((participant.registration_data or {}).get("Team / Department") or "").lower()

        by_role = id_key(participant.id) in teacher_keys
        by_keyword = any(k in email or k in department for k in INSTRUCTOR_KEYWORDS)

        if by_role or by_keyword:
            reason = "Canvas teacher role" if by_role else "instructor keyword match"
            logger.debug(f"Filtering out instructor: {participant.canvas_display_name} - {reason}")
            continue
        students.append(participant)

    return students


def calculate_participation_metrics(participants: Sequence[Participant], sessions: Sequence[str]) -> Dict[str, Any]:
    """
    Count attendance by session from self-reported data.

    Returns:
        Dict with totals, per-session attended/absent, the distribution of
        sessions attended per person and assistant-type counts
    """
    metrics = {
        "total_participants": len(participants),
        "canvas_active_participants": sum(1 for p in participants if p.canvas_post_count > 0),
        "attendance_by_session": {s: {"attended": 0, "absent": 0} for s in sessions},
        "sessions_attended": {str(n): 0 for n in range(len(sessions) + 1)},
        "assistant_types": {},
    }

    assistant_types = Counter()
    for participant in participants:
        attended = 0
        for session in sessions:
            if participant.ai_attendance.get(session) == PRESENT:
                metrics["attendance_by_session"][session]["attended"] += 1
                attended += 1
            else:
                metrics["attendance_by_session"][session]["absent"] += 1

        metrics["sessions_attended"][str(attended)] += 1

        assistant = ((participant.registration_data or {}).get("Assistant Type") or "").strip()
        if assistant:
            assistant_types[assistant] += 1

    metrics["assistant_types"] = dict(assistant_types)
    return metrics


def analyze_reflection_completion(participants: Sequence[Participant], posts: Sequence[DiscussionPost]) -> List[Dict[str, Any]]:
    """
    Work out how many graded discussion topics each participant posted in.

    A participant is eligible for the microcredential once they posted in
    every graded topic.

    Returns:
        One dict per participant, in input order
    """
    topics: Dict[str, Dict[str, Any]] = {}
    for post in posts:
        if not post.is_graded_topic:
            continue
        topic = topics.setdefault(id_key(post.topic_id), {"title": post.topic_title, "posts": []})
        topic["posts"].append(post)

    total = len(topics)
    results = []
    for participant in participants:
        names = {n for n in (participant.canvas_display_name, participant.canvas_user_name) if n}
        details = {}
        completed = 0

        for topic in topics.values():
            count = sum(1 for p in topic["posts"] if p.author_display_name in names)
            details[topic["title"]] = {"completed": count > 0, "post_count": count}
            if count:
                completed += 1

        results.append({
            "participant_id": participant.id,
            "name": participant.canvas_display_name,
            "completed_reflections": completed,
            "total_reflections": total,
            "completion_percentage": round(completed / total * 100) if total else 0,
            "microcredential_eligible": total > 0 and completed >= total,
            "reflection_details": details,
        })

    return results


def summarize_discrepancies(participants: Sequence[Participant]) -> Dict[str, Any]:
    """Count discrepancies by type and severity."""
    by_type = Counter()
    by_severity = Counter()
    flagged = 0

    for participant in participants:
        if participant.discrepancies:
            flagged += 1
        for d in participant.discrepancies:
            by_type[d.type.value] += 1
            by_severity[d.severity.value] += 1

    return {
        "participants_flagged": flagged,
        "by_type": dict(by_type),
        "by_severity": dict(by_severity),
    }
