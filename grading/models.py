#!/usr/bin/env python3
"""
Grading Models - Discussion posts, submissions and per-topic grading status.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, List, Dict, Any, Set


def id_key(value: Any) -> str:
    """
    Canonical string form of a Canvas id.

    Ids arrive as ints from one endpoint and strings (or floats after a JSON
    round trip) from another; 5, "5" and 5.0 all map to "5".
    """
    if value is None or isinstance(value, bool):
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse a Canvas ISO timestamp into an aware UTC datetime, None if unparsable."""
    if not value:
        return None
    try:
        return datetime.strptime(value, "%Y-%m-%dT%H:%M:%SZ").replace(tzinfo=timezone.utc)
    except (TypeError, ValueError):
        pass
    try:
        parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


@dataclass
class DiscussionPost:
    """One discussion entry or reply, tagged with its topic."""
    id: Any
    author_display_name: str = ""
    author_user_id: Any = None
    topic_id: Any = None
    topic_title: str = ""
    assignment_id: Any = None
    parent_id: Any = None
    created_at: str = ""
    message: str = ""

    @classmethod
    def from_canvas(cls, data: Dict[str, Any]) -> "DiscussionPost":
        """Build from a raw Canvas entry tagged by canvas_api.fetch_discussion_posts."""
        user = data.get("user") or {}
        return cls(
            id=data.get("id"),
            author_display_name=user.get("display_name") or data.get("user_name") or "",
            author_user_id=user.get("id") if user.get("id") is not None else data.get("user_id"),
            topic_id=data.get("discussion_topic_id"),
            topic_title=data.get("topic_title") or "",
            assignment_id=data.get("assignment_id"),
            parent_id=data.get("parent_id"),
            created_at=data.get("created_at") or "",
            message=data.get("message") or "",
        )

    @property
    def is_reply(self) -> bool:
        return self.parent_id is not None and id_key(self.parent_id) != ""

    @property
    def is_graded_topic(self) -> bool:
        return self.assignment_id is not None and id_key(self.assignment_id) != ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "author_display_name": self.author_display_name,
            "author_user_id": self.author_user_id,
            "topic_id": self.topic_id,
            "topic_title": self.topic_title,
            "assignment_id": self.assignment_id,
            "parent_id": self.parent_id,
            "created_at": self.created_at,
            "message": self.message,
        }


@dataclass
class Submission:
    """A student's submission for one assignment."""
    assignment_id: Any
    user_id: Any
    grade: Optional[str] = None

    @classmethod
    def from_canvas(cls, data: Dict[str, Any], assignment_id: Any = None) -> "Submission":
        grade = data.get("grade")
        return cls(
            assignment_id=data.get("assignment_id", assignment_id),
            user_id=data.get("user_id"),
            grade=str(grade) if grade is not None else None,
        )

    @property
    def is_graded(self) -> bool:
        return self.grade is not None and self.grade.strip() != ""


@dataclass
class StudentStatus:
    """Grading and feedback status of one student in one topic."""
    name: str
    user_id: Any
    post_date: str
    post_id: Any
    is_graded: bool = False
    teacher_feedback: Set[str] = field(default_factory=set)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "user_id": self.user_id,
            "post_date": self.post_date,
            "post_id": self.post_id,
            "is_graded": self.is_graded,
            "teacher_feedback": sorted(self.teacher_feedback),
        }


@dataclass
class GradingTopic:
    """A graded discussion topic with per-student status."""
    id: Any
    title: str
    assignment_id: Any
    teacher_reply_stats: Dict[str, int] = field(default_factory=dict)
    all_students_with_status: List[StudentStatus] = field(default_factory=list)
    total_student_posts: int = 0
    total_teacher_replies: int = 0

    @property
    def students_needing_grades(self) -> List[StudentStatus]:
        """Ungraded students, oldest post first."""
        return [s for s in self.all_students_with_status if not s.is_graded]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "assignment_id": self.assignment_id,
            "teacher_reply_stats": dict(self.teacher_reply_stats),
            "all_students_with_status": [s.to_dict() for s in self.all_students_with_status],
            "students_needing_grades": [s.name for s in self.students_needing_grades],
            "total_student_posts": self.total_student_posts,
            "total_teacher_replies": self.total_teacher_replies,
        }
