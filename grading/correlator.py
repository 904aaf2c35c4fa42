#!/usr/bin/env python3
"""
Submission Grade Correlator - Which discussion posts still need a grade.

For every graded discussion topic (one with an assignment id) this works
out, per student, whether a graded submission exists and which teachers
replied to the student's post.

Submissions are fetched once per assignment. Assignments are fetched
concurrently; pages inside one assignment are fetched in order, because
whether page N+1 exists depends on the size of page N. A failing page ends
that assignment's list early and never affects the other assignments.
"""

import logging
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from reconciliation.models import ProcessingNotes
from .models import (
    DiscussionPost,
    GradingTopic,
    StudentStatus,
    Submission,
    id_key,
    parse_timestamp,
)

logger = logging.getLogger(__name__)

PAGE_SIZE = 100
DEFAULT_WORKERS = 8
UNKNOWN_TEACHER = "Unknown Teacher"

SubmissionFetcher = Callable[[Any, int], Sequence[Union[Dict[str, Any], Submission]]]

_EPOCH = datetime.min.replace(tzinfo=timezone.utc)


@dataclass
class _TopicPosts:
    id: Any
    title: str
    assignment_id: Any
    student_posts: List[DiscussionPost] = field(default_factory=list)
    teacher_replies: List[DiscussionPost] = field(default_factory=list)


def _date_key(value: str) -> Tuple[bool, datetime]:
    """Sort key putting unparsable dates last."""
    parsed = parse_timestamp(value)
    return (parsed is None, parsed or _EPOCH)


class SubmissionGradeCorrelator:
    """
    Correlates discussion posts with assignment submissions.

    Teacher ids may be ints or strings; posts are compared by string form.
    """

    def __init__(
        self,
        teacher_ids: Iterable[Any],
        submission_fetcher: SubmissionFetcher,
        max_workers: int = DEFAULT_WORKERS,
        page_size: int = PAGE_SIZE,
    ):
        """
        Initialize the correlator.

        Args:
            teacher_ids: User ids of teaching staff
            submission_fetcher: fetcher(assignment_id, page) -> submissions
            max_workers: Concurrent assignment fetches
            page_size: Full-page size; a shorter page is the last one
        """
        self.teacher_ids = {id_key(t) for t in teacher_ids if id_key(t)}
        self.submission_fetcher = submission_fetcher
        self.max_workers = max(1, max_workers)
        self.page_size = page_size
        self.notes = ProcessingNotes()

    def is_teacher(self, user_id: Any) -> bool:
        return id_key(user_id) in self.teacher_ids

    def correlate(self, posts: Sequence[Union[DiscussionPost, Dict[str, Any]]]) -> List[GradingTopic]:
        """
        Build grading status for every graded topic.

        Args:
            posts: All discussion posts (DiscussionPost or raw Canvas dicts)

        Returns:
            GradingTopics ordered by title
        """
        self.notes = ProcessingNotes()

        topics = self._group_topics(posts)

        assignment_ids = []
        seen = set()
        for topic in topics.values():
            if id_key(topic.assignment_id) not in seen:
                seen.add(id_key(topic.assignment_id))
                assignment_ids.append(topic.assignment_id)

        logger.info(f"Batch fetching submissions for {len(assignment_ids)} assignments")
        submissions = self.fetch_submissions(assignment_ids)

        results = [
            self._build_topic(topic, submissions.get(id_key(topic.assignment_id), []))
            for topic in topics.values()
        ]
        results.sort(key=lambda t: t.title or "")
        return results

    def _group_topics(self, posts) -> Dict[str, _TopicPosts]:
        topics: Dict[str, _TopicPosts] = {}

        for raw in posts:
            post = raw if isinstance(raw, DiscussionPost) else DiscussionPost.from_canvas(raw)
            if not post.is_graded_topic:
                continue

            key = id_key(post.topic_id)
            topic = topics.get(key)
            if topic is None:
                topic = topics[key] = _TopicPosts(post.topic_id, post.topic_title, post.assignment_id)

            if self.is_teacher(post.author_user_id):
                topic.teacher_replies.append(post)
            else:
                topic.student_posts.append(post)

        return topics

    # -------------------------------------------------------------------------
    # Submissions
    # -------------------------------------------------------------------------

    def fetch_submissions(self, assignment_ids: Sequence[Any]) -> Dict[str, List[Submission]]:
        """
        Fetch submissions for all assignments concurrently.

        Returns:
            Map of assignment id (string form) -> submissions, partial or
            empty for assignments whose fetch failed
        """
        by_assignment: Dict[str, List[Submission]] = {}
        if not assignment_ids:
            return by_assignment

        workers = min(self.max_workers, len(assignment_ids))
        with ThreadPoolExecutor(max_workers=workers) as executor:
            futures = {
                executor.submit(self._fetch_assignment, assignment_id): assignment_id
                for assignment_id in assignment_ids
            }

            for future in as_completed(futures):
                assignment_id = futures[future]
                submissions, error = future.result()
                by_assignment[id_key(assignment_id)] = submissions

                if error:
                    self.notes.failed_assignments += 1
                    self.notes.note(f"Assignment {assignment_id}: {error}")
                    logger.error(
                        f"Error fetching submissions for assignment {assignment_id} "
                        f"(kept {len(submissions)}): {error}"
                    )
                else:
                    logger.debug(f"Fetched {len(submissions)} submissions for assignment {assignment_id}")

        return by_assignment

    def _fetch_assignment(self, assignment_id: Any) -> Tuple[List[Submission], Optional[str]]:
        """Page through one assignment's submissions; stops at the first short or failed page."""
        submissions: List[Submission] = []
        page = 1

        while True:
            try:
                rows = list(self.submission_fetcher(assignment_id, page) or [])
                # a malformed row fails the whole page
                page_submissions = [
                    row if isinstance(row, Submission) else Submission.from_canvas(row, assignment_id)
                    for row in rows
                ]
            except Exception as e:
                return submissions, f"page {page} failed: {e}"

            submissions.extend(page_submissions)
            if len(rows) != self.page_size:
                return submissions, None
            page += 1

    # -------------------------------------------------------------------------
    # Per-topic status
    # -------------------------------------------------------------------------

    def _build_topic(self, topic: _TopicPosts, submissions: List[Submission]) -> GradingTopic:
        teacher_reply_stats = Counter(
            reply.author_display_name or UNKNOWN_TEACHER for reply in topic.teacher_replies
        )

        submission_by_user = {id_key(s.user_id): s for s in submissions}

        statuses: Dict[str, StudentStatus] = {}
        post_owner: Dict[str, str] = {}

        for post in topic.student_posts:
            if post.is_reply:
                continue

            name = post.author_display_name
            user_key = id_key(post.author_user_id)
            if not name or not user_key:
                self.notes.skipped_posts += 1
                continue

            post_owner[id_key(post.id)] = user_key

            existing = statuses.get(user_key)
            # one row per student, from their earliest top-level post
            if existing and _date_key(existing.post_date) <= _date_key(post.created_at):
                continue

            submission = submission_by_user.get(user_key)
            statuses[user_key] = StudentStatus(
                name=name,
                user_id=post.author_user_id,
                post_date=post.created_at,
                post_id=post.id,
                is_graded=bool(submission and submission.is_graded),
                teacher_feedback=existing.teacher_feedback if existing else set(),
            )

        for reply in topic.teacher_replies:
            owner = post_owner.get(id_key(reply.parent_id))
            if owner:
                statuses[owner].teacher_feedback.add(reply.author_display_name or UNKNOWN_TEACHER)

        students = sorted(statuses.values(), key=lambda s: _date_key(s.post_date))

        return GradingTopic(
            id=topic.id,
            title=topic.title,
            assignment_id=topic.assignment_id,
            teacher_reply_stats=dict(teacher_reply_stats),
            all_students_with_status=students,
            total_student_posts=len(topic.student_posts),
            total_teacher_replies=len(topic.teacher_replies),
        )


def correlate_grading(
    posts: Sequence[Union[DiscussionPost, Dict[str, Any]]],
    teacher_ids: Iterable[Any],
    submission_fetcher: SubmissionFetcher,
    max_workers: int = DEFAULT_WORKERS,
) -> List[GradingTopic]:
    """
    Convenience function to correlate posts with submissions in one call.

    Args:
        posts: All discussion posts
        teacher_ids: User ids of teaching staff
        submission_fetcher: fetcher(assignment_id, page) -> submissions

    Returns:
        GradingTopics ordered by title
    """
    return SubmissionGradeCorrelator(teacher_ids, submission_fetcher, max_workers).correlate(posts)
