#!/usr/bin/env python3
"""
Data Collector - Fetch and aggregate Canvas course data.

Collects discussion posts, teaching staff, discussion authors and grading
status for one course, going through an injected cache. Each result says
whether it was served from the cache or fetched fresh.
"""

import logging
from datetime import datetime
from functools import partial
from typing import Optional, List, Dict, Any

import canvas_api
from grading.correlator import SubmissionGradeCorrelator
from grading.models import DiscussionPost, GradingTopic, id_key, parse_timestamp
from reconciliation.models import CanvasUser
from reports.cache import Cache, FetchResult, MemoryCache, SOURCE_CACHE, SOURCE_FRESH

logger = logging.getLogger(__name__)


class CourseDataCollector:
    """
    Collects and aggregates Canvas data for one course.

    Discussion posts and teacher ids are cached until refreshed; submissions
    are always fetched fresh because grades change between runs.
    """

    def __init__(
        self,
        course_id,
        cache: Optional[Cache] = None,
        api=canvas_api,
        fetch_workers: int = 8,
        page_size: int = canvas_api.PAGE_SIZE,
    ):
        """
        Initialize data collector for a course.

        Args:
            course_id: Canvas course ID
            cache: Cache implementation (in-memory if omitted)
            api: Module or object providing the canvas_api functions
            fetch_workers: Concurrent submission fetches
            page_size: Submissions requested per page
        """
        self.course_id = course_id
        self.cache = cache if cache is not None else MemoryCache()
        self.api = api
        self.fetch_workers = fetch_workers
        self.page_size = page_size
        self.last_correlator: Optional[SubmissionGradeCorrelator] = None

    def _key(self, name: str) -> str:
        return f"canvas_{name}_{self.course_id}"

    def _cached(self, name: str, fetch, refresh: bool) -> FetchResult:
        key = self._key(name)
        if refresh:
            self.cache.invalidate(key)
        else:
            cached = self.cache.get(key)
            if cached is not None:
                logger.info(f"Using cached {name} for course {self.course_id}")
                return FetchResult(cached, SOURCE_CACHE)

        logger.info(f"Fetching fresh {name} for course {self.course_id}")
        data = fetch()
        self.cache.set(key, data)
        return FetchResult(data, SOURCE_FRESH)

    def get_discussion_posts(self, refresh: bool = False) -> FetchResult:
        """
        Get all discussion posts for the course.

        Returns:
            FetchResult with a list of DiscussionPost
        """
        raw = self._cached("discussions", lambda: self.api.fetch_discussion_posts(self.course_id), refresh)
        return FetchResult([DiscussionPost.from_canvas(p) for p in raw.data], raw.source)

    def get_teacher_ids(self, refresh: bool = False) -> FetchResult:
        """
        Get teaching staff user ids.

        Returns:
            FetchResult with a list of ids in string form
        """
        raw = self._cached("teachers", lambda: self.api.fetch_course_teacher_ids(self.course_id), refresh)
        return FetchResult([id_key(t) for t in raw.data if id_key(t)], raw.source)

    def get_canvas_users(self, refresh: bool = False) -> FetchResult:
        """
        Get unique discussion authors with their post counts.

        Authors are keyed by display name (else user name) in first-post
        order. Canvas does not expose emails on discussion posts.

        Returns:
            FetchResult with a list of CanvasUser
        """
        posts = self.get_discussion_posts(refresh)
        return FetchResult(extract_canvas_users(posts.data), posts.source)

    def get_recent_activity(self, refresh: bool = False) -> FetchResult:
        """
        Get student posts as an activity feed, newest first.

        Returns:
            FetchResult with {"activities": [...], "unique_users": int}
        """
        posts = self.get_discussion_posts(refresh)
        teachers = self.get_teacher_ids(refresh)
        teacher_keys = set(teachers.data)

        student_posts = [p for p in posts.data if id_key(p.author_user_id) not in teacher_keys]
        source = SOURCE_CACHE if posts.from_cache and teachers.from_cache else SOURCE_FRESH
        return FetchResult(build_recent_activity(student_posts), source)

    def get_grading_topics(self, refresh: bool = False) -> FetchResult:
        """
        Get grading status for every graded discussion topic.

        Returns:
            FetchResult with a list of GradingTopic; the source reflects the
            discussion posts (submissions are always fresh)
        """
        posts = self.get_discussion_posts(refresh)
        teachers = self.get_teacher_ids(refresh)

        fetcher = partial(self.api.fetch_submissions_page, self.course_id, per_page=self.page_size)
        correlator = SubmissionGradeCorrelator(teachers.data, fetcher, self.fetch_workers, self.page_size)
        topics: List[GradingTopic] = correlator.correlate(posts.data)
        self.last_correlator = correlator

        source = SOURCE_CACHE if posts.from_cache and teachers.from_cache else SOURCE_FRESH
        logger.info(f"Processed {len(topics)} grading topics ({source} posts)")
        return FetchResult(topics, source)

    def cache_timestamp(self) -> Optional[datetime]:
        """When discussion posts were last cached, if ever."""
        ts = self.cache.timestamp(self._key("discussions"))
        return datetime.fromtimestamp(ts) if ts else None

    def clear_cache(self, all_courses: bool = False):
        """
        Drop cached entries.

        Args:
            all_courses: Empty the whole cache instead of this course's entries
        """
        if all_courses:
            self.cache.clear()
            logger.info("Cleared cache for all courses")
            return
        for name in ("discussions", "teachers"):
            self.cache.invalidate(self._key(name))
        logger.info(f"Cleared cache for course {self.course_id}")


def extract_canvas_users(posts: List[DiscussionPost]) -> List[CanvasUser]:
    """Unique discussion authors with post counts, in first-post order."""
    users: Dict[str, CanvasUser] = {}
    for post in posts:
        if not post.author_display_name:
            continue
        key = post.author_display_name
        user = users.get(key)
        if user is None:
            user = users[key] = CanvasUser(
                display_name=post.author_display_name,
                user_id=id_key(post.author_user_id),
            )
        user.post_count += 1
    return list(users.values())


def _initials(name: str) -> str:
    return "".join(part[0] for part in name.split() if part)[:2].upper()


def build_recent_activity(student_posts: List[DiscussionPost]) -> Dict[str, Any]:
    """
    Turn student posts into an activity feed, newest first.

    Returns:
        Dict with "activities" and "unique_users"
    """
    def sort_key(post: DiscussionPost):
        parsed = parse_timestamp(post.created_at)
        return (parsed is not None, parsed.timestamp() if parsed else 0.0)

    activities = []
    for post in sorted(student_posts, key=sort_key, reverse=True):
        name = post.author_display_name or "Unknown"
        activities.append({
            "user_name": name,
            "discussion_name": post.topic_title or "Unknown Discussion",
            "created_at": post.created_at,
            "post_id": post.id,
            "topic_id": post.topic_id,
            "initials": _initials(name),
        })

    return {
        "activities": activities,
        "unique_users": len({a["user_name"] for a in activities}),
    }
