#!/usr/bin/env python3
"""
Canvas API Layer - Canvas LMS requests used by participation verification

This module fetches discussion posts, teaching-staff enrollments and
assignment submissions. It supports pagination and error handling; nothing
here interprets the data beyond tagging posts with their topic context.
"""

import logging
import requests
from typing import Optional, List, Dict, Any

from config import get_config

logger = logging.getLogger(__name__)

# Canvas enrollment types treated as teaching staff
TEACHER_ENROLLMENT_TYPES = {"TeacherEnrollment", "TaEnrollment", "DesignerEnrollment"}

PAGE_SIZE = 100


class CanvasAPIError(Exception):
    """Custom exception for Canvas API errors."""
    pass


def _base_url() -> str:
    return get_config().canvas.api_url.rstrip("/")


def _headers() -> Dict[str, str]:
    return {
        "Authorization": f"Bearer {get_config().canvas.api_key}",
        "Accept": "application/json"
    }


def _timeout() -> int:
    return get_config().canvas.timeout


def api_get(endpoint: str, params: Optional[Dict] = None) -> Optional[Any]:
    """
    Make a single API GET request.

    Args:
        endpoint: API endpoint path (e.g., "/users/self")
        params: Optional query parameters

    Returns:
        JSON response data or None on failure
    """
    url = f"{_base_url()}/api/v1{endpoint}"
    try:
        resp = requests.get(url, headers=_headers(), params=params or {}, timeout=_timeout())
        if resp.status_code == 200:
            return resp.json()
        logger.warning(f"GET {endpoint} returned {resp.status_code}")
        return None
    except Exception as e:
        logger.error(f"GET {endpoint} failed: {e}")
        return None


def api_get_all(endpoint: str, params: Optional[Dict] = None) -> List[Any]:
    """
    Get all pages of results from a paginated API endpoint.

    Args:
        endpoint: API endpoint path
        params: Optional query parameters

    Returns:
        List of all results across all pages (partial if a page fails)
    """
    all_results = []
    params = dict(params or {})
    params["per_page"] = PAGE_SIZE

    url = f"{_base_url()}/api/v1{endpoint}"
    while url:
        try:
            resp = requests.get(url, headers=_headers(), params=params, timeout=_timeout())
            if resp.status_code != 200:
                logger.warning(f"GET {endpoint} returned {resp.status_code}, keeping {len(all_results)} results")
                break
            data = resp.json()
            if isinstance(data, list):
                all_results.extend(data)
            else:
                all_results.append(data)

            # Check for next page
            links = resp.headers.get("Link", "")
            next_url = None
            for link in links.split(","):
                if 'rel="next"' in link:
                    next_url = link.split(";")[0].strip("<> ")
                    break
            url = next_url
            params = {}  # Params are in the URL now
        except Exception as e:
            logger.error(f"GET {endpoint} failed after {len(all_results)} results: {e}")
            break
    return all_results


# =============================================================================
# COURSE FUNCTIONS
# =============================================================================

def fetch_course_teacher_ids(course_id) -> List[Any]:
    """
    Get user IDs enrolled with a teaching-staff role.

    Args:
        course_id: Canvas course ID

    Returns:
        List of user IDs (teacher, TA or designer enrollments)
    """
    enrollments = api_get_all(f"/courses/{course_id}/enrollments")
    teacher_ids = []
    for e in enrollments:
        if e.get("type") in TEACHER_ENROLLMENT_TYPES:
            user_id = e.get("user_id")
            if user_id is not None and user_id not in teacher_ids:
                teacher_ids.append(user_id)
                logger.debug(f"Teacher: {(e.get('user') or {}).get('name')} ({user_id}) - {e.get('type')}")
    logger.info(f"Found {len(teacher_ids)} teaching staff in course {course_id}")
    return teacher_ids


# =============================================================================
# DISCUSSIONS
# =============================================================================

def fetch_discussion_posts(course_id) -> List[Dict]:
    """
    Get every discussion entry and reply across all topics of a course.

    Each post is tagged with topic_title, discussion_topic_id and
    assignment_id; replies carry parent_id pointing at their entry.
    Posts seen twice (by id) are kept once.

    Args:
        course_id: Canvas course ID

    Returns:
        List of raw Canvas post dicts
    """
    topics = api_get_all(f"/courses/{course_id}/discussion_topics")
    logger.info(f"Found {len(topics)} discussion topics in course {course_id}")

    seen_ids = set()
    all_posts = []

    for topic in topics:
        entries = api_get_all(
            f"/courses/{course_id}/discussion_topics/{topic['id']}/entries",
            {"include[]": "recent_replies"}
        )
        logger.debug(f"Topic '{topic.get('title')}': {len(entries)} entries")

        for entry in entries:
            if entry.get("id") in seen_ids:
                continue
            seen_ids.add(entry.get("id"))
            all_posts.append(_tag_post(entry, topic))

            for reply in entry.get("recent_replies") or []:
                if reply.get("id") in seen_ids:
                    continue
                seen_ids.add(reply.get("id"))
                tagged = _tag_post(reply, topic)
                tagged["parent_id"] = reply.get("parent_id") or entry.get("id")
                all_posts.append(tagged)

    logger.info(f"Fetched {len(all_posts)} posts across {len(topics)} topics")
    return all_posts


def _tag_post(post: Dict, topic: Dict) -> Dict:
    tagged = {k: v for k, v in post.items() if k != "recent_replies"}
    tagged["topic_title"] = topic.get("title")
    tagged["discussion_topic_id"] = topic.get("id")
    tagged["assignment_id"] = topic.get("assignment_id")
    return tagged


# =============================================================================
# SUBMISSIONS
# =============================================================================

def fetch_submissions_page(course_id, assignment_id, page: int, per_page: int = PAGE_SIZE) -> List[Dict]:
    """
    Get one page of submissions for an assignment.

    Args:
        course_id: Canvas course ID
        assignment_id: Canvas assignment ID
        page: 1-based page number
        per_page: Page size requested from Canvas

    Returns:
        Up to per_page submission objects

    Raises:
        CanvasAPIError: if the request fails or returns a non-200 status
    """
    url = f"{_base_url()}/api/v1/courses/{course_id}/assignments/{assignment_id}/submissions"
    params = {"per_page": per_page, "page": page}
    try:
        resp = requests.get(url, headers=_headers(), params=params, timeout=_timeout())
    except requests.RequestException as e:
        raise CanvasAPIError(f"Submissions page {page} for assignment {assignment_id} failed: {e}") from e

    if resp.status_code != 200:
        raise CanvasAPIError(
            f"Submissions page {page} for assignment {assignment_id} returned {resp.status_code}"
        )
    data = resp.json()
    return data if isinstance(data, list) else []


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def is_api_configured() -> bool:
    """
    Check if the API is properly configured.

    Returns:
        True if API URL and key are set
    """
    return get_config().canvas.is_valid()


def test_connection() -> bool:
    """
    Test the API connection.

    Returns:
        True if connection is successful
    """
    return api_get("/users/self") is not None


# =============================================================================
# MAIN (for testing)
# =============================================================================

if __name__ == "__main__":
    print("Canvas API Module")
    print("=" * 40)

    if not is_api_configured():
        print("Error: API not configured. Set CANVAS_API_URL and CANVAS_API_KEY in .env")
        exit(1)

    print(f"API URL: {_base_url()}")
    print(f"Testing connection...")

    if test_connection():
        user = api_get("/users/self")
        print(f"Connected as: {user.get('name', 'Unknown')}")
    else:
        print("Connection failed. Check your API key.")
