import threading

from grading.correlator import SubmissionGradeCorrelator, correlate_grading
from grading.models import DiscussionPost, Submission, id_key, parse_timestamp

TEACHER_ID = 900


def _post(post_id, user_id, name, topic_id=1, title="Reflection 1", assignment_id=11,
          parent_id=None, created_at="2024-03-01T10:00:00Z"):
    return DiscussionPost(
        id=post_id,
        author_display_name=name,
        author_user_id=user_id,
        topic_id=topic_id,
        topic_title=title,
        assignment_id=assignment_id,
        parent_id=parent_id,
        created_at=created_at,
    )


class FakeSubmissions:
    """fetcher(assignment_id, page) backed by a dict of pages."""

    def __init__(self, pages_by_assignment, fail_on=()):
        self.pages = pages_by_assignment
        self.fail_on = set(fail_on)
        self.calls = []
        self._lock = threading.Lock()

    def __call__(self, assignment_id, page):
        with self._lock:
            self.calls.append((assignment_id, page))
        if (assignment_id, page) in self.fail_on:
            raise RuntimeError("HTTP 500")
        pages = self.pages.get(assignment_id, [])
        return pages[page - 1] if page <= len(pages) else []


def test_ungraded_then_graded_on_next_run():
    posts = [_post(1, 5, "Ann")]

    first = correlate_grading(posts, [TEACHER_ID], FakeSubmissions({11: [[{"user_id": 5, "grade": None}]]}))
    assert [s.name for s in first[0].students_needing_grades] == ["Ann"]

    second = correlate_grading(posts, [TEACHER_ID], FakeSubmissions({11: [[{"user_id": 5, "grade": "A"}]]}))
    assert second[0].students_needing_grades == []
    assert second[0].all_students_with_status[0].is_graded


def test_blank_grade_counts_as_ungraded():
    topics = correlate_grading([_post(1, 5, "Ann")], [], FakeSubmissions({11: [[{"user_id": 5, "grade": "  "}]]}))

    assert not topics[0].all_students_with_status[0].is_graded


def test_ungraded_topics_are_ignored():
    posts = [_post(1, 5, "Ann", assignment_id=None), _post(2, 5, "Ann", topic_id=2, title="Graded")]
    fetcher = FakeSubmissions({})

    topics = correlate_grading(posts, [], fetcher)

    assert [t.title for t in topics] == ["Graded"]
    assert fetcher.calls == [(11, 1)]


def test_end_to_end_three_students_two_topics():
    posts = []
    for topic_id, title, assignment_id in ((1, "Week 1", 11), (2, "Week 2", 22)):
        for user_id, name in ((1, "A"), (2, "B"), (3, "C")):
            posts.append(_post(topic_id * 10 + user_id, user_id, name, topic_id, title, assignment_id))
        posts.append(_post(topic_id * 100, TEACHER_ID, "Prof T", topic_id, title, assignment_id,
                           parent_id=topic_id * 10 + 1))
    fetcher = FakeSubmissions({
        11: [[{"user_id": 1, "grade": "A"}, {"user_id": 2, "grade": None}]],
        22: [[]],
    })

    topics = correlate_grading(posts, ["900"], fetcher)

    assert [t.title for t in topics] == ["Week 1", "Week 2"]
    week1 = topics[0]
    statuses = {s.name: s for s in week1.all_students_with_status}
    assert statuses["A"].is_graded
    assert not statuses["B"].is_graded and not statuses["C"].is_graded
    assert statuses["A"].teacher_feedback == {"Prof T"}
    assert statuses["B"].teacher_feedback == set()
    assert [s.name for s in week1.students_needing_grades] == ["B", "C"]
    assert week1.teacher_reply_stats == {"Prof T": 1}
    assert week1.total_student_posts == 3
    assert week1.total_teacher_replies == 1
    assert len(topics[1].students_needing_grades) == 3


def test_teacher_ids_match_across_int_and_string():
    posts = [_post(1, "900", "Prof T"), _post(2, 5, "Ann")]

    topics = correlate_grading(posts, [900], FakeSubmissions({}))

    assert [s.name for s in topics[0].all_students_with_status] == ["Ann"]
    assert topics[0].total_teacher_replies == 1


def test_reply_stats_count_every_teacher_post():
    posts = [
        _post(1, 5, "Ann"),
        _post(2, TEACHER_ID, "Prof T", parent_id=1),
        _post(3, 901, "TA Sam", parent_id=1),
        _post(4, TEACHER_ID, "Prof T", parent_id=3),
        _post(5, 6, "Bo", parent_id=2),
    ]

    topics = correlate_grading(posts, [TEACHER_ID, 901], FakeSubmissions({}))

    topic = topics[0]
    assert topic.teacher_reply_stats == {"Prof T": 2, "TA Sam": 1}
    assert sum(topic.teacher_reply_stats.values()) == topic.total_teacher_replies
    assert topic.all_students_with_status[0].teacher_feedback == {"Prof T", "TA Sam"}
    # student replies are counted but get no status row
    assert topic.total_student_posts == 2
    assert [s.name for s in topic.all_students_with_status] == ["Ann"]


def test_failed_page_truncates_only_that_assignment():
    full_page = [{"user_id": n, "grade": "B"} for n in range(100)]
    fetcher = FakeSubmissions(
        {11: [full_page, [{"user_id": 150, "grade": "A"}]], 22: [[{"user_id": 7, "grade": "A"}]]},
        fail_on={(11, 2)},
    )
    correlator = SubmissionGradeCorrelator([], fetcher, max_workers=4)

    submissions = correlator.fetch_submissions([11, 22])

    assert len(submissions["11"]) == 100
    assert [s.user_id for s in submissions["22"]] == [7]
    assert correlator.notes.failed_assignments == 1
    assert "page 2" in correlator.notes.messages[0]


def test_pagination_stops_after_short_page():
    full_page = [{"user_id": n, "grade": None} for n in range(100)]
    fetcher = FakeSubmissions({11: [full_page, [{"user_id": 100, "grade": "A"}]]})
    correlator = SubmissionGradeCorrelator([], fetcher)

    submissions = correlator.fetch_submissions([11])

    assert sorted(fetcher.calls) == [(11, 1), (11, 2)]
    assert len(submissions["11"]) == 101
    assert correlator.notes.failed_assignments == 0


def test_exact_full_last_page_requests_one_empty_page():
    fetcher = FakeSubmissions({11: [[{"user_id": 1, "grade": None}] * 2]})
    correlator = SubmissionGradeCorrelator([], fetcher, page_size=2)

    correlator.fetch_submissions([11])

    assert fetcher.calls == [(11, 1), (11, 2)]


def test_each_assignment_fetched_once_for_shared_topics():
    posts = [_post(1, 5, "Ann", topic_id=1), _post(2, 5, "Ann", topic_id=2, title="Other")]
    fetcher = FakeSubmissions({})

    correlate_grading(posts, [], fetcher)

    assert fetcher.calls == [(11, 1)]


def test_students_sorted_oldest_first_with_unparsable_dates_last():
    posts = [
        _post(1, 1, "Late", created_at="2024-03-05T10:00:00Z"),
        _post(2, 2, "Broken", created_at="not a date"),
        _post(3, 3, "Early", created_at="2024-03-01T10:00:00Z"),
    ]

    topics = correlate_grading(posts, [], FakeSubmissions({}))

    assert [s.name for s in topics[0].all_students_with_status] == ["Early", "Late", "Broken"]


def test_one_status_per_student_from_earliest_post():
    posts = [
        _post(2, 5, "Ann", created_at="2024-03-04T10:00:00Z"),
        _post(1, 5, "Ann", created_at="2024-03-02T10:00:00Z"),
        _post(3, TEACHER_ID, "Prof T", parent_id=2),
    ]

    topics = correlate_grading(posts, [TEACHER_ID], FakeSubmissions({}))

    statuses = topics[0].all_students_with_status
    assert len(statuses) == 1
    assert statuses[0].post_id == 1
    assert statuses[0].teacher_feedback == {"Prof T"}


def test_posts_missing_author_are_skipped():
    correlator = SubmissionGradeCorrelator([], FakeSubmissions({}))

    topics = correlator.correlate([_post(1, None, "Ghost"), _post(2, 5, "")])

    assert topics[0].all_students_with_status == []
    assert correlator.notes.skipped_posts == 2


def test_correlate_accepts_raw_canvas_dicts():
    raw = {
        "id": 1,
        "user": {"id": 5, "display_name": "Ann"},
        "discussion_topic_id": 1,
        "topic_title": "Reflection 1",
        "assignment_id": 11,
        "created_at": "2024-03-01T10:00:00Z",
    }

    topics = correlate_grading([raw], [], FakeSubmissions({11: [[Submission(11, 5, "A")]]}))

    assert topics[0].all_students_with_status[0].is_graded


def test_id_key_and_timestamps():
    assert id_key(5) == id_key("5") == id_key(5.0) == "5"
    assert id_key(None) == ""
    assert parse_timestamp("2024-03-01T10:00:00Z").tzinfo is not None
    assert parse_timestamp("2024-03-01T10:00:00+02:00").hour == 10
    assert parse_timestamp("garbage") is None


def test_malformed_submission_row_degrades_only_its_assignment():
    posts = [
        _post(1, 5, "Ann", topic_id=1, title="Week 1", assignment_id=11),
        _post(2, 5, "Ann", topic_id=2, title="Week 2", assignment_id=22),
    ]
    fetcher = FakeSubmissions({11: [[None]], 22: [[{"user_id": 5, "grade": "A"}]]})
    correlator = SubmissionGradeCorrelator([], fetcher)

    topics = correlator.correlate(posts)

    assert [t.title for t in topics] == ["Week 1", "Week 2"]
    assert not topics[0].all_students_with_status[0].is_graded
    assert topics[1].all_students_with_status[0].is_graded
    assert correlator.notes.failed_assignments == 1
    assert "Assignment 11" in correlator.notes.messages[0]


def test_malformed_row_keeps_earlier_pages():
    full_page = [{"user_id": n, "grade": "B"} for n in range(100)]
    fetcher = FakeSubmissions({11: [full_page, [{"user_id": 100, "grade": "A"}, "oops"]]})
    correlator = SubmissionGradeCorrelator([], fetcher)

    submissions = correlator.fetch_submissions([11])

    assert len(submissions["11"]) == 100
    assert correlator.notes.failed_assignments == 1
