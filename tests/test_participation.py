from grading.models import DiscussionPost
from reconciliation.models import ABSENT, PRESENT, CanvasUser, Participant
from reconciliation.participants import reconcile
from reports.participation import (
    analyze_reflection_completion,
    calculate_participation_metrics,
    filter_student_participants,
    summarize_discrepancies,
)

SESSIONS = ["session1", "session2"]


def _participant(pid, name, email="", **attendance):
    participant = Participant.empty(pid, SESSIONS, canvas_display_name=name, canvas_email=email)
    participant.ai_attendance.update(attendance)
    return participant


def test_filter_drops_teachers_by_id_and_keyword():
    people = [
        _participant("900", "Prof T"),
        _participant("5", "Ann Lee"),
        _participant("no-canvas-x", "Sam", email="sam.instructor@x.edu"),
    ]

    students = filter_student_participants(people, [900])

    assert [p.canvas_display_name for p in students] == ["Ann Lee"]


def test_participation_metrics():
    people = [
        _participant("1", "Ann", session1=PRESENT, session2=PRESENT),
        _participant("2", "Bo", session1=PRESENT, session2=ABSENT),
        _participant("3", "Cy"),
    ]
    people[0].registration_data = {"Assistant Type": "Copilot"}
    people[0].canvas_post_count = 2

    metrics = calculate_participation_metrics(people, SESSIONS)

    assert metrics["total_participants"] == 3
    assert metrics["canvas_active_participants"] == 1
    assert metrics["attendance_by_session"]["session1"] == {"attended": 2, "absent": 1}
    assert metrics["attendance_by_session"]["session2"] == {"attended": 1, "absent": 2}
    assert metrics["sessions_attended"] == {"0": 1, "1": 1, "2": 1}
    assert metrics["assistant_types"] == {"Copilot": 1}


def test_reflection_completion():
    posts = [
        DiscussionPost(1, "Ann", 1, topic_id=7, topic_title="Week 1", assignment_id=70),
        DiscussionPost(2, "Ann", 1, topic_id=8, topic_title="Week 2", assignment_id=80),
        DiscussionPost(3, "Bo", 2, topic_id=7, topic_title="Week 1", assignment_id=70),
        DiscussionPost(4, "Bo", 2, topic_id=9, topic_title="Intros"),
    ]

    results = analyze_reflection_completion([_participant("1", "Ann"), _participant("2", "Bo")], posts)

    assert results[0]["completed_reflections"] == 2
    assert results[0]["microcredential_eligible"]
    assert results[1]["completed_reflections"] == 1
    assert results[1]["completion_percentage"] == 50
    assert not results[1]["reflection_details"]["Week 2"]["completed"]


def test_summarize_discrepancies():
    participants = reconcile(
        [CanvasUser("Ann Lee", user_id="1")],
        [{"Name": "Ann Lee", "Email": "ann@x.edu", "Attendence 1": "present"}],
        {},
    )

    summary = summarize_discrepancies(participants)

    assert summary == {
        "participants_flagged": 1,
        "by_type": {"false_present": 1},
        "by_severity": {"medium": 1},
    }
