from reconciliation.csv_ingest import parse_csv
from reconciliation.models import (
    ABSENT,
    PRESENT,
    UNKNOWN,
    CanvasUser,
    DiscrepancyType,
    ParticipantOrigin,
    Severity,
)
from reconciliation.participants import (
    ParticipantReconciler,
    is_valid_registration,
    parse_attendance_status,
    parse_duration_minutes,
    reconcile,
)

SESSIONS = ["session1", "session2", "session3"]


def _registration(name, email, *attendance):
    row = {"Name": name, "Email": email}
    for number, value in enumerate(attendance, start=1):
        row[f"Attendence {number}"] = value
    return row


def _zoom(name, minutes, email=""):
    return {"Name (original name)": name, "User Email": email, "Total duration (minutes)": str(minutes)}


def test_canvas_users_only_gives_one_clean_participant_each():
    users = [CanvasUser("Ann Lee", user_id="1", post_count=2), CanvasUser("Bo Park", user_id="2", post_count=1)]

    participants = reconcile(users, [], {})

    assert [p.canvas_display_name for p in participants] == ["Ann Lee", "Bo Park"]
    assert all(not p.discrepancies for p in participants)
    assert all(p.ai_attendance == {s: UNKNOWN for s in SESSIONS} for p in participants)
    assert all(p.zoom_sessions == {s: None for s in SESSIONS} for p in participants)
    assert participants[0].id == "1"


def test_duplicate_canvas_display_names_merge_post_counts():
    users = [CanvasUser("Ann Lee", user_id="1", post_count=2), CanvasUser("Ann Lee", user_id="9", post_count=3)]

    participants = reconcile(users, [], {})

    assert len(participants) == 1
    assert participants[0].canvas_post_count == 5


def test_end_to_end_false_absent():
    users = [CanvasUser("Jane Doe", user_id="42", post_count=3)]
    registrations = [_registration("Jane Doe", "jane@x.edu", "present", "absent", "present")]
    sessions = {
        "session1": [_zoom("Jane Doe", 60)],
        "session2": [_zoom("Jane Doe", 45)],
        "session3": [_zoom("Jane Doe", 50)],
    }

    participants = reconcile(users, registrations, sessions)

    assert len(participants) == 1
    jane = participants[0]
    assert jane.registration_data["Email"] == "jane@x.edu"
    assert jane.ai_attendance == {"session1": PRESENT, "session2": ABSENT, "session3": PRESENT}
    assert [(d.type, d.session) for d in jane.discrepancies] == [(DiscrepancyType.FALSE_ABSENT, "session2")]
    assert "45 minutes" in jane.discrepancies[0].message


def test_attendance_status_is_case_and_space_insensitive():
    assert parse_attendance_status("PResent ") == PRESENT
    assert parse_attendance_status(" Absent") == ABSENT
    assert parse_attendance_status("maybe") == UNKNOWN
    assert parse_attendance_status(None) == UNKNOWN


def test_invalid_registrations_are_filtered():
    rows = [
        _registration("", "a@x.edu"),
        _registration("No Email", "not-an-email"),
        _registration("x" * 101, "long@x.edu"),
        _registration("N/A", "na@x.edu"),
        _registration("I can't attend but I will view the recording", "view@x.edu"),
        _registration("Real Person", "real@x.edu"),
    ]

    assert [is_valid_registration(r) for r in rows] == [False, False, False, False, False, True]

    reconciler = ParticipantReconciler()
    participants = reconciler.reconcile([], rows, {})

    assert reconciler.notes.filtered_registrations == 5
    assert [p.canvas_display_name for p in participants] == ["Real Person"]


def test_registration_matches_by_normalized_name():
    users = [CanvasUser("Raymond F. Gasser", user_id="7")]
    registrations = [_registration("Gasser, Ray", "ray@x.edu", "present")]

    reconciler = ParticipantReconciler()
    participants = reconciler.reconcile(users, registrations, {})

    assert len(participants) == 1
    assert participants[0].ai_attendance["session1"] == PRESENT
    assert reconciler.notes.matched_registrations == 1


def test_registration_only_participant():
    reconciler = ParticipantReconciler()
    participants = reconciler.reconcile(
        [CanvasUser("Ann Lee", user_id="1")],
        [_registration("Carl Diaz", "Carl.Diaz@x.edu", "absent")],
        {},
    )

    carl = participants[1]
    assert carl.id == "no-canvas-carl.diaz@x.edu"
    assert carl.canvas_user_name == "carl.diaz"
    assert carl.canvas_post_count == 0
    assert carl.origin == ParticipantOrigin.REGISTRATION
    assert carl.ai_attendance["session1"] == ABSENT
    assert reconciler.notes.registration_only == 1


def test_session_only_participant_counts_as_present():
    reconciler = ParticipantReconciler()
    participants = reconciler.reconcile([], [], {"session1": [_zoom("Walk In", 50)]})

    assert len(participants) == 1
    walk_in = participants[0]
    assert walk_in.origin == ParticipantOrigin.SESSION
    assert walk_in.id == "session-only-session1-Walk In"
    assert walk_in.ai_attendance["session1"] == PRESENT
    assert walk_in.zoom_sessions["session1"].duration_minutes == 50
    assert walk_in.discrepancies == []
    assert reconciler.notes.session_only == 1


def test_session_only_participant_is_matched_in_later_sessions():
    sessions = {
        "session1": [_zoom("Walk In", 50)],
        "session2": [_zoom("Walk In", 40)],
    }

    participants = reconcile([], [], sessions)

    assert len(participants) == 1
    assert participants[0].zoom_sessions["session2"].duration_minutes == 40


def test_participant_order_is_canvas_then_registration_then_session():
    participants = reconcile(
        [CanvasUser("Ann Lee", user_id="1")],
        [_registration("Carl Diaz", "carl@x.edu")],
        {"session1": [_zoom("Walk In", 50), _zoom("Ann Lee", 55)]},
    )

    assert [p.origin for p in participants] == [
        ParticipantOrigin.CANVAS,
        ParticipantOrigin.REGISTRATION,
        ParticipantOrigin.SESSION,
    ]
    assert participants[0].zoom_sessions["session1"].duration_minutes == 55


def test_zoom_row_matched_by_email():
    participants = reconcile(
        [],
        [_registration("Carl Diaz", "carl@x.edu")],
        {"session1": [_zoom("iPhone", 35, email="CARL@x.edu")]},
    )

    assert len(participants) == 1
    assert participants[0].zoom_sessions["session1"].duration_minutes == 35


def test_nameless_zoom_rows_are_dropped():
    reconciler = ParticipantReconciler()
    participants = reconciler.reconcile([], [], {"session1": [_zoom("", 20)]})

    assert participants == []
    assert reconciler.notes.dropped_session_rows == 1


def test_short_duration_flagged():
    participants = reconcile(
        [CanvasUser("Ann Lee", user_id="1")],
        [],
        {"session1": [_zoom("Ann Lee", 12)]},
    )

    assert [d.type for d in participants[0].discrepancies] == [DiscrepancyType.SHORT_DURATION]


def test_extra_session_keys_are_appended():
    participants = reconcile([], [], {"bonus": [_zoom("Walk In", 50)]})

    assert list(participants[0].zoom_sessions) == SESSIONS + ["bonus"]


def test_parse_duration_minutes():
    assert parse_duration_minutes({"Total duration (minutes)": "45 min"}) == 45
    assert parse_duration_minutes({"Duration (minutes)": "30"}) == 30
    assert parse_duration_minutes({"Total duration (minutes)": "n/a"}) == 0
    assert parse_duration_minutes({}) == 0


def test_end_to_end_from_registration_csv_text():
    registrations = parse_csv(
        "Name,Email,Attendence 1,Attendence 2,Attendence 3\n"
        "Jane Doe,jane@x.edu,Present,absent,Present\n"
    )
    sessions = {
        "session1": [_zoom("Jane Doe", 60)],
        "session2": [_zoom("Jane Doe", 45)],
        "session3": [_zoom("Jane Doe", 50)],
    }

    participants = reconcile([CanvasUser("Jane Doe", user_id="42", post_count=3)], registrations, sessions)

    assert len(participants) == 1
    jane = participants[0]
    assert jane.ai_attendance == {"session1": PRESENT, "session2": ABSENT, "session3": PRESENT}
    assert [(d.type, d.session, d.severity) for d in jane.discrepancies] == [
        (DiscrepancyType.FALSE_ABSENT, "session2", Severity.HIGH),
    ]
