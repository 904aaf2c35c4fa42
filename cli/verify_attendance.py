#!/usr/bin/env python3
"""
Verify Attendance CLI - Reconcile registration, Zoom and Canvas participation.

Commands:
    python -m cli.verify_attendance --registrations reg.csv \\
        --session session1=zoom1.csv --session session2=zoom2.csv [--course ID]
"""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Dict, List

from config import get_config, validate_config
from reconciliation.csv_ingest import load_csv_file
from reconciliation.participants import ParticipantReconciler
from reports.cache import make_cache
from reports.data_collector import CourseDataCollector
from reports.participation import (
    calculate_participation_metrics,
    filter_student_participants,
    summarize_discrepancies,
)

logger = logging.getLogger(__name__)


def setup_logging(verbose: bool = False):
    level = logging.DEBUG if verbose else getattr(logging, get_config().logging.level, logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )


def print_header(title, char="="):
    """Print a formatted header."""
    print(f"\n{char * 60}")
    print(f"  {title}")
    print(char * 60)


def parse_session_args(values: List[str]) -> Dict[str, Path]:
    """Turn ["session1=a.csv", ...] into {"session1": Path("a.csv"), ...}."""
    sessions = {}
    for value in values or []:
        if "=" not in value:
            raise ValueError(f"Expected SESSION=PATH, got '{value}'")
        key, path = value.split("=", 1)
        sessions[key.strip()] = Path(path.strip())
    return sessions


def run(args) -> int:
    config = get_config()
    course_id = args.course or config.canvas.course_id

    errors = validate_config(config, require_canvas=bool(course_id))
    if errors:
        for error in errors:
            print(f"Error: {error}")
        return 1

    try:
        session_files = parse_session_args(args.session)
    except ValueError as e:
        print(f"Error: {e}")
        return 1

    registrations = load_csv_file(args.registrations) if args.registrations else []
    session_rows = {key: load_csv_file(path) for key, path in session_files.items()}

    canvas_users = []
    teacher_ids = []
    if course_id:
        collector = CourseDataCollector(
            course_id,
            cache=make_cache(config.cache.directory),
            fetch_workers=config.grading.fetch_workers,
            page_size=config.grading.page_size,
        )
        users = collector.get_canvas_users(refresh=args.refresh)
        canvas_users = users.data
        teacher_ids = collector.get_teacher_ids().data
        print(f"Canvas users: {len(canvas_users)} ({users.source})")

    sessions = list(config.reconcile.session_keys)
    for key in session_rows:
        if key not in sessions:
            sessions.append(key)

    reconciler = ParticipantReconciler(
        sessions=sessions,
        match_threshold=config.reconcile.match_threshold,
        short_duration_minutes=config.reconcile.short_duration_minutes,
    )
    participants = reconciler.reconcile(canvas_users, registrations, session_rows)
    if args.students_only:
        participants = filter_student_participants(participants, teacher_ids)

    notes = reconciler.notes
    metrics = calculate_participation_metrics(participants, sessions)
    summary = summarize_discrepancies(participants)

    print_header("ATTENDANCE VERIFICATION")
    print(f"  Participants: {len(participants)}")
    print(f"  Registration-only: {notes.registration_only}")
    print(f"  Session-only: {notes.session_only}")
    print(f"  Filtered registrations: {notes.filtered_registrations}")
    print(f"  Dropped session rows: {notes.dropped_session_rows}")
    print(f"  Flagged participants: {summary['participants_flagged']}")

    print_header("SELF-REPORTED ATTENDANCE", "-")
    for session, counts in metrics["attendance_by_session"].items():
        print(f"  {session}: {counts['attended']} present, {counts['absent']} not present")

    print_header("PARTICIPANTS", "-")
    shown = 0
    for participant in participants:
        if args.only_discrepancies and not participant.discrepancies:
            continue
        shown += 1
        print(f"\n  {participant.canvas_display_name} ({participant.origin.value}, "
              f"{participant.canvas_post_count} posts)")
        for session in sessions:
            record = participant.zoom_sessions.get(session)
            zoom = f"{record.duration_minutes} min" if record else "no Zoom record"
            print(f"    {session}: reported {participant.ai_attendance.get(session)}, {zoom}")
        for d in participant.discrepancies:
            print(f"    [{d.severity.value.upper()}] {d.session}: {d.message}")
    if not shown:
        print("  No participants to show")

    if args.json:
        output_path = Path(args.json)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump({
                "participants": [p.to_dict() for p in participants],
                "metrics": metrics,
                "discrepancies": summary,
                "notes": notes.to_dict(),
            }, f, indent=2, ensure_ascii=False)
        print(f"\nOutput saved to: {output_path}")

    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Reconcile Canvas, registration and Zoom attendance records",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-r", "--registrations", help="Registration form CSV")
    parser.add_argument("-s", "--session", action="append", default=[],
                        help="Zoom export as SESSION=PATH (repeatable)")
    parser.add_argument("-c", "--course", help="Canvas course ID (default CANVAS_COURSE_ID)")
    parser.add_argument("--refresh", action="store_true", help="Ignore cached Canvas data")
    parser.add_argument("--students-only", action="store_true", help="Drop teaching staff")
    parser.add_argument("--only-discrepancies", action="store_true",
                        help="List only participants with discrepancies")
    parser.add_argument("-j", "--json", help="Write full results to a JSON file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args()
    setup_logging(args.verbose)

    if not args.registrations and not args.session and not (args.course or get_config().canvas.course_id):
        parser.print_help()
        sys.exit(1)

    sys.exit(run(args))


if __name__ == "__main__":
    main()
