#!/usr/bin/env python3
"""
Grading Status CLI - Show graded discussion posts still waiting for a grade.

Commands:
    python -m cli.grading_status [--course ID] [--refresh] [--json out.json]
"""

import argparse
import json
import logging
import sys
from pathlib import Path

from config import get_config, validate_config
from reports.cache import make_cache
from reports.data_collector import CourseDataCollector

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


def run(args) -> int:
    config = get_config()
    course_id = args.course or config.canvas.course_id

    errors = validate_config(config)
    if not course_id:
        errors.append("No course given (use --course or set CANVAS_COURSE_ID)")
    if errors:
        for error in errors:
            print(f"Error: {error}")
        return 1

    collector = CourseDataCollector(
        course_id,
        cache=make_cache(config.cache.directory),
        fetch_workers=config.grading.fetch_workers,
        page_size=config.grading.page_size,
    )
    if args.clear_cache or args.clear_all_cache:
        collector.clear_cache(all_courses=args.clear_all_cache)

    result = collector.get_grading_topics(refresh=args.refresh)
    topics = result.data

    print_header(f"GRADING STATUS - course {course_id}")
    print(f"  Data source: {result.source}")
    cached_at = collector.cache_timestamp()
    if result.from_cache and cached_at:
        print(f"  Cached at: {cached_at.strftime('%b %d, %Y %H:%M')}")
    print(f"  Graded topics: {len(topics)}")

    for topic in topics:
        print_header(topic.title or f"Topic {topic.id}", "-")
        print(f"  Student posts: {topic.total_student_posts}")
        print(f"  Teacher replies: {topic.total_teacher_replies}")
        for teacher, count in sorted(topic.teacher_reply_stats.items()):
            print(f"    {teacher}: {count}")

        needing = topic.students_needing_grades
        print(f"  Needing grades: {len(needing)}")
        for student in needing:
            feedback = f" (feedback from {', '.join(sorted(student.teacher_feedback))})" if student.teacher_feedback else ""
            print(f"    - {student.name}, posted {student.post_date}{feedback}")

    notes = collector.last_correlator.notes if collector.last_correlator else None
    if notes and notes.failed_assignments:
        print(f"\nWarning: submissions incomplete for {notes.failed_assignments} assignment(s)")
        for message in notes.messages:
            print(f"  {message}")

    if args.json:
        output_path = Path(args.json)
        output_path.parent.mkdir(parents=True, exist_ok=True)
        with open(output_path, "w", encoding="utf-8") as f:
            json.dump({
                "source": result.source,
                "topics": [t.to_dict() for t in topics],
                "notes": notes.to_dict() if notes else {},
            }, f, indent=2, ensure_ascii=False)
        print(f"\nOutput saved to: {output_path}")

    return 0


def main():
    parser = argparse.ArgumentParser(
        description="Show which graded discussion posts still need grades",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("-c", "--course", help="Canvas course ID (default CANVAS_COURSE_ID)")
    parser.add_argument("--refresh", action="store_true", help="Ignore cached Canvas data")
    parser.add_argument("--clear-cache", action="store_true", help="Delete cached data for the course first")
    parser.add_argument("--clear-all-cache", action="store_true", help="Delete cached data for every course first")
    parser.add_argument("-j", "--json", help="Write results to a JSON file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")

    args = parser.parse_args()
    setup_logging(args.verbose)
    sys.exit(run(args))


if __name__ == "__main__":
    main()
