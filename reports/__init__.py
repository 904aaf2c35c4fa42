"""
Reports module for Canvas Participation Verify.

Provides cached Canvas data collection and participation summaries.
"""

from reports.cache import Cache, MemoryCache, JsonFileCache, FetchResult, make_cache
from reports.data_collector import CourseDataCollector, extract_canvas_users
from reports.participation import (
    filter_student_participants,
    calculate_participation_metrics,
    analyze_reflection_completion,
    summarize_discrepancies,
)

__all__ = [
    "Cache",
    "MemoryCache",
    "JsonFileCache",
    "FetchResult",
    "make_cache",
    "CourseDataCollector",
    "extract_canvas_users",
    "filter_student_participants",
    "calculate_participation_metrics",
    "analyze_reflection_completion",
    "summarize_discrepancies",
]
