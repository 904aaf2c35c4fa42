"""
Grading module for Canvas Participation Verify.

Correlates graded discussion posts with assignment submissions and teacher
replies.
"""

from grading.models import DiscussionPost, Submission, StudentStatus, GradingTopic, id_key
from grading.correlator import SubmissionGradeCorrelator, correlate_grading

__all__ = [
    "DiscussionPost",
    "Submission",
    "StudentStatus",
    "GradingTopic",
    "id_key",
    "SubmissionGradeCorrelator",
    "correlate_grading",
]
