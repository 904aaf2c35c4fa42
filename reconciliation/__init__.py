#!/usr/bin/env python3
"""
Reconciliation Module - Merge participation records about the same people.

Components:
- normalizer: Canonical name strings for comparison
- csv_ingest: Quote-aware CSV parsing for registration and Zoom exports
- identity: Per-source conversion into one Identity shape
- matcher: Fuzzy identity matching with email override
- participants: Master participant list construction
- discrepancies: Self-report vs. Zoom attendance mismatches
"""

from .models import (
    CanvasUser,
    Discrepancy,
    DiscrepancyType,
    Participant,
    ParticipantOrigin,
    ProcessingNotes,
    SessionAttendance,
    Severity,
)
from .normalizer import normalize_name, extract_email_username
from .csv_ingest import parse_csv, load_csv_file
from .identity import Identity, IdentitySource
from .matcher import IdentityMatcher, IdentityMatch, similarity, find_best_match
from .participants import ParticipantReconciler, reconcile
from .discrepancies import detect_discrepancies, analyze_participants

__all__ = [
    "CanvasUser",
    "Discrepancy",
    "DiscrepancyType",
    "Participant",
    "ParticipantOrigin",
    "ProcessingNotes",
    "SessionAttendance",
    "Severity",
    "normalize_name",
    "extract_email_username",
    "parse_csv",
    "load_csv_file",
    "Identity",
    "IdentitySource",
    "IdentityMatcher",
    "IdentityMatch",
    "similarity",
    "find_best_match",
    "ParticipantReconciler",
    "reconcile",
    "detect_discrepancies",
    "analyze_participants",
]
