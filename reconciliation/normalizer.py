#!/usr/bin/env python3
"""
Name Normalizer - Canonicalize free-text names for comparison.

"Raymond F. Gasser (he/him)", "Gasser, Ray" and "ray gasser" all normalize
to "gasser ray".
"""

import re
from typing import Optional

_PARENTHETICAL_RE = re.compile(r"\s*\([^)]*\)\s*")
_SINGLE_LETTER_RE = re.compile(r"\b[a-z]\b")
_PUNCTUATION_RE = re.compile(r"[^\w\s]")

# Nickname equivalences, normalized to the shortest common form
NICKNAMES = {
    "steven": "steve",
    "stephen": "steve",
    "jonathan": "jon",
    "jonathon": "jon",
    "timothy": "tim",
    "nathaniel": "nate",
    "nathan": "nate",
    "raymond": "ray",
    "kimberly": "kim",
    "kimberlyn": "kim",
    "josephine": "jo",
    "michael": "mike",
    "christopher": "chris",
    "william": "will",
    "robert": "rob",
    "matthew": "matt",
    "daniel": "dan",
}


def normalize_name(name: Optional[str]) -> str:
    """
    Normalize a name into a sorted, space-separated token string.

    Steps: lower-case, drop parenthetical asides such as pronouns, drop
    middle initials, strip punctuation, collapse whitespace, map nicknames,
    then sort the words so "Last, First" equals "First Last".

    Args:
        name: Free-text name (None and "" are allowed)

    Returns:
        Normalized name, "" for empty input
    """
    if not name:
        return ""

    text = str(name).lower()
    text = _PARENTHETICAL_RE.sub(" ", text)
    text = _SINGLE_LETTER_RE.sub("", text)
    text = _PUNCTUATION_RE.sub("", text)

    words = []
    for word in text.split():
        # punctuation removal can expose new initials ("j.")
        if len(word) == 1 and "a" <= word <= "z":
            continue
        words.append(NICKNAMES.get(word, word))

    return " ".join(sorted(words))


def extract_email_username(email: Optional[str]) -> str:
    """Return the lower-cased local part of an email, or "" if it has no "@"."""
    if not email or "@" not in email:
        return ""
    return email.split("@")[0].strip().lower()
