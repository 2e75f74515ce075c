"""
Test Fixtures Module
====================
Contains sample messages and expected extraction results.
"""

from .sample_messages import (
    EXTRACTION_CASES,
    NO_TEAM_MESSAGES,
    get_cases_with_pairs,
)

__all__ = [
    "EXTRACTION_CASES",
    "NO_TEAM_MESSAGES",
    "get_cases_with_pairs",
]
