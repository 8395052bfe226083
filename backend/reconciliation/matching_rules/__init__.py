"""
Matching Rules Module
"""

from .category_rules import (
    CategoryClassifier,
    DEFAULT_CATEGORY_MAPPING,
    FALLBACK_CATEGORY,
    classify,
    default_classifier
)
from .manual_duplicate_rules import (
    CandidateWindow,
    ManualDuplicateRules,
    descriptions_match,
    manual_duplicate_rules,
    normalize_description
)

__all__ = [
    "CategoryClassifier",
    "DEFAULT_CATEGORY_MAPPING",
    "FALLBACK_CATEGORY",
    "classify",
    "default_classifier",
    "CandidateWindow",
    "ManualDuplicateRules",
    "descriptions_match",
    "manual_duplicate_rules",
    "normalize_description",
]
