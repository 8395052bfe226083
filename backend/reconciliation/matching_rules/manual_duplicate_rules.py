"""
Manual Duplicate Rules

Decides whether a bank statement row is the same movement as a transaction
the user already entered by hand (e.g. "rent 800" typed in on the 1st and
the same charge arriving with the month-end statement).

Primary Match Keys:
- date within +/- DATE_TOLERANCE_DAYS
- amount within max(AMOUNT_TOLERANCE_PERCENT of |amount|, MIN_AMOUNT_TOLERANCE)

Secondary Check:
- normalised description overlap (substring or a shared word of 3+ chars)

The store is asked for a widened candidate window; the exact decision is
then taken in memory per candidate.
"""

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, Optional, Set

from reconciliation.models import CandidateTransaction

# Bank boilerplate carried by most statement narratives
BOILERPLATE_PATTERN = re.compile(r"\b(?:DEBIT|CREDIT|SEPA)\b|\bREF:\S*", re.IGNORECASE)
DATE_FRAGMENT_PATTERN = re.compile(r"\d{1,2}/\d{1,2}(?:/\d{2,4})?")
NON_ALNUM_PATTERN = re.compile(r"[^\w\s]|_")
WHITESPACE_PATTERN = re.compile(r"\s+")

MIN_WORD_LENGTH = 3


def normalize_description(description: Optional[str]) -> str:
    """Lowercase and strip boilerplate, dates and punctuation from a description."""
    if not description:
        return ""

    text = description.lower()
    text = BOILERPLATE_PATTERN.sub("", text)
    text = DATE_FRAGMENT_PATTERN.sub("", text)
    text = NON_ALNUM_PATTERN.sub("", text)
    text = WHITESPACE_PATTERN.sub(" ", text)
    return text.strip()


def significant_words(normalized: str) -> Set[str]:
    return {word for word in normalized.split(" ") if len(word) >= MIN_WORD_LENGTH}


def descriptions_match(first: Optional[str], second: Optional[str]) -> bool:
    """
    Compare two descriptions after normalisation.

    An empty side always matches: a manual entry with no description is
    decided on date and amount alone.
    """
    a = normalize_description(first)
    b = normalize_description(second)

    if not a or not b:
        return True

    if a in b or b in a:
        return True

    return bool(significant_words(a) & significant_words(b))


@dataclass(frozen=True)
class CandidateWindow:
    """Range the store is searched in for manual duplicate candidates."""
    date_min: datetime
    date_max: datetime
    amount_min: Decimal
    amount_max: Decimal


class ManualDuplicateRules:
    """
    Matching rules for statement rows against manual transactions.
    """

    # Tolerances
    DATE_TOLERANCE_DAYS = 3
    AMOUNT_TOLERANCE_PERCENT = Decimal("0.01")  # 1% tolerance
    MIN_AMOUNT_TOLERANCE = Decimal("0.01")

    def __init__(
        self,
        date_tolerance_days: Optional[int] = None,
        amount_tolerance_percent: Optional[Decimal] = None,
        min_amount_tolerance: Optional[Decimal] = None
    ):
        self.date_tolerance_days = (
            self.DATE_TOLERANCE_DAYS if date_tolerance_days is None else date_tolerance_days
        )
        self.amount_tolerance_percent = Decimal(str(
            self.AMOUNT_TOLERANCE_PERCENT if amount_tolerance_percent is None else amount_tolerance_percent
        ))
        self.min_amount_tolerance = Decimal(str(
            self.MIN_AMOUNT_TOLERANCE if min_amount_tolerance is None else min_amount_tolerance
        ))

    @classmethod
    def from_settings(cls, settings) -> "ManualDuplicateRules":
        return cls(
            date_tolerance_days=settings.RECON_DATE_TOLERANCE_DAYS,
            amount_tolerance_percent=settings.RECON_AMOUNT_TOLERANCE_PERCENT,
            min_amount_tolerance=settings.RECON_MIN_AMOUNT_TOLERANCE,
        )

    def candidate_window(self, amount: Decimal, when: datetime) -> CandidateWindow:
        """Widened date/amount window to fetch candidates for a row."""
        target = abs(amount)
        tolerance = max(target * self.amount_tolerance_percent, self.min_amount_tolerance)
        days = timedelta(days=self.date_tolerance_days)

        return CandidateWindow(
            date_min=when - days,
            date_max=when + days,
            amount_min=target - tolerance,
            amount_max=target + tolerance,
        )

    def amounts_match(self, candidate_amount: Decimal, amount: Decimal) -> bool:
        """Exact amount test, taken relative to the larger of the two amounts."""
        candidate = abs(Decimal(str(candidate_amount)))
        target = abs(amount)
        diff = abs(candidate - target)

        if diff < self.min_amount_tolerance:
            return True

        larger = max(candidate, target)
        if larger == 0:
            return False

        return diff / larger <= self.amount_tolerance_percent

    def find_match(
        self,
        description: Optional[str],
        amount: Decimal,
        candidates: Iterable[CandidateTransaction]
    ) -> Optional[CandidateTransaction]:
        """
        Return the first candidate matching both amount and description.
        """
        for candidate in candidates:
            if not self.amounts_match(candidate.amount, amount):
                continue
            if descriptions_match(candidate.description, description):
                return candidate
        return None


# Instantiate rules engine with default tolerances
manual_duplicate_rules = ManualDuplicateRules()
