"""
Category Rules

Keyword classifier mapping a bank category hint or a statement description
onto one of the app's transaction categories.

The keyword table is an ordered sequence of (keyword, category) pairs.
The first keyword contained in the lowercased text wins; there is no
scoring, so declaration order decides ties ("bakery" vs "food").
"""

from typing import Optional, Sequence, Tuple

CategoryMapping = Sequence[Tuple[str, str]]

FALLBACK_CATEGORY = "Other"

DEFAULT_CATEGORY_MAPPING: Tuple[Tuple[str, str], ...] = (
    # Food & Dining
    ("groceries", "Food & Groceries"),
    ("supermarket", "Food & Groceries"),
    ("market", "Food & Groceries"),
    ("food", "Food & Dining"),
    ("restaurant", "Food & Dining"),
    ("dining", "Food & Dining"),
    ("coffee", "Food & Dining"),
    ("cafe", "Food & Dining"),
    ("starbucks", "Food & Dining"),
    ("mcdonald", "Food & Dining"),
    ("burger", "Food & Dining"),
    ("pizza", "Food & Dining"),
    ("bakery", "Food & Groceries"),

    # Transportation
    ("transport", "Transportation"),
    ("taxi", "Transportation"),
    ("uber", "Transportation"),
    ("lyft", "Transportation"),
    ("fuel", "Transportation"),
    ("gas", "Transportation"),
    ("petrol", "Transportation"),
    ("train", "Transportation"),
    ("bus", "Transportation"),
    ("metro", "Transportation"),
    ("parking", "Transportation"),
    ("airline", "Transportation"),
    ("flight", "Transportation"),
    ("travel", "Transportation"),

    # Shopping
    ("shopping", "Shopping"),
    ("retail", "Shopping"),
    ("amazon", "Shopping"),
    ("clothing", "Shopping"),
    ("fashion", "Shopping"),
    ("store", "Shopping"),

    # Bills & Utilities
    ("bill", "Bills & Utilities"),
    ("utilities", "Bills & Utilities"),
    ("electric", "Bills & Utilities"),
    ("water", "Bills & Utilities"),
    ("energy", "Bills & Utilities"),
    ("phone", "Phone"),
    ("mobile", "Phone"),
    ("internet", "Internet"),
    ("broadband", "Internet"),
    ("rent", "Rent/Mortgage"),
    ("mortgage", "Rent/Mortgage"),

    # Entertainment
    ("entertainment", "Entertainment"),
    ("movie", "Entertainment"),
    ("cinema", "Entertainment"),
    ("theatre", "Entertainment"),
    ("spotify", "Subscription"),
    ("netflix", "Subscription"),
    ("prime", "Subscription"),
    ("subscription", "Subscription"),

    # Health
    ("health", "Healthcare"),
    ("medical", "Healthcare"),
    ("pharmacy", "Healthcare"),
    ("doctor", "Healthcare"),
    ("gym", "Gym/Fitness"),
    ("fitness", "Gym/Fitness"),
    ("sport", "Gym/Fitness"),

    # Income / Financial
    ("salary", "Salary"),
    ("payroll", "Salary"),
    ("income", "Income"),
    ("interest", "Investment"),
    ("dividend", "Investment"),
    ("transfer", "Transfer"),
    ("credit", "Income"),

    # Insurance
    ("insurance", "Insurance"),
    ("assurance", "Insurance"),

    # Fallback
    ("other", "other"),
)


class CategoryClassifier:
    """
    Deterministic keyword classifier.

    Never raises and never returns None: anything unmatched (or a
    non-string input) falls through to FALLBACK_CATEGORY.
    """

    def __init__(
        self,
        mapping: CategoryMapping = DEFAULT_CATEGORY_MAPPING,
        fallback: str = FALLBACK_CATEGORY
    ):
        self.mapping: Tuple[Tuple[str, str], ...] = tuple(
            (keyword.lower(), category) for keyword, category in mapping
        )
        self.fallback = fallback

    def classify(self, category_hint: Optional[str] = None, description: Optional[str] = None) -> str:
        for text in (category_hint, description):
            match = self._first_match(text)
            if match is not None:
                return match
        return self.fallback

    def _first_match(self, text: Optional[str]) -> Optional[str]:
        if not text or not isinstance(text, str):
            return None

        lower = text.lower()
        for keyword, category in self.mapping:
            if keyword in lower:
                return category
        return None


# Default classifier instance
default_classifier = CategoryClassifier()


def classify(category_hint: Optional[str] = None, description: Optional[str] = None) -> str:
    """Classify with the default keyword table."""
    return default_classifier.classify(category_hint, description)
