"""
Bank Statement Parser

Turns uploaded CSV/XLSX statements into ImportedRow values:
- delimiter sniffing (";" vs ",")
- heuristic column detection by header keywords (English and Greek)
- amounts in Greek (1.234,56) or US (1,234.56) notation
- deterministic external ids for statements that carry none
"""

import csv
import io
import logging
import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, List, Optional

import openpyxl

from ingestion.models import ImportFileType
from reconciliation.mapping import synthesize_external_id, to_utc
from reconciliation.models import ImportedRow

logger = logging.getLogger(__name__)


# ==================== CONSTANTS ====================

# Header keywords, matched as substrings of the lowercased column name.
# Keywords are tried in order; the first column containing a keyword is used.
COLUMN_KEYWORDS = {
    "date": ["date", "hmerominia", "transaction date", "booking date", "time"],
    "amount": ["amount", "poso", "value", "euro", "eur"],
    "description": ["description", "perigrafi", "details", "memo", "notes", "transaction details"],
}

UNKNOWN_DESCRIPTION = "Unknown Transaction"

# Supported date formats for parsing (ISO is tried first)
DATE_FORMATS = [
    "%d/%m/%Y",        # 15/01/2025
    "%d-%m-%Y",        # 15-01-2025
    "%d/%m/%y",        # 15/1/25
]

GREEK_AMOUNT_PATTERN = re.compile(r"^[+-]?(?:\d{1,3}(?:\.\d{3})+|\d+)(?:,\d+)?$")
US_AMOUNT_PATTERN = re.compile(r"^[+-]?(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?$")


# ==================== VALUE PARSING ====================

def parse_amount(value: Any) -> Optional[Decimal]:
    """
    Parse a statement amount.

    Greek notation is tried first, then US notation. Returns None when
    the value is neither.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, (int, float, Decimal)):
        return Decimal(str(value))

    value_str = str(value).replace("€", "")
    value_str = re.sub(r"\s", "", value_str)
    if not value_str:
        return None

    try:
        if GREEK_AMOUNT_PATTERN.match(value_str):
            return Decimal(value_str.replace(".", "").replace(",", "."))
        if US_AMOUNT_PATTERN.match(value_str):
            return Decimal(value_str.replace(",", ""))
    except InvalidOperation:
        return None

    return None


def parse_date(value: Any) -> Optional[datetime]:
    """Parse a statement date; returns None for anything unrecognised."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)

    if not value:
        return None

    value_str = str(value).strip()

    try:
        return datetime.fromisoformat(value_str)
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value_str, fmt)
        except ValueError:
            continue

    return None


# ==================== PARSER ====================

class StatementParser:
    """Parses bank statement files into ImportedRow lists."""

    def __init__(self, currency: str = "EUR"):
        self.currency = currency

    def parse(self, file_content: bytes, extension: str) -> List[ImportedRow]:
        try:
            file_type = ImportFileType(extension.lower().lstrip("."))
        except ValueError:
            raise ValueError(f"Unsupported file type: {extension}")

        if file_type == ImportFileType.CSV:
            return self.parse_csv(file_content)
        return self.parse_excel(file_content)

    def parse_csv(self, file_content: bytes) -> List[ImportedRow]:
        """Parse CSV statement content."""
        text = file_content.decode("utf-8-sig")
        first_line = text.split("\n", 1)[0]
        delimiter = ";" if ";" in first_line else ","

        reader = csv.DictReader(io.StringIO(text), delimiter=delimiter)
        if reader.fieldnames:
            reader.fieldnames = [name.strip().lower() for name in reader.fieldnames]

        rows = self._rows_from_records(reader)
        logger.info(f"Parsed {len(rows)} rows from CSV statement (delimiter {delimiter!r})")
        return rows

    def parse_excel(self, file_content: bytes) -> List[ImportedRow]:
        """Parse the first sheet of an Excel statement; row one is the header."""
        wb = openpyxl.load_workbook(io.BytesIO(file_content), read_only=True, data_only=True)
        try:
            sheet = wb.active
            records = []
            columns: List[str] = []

            for i, row in enumerate(sheet.iter_rows(values_only=True)):
                if i == 0:
                    columns = [str(c).strip().lower() if c is not None else f"column_{j}" for j, c in enumerate(row)]
                    continue
                records.append({columns[j]: cell for j, cell in enumerate(row) if j < len(columns)})
        finally:
            wb.close()

        rows = self._rows_from_records(records)
        logger.info(f"Parsed {len(rows)} rows from Excel statement")
        return rows

    def _rows_from_records(self, records: Iterable[Dict[Optional[str], Any]]) -> List[ImportedRow]:
        rows = []
        for record in records:
            record = {key: value for key, value in record.items() if key is not None}

            when = self._find_date(record)
            amount = self._find_amount(record)
            description = self._find_description(record)

            # Rows without a usable date or amount are summary/balance lines
            if when is None or not amount:
                continue

            rows.append(ImportedRow(
                amount=amount,
                date=when,
                external_id=synthesize_external_id(to_utc(when), amount, description),
                description=description,
                category=None,
                currency=self.currency,
            ))
        return rows

    @staticmethod
    def _find_column(record: Dict[str, Any], keyword: str) -> Optional[str]:
        for key in record:
            if keyword in key:
                return key
        return None

    def _find_date(self, record: Dict[str, Any]) -> Optional[datetime]:
        for keyword in COLUMN_KEYWORDS["date"]:
            key = self._find_column(record, keyword)
            if key is None or _is_blank(record[key]):
                continue
            parsed = parse_date(record[key])
            if parsed is not None:
                return parsed
        return None

    def _find_amount(self, record: Dict[str, Any]) -> Decimal:
        for keyword in COLUMN_KEYWORDS["amount"]:
            key = self._find_column(record, keyword)
            if key is None or _is_blank(record[key]):
                continue
            parsed = parse_amount(record[key])
            if parsed is not None:
                return parsed
        return Decimal("0")

    def _find_description(self, record: Dict[str, Any]) -> str:
        for keyword in COLUMN_KEYWORDS["description"]:
            key = self._find_column(record, keyword)
            if key is not None and record[key] is not None:
                return str(record[key])
        return UNKNOWN_DESCRIPTION


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())
