"""
Date parsing utilities for flexible date format handling.

Spreadsheet exports carry dates as "20/10/2025", "2025-10-20", "Oct 20, 2025"
and so on; inventory columns store them as ISO dates (YYYY-MM-DD).
"""

import pandas as pd
from typing import Any, Optional
import re
import logging

from bulk_import.core.config import settings

logger = logging.getLogger(__name__)

FAILED_SAMPLE_LIMIT = 5
SUPPRESSION_NOTICE_EVERY = 100

_failure_stats: dict = {}


def _record_parse_failure(value: Any, context: Optional[str], error: Exception) -> None:
    """
    Collect failure stats and emit limited logs (sampled warnings + periodic summaries).
    """
    key = context or "default"
    stats = _failure_stats.setdefault(key, {"count": 0, "samples": []})
    stats["count"] += 1
    count = stats["count"]

    if len(stats["samples"]) < FAILED_SAMPLE_LIMIT:
        stats["samples"].append(value)
        logger.warning("Failed to parse date%s value '%s': %s", f" ({key})" if context else "", value, error)
        return

    if count == FAILED_SAMPLE_LIMIT + 1 or count % SUPPRESSION_NOTICE_EVERY == 0:
        logger.info(
            "Suppressed additional date parse warnings after %d failures%s; sample values=%s",
            count,
            f" ({key})" if context else "",
            stats["samples"],
        )


def parse_flexible_date(value: Any, *, log_context: Optional[str] = None) -> Optional[str]:
    """
    Parse a date value from various formats and return an ISO date string.

    Supports formats:
    - YYYY-MM-DD: "2025-10-20"
    - DD/MM/YYYY: "20/10/2025"
    - MM/DD/YYYY: "10/20/2025"
    - And many others via pandas inference

    Ambiguous numeric dates (both parts <= 12) follow settings.date_default_dayfirst.

    Returns:
        "YYYY-MM-DD" or None if the value is empty or cannot be parsed
    """
    if value is None:
        return None

    text = str(value).strip()
    if text == "":
        return None

    parse_attempts = []

    numeric_match = re.match(r'^\d{1,2}[/.-]\d{1,2}[/.-]\d{2,4}', text)
    if numeric_match:
        parts = re.split(r'[/.-]', numeric_match.group(0))
        first = int(parts[0])
        second = int(parts[1])

        # Decide whether day-first is more plausible
        if first > 12 and second <= 31:
            dayfirst_preferred = True
        elif second > 12 and first <= 12:
            dayfirst_preferred = False
        else:
            dayfirst_preferred = settings.date_default_dayfirst

        parse_attempts.append(dayfirst_preferred)
        parse_attempts.append(not dayfirst_preferred)
    else:
        parse_attempts.append(False)

    last_error = None
    for dayfirst in parse_attempts:
        try:
            parsed = pd.to_datetime(text, dayfirst=dayfirst, errors='raise')
        except (ValueError, TypeError, OverflowError) as exc:
            last_error = exc
            continue
        if pd.isna(parsed):
            continue
        return parsed.strftime('%Y-%m-%d')

    _record_parse_failure(value, log_context, last_error or ValueError("Unable to determine format"))
    return None
