"""
Phone number standardization for recipient and contact imports.

WhatsApp recipients are upserted on their phone number, so every spelling of
the same number has to collapse to one key before deduplication.
"""

import re
from typing import Any, Optional
import logging

logger = logging.getLogger(__name__)


def standardize_phone(
    value: Any,
    *,
    default_country_code: Optional[str] = None,
    strip_leading_zeros: bool = True,
    min_digits: int = 7,
    max_digits: int = 15,
) -> Optional[str]:
    """
    Standardize a phone number to E.164-like digits.

    Handles various input formats:
    - (415) 555-1234
    - 415.555.1234
    - +1 415 555 1234
    - +91 98765 43210
    - 098765 43210 (leading trunk zero)

    Args:
        value: Phone number in any format
        default_country_code: Country code to add when the number carries none
                             (e.g., "91"). If None, the local digits are kept as-is.
        strip_leading_zeros: If True, remove leading zeros from local numbers
        min_digits: Minimum number of digits to consider valid (default 7)
        max_digits: Maximum number of digits to consider valid (default 15)

    Returns:
        "+<country><number>" when a country code is known, bare digits otherwise,
        or None if the value is empty or has an implausible digit count.
    """
    if value is None or value == "":
        return None

    text = str(value).strip()
    if not text:
        return None

    digits = re.sub(r'\D', '', text)
    if not digits:
        return None

    if strip_leading_zeros:
        digits = digits.lstrip('0')

    if len(digits) < min_digits or len(digits) > max_digits:
        logger.debug(
            "Phone number '%s' has %d digits, expected between %d and %d",
            value, len(digits), min_digits, max_digits,
        )
        return None

    # Detect if number already has country code (starts with + or has 11+ digits)
    has_country_code = text.startswith('+') or len(digits) > 10

    if has_country_code:
        country_code, local_number = _extract_country_code(digits)
    elif default_country_code:
        country_code, local_number = default_country_code, digits
    else:
        country_code, local_number = None, digits

    if country_code:
        return f"+{country_code}{local_number}"
    return local_number


def _extract_country_code(digits: str) -> tuple[Optional[str], str]:
    """
    Extract country code from a string of digits.

    Returns:
        Tuple of (country_code, local_number)
    """
    # If starts with 1 and has 11 digits total, it's likely +1 (US/Canada)
    if digits.startswith('1') and len(digits) == 11:
        return ('1', digits[1:])

    # India: 91 + 10-digit mobile
    if digits.startswith('91') and len(digits) == 12:
        return ('91', digits[2:])

    # If starts with 44 and has 12+ digits, likely UK
    if digits.startswith('44') and len(digits) >= 12:
        return ('44', digits[2:])

    # If starts with 971 and has 12 digits, likely UAE
    if digits.startswith('971') and len(digits) == 12:
        return ('971', digits[3:])

    # Default: if more than 10 digits, assume first 1-3 are country code
    if len(digits) > 10:
        if len(digits) >= 13:
            return (digits[:3], digits[3:])
        elif len(digits) >= 12:
            return (digits[:2], digits[2:])
        else:
            return (digits[:1], digits[1:])

    # Already flagged as international ("+") but only 10 digits or fewer
    return (None, digits)
