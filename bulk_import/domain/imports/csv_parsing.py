"""
Line tokenizer and header normalizer for uploaded CSV files.

The file is split into lines before tokenization, so quoted values cannot
span lines; a line that ends inside an open quote is rejected as a row error.
"""
import re
from typing import Dict, List, Optional

from bulk_import.domain.imports.types import CsvLineError, ImportType

_WHITESPACE_RUN = re.compile(r"\s+")
_NON_KEY_CHARS = re.compile(r"[^a-z0-9_]")

# Spreadsheet exports title inventory columns with slashes, units and percent
# signs that collapse into awkward keys under generic normalization.
INVENTORY_HEADER_ALIASES: Dict[str, str] = {
    "item_id__sku": "item_id_sku",
    "item_id_sku": "item_id_sku",
    "sku": "item_id_sku",
    "item_id": "item_id_sku",
    "grade__class": "grade_class",
    "finish__coating": "finish_coating",
    "thread_pitch_mm": "thread_pitch",
    "standard__spec": "standard_spec",
    "diameter": "diameter_mm",
    "length": "length_mm",
    "unit_of_measure": "uom",
    "available_quantity": "available_qty",
    "qty": "available_qty",
    "warehouse__branch": "warehouse_branch",
    "last_purchase_price_": "last_purchase_price",
    "selling_price_": "selling_price",
    "discount_": "discount_pct",
    "discount": "discount_pct",
    "gst_": "gst_pct",
    "gst": "gst_pct",
    "hsn": "hsn_code",
    "hsn__sac_code": "hsn_code",
    "customer__project": "customer_project",
    "remarks__notes": "remarks_notes",
    "remarks": "remarks_notes",
    "weight__unit": "weight_per_unit",
    "weight_per_unit_kg": "weight_per_unit",
    "weight__unit_kg": "weight_per_unit",
    "expiry__review_date": "expiry_review_date",
    "lead_time": "lead_time_days",
    "po_no": "purchase_order_no",
    "image__ref": "image_ref",
    "cert_no": "certificate_no",
}


def parse_csv_line(line: str) -> List[str]:
    """
    Split one CSV line into field values.

    Commas inside double quotes are literal and ``""`` inside a quoted field
    is one quote character. Whitespace around unquoted values is trimmed; the
    enclosing quotes of a quoted value are dropped and its content kept as-is.

    Raises:
        CsvLineError: if the line ends inside an open quoted field
    """
    values: List[str] = []
    current: List[str] = []
    in_quotes = False
    was_quoted = False
    pending_space: List[str] = []

    i = 0
    length = len(line)
    while i < length:
        char = line[i]

        if in_quotes:
            if char == '"':
                if i + 1 < length and line[i + 1] == '"':
                    current.append('"')
                    i += 1
                else:
                    in_quotes = False
            else:
                current.append(char)
        elif char == '"':
            if not was_quoted and not "".join(current).strip():
                # Opening quote: anything before it was padding.
                current = []
            elif pending_space:
                current.extend(pending_space)
                pending_space = []
            in_quotes = True
            was_quoted = True
        elif char == ',':
            values.append(_finish_field(current, was_quoted))
            current = []
            pending_space = []
            was_quoted = False
        elif was_quoted and char.isspace():
            # Dropped unless more text follows before the comma
            pending_space.append(char)
        else:
            if pending_space:
                current.extend(pending_space)
                pending_space = []
            current.append(char)
        i += 1

    if in_quotes:
        raise CsvLineError("Unterminated quoted field")

    values.append(_finish_field(current, was_quoted))
    return values


def _finish_field(chars: List[str], was_quoted: bool) -> str:
    value = "".join(chars)
    return value if was_quoted else value.strip()


def normalize_header(header: str) -> str:
    """Lowercase, turn whitespace runs into "_" and drop anything outside [a-z0-9_]."""
    collapsed = _WHITESPACE_RUN.sub("_", header.strip().lower())
    return _NON_KEY_CHARS.sub("", collapsed)


def normalize_headers(raw_headers: List[str], import_type: Optional[ImportType] = None) -> List[str]:
    """Normalize a header row, applying the alias table for import types that define one."""
    headers = [normalize_header(header) for header in raw_headers]
    if import_type == ImportType.INVENTORY:
        headers = [INVENTORY_HEADER_ALIASES.get(header, header) for header in headers]
    return headers


def build_row(headers: List[str], values: List[str]) -> Dict[str, str]:
    """Zip a tokenized line onto the header keys; missing trailing cells become ""."""
    row: Dict[str, str] = {}
    for idx, header in enumerate(headers):
        if not header:
            continue
        row[header] = values[idx] if idx < len(values) else ""
    return row


def split_lines(text: str) -> List[str]:
    """Split file content into lines, dropping blank ones."""
    return [line for line in text.splitlines() if line.strip()]
