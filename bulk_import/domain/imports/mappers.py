"""
Row mappers: turn one normalized CSV row into the record shape of the import
type's destination table.

One mapper class per import type, selected through ``get_row_mapper``. A
mapper raises ``RowMappingError`` for a row it cannot use; the orchestrator
records that row as a diagnostic and moves on.
"""
import re
from typing import Any, Dict, List, Optional

from bulk_import.core.config import settings
from bulk_import.domain.imports.types import ImportType, RowMappingError
from bulk_import.utils.date import parse_flexible_date
from bulk_import.utils.numbers import coerce_float, coerce_int
from bulk_import.utils.phone import standardize_phone

EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def first_value(row: Dict[str, str], *keys: str) -> Optional[str]:
    """Return the first non-empty value among ``keys`` (legacy header aliases)."""
    for key in keys:
        value = row.get(key)
        if value is None:
            continue
        value = value.strip()
        if value:
            return value
    return None


def clean_email(value: Optional[str]) -> Optional[str]:
    if value is None:
        return None
    value = value.strip().lower()
    return value or None


class RowMapper:
    """Base strategy; subclasses declare their columns and build the record."""

    import_type: ImportType
    table_name: str
    required_columns: List[str] = []

    def map_row(self, row: Dict[str, str], job: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    def missing_columns(self, headers: List[str]) -> List[str]:
        present = set(headers)
        return [column for column in self.required_columns if column not in present]


class ContactRowMapper(RowMapper):
    import_type = ImportType.CONTACTS
    table_name = "contacts"
    required_columns = ["first_name"]

    def map_row(self, row: Dict[str, str], job: Dict[str, Any]) -> Dict[str, Any]:
        first_name = first_value(row, "first_name")
        if not first_name:
            raise RowMappingError("Missing required field: first_name")

        return {
            "org_id": job["org_id"],
            "first_name": first_name,
            "last_name": first_value(row, "last_name") or "",
            "email": clean_email(first_value(row, "email")),
            "phone": first_value(row, "phone"),
            "company": first_value(row, "company"),
            "job_title": first_value(row, "job_title"),
            "status": first_value(row, "status") or "new",
            "source": first_value(row, "source") or "bulk_import",
            "city": first_value(row, "city", "location_city"),
            "state": first_value(row, "state", "location_state"),
            "country": first_value(row, "country"),
            "address": first_value(row, "address"),
            "postal_code": first_value(row, "postal_code", "location_zip"),
            "website": first_value(row, "website"),
            "linkedin_url": first_value(row, "linkedin_url"),
            "notes": first_value(row, "notes"),
            "created_by": job["user_id"],
        }


class EmailRecipientRowMapper(RowMapper):
    import_type = ImportType.EMAIL_RECIPIENTS
    table_name = "email_campaign_recipients"
    required_columns = ["email"]

    def map_row(self, row: Dict[str, str], job: Dict[str, Any]) -> Dict[str, Any]:
        email = clean_email(first_value(row, "email"))
        if not email:
            raise RowMappingError("Missing required field: email")
        return {
            "campaign_id": job.get("target_id"),
            "contact_id": None,
            "email": email,
            "custom_data": dict(row),
            "status": "pending",
        }


class WhatsAppRecipientRowMapper(RowMapper):
    import_type = ImportType.WHATSAPP_RECIPIENTS
    table_name = "whatsapp_campaign_recipients"
    required_columns = ["email"]

    def map_row(self, row: Dict[str, str], job: Dict[str, Any]) -> Dict[str, Any]:
        raw_phone = first_value(row, "phone", "phone_number", "mobile", "whatsapp")
        if not raw_phone:
            raise RowMappingError("Missing required field: phone")
        phone_number = standardize_phone(
            raw_phone,
            default_country_code=settings.whatsapp_default_country_code,
        )
        if not phone_number:
            raise RowMappingError(f"Invalid phone number: {raw_phone}")
        return {
            "campaign_id": job.get("target_id"),
            "contact_id": None,
            "phone_number": phone_number,
            "custom_data": dict(row),
            "status": "pending",
        }


class RepositoryRowMapper(RowMapper):
    import_type = ImportType.REDEFINE_REPOSITORY
    table_name = "redefine_data_repository"
    required_columns = ["name"]

    EMAIL_FIELDS = ("official_email", "personal_email", "generic_email")

    def map_row(self, row: Dict[str, str], job: Dict[str, Any]) -> Dict[str, Any]:
        record = {
            "org_id": job["org_id"],
            "name": first_value(row, "name"),
            "designation": first_value(row, "designation"),
            "department": first_value(row, "deppt", "department"),
            "job_level": first_value(row, "job_level_updated", "job_level"),
            "linkedin_url": first_value(row, "linkedin", "linkedin_url"),
            "mobile_number": first_value(row, "mobilenumb", "mobile_number"),
            "mobile_2": first_value(row, "mobile2", "mobile_2"),
            "official_email": clean_email(first_value(row, "official", "official_email")),
            "personal_email": clean_email(first_value(row, "personalemailid", "personal_email")),
            "generic_email": clean_email(first_value(row, "generic_email_id", "generic_email")),
            "industry_type": first_value(row, "industry_type"),
            "sub_industry": first_value(row, "sub_industry"),
            "company_name": first_value(row, "company_name"),
            "address": first_value(row, "address"),
            "location": first_value(row, "location"),
            "city": first_value(row, "city"),
            "state": first_value(row, "state"),
            "zone": first_value(row, "zone"),
            "tier": first_value(row, "tier"),
            "pincode": first_value(row, "pincode"),
            "website": first_value(row, "website"),
            "turnover": first_value(row, "turnover"),
            "employee_size": first_value(row, "emp_size", "employee_size"),
            "erp_name": first_value(row, "erp_name"),
            "erp_vendor": first_value(row, "erp_vendor"),
            "created_by": job["user_id"],
        }

        if not record["name"]:
            raise RowMappingError("Missing required field: name")

        for field in self.EMAIL_FIELDS:
            value = record[field]
            if value and not EMAIL_PATTERN.match(value):
                raise RowMappingError(f"Invalid email format in {field}: {value}")

        return record


class InventoryRowMapper(RowMapper):
    import_type = ImportType.INVENTORY
    table_name = "inventory_items"
    required_columns = ["item_id_sku"]

    TEXT_FIELDS = (
        "item_name", "brand", "category", "subcategory", "grade_class", "material",
        "finish_coating", "thread_pitch", "head_type", "drive_type", "standard_spec",
        "diameter_mm", "length_mm", "uom", "storage_location", "warehouse_branch",
        "supplier_name", "supplier_code", "purchase_order_no", "hsn_code", "batch_no",
        "heat_no", "inspection_status", "certificate_no", "customer_project",
        "remarks_notes", "image_ref", "issued_to",
    )
    INTEGER_FIELDS = ("reorder_level", "reorder_qty", "lead_time_days")
    DECIMAL_FIELDS = (
        "last_purchase_price", "selling_price", "discount_pct", "gst_pct", "weight_per_unit",
    )
    DATE_FIELDS = ("last_purchase_date", "last_sale_date", "date_of_entry", "expiry_review_date")

    def map_row(self, row: Dict[str, str], job: Dict[str, Any]) -> Dict[str, Any]:
        sku = first_value(row, "item_id_sku")
        if not sku:
            raise RowMappingError("Missing required field: item_id_sku")

        record: Dict[str, Any] = {
            "org_id": job["org_id"],
            "item_id_sku": sku,
            "available_qty": coerce_int(row.get("available_qty"), default=0),
        }
        for field in self.TEXT_FIELDS:
            record[field] = first_value(row, field)
        for field in self.INTEGER_FIELDS:
            record[field] = coerce_int(row.get(field))
        for field in self.DECIMAL_FIELDS:
            record[field] = coerce_float(row.get(field))
        for field in self.DATE_FIELDS:
            record[field] = parse_flexible_date(row.get(field), log_context=field)

        record["created_by"] = job["user_id"]
        record["import_job_id"] = job["id"]
        return record


_MAPPERS = {
    mapper.import_type: mapper
    for mapper in (
        ContactRowMapper(),
        EmailRecipientRowMapper(),
        WhatsAppRecipientRowMapper(),
        RepositoryRowMapper(),
        InventoryRowMapper(),
    )
}


def get_row_mapper(import_type: ImportType) -> RowMapper:
    try:
        return _MAPPERS[ImportType(import_type)]
    except (KeyError, ValueError):
        raise ValueError(f"Unknown import type: {import_type}") from None
