"""
Tests for the per-import-type row mappers.
"""

import pytest

from bulk_import.domain.imports.mappers import (
    ContactRowMapper,
    InventoryRowMapper,
    RepositoryRowMapper,
    WhatsAppRecipientRowMapper,
    get_row_mapper,
)
from bulk_import.domain.imports.types import ImportType, RowMappingError

JOB = {
    "id": "job-1",
    "org_id": "org-1",
    "user_id": "user-1",
    "target_id": "campaign-1",
}


class TestMapperDispatch:

    @pytest.mark.parametrize("import_type", list(ImportType))
    def test_every_import_type_has_a_mapper(self, import_type):
        assert get_row_mapper(import_type).import_type == import_type

    def test_unknown_type(self):
        with pytest.raises(ValueError, match="Unknown import type"):
            get_row_mapper("spreadsheets")

    @pytest.mark.parametrize("import_type,column", [
        ("contacts", "first_name"),
        ("redefine_repository", "name"),
        ("inventory", "item_id_sku"),
        ("email_recipients", "email"),
        ("whatsapp_recipients", "email"),
    ])
    def test_required_columns(self, import_type, column):
        mapper = get_row_mapper(import_type)
        assert mapper.missing_columns([]) == [column]
        assert mapper.missing_columns([column, "other"]) == []


class TestContactRowMapper:

    def test_maps_contact_with_aliases_and_defaults(self):
        record = ContactRowMapper().map_row({
            "first_name": " Alice ",
            "email": " Alice@Example.COM ",
            "location_city": "Pune",
            "location_zip": "411001",
        }, JOB)
        assert record["first_name"] == "Alice"
        assert record["last_name"] == ""
        assert record["email"] == "alice@example.com"
        assert record["city"] == "Pune"
        assert record["postal_code"] == "411001"
        assert record["status"] == "new"
        assert record["source"] == "bulk_import"
        assert record["org_id"] == "org-1"
        assert record["created_by"] == "user-1"

    def test_blank_first_name_is_rejected(self):
        with pytest.raises(RowMappingError, match="first_name"):
            ContactRowMapper().map_row({"first_name": "  ", "email": "a@x.com"}, JOB)


class TestRecipientRowMappers:

    def test_email_recipient_keeps_row_as_custom_data(self):
        row = {"email": "Bob@X.com", "city": "Delhi"}
        record = get_row_mapper("email_recipients").map_row(row, JOB)
        assert record["email"] == "bob@x.com"
        assert record["campaign_id"] == "campaign-1"
        assert record["custom_data"] == row

    def test_whatsapp_recipient_standardizes_phone(self):
        record = WhatsAppRecipientRowMapper().map_row({"email": "", "phone": "+91 98765-43210"}, JOB)
        assert record["phone_number"] == "+919876543210"

    def test_whatsapp_recipient_requires_plausible_phone(self):
        mapper = WhatsAppRecipientRowMapper()
        with pytest.raises(RowMappingError, match="Missing required field: phone"):
            mapper.map_row({"email": "a@x.com"}, JOB)
        with pytest.raises(RowMappingError, match="Invalid phone number"):
            mapper.map_row({"email": "a@x.com", "phone": "123"}, JOB)


class TestRepositoryRowMapper:

    def test_legacy_headers(self):
        record = RepositoryRowMapper().map_row({
            "name": "Ravi",
            "deppt": "IT",
            "mobilenumb": "9876543210",
            "personalemailid": "Ravi@Gmail.com",
            "official": "ravi@corp.in",
        }, JOB)
        assert record["department"] == "IT"
        assert record["mobile_number"] == "9876543210"
        assert record["personal_email"] == "ravi@gmail.com"
        assert record["official_email"] == "ravi@corp.in"

    def test_invalid_email_is_rejected(self):
        with pytest.raises(RowMappingError, match="official_email"):
            RepositoryRowMapper().map_row({"name": "Ravi", "official_email": "not-an-email"}, JOB)

    def test_missing_name_is_rejected(self):
        with pytest.raises(RowMappingError, match="name"):
            RepositoryRowMapper().map_row({"personal_email": "a@x.com"}, JOB)


class TestInventoryRowMapper:

    def test_coerces_typed_columns(self):
        record = InventoryRowMapper().map_row({
            "item_id_sku": "BOLT-M8",
            "item_name": "Hex bolt",
            "available_qty": "1,200",
            "reorder_level": "50.0",
            "selling_price": "₹12.50",
            "gst_pct": "18%",
            "last_purchase_date": "20/10/2025",
        }, JOB)
        assert record["item_id_sku"] == "BOLT-M8"
        assert record["available_qty"] == 1200
        assert record["reorder_level"] == 50
        assert record["selling_price"] == 12.5
        assert record["gst_pct"] == 18.0
        assert record["last_purchase_date"] == "2025-10-20"
        assert record["import_job_id"] == "job-1"

    def test_missing_quantity_defaults_to_zero(self):
        record = InventoryRowMapper().map_row({"item_id_sku": "NUT-M8", "available_qty": "n/a"}, JOB)
        assert record["available_qty"] == 0
        assert record["selling_price"] is None
        assert record["last_sale_date"] is None

    def test_missing_sku_is_rejected(self):
        with pytest.raises(RowMappingError, match="item_id_sku"):
            InventoryRowMapper().map_row({"item_name": "Washer"}, JOB)
