"""
Declarative models for the import job record, the tenant lookup and the
destination tables the import pipeline writes to.
"""
import uuid
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Float,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.engine import Engine

from bulk_import.db.session import Base, get_engine

# JSONB on PostgreSQL, plain JSON elsewhere (SQLite in tests).
JSONType = JSON().with_variant(JSONB(), "postgresql")


def _utcnow() -> datetime:
    """Return a timezone-aware UTC timestamp."""
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class Organization(Base):
    """Tenant record; only the slug is consulted by the importer."""
    __tablename__ = "organizations"

    id = Column(String(36), primary_key=True, default=_new_id)
    name = Column(String(255), nullable=False)
    slug = Column(String(100), unique=True, nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class ImportJob(Base):
    """One uploaded file moving through the bulk import pipeline."""
    __tablename__ = "import_jobs"

    id = Column(String(36), primary_key=True, default=_new_id)
    org_id = Column(String(36), nullable=False, index=True)
    user_id = Column(String(36), nullable=False)
    file_name = Column(String(500), nullable=False)
    file_path = Column(String(1000), nullable=False)
    import_type = Column(String(50), nullable=False)
    target_id = Column(String(36), nullable=True)

    status = Column(String(20), nullable=False, default="pending", index=True)
    current_stage = Column(String(20), nullable=True)
    stage_details = Column(JSONType, nullable=True)

    total_rows = Column(Integer, default=0)
    processed_rows = Column(Integer, default=0)
    success_count = Column(Integer, default=0)
    error_count = Column(Integer, default=0)
    error_details = Column(JSONType, nullable=True)

    file_cleaned_up = Column(Boolean, default=False)
    file_cleanup_at = Column(DateTime(timezone=True), nullable=True)

    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)
    started_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)


class Contact(Base):
    __tablename__ = "contacts"
    __table_args__ = (
        UniqueConstraint("org_id", "email", name="uq_contacts_org_email"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    org_id = Column(String(36), nullable=False, index=True)
    first_name = Column(Text, nullable=False)
    last_name = Column(Text, default="")
    email = Column(Text, nullable=True)
    phone = Column(Text)
    company = Column(Text)
    job_title = Column(Text)
    status = Column(Text, default="new")
    source = Column(Text, default="bulk_import")
    city = Column(Text)
    state = Column(Text)
    country = Column(Text)
    address = Column(Text)
    postal_code = Column(Text)
    website = Column(Text)
    linkedin_url = Column(Text)
    notes = Column(Text)
    created_by = Column(String(36))
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class EmailCampaignRecipient(Base):
    __tablename__ = "email_campaign_recipients"
    __table_args__ = (
        UniqueConstraint("campaign_id", "email", name="uq_email_recipients_campaign_email"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    campaign_id = Column(String(36), nullable=True, index=True)
    contact_id = Column(String(36), nullable=True)
    email = Column(Text, nullable=False)
    custom_data = Column(JSONType, nullable=True)
    status = Column(Text, default="pending")
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class WhatsAppCampaignRecipient(Base):
    __tablename__ = "whatsapp_campaign_recipients"
    __table_args__ = (
        UniqueConstraint("campaign_id", "phone_number", name="uq_whatsapp_recipients_campaign_phone"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    campaign_id = Column(String(36), nullable=True, index=True)
    contact_id = Column(String(36), nullable=True)
    phone_number = Column(Text, nullable=False)
    custom_data = Column(JSONType, nullable=True)
    status = Column(Text, default="pending")
    created_at = Column(DateTime(timezone=True), default=_utcnow)


class RepositoryRecord(Base):
    """Tenant-exclusive prospect repository; uniqueness is enforced by the importer."""
    __tablename__ = "redefine_data_repository"

    id = Column(String(36), primary_key=True, default=_new_id)
    org_id = Column(String(36), nullable=False, index=True)
    name = Column(Text, nullable=False)
    designation = Column(Text)
    department = Column(Text)
    job_level = Column(Text)
    linkedin_url = Column(Text)
    mobile_number = Column(Text)
    mobile_2 = Column(Text)
    official_email = Column(Text, index=True)
    personal_email = Column(Text, index=True)
    generic_email = Column(Text)
    industry_type = Column(Text)
    sub_industry = Column(Text)
    company_name = Column(Text)
    address = Column(Text)
    location = Column(Text)
    city = Column(Text)
    state = Column(Text)
    zone = Column(Text)
    tier = Column(Text)
    pincode = Column(Text)
    website = Column(Text)
    turnover = Column(Text)
    employee_size = Column(Text)
    erp_name = Column(Text)
    erp_vendor = Column(Text)
    created_by = Column(String(36))
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


class InventoryItem(Base):
    __tablename__ = "inventory_items"
    __table_args__ = (
        UniqueConstraint("org_id", "item_id_sku", name="uq_inventory_items_org_sku"),
    )

    id = Column(String(36), primary_key=True, default=_new_id)
    org_id = Column(String(36), nullable=False, index=True)
    item_id_sku = Column(Text, nullable=False)
    item_name = Column(Text)
    brand = Column(Text)
    category = Column(Text)
    subcategory = Column(Text)
    grade_class = Column(Text)
    material = Column(Text)
    finish_coating = Column(Text)
    thread_pitch = Column(Text)
    head_type = Column(Text)
    drive_type = Column(Text)
    standard_spec = Column(Text)
    diameter_mm = Column(Text)
    length_mm = Column(Text)
    uom = Column(Text)
    available_qty = Column(Integer, nullable=False, default=0)
    reorder_level = Column(Integer)
    reorder_qty = Column(Integer)
    storage_location = Column(Text)
    warehouse_branch = Column(Text)
    supplier_name = Column(Text)
    supplier_code = Column(Text)
    purchase_order_no = Column(Text)
    lead_time_days = Column(Integer)
    last_purchase_price = Column(Float)
    selling_price = Column(Float)
    discount_pct = Column(Float)
    gst_pct = Column(Float)
    weight_per_unit = Column(Float)
    last_purchase_date = Column(String(10))
    last_sale_date = Column(String(10))
    date_of_entry = Column(String(10))
    expiry_review_date = Column(String(10))
    hsn_code = Column(Text)
    batch_no = Column(Text)
    heat_no = Column(Text)
    inspection_status = Column(Text)
    certificate_no = Column(Text)
    customer_project = Column(Text)
    remarks_notes = Column(Text)
    image_ref = Column(Text)
    issued_to = Column(Text)
    created_by = Column(String(36))
    import_job_id = Column(String(36), index=True)
    created_at = Column(DateTime(timezone=True), default=_utcnow)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow)


def create_tables(engine: Engine = None) -> None:
    """Create every table the import pipeline reads or writes."""
    Base.metadata.create_all(engine or get_engine())
