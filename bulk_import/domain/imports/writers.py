"""
Batch deduplication and persistence.

Each import type has a writer that removes duplicates from a batch of mapped
records and writes what is left in a single transaction:

* upsert writers (contacts, campaign recipients, inventory) keep the last
  occurrence of a natural key and rely on ``ON CONFLICT DO UPDATE`` so that
  keys repeated across batches also resolve to the last write. Keys are
  scoped to the tenant (contacts, inventory) or campaign (recipients), and an
  update never moves a row to another tenant or campaign;
* the repository writer keeps the first occurrence, drops anything that
  collides with rows the tenant already has, and plain-inserts the rest.

Any datastore error surfaces as ``BatchWriteError``; the job does not retry.
"""
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

from sqlalchemy import Table, func, insert, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from bulk_import.db.models import (
    Contact,
    EmailCampaignRecipient,
    InventoryItem,
    RepositoryRecord,
    WhatsAppCampaignRecipient,
)
from bulk_import.db.session import get_engine
from bulk_import.domain.imports.types import BatchWriteError, ImportType

logger = logging.getLogger(__name__)

Record = Dict[str, Any]

_DIALECT_INSERTS = {
    "postgresql": postgresql.insert,
    "sqlite": sqlite.insert,
}


@dataclass
class BatchResult:
    inserted: int
    skipped: int


def _normalize_key(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        value = value.strip().lower()
        return value or None
    return value


def dedupe_last_wins(records: Sequence[Record], key_columns: Sequence[str]) -> Tuple[List[Record], int]:
    """
    Keep the last record per key, preserving the relative order of survivors.

    Records whose key is entirely empty are kept untouched; they cannot
    collide on the conflict target.
    """
    seen: Set[Tuple[Any, ...]] = set()
    kept_reversed: List[Record] = []
    for record in reversed(records):
        fingerprint = tuple(_normalize_key(record.get(column)) for column in key_columns)
        if all(part is None for part in fingerprint):
            kept_reversed.append(record)
            continue
        if fingerprint in seen:
            continue
        seen.add(fingerprint)
        kept_reversed.append(record)
    kept = list(reversed(kept_reversed))
    return kept, len(records) - len(kept)


def upsert_records(
    conn,
    table: Table,
    records: List[Record],
    conflict_columns: Sequence[str],
    immutable_columns: Sequence[str] = (),
) -> None:
    """
    Insert-or-update ``records`` on ``conflict_columns`` using the connection's dialect.

    ``immutable_columns`` keep the value of the row that already exists.
    """
    dialect_insert = _DIALECT_INSERTS.get(conn.dialect.name)
    if dialect_insert is None:
        raise NotImplementedError(f"Upsert is not supported for dialect '{conn.dialect.name}'")

    stmt = dialect_insert(table)
    update_columns = {
        column: stmt.excluded[column]
        for column in records[0]
        if column not in conflict_columns and column not in immutable_columns
    }
    if "updated_at" in table.c:
        update_columns["updated_at"] = datetime.now(timezone.utc)

    stmt = stmt.on_conflict_do_update(index_elements=list(conflict_columns), set_=update_columns)
    conn.execute(stmt, records)


class BatchWriter:
    """Base strategy: dedupe a batch, then persist it inside one transaction."""

    import_type: ImportType
    table: Table

    def __init__(self, job: Dict[str, Any]):
        self.job = job

    @property
    def table_name(self) -> str:
        return self.table.name

    def dedupe(self, conn, records: List[Record]) -> Tuple[List[Record], int]:
        raise NotImplementedError

    def persist(self, conn, records: List[Record]) -> None:
        raise NotImplementedError

    def write_batch(self, records: List[Record], batch_number: int) -> BatchResult:
        logger.info("Writing batch %d to %s (%d records)", batch_number, self.table_name, len(records))
        engine = get_engine()
        try:
            with engine.begin() as conn:
                kept, skipped = self.dedupe(conn, records)
                if kept:
                    self.persist(conn, kept)
        except (SQLAlchemyError, OverflowError) as exc:
            logger.error("Batch %d insert into %s failed: %s", batch_number, self.table_name, exc)
            raise BatchWriteError(self.table_name, batch_number, exc) from exc

        if skipped:
            logger.info("Batch %d: skipped %d duplicate records", batch_number, skipped)
        return BatchResult(inserted=len(kept), skipped=skipped)


class UpsertBatchWriter(BatchWriter):
    """Last-write-wins on a natural key, both within the batch and across batches."""

    conflict_columns: Tuple[str, ...] = ()
    # Scope columns (tenant, campaign) are constant within a job
    dedupe_columns: Tuple[str, ...] = ()
    immutable_columns: Tuple[str, ...] = ("org_id", "campaign_id", "created_by")

    def dedupe(self, conn, records: List[Record]) -> Tuple[List[Record], int]:
        return dedupe_last_wins(records, self.dedupe_columns or self.conflict_columns)

    def persist(self, conn, records: List[Record]) -> None:
        upsert_records(conn, self.table, records, self.conflict_columns, self.immutable_columns)


class ContactBatchWriter(UpsertBatchWriter):
    import_type = ImportType.CONTACTS
    table = Contact.__table__
    conflict_columns = ("org_id", "email")
    dedupe_columns = ("email",)


class EmailRecipientBatchWriter(UpsertBatchWriter):
    import_type = ImportType.EMAIL_RECIPIENTS
    table = EmailCampaignRecipient.__table__
    conflict_columns = ("campaign_id", "email")
    dedupe_columns = ("email",)


class WhatsAppRecipientBatchWriter(UpsertBatchWriter):
    import_type = ImportType.WHATSAPP_RECIPIENTS
    table = WhatsAppCampaignRecipient.__table__
    conflict_columns = ("campaign_id", "phone_number")
    dedupe_columns = ("phone_number",)


class InventoryBatchWriter(UpsertBatchWriter):
    import_type = ImportType.INVENTORY
    table = InventoryItem.__table__
    conflict_columns = ("org_id", "item_id_sku")
    dedupe_columns = ("item_id_sku",)


class RepositoryBatchWriter(BatchWriter):
    """
    First occurrence wins on each of two independent email keys.

    A record is dropped when either its personal or its official email was
    already seen earlier in the batch or already exists for the tenant.
    Existing rows are never overwritten.
    """

    import_type = ImportType.REDEFINE_REPOSITORY
    table = RepositoryRecord.__table__
    unique_columns = ("personal_email", "official_email")

    def _existing_values(self, conn, records: List[Record]) -> Dict[str, Set[str]]:
        existing: Dict[str, Set[str]] = {}
        for column_name in self.unique_columns:
            candidates = {
                key for key in (_normalize_key(record.get(column_name)) for record in records) if key
            }
            if not candidates:
                existing[column_name] = set()
                continue
            column = self.table.c[column_name]
            query = select(column).where(
                self.table.c.org_id == self.job["org_id"],
                func.lower(column).in_(candidates),
            )
            existing[column_name] = {
                _normalize_key(value) for value in conn.execute(query).scalars() if value
            }
        return existing

    def dedupe(self, conn, records: List[Record]) -> Tuple[List[Record], int]:
        taken = self._existing_values(conn, records)
        kept: List[Record] = []
        for record in records:
            keys: Dict[str, Optional[str]] = {
                column: _normalize_key(record.get(column)) for column in self.unique_columns
            }
            if any(value and value in taken[column] for column, value in keys.items()):
                continue
            for column, value in keys.items():
                if value:
                    taken[column].add(value)
            kept.append(record)
        return kept, len(records) - len(kept)

    def persist(self, conn, records: List[Record]) -> None:
        conn.execute(insert(self.table), records)


_WRITERS = {
    writer.import_type: writer
    for writer in (
        ContactBatchWriter,
        EmailRecipientBatchWriter,
        WhatsAppRecipientBatchWriter,
        InventoryBatchWriter,
        RepositoryBatchWriter,
    )
}


def get_batch_writer(import_type: ImportType, job: Dict[str, Any]) -> BatchWriter:
    try:
        writer_cls = _WRITERS[ImportType(import_type)]
    except (KeyError, ValueError):
        raise ValueError(f"Unknown import type: {import_type}") from None
    return writer_cls(job)
