"""
Metadata store: persisted TableConfig documents and their companion pages.

Both live in the metadata database as one row per (workspace_id, id) with the
structured part stored as a JSON document. Table configs are replaced in full
on every sync; pages are only ever created when absent.
"""
import logging
from datetime import datetime, timezone
from typing import Optional
from sqlalchemy import JSON, Column, DateTime, MetaData, String, Table, Text, and_, delete, insert, select, update
from sqlalchemy.engine import Engine
from sqlalchemy.exc import IntegrityError

from core.errors import TableNotFoundError
from models.table import PageRecord, TableConfig, TableRecord

logger = logging.getLogger(__name__)

metadata = MetaData()

tables_table = Table(
    "tables",
    metadata,
    Column("workspace_id", String(64), primary_key=True),
    Column("id", String(255), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("config", JSON, nullable=False),
    Column("created_by", String(64)),
    Column("created_at", DateTime(timezone=True), nullable=False),
    Column("updated_at", DateTime(timezone=True), nullable=False),
)

pages_table = Table(
    "pages",
    metadata,
    Column("workspace_id", String(64), primary_key=True),
    Column("id", String(255), primary_key=True),
    Column("name", String(255), nullable=False),
    Column("description", Text),
    Column("blocks", JSON, nullable=False),
    Column("settings", JSON, nullable=False),
    Column("layout", JSON, nullable=False),
    Column("created_by", String(64)),
    Column("created_at", DateTime(timezone=True), nullable=False),
)


def _now() -> datetime:
    return datetime.now(timezone.utc)


class MetadataStore:
    def __init__(self, engine: Engine):
        self.engine = engine

    def create_schema(self) -> None:
        metadata.create_all(self.engine)

    # ── Table configs ─────────────────────────────────────────────────────────

    def list_table_configs(self, workspace_id: str) -> list[TableRecord]:
        stmt = (
            select(tables_table)
            .where(tables_table.c.workspace_id == workspace_id)
            .order_by(tables_table.c.name)
        )
        with self.engine.connect() as conn:
            return [TableRecord.model_validate(dict(row)) for row in conn.execute(stmt).mappings()]

    def get_table_config(self, workspace_id: str, table_id: str) -> Optional[TableRecord]:
        stmt = select(tables_table).where(and_(
            tables_table.c.workspace_id == workspace_id,
            tables_table.c.id == table_id,
        ))
        with self.engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        return TableRecord.model_validate(dict(row)) if row else None

    def upsert_table_config(
        self,
        workspace_id: str,
        table_id: str,
        description: Optional[str],
        config: TableConfig,
        created_by: Optional[str] = None,
    ) -> bool:
        """Replace the config for (workspace_id, table_id). Returns True if a new row was inserted."""
        payload = config.model_dump(mode="json")
        key = and_(tables_table.c.workspace_id == workspace_id, tables_table.c.id == table_id)
        now = _now()
        with self.engine.begin() as conn:
            exists = conn.execute(select(tables_table.c.id).where(key)).first() is not None
            if exists:
                conn.execute(update(tables_table).where(key).values(
                    name=table_id,
                    description=description,
                    config=payload,
                    updated_at=now,
                ))
            else:
                conn.execute(insert(tables_table).values(
                    workspace_id=workspace_id,
                    id=table_id,
                    name=table_id,
                    description=description,
                    config=payload,
                    created_by=created_by,
                    created_at=now,
                    updated_at=now,
                ))
        return not exists

    def delete_table_config(self, workspace_id: str, table_id: str) -> None:
        stmt = delete(tables_table).where(and_(
            tables_table.c.workspace_id == workspace_id,
            tables_table.c.id == table_id,
        ))
        with self.engine.begin() as conn:
            if conn.execute(stmt).rowcount == 0:
                raise TableNotFoundError(table_id)

    # ── Pages ─────────────────────────────────────────────────────────────────

    def get_page(self, workspace_id: str, page_id: str) -> Optional[PageRecord]:
        stmt = select(pages_table).where(and_(
            pages_table.c.workspace_id == workspace_id,
            pages_table.c.id == page_id,
        ))
        with self.engine.connect() as conn:
            row = conn.execute(stmt).mappings().first()
        return PageRecord.model_validate(dict(row)) if row else None

    def create_page_if_absent(self, page: PageRecord) -> bool:
        """Insert the page unless one already exists. Never updates. Returns True if created."""
        if self.get_page(page.workspace_id, page.id) is not None:
            return False
        try:
            with self.engine.begin() as conn:
                conn.execute(insert(pages_table).values(
                    workspace_id=page.workspace_id,
                    id=page.id,
                    name=page.name,
                    description=page.description,
                    blocks=page.blocks,
                    settings=page.settings,
                    layout=page.layout,
                    created_by=page.created_by,
                    created_at=_now(),
                ))
        except IntegrityError:
            # Lost a race with a concurrent sync of the same table
            return False
        return True
