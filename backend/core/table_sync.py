"""
Table metadata sync: introspect a table, persist its TableConfig, keep its list page.

Two consistency policies coexist here on purpose:
  * the TableConfig is replaced in full on every sync (introspected parts are
    never patched; placeholder fields are carried over from the previous
    snapshot because sync never populates them);
  * the companion list page is create-if-absent, so a page a person may have
    edited is never overwritten.
"""
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Optional
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from core import catalog_reader, relationships
from core.db_connector import get_default_schema
from core.cache import MetadataCache
from core.errors import ValidationFailedError
from core.metadata_store import MetadataStore
from core.permissions import require_capability
from core.query_compiler import validate_identifier
from models.table import (
    PLACEHOLDER_FIELDS,
    FieldMetadata,
    PageRecord,
    SyncResponse,
    TableConfig,
    TableListing,
    TableRecord,
    TableSyncResult,
)
from models.tenant import TenantContext

logger = logging.getLogger(__name__)

# Product-internal tables that share the catalog with user data in local mode.
SYSTEM_TABLES = frozenset({
    "users",
    "workspaces",
    "roles",
    "teams",
    "workspace_users",
    "workspace_invites",
    "workspace_apps",
    "pages",
    "tables",
    "chats",
    "messages",
    "votes",
    "documents",
    "suggestions",
    "streams",
    "ai_skills",
})

LIST_BLOCK_MAX_COLUMNS = 8


def display_name(identifier: str) -> str:
    """customer_id -> Customer Id"""
    return " ".join(word[:1].upper() + word[1:] for word in identifier.split("_"))


def generate_list_page_block(record: TableRecord) -> dict:
    fields = [f.field_name for f in record.config.field_metadata]
    return {
        "id": f"{record.id}-list",
        "type": "list",
        "title": display_name(record.name),
        "config": {
            "table_id": record.id,
            "columns": fields[:LIST_BLOCK_MAX_COLUMNS],
            "primary_key": record.config.primary_key_column,
            "page_size": 25,
        },
    }


def generate_page_settings(record: TableRecord, is_system: bool = False) -> dict:
    return {
        "table_id": record.id,
        "is_system": is_system,
        "auto_generated": True,
    }


class TableSyncService:
    def __init__(
        self,
        resource_engine: Engine,
        store: MetadataStore,
        cache: MetadataCache,
        workers: int = 4,
    ):
        self.resource_engine = resource_engine
        self.store = store
        self.cache = cache
        self.workers = workers

    # ── Introspection ─────────────────────────────────────────────────────────

    def introspect(self, table: str, edges: Optional[relationships.Edges] = None) -> tuple[TableConfig, Optional[str]]:
        """
        Run the independent catalog reads concurrently and assemble a TableConfig.
        ``edges`` are the table's (forward, reverse) relationships when a bulk
        foreign-key scan already produced them.
        """
        engine = self.resource_engine
        with ThreadPoolExecutor(max_workers=self.workers) as pool:
            columns_f = pool.submit(catalog_reader.list_columns, engine, table)
            if edges is None:
                forward_f = pool.submit(relationships.detect_forward, engine, table)
                reverse_f = pool.submit(relationships.detect_reverse, engine, table)
            pk_f = pool.submit(catalog_reader.get_primary_key, engine, table)
            comments_f = pool.submit(catalog_reader.get_comments, engine, [table])

            columns = columns_f.result()
            forward, reverse = edges if edges is not None else (forward_f.result(), reverse_f.result())
            primary_key = pk_f.result()
            description = comments_f.result().get(table)

        config = TableConfig(
            primary_key_column=primary_key,
            field_metadata=[
                FieldMetadata(
                    field_name=col.name,
                    display_name=display_name(col.name),
                    data_type=col.data_type,
                    is_required=not col.is_nullable,
                    is_unique=col.is_unique,
                )
                for col in columns
            ],
            relationships=forward + reverse,
        )
        return config, description

    # ── Sync ──────────────────────────────────────────────────────────────────

    def sync_table(self, tenant: TenantContext, table: str,
                   edges: Optional[relationships.Edges] = None) -> TableConfig:
        require_capability(tenant, "tables.edit")
        validate_identifier(table, "table")

        config, description = self.introspect(table, edges)

        previous = self.store.get_table_config(tenant.workspace_id, table)
        if previous is not None:
            carried = {name: getattr(previous.config, name) for name in PLACEHOLDER_FIELDS}
            carried.update(previous.config.model_extra or {})
            config = config.model_copy(update=carried)

        inserted = self.store.upsert_table_config(
            tenant.workspace_id, table, description, config, created_by=tenant.user_id
        )
        self.cache.invalidate(tenant.workspace_id, table)

        record = TableRecord(
            id=table,
            workspace_id=tenant.workspace_id,
            name=table,
            description=description,
            config=config,
            created_by=tenant.user_id,
        )
        try:
            created = self.store.create_page_if_absent(PageRecord(
                id=table,
                workspace_id=tenant.workspace_id,
                name=display_name(table),
                description=description or f"List view for {table} table",
                blocks=[generate_list_page_block(record)],
                settings=generate_page_settings(record, is_system=table.lower() in SYSTEM_TABLES),
                created_by=tenant.user_id,
            ))
        except SQLAlchemyError as e:
            logger.warning("Synced table %s but could not create its page: %s", table, e)
            created = False
        logger.info(
            "Synced table %s (%s config, page %s)",
            table, "new" if inserted else "replaced", "created" if created else "kept",
        )
        return config

    def sync_all(self, tenant: TenantContext) -> SyncResponse:
        """Sync every data table one at a time, recording a result per table."""
        require_capability(tenant, "tables.edit")

        table_names = catalog_reader.list_base_tables(self.resource_engine)
        if tenant.mode == "local":
            table_names = [t for t in table_names if t.lower() not in SYSTEM_TABLES]

        if not table_names:
            return SyncResponse(success=True, synced=0, total=0, message="No data tables to sync")

        edges = relationships.scan_foreign_keys(self.resource_engine)
        results: list[TableSyncResult] = []
        for table in table_names:
            try:
                self.sync_table(tenant, table, edges.get(table, ([], [])))
                results.append(TableSyncResult(name=table, success=True))
            except Exception as e:
                logger.warning("Sync failed for table %s: %s", table, e)
                results.append(TableSyncResult(name=table, success=False, error=str(e)))

        synced = sum(1 for r in results if r.success)
        logger.info("Synced %d/%d tables for workspace %s", synced, len(results), tenant.workspace_id)
        return SyncResponse(success=True, synced=synced, total=len(results), results=results)

    def remove_table(self, tenant: TenantContext, table: str) -> None:
        """Forget a synced table's config. Its page and the user table itself are left alone."""
        require_capability(tenant, "tables.edit")
        validate_identifier(table, "table")
        self.store.delete_table_config(tenant.workspace_id, table)
        self.cache.invalidate(tenant.workspace_id, table)
        logger.info("Removed table config %s from workspace %s", table, tenant.workspace_id)

    # ── Listing ───────────────────────────────────────────────────────────────

    def list_tables(self, tenant: TenantContext, kind: str = "data") -> list[TableListing]:
        """
        Physical tables by kind. In local mode user data and product tables
        share the resource store, so ``config`` picks the system tables out of
        it; in hosted mode product tables live in the metadata store.
        """
        require_capability(tenant, "tables.view")
        if kind not in ("data", "config"):
            raise ValidationFailedError.single("type", "Table type must be 'data' or 'config'")

        if kind == "data" or tenant.mode == "local":
            engine = self.resource_engine
        else:
            engine = self.store.engine
        names = catalog_reader.list_base_tables(engine)

        if kind == "config":
            names = [t for t in names if t.lower() in SYSTEM_TABLES]
        elif tenant.mode == "local":
            names = [t for t in names if t.lower() not in SYSTEM_TABLES]
        schema = get_default_schema(engine)
        return [TableListing(name=t, type=kind, schema_name=schema) for t in names]
