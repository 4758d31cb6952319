"""Builds the long-lived engine objects (pools, cache, services) from settings."""
import logging
from sqlalchemy.engine import Engine

from config import Settings
from core.cache import MetadataCache
from core.data_query import QueryService
from core.db_connector import create_store_engine
from core.metadata_store import MetadataStore
from core.table_sync import TableSyncService

logger = logging.getLogger(__name__)


class Services:
    def __init__(self, resource_engine: Engine, metadata_engine: Engine, cfg: Settings):
        self.resource_engine = resource_engine
        self.metadata_engine = metadata_engine
        self.cache = MetadataCache(
            ttl_seconds=cfg.TABLE_METADATA_CACHE_TTL_SECONDS,
            max_entries=cfg.TABLE_METADATA_CACHE_MAX_ENTRIES,
            enabled=cfg.TABLE_METADATA_CACHE_ENABLED,
        )
        self.store = MetadataStore(metadata_engine)
        self.sync = TableSyncService(resource_engine, self.store, self.cache, workers=cfg.INTROSPECTION_WORKERS)
        self.queries = QueryService(resource_engine, self.store, self.cache, max_limit=cfg.MAX_PAGE_LIMIT)

    def dispose(self) -> None:
        self.resource_engine.dispose()
        if self.metadata_engine is not self.resource_engine:
            self.metadata_engine.dispose()


def build_services(cfg: Settings) -> Services:
    resource_engine = create_store_engine(cfg.RESOURCE_DATABASE_URL)
    if cfg.METADATA_DATABASE_URL == cfg.RESOURCE_DATABASE_URL:
        metadata_engine = resource_engine
    else:
        metadata_engine = create_store_engine(cfg.METADATA_DATABASE_URL)
    services = Services(resource_engine, metadata_engine, cfg)
    services.store.create_schema()
    logger.info("Engine services ready (mode=%s, cache=%s)", cfg.APP_MODE, cfg.TABLE_METADATA_CACHE_ENABLED)
    return services
