"""/api/tables: physical table listing, metadata sync, synced metadata read and removal."""
import logging
import time
from typing import Literal, Optional
from fastapi import APIRouter, Depends

from api.deps import get_services, get_tenant
from core.errors import TableNotFoundError
from core.factory import Services
from core.permissions import require_capability
from models.table import SyncResponse
from models.tenant import TenantContext

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/tables")
def list_tables(
    type: Literal["data", "config"] = "data",
    tenant: TenantContext = Depends(get_tenant),
    services: Services = Depends(get_services),
):
    tables = services.sync.list_tables(tenant, type)
    return {"tables": [t.model_dump() for t in tables]}


@router.post("/tables/sync", response_model=SyncResponse, response_model_exclude_none=True)
def sync_tables(
    tenant: TenantContext = Depends(get_tenant),
    services: Services = Depends(get_services),
):
    t0 = time.time()
    result = services.sync.sync_all(tenant)
    logger.info("Table sync finished in %.2fs: %d/%d", time.time() - t0, result.synced, result.total)
    return result


@router.get("/tables/metadata")
def get_table_metadata(
    table: Optional[str] = None,
    tenant: TenantContext = Depends(get_tenant),
    services: Services = Depends(get_services),
):
    require_capability(tenant, "tables.view")
    if table:
        record = services.queries.get_table_record(tenant, table)
        if record is None:
            raise TableNotFoundError(table)
        return {"table": record.model_dump(mode="json")}
    tables = services.store.list_table_configs(tenant.workspace_id)
    return {"tables": [t.model_dump(mode="json") for t in tables]}


@router.delete("/tables/metadata")
def delete_table_metadata(
    table: str,
    tenant: TenantContext = Depends(get_tenant),
    services: Services = Depends(get_services),
):
    services.sync.remove_table(tenant, table)
    return {"success": True, "table": table}
