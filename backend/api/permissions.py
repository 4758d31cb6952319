"""/api/permissions: role catalog, gap analysis and migration export (access-control audit tooling)."""
import logging
from fastapi import APIRouter, Depends

from api.deps import get_services, get_tenant
from core.factory import Services
from core.migration_export import export_migration
from core.policy_analyzer import analyze_gaps, list_role_catalog
from models.policy import GapAnalysis, MigrationExport, MigrationRequest, RoleCatalog
from models.tenant import TenantContext

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/permissions/roles", response_model=RoleCatalog)
def get_role_catalog(
    tenant: TenantContext = Depends(get_tenant),
    services: Services = Depends(get_services),
):
    return list_role_catalog(tenant, services.resource_engine)


@router.get("/permissions/gaps", response_model=GapAnalysis)
def get_permission_gaps(
    tenant: TenantContext = Depends(get_tenant),
    services: Services = Depends(get_services),
):
    return analyze_gaps(tenant, services.resource_engine)


@router.post("/permissions/migration", response_model=MigrationExport)
def export_permission_migration(
    req: MigrationRequest,
    tenant: TenantContext = Depends(get_tenant),
):
    return export_migration(tenant, req.changes)
