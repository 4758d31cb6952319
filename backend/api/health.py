"""GET /api/health: store connectivity check."""
import logging
from fastapi import APIRouter, Depends
from sqlalchemy.engine import Engine

from api.deps import get_services
from core.db_connector import ping
from core.factory import Services

router = APIRouter()
logger = logging.getLogger(__name__)


@router.get("/health")
def health_check(services: Services = Depends(get_services)):
    resource_status = _check_store(services.resource_engine)
    metadata_status = _check_store(services.metadata_engine)
    overall = "ok" if resource_status["status"] == "up" and metadata_status["status"] == "up" else "degraded"
    return {
        "status": overall,
        "services": {
            "resource_store": resource_status,
            "metadata_store": metadata_status,
        },
    }


def _check_store(engine: Engine) -> dict:
    try:
        ping(engine)
        return {"status": "up", "dialect": engine.dialect.name}
    except Exception as e:
        logger.warning("Health check failed for %s: %s", engine.dialect.name, e)
        return {"status": "down", "error": str(e)}
