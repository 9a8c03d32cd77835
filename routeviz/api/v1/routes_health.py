# routeviz/api/v1/routes_health.py
from fastapi import APIRouter, Depends

from routeviz.api.v1.routes_routing import get_app_model
from routeviz.core.config import settings
from routeviz.services.app_model import AppModel

router = APIRouter(
    prefix="/health",
    tags=["health"],
)


@router.get("/", summary="Health check")
async def health_check(model: AppModel = Depends(get_app_model)):
    """
    Simple health check endpoint to verify that the API is running.
    """
    return {
        "status": "ok",
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
        "graph": model.graph_name,
        "graph_loaded": model.loaded is not None,
        "index_ready": model.index is not None and model.index.ready,
    }
