# routeviz/main.py
from contextlib import asynccontextmanager

from fastapi import FastAPI

from routeviz.api.v1 import routes_health, routes_routing
from routeviz.core.config import settings
from routeviz.core.logger import logger


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.LOAD_GRAPH_ON_STARTUP:
        model = routes_routing.get_app_model()
        logger.info(f"Loading default graph {model.graph_name!r} in the background")
        model.schedule_load()
    yield
    task = routes_routing.get_app_model().load_task
    if task is not None and not task.done():
        task.cancel()


def create_app() -> FastAPI:
    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Point selection and route resolution for a route-planning visualizer.",
        lifespan=lifespan,
    )

    # Routers
    app.include_router(routes_health.router, prefix="", tags=["health"])
    app.include_router(routes_routing.router, prefix="", tags=["routing"])

    return app


app = create_app()
