# routeviz/api/v1/routes_routing.py
from fastapi import APIRouter, Depends, HTTPException, Query

from routeviz.core.errors import IndexNotReady, NoNodesInGraph, UnknownAlgorithm
from routeviz.core.logger import logger
from routeviz.models.routing import (
    ClickRequest,
    ClickResponse,
    FinderRequest,
    GraphRequest,
    NearestPointResponse,
    OptionsResponse,
    QueryRequest,
    QueryResponse,
    RouteViewResponse,
)
from routeviz.services.app_model import AppModel

router = APIRouter(
    prefix="/route",
    tags=["routing"],
)

# Single shared session
app_model = AppModel()


def get_app_model() -> AppModel:
    return app_model


def build_route_view(model: AppModel) -> RouteViewResponse:
    return RouteViewResponse(
        graph=model.graph_name,
        finder=model.finder_kind.value,
        graph_loaded=model.loaded is not None,
        no_path=model.path_info.no_path,
        path_info=model.path_info,
        stats=model.stats,
        route_start=model.route_start.to_view(),
        route_end=model.route_end.to_view(),
        query=model.store.state(),
        progress=model.progress.to_view(),
    )


@router.get("/", response_model=RouteViewResponse, summary="Current route state")
async def get_route(model: AppModel = Depends(get_app_model)) -> RouteViewResponse:
    return build_route_view(model)


@router.get("/options", response_model=OptionsResponse, summary="Available graphs and pathfinders")
async def get_options(model: AppModel = Depends(get_app_model)) -> OptionsResponse:
    return OptionsResponse(
        graphs=model.graph_names,
        finders=model.finder_names,
        graph=model.graph_name,
        finder=model.finder_kind.value,
    )


@router.post("/click", response_model=ClickResponse, summary="Select a route point")
async def click(request: ClickRequest, model: AppModel = Depends(get_app_model)) -> ClickResponse:
    """
    First click sets the start, second the end, third clears the route.
    """
    accepted = model.handle_scene_click(request.x, request.y)
    return ClickResponse(accepted=accepted, route=build_route_view(model))


@router.post("/clear", response_model=RouteViewResponse, summary="Clear both route points")
async def clear(model: AppModel = Depends(get_app_model)) -> RouteViewResponse:
    model.clear_route()
    return build_route_view(model)


@router.put("/finder", response_model=RouteViewResponse, summary="Switch the pathfinder")
async def update_finder(request: FinderRequest, model: AppModel = Depends(get_app_model)) -> RouteViewResponse:
    try:
        model.update_search_algorithm(request.finder)
    except UnknownAlgorithm as exc:
        raise HTTPException(status_code=400, detail=str(exc))
    return build_route_view(model)


@router.put("/graph", response_model=RouteViewResponse, summary="Switch the loaded graph")
async def update_graph(request: GraphRequest, model: AppModel = Depends(get_app_model)) -> RouteViewResponse:
    if request.graph not in model.graph_names:
        raise HTTPException(status_code=404, detail=f"Unknown graph {request.graph!r}")

    await model.update_selected_graph(request.graph)
    return build_route_view(model)


@router.get("/nearest", response_model=NearestPointResponse, summary="Nearest graph node")
async def nearest(
    x: float = Query(...),
    y: float = Query(...),
    model: AppModel = Depends(get_app_model),
) -> NearestPointResponse:
    try:
        node = model.find_nearest_point(x, y)
    except IndexNotReady as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    except NoNodesInGraph as exc:
        raise HTTPException(status_code=404, detail=str(exc))

    return NearestPointResponse(
        id=node.id,
        x=node.x,
        y=node.y,
        distance=model.index.distance_to(node.id, x, y),
    )


@router.get("/query", response_model=QueryResponse, summary="Shareable query string")
async def get_query(model: AppModel = Depends(get_app_model)) -> QueryResponse:
    return QueryResponse(query=model.store.to_query_string(), state=model.store.state())


@router.put("/query", response_model=RouteViewResponse, summary="Apply a shared query string")
async def apply_query(request: QueryRequest, model: AppModel = Depends(get_app_model)) -> RouteViewResponse:
    """
    Restore graph, pathfinder and route points from a query string, as when a
    shared link is opened.
    """
    try:
        model.store.apply_query_string(request.query)
    except UnknownAlgorithm as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    task = model.load_task
    if task is not None and not task.done():
        logger.info("Waiting for graph reload triggered by query string")
        await task

    return build_route_view(model)
