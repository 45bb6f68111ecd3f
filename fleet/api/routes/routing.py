"""
Routing endpoints
=================

GET  /api/v1/locations -- the named locations of the city map
POST /api/v1/routes    -- shortest route between two locations
"""

from fastapi import APIRouter, Depends, Request

from fleet.api.dependencies import get_route_graph
from fleet.api.middleware import limiter
from fleet.api.schemas import LocationResponse, RouteRequest, RouteResponse
from fleet.config import settings
from fleet.domain.routing import RouteGraph

router = APIRouter(tags=["routing"])


@router.get(
    "/locations", response_model=list[LocationResponse], summary="List locations"
)
@limiter.limit(settings.rate_limit)
async def list_locations(
    request: Request,
    graph: RouteGraph = Depends(get_route_graph),
):
    return list(graph.locations)


@router.post(
    "/routes",
    response_model=RouteResponse,
    summary="Shortest route",
    responses={404: {"description": "Unknown location, or no route exists."}},
)
@limiter.limit(settings.rate_limit)
async def shortest_route(
    request: Request,
    body: RouteRequest,
    graph: RouteGraph = Depends(get_route_graph),
):
    return graph.shortest_path(body.source_id, body.destination_id)
