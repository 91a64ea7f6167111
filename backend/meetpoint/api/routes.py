"""API routes for Meetpoint.

Thin HTTP layer over the service container:
- /search: midpoint venue search, recorded in history on success
- /suggestions, /geocode, /places: provider lookups
- /history: search history CRUD, analytics, import/export
- /preferences: remembered venue categories
- /cache: cache statistics and reset

Core services raise ``LocationServiceError``; the handler registered in
``meetpoint.main`` turns it into an error envelope.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from fastapi.responses import PlainTextResponse
from pydantic import BaseModel, Field

from meetpoint.container import ServiceContainer
from meetpoint.models import (
    AppError,
    CacheStats,
    HistoryItem,
    Location,
    SearchFilters,
    SearchParams,
    SearchResult,
    Venue,
    VenueCategory,
)

logger = logging.getLogger(__name__)

router = APIRouter()


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


# Request/Response models
class SearchRequest(BaseModel):
    """Request model for a midpoint search."""

    location1: Location
    location2: Location
    categories: list[VenueCategory] = Field(..., description="At least one venue category")
    radius_meters: Optional[int] = Field(None, description="Search radius in meters")
    max_results: Optional[int] = Field(None, gt=0)
    filters: Optional[SearchFilters] = None


class SearchResponse(BaseModel):
    """Response model for a midpoint search."""

    success: bool
    result: Optional[SearchResult] = None
    history_item_id: Optional[str] = None
    error: Optional[AppError] = None


class SuggestionsResponse(BaseModel):
    success: bool = True
    suggestions: list[Location] = Field(default_factory=list)


class GeocodeRequest(BaseModel):
    """Request model for geocoding an address."""

    address: str = Field(..., min_length=1, description="Address to geocode")


class GeocodeResponse(BaseModel):
    success: bool
    location: Optional[Location] = None
    error: Optional[AppError] = None


class PlaceDetailsResponse(BaseModel):
    success: bool
    venue: Optional[Venue] = None
    error: Optional[AppError] = None


class HistoryListResponse(BaseModel):
    success: bool = True
    items: list[HistoryItem] = Field(default_factory=list)
    total: int = 0


class HistoryItemResponse(BaseModel):
    success: bool
    item: Optional[HistoryItem] = None
    error: Optional[AppError] = None


class FrequentLocationsResponse(BaseModel):
    success: bool = True
    locations: list[Location] = Field(default_factory=list)


class FrequentCategoriesResponse(BaseModel):
    success: bool = True
    combinations: list[list[VenueCategory]] = Field(default_factory=list)


class ImportHistoryResponse(BaseModel):
    success: bool
    imported: int = 0
    total: int = 0


class CategoryPreferences(BaseModel):
    categories: list[VenueCategory] = Field(default_factory=list)


class CacheStatsResponse(BaseModel):
    success: bool = True
    stats: CacheStats


# ─── Search ───


@router.post("/search", response_model=SearchResponse)
async def search_venues(
    request: SearchRequest, services: ServiceContainer = Depends(get_services)
) -> SearchResponse:
    """Find venues around the midpoint of two locations.

    Successful searches are recorded in the history and the chosen
    categories are remembered as the user's preference.
    """
    params = SearchParams(
        location1=request.location1,
        location2=request.location2,
        categories=set(request.categories),
        radius_meters=(
            services.settings.default_radius_meters
            if request.radius_meters is None
            else request.radius_meters
        ),
        max_results=request.max_results,
        filters=request.filters or SearchFilters(),
    )
    result = await services.orchestrator.execute_search_flow(params)

    item = await services.history.add(params, result.total_results)
    await services.preferences.set(params.categories)

    return SearchResponse(success=True, result=result, history_item_id=item.id)


@router.get("/suggestions", response_model=SuggestionsResponse)
async def location_suggestions(
    q: str = Query("", description="Partial address"),
    lat: Optional[float] = Query(None, ge=-90, le=90),
    lng: Optional[float] = Query(None, ge=-180, le=180),
    limit: int = Query(5, gt=0, le=10),
    services: ServiceContainer = Depends(get_services),
) -> SuggestionsResponse:
    """Address suggestions. Empty on short queries or provider trouble."""
    bias = None
    if lat is not None and lng is not None:
        bias = Location(address="", latitude=lat, longitude=lng)
    suggestions = await services.orchestrator.get_location_suggestions(q, bias, limit)
    return SuggestionsResponse(suggestions=suggestions)


@router.post("/geocode", response_model=GeocodeResponse)
async def geocode_address(
    request: GeocodeRequest, services: ServiceContainer = Depends(get_services)
) -> GeocodeResponse:
    location = await services.orchestrator.geocode_address(request.address)
    return GeocodeResponse(success=True, location=location)


@router.get("/places/{provider_id}", response_model=PlaceDetailsResponse)
async def get_place_details(
    provider_id: str, services: ServiceContainer = Depends(get_services)
) -> PlaceDetailsResponse:
    venue = await services.orchestrator.get_venue_details(provider_id)
    return PlaceDetailsResponse(success=True, venue=venue)


# ─── History ───


@router.get("/history", response_model=HistoryListResponse)
async def list_history(
    q: str = Query("", description="Filter by address or category name"),
    limit: Optional[int] = Query(None, gt=0),
    services: ServiceContainer = Depends(get_services),
) -> HistoryListResponse:
    items = services.history.search(q) if q.strip() else services.history.get_history()
    if limit:
        items = items[:limit]
    return HistoryListResponse(items=items, total=len(services.history))


@router.get("/history/frequent/locations", response_model=FrequentLocationsResponse)
async def frequent_locations(
    limit: int = Query(10, gt=0), services: ServiceContainer = Depends(get_services)
) -> FrequentLocationsResponse:
    return FrequentLocationsResponse(locations=services.history.get_frequent_locations(limit))


@router.get("/history/frequent/categories", response_model=FrequentCategoriesResponse)
async def frequent_categories(
    limit: int = Query(5, gt=0), services: ServiceContainer = Depends(get_services)
) -> FrequentCategoriesResponse:
    return FrequentCategoriesResponse(
        combinations=services.history.get_frequent_category_combinations(limit)
    )


@router.get("/history/export", response_class=PlainTextResponse)
async def export_history(services: ServiceContainer = Depends(get_services)) -> PlainTextResponse:
    return PlainTextResponse(services.history.export_history(), media_type="application/json")


@router.post("/history/import", response_model=ImportHistoryResponse)
async def import_history(
    payload: dict, services: ServiceContainer = Depends(get_services)
) -> ImportHistoryResponse:
    imported = await services.history.import_history(payload)
    return ImportHistoryResponse(
        success=imported > 0, imported=imported, total=len(services.history)
    )


@router.get("/history/{item_id}", response_model=HistoryItemResponse)
async def get_history_item(
    item_id: str, services: ServiceContainer = Depends(get_services)
) -> HistoryItemResponse:
    item = services.history.get_item(item_id)
    if item is None:
        raise HTTPException(status_code=404, detail=f"Unknown history item: {item_id}")
    return HistoryItemResponse(success=True, item=item)


@router.delete("/history/{item_id}")
async def delete_history_item(
    item_id: str, services: ServiceContainer = Depends(get_services)
) -> dict:
    removed = await services.history.remove(item_id)
    return {"success": removed}


@router.delete("/history")
async def clear_history(services: ServiceContainer = Depends(get_services)) -> dict:
    await services.history.clear()
    return {"success": True}


# ─── Preferences ───


@router.get("/preferences/categories", response_model=CategoryPreferences)
async def get_category_preferences(
    services: ServiceContainer = Depends(get_services),
) -> CategoryPreferences:
    return CategoryPreferences(categories=services.preferences.get())


@router.put("/preferences/categories", response_model=CategoryPreferences)
async def set_category_preferences(
    request: CategoryPreferences, services: ServiceContainer = Depends(get_services)
) -> CategoryPreferences:
    categories = await services.preferences.set(request.categories)
    return CategoryPreferences(categories=categories)


# ─── Cache ───


@router.get("/cache/stats", response_model=CacheStatsResponse)
async def cache_stats(services: ServiceContainer = Depends(get_services)) -> CacheStatsResponse:
    return CacheStatsResponse(stats=services.orchestrator.get_cache_stats())


@router.delete("/cache")
async def clear_cache(services: ServiceContainer = Depends(get_services)) -> dict:
    services.orchestrator.clear_cache()
    logger.info("[CACHE] Cleared on request")
    return {"success": True}
