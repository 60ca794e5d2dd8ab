"""
Catalog API endpoints: feed loading, subcategories, filtered pages,
series detail and debounced navigation.
"""
from fastapi import APIRouter, Depends, HTTPException, Query, Request

from m3u_catalog.models.catalog import (
    Domain,
    LoadSummary,
    NavigateRequest,
    NavigateResponse,
    Page,
    SeriesEntry,
)
from m3u_catalog.services.catalog_service import LOCAL_CLIENT, CatalogService, get_catalog_service
from m3u_catalog.services.classifier import normalize_title
from m3u_catalog.services.query_engine import ALL_SUBCATEGORIES, sorted_seasons

router = APIRouter(prefix="/api", tags=["catalog"])


def _series_card(series: SeriesEntry) -> dict:
    return {
        "key": series.display_name.lower(),
        "display_name": series.display_name,
        "logo": series.logo,
        "season_count": len(series.seasons),
        "episode_count": series.episode_count,
    }


@router.post("/feed/load", response_model=LoadSummary)
async def load_feed(
    force: bool = Query(False, description="Ignore the cache and parse the playlist again"),
    service: CatalogService = Depends(get_catalog_service),
):
    """
    Load the playlist catalog.

    Served from cache when a fresh envelope exists, otherwise fetched from
    the configured sources and parsed in the background.
    """
    return await service.load_feed(force=force)


@router.get("/catalog/{domain}/subcategories")
async def list_subcategories(
    domain: Domain,
    service: CatalogService = Depends(get_catalog_service),
):
    """
    List subcategories of a domain, sorted, with display labels.
    """
    subcategories = service.get_subcategories(domain)
    return {
        "domain": domain.value,
        "subcategories": [
            {"value": sub, "label": normalize_title(sub)} for sub in subcategories
        ],
    }


@router.get("/catalog/{domain}", response_model=Page)
async def query_entries(
    domain: Domain,
    subcategory: str = Query(ALL_SUBCATEGORIES, description="Subcategory, or 'all'"),
    search: str = Query("", description="Case-insensitive title search"),
    page: int = Query(1, ge=1, description="Page number"),
    service: CatalogService = Depends(get_catalog_service),
):
    """
    Filtered, paginated entries of a domain.

    - **subcategory**: value from the subcategories endpoint, or `all`
    - **search**: substring of the title (series: display name)
    - **page**: clamped to the last page
    """
    items = service.query_entries(domain, subcategory, search)
    result = service.get_page(items, page)
    if domain is Domain.SERIES:
        result.items = [_series_card(series) for series in result.items]
    return result


@router.get("/catalog/series/{subcategory}/{series_key}")
async def get_series(
    subcategory: str,
    series_key: str,
    service: CatalogService = Depends(get_catalog_service),
):
    """
    Series detail with seasons in numeric order.
    Use `all` as subcategory to merge the series across subcategories.
    """
    series = service.engine.get_series(subcategory, series_key)
    if series is None:
        raise HTTPException(status_code=404, detail="Series not found")

    return {
        **_series_card(series),
        "seasons": [
            {
                "season": season,
                "label": f"Temporada {season}",
                "episodes": [episode.model_dump() for episode in series.seasons[season]],
            }
            for season in sorted_seasons(series)
        ],
    }


@router.post("/navigate", response_model=NavigateResponse)
async def navigate(
    payload: NavigateRequest,
    request: Request,
    service: CatalogService = Depends(get_catalog_service),
):
    """
    Debounced navigation to the player page.
    Requests within the debounce window of the same client's last accepted
    one are dropped.
    """
    client_id = request.client.host if request.client else LOCAL_CLIENT
    target = service.debounce_navigate(payload.url, client_id)
    return NavigateResponse(allowed=target is not None, player_url=target)
