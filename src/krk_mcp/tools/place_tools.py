"""MCP tools for place (address) search."""

from krk_mcp.app import mcp
from krk_mcp.models.responses import SearchPlacesResponse
from krk_mcp.services.geocoding_service import search_places as _search_places


@mcp.tool()
async def search_places(query: str, limit: int = 5) -> SearchPlacesResponse:
    """Search Kraków addresses and places by name, returning coordinates.

    Use the coordinates with plan_trip or find_nearby_stops.

    Examples:
        search_places("Rynek Główny")
        search_places("Kopiec Kościuszki")

    Args:
        query: Address or place name.
        limit: Maximum number of results (default 5, max 10).

    Returns:
        SearchPlacesResponse with results. api_available is false if the
        geocoding service could not be reached.
    """
    if limit < 1:
        limit = 1
    elif limit > 10:
        limit = 10

    return await _search_places(query, limit=limit)
