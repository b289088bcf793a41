import httpx

from krk_mcp.data.config import PlannerConfig
from krk_mcp.models.paths import GeocodingResult


class NominatimClient:
    """Async HTTP client for free-text place search on a Nominatim server.

    Usage:
        async with NominatimClient(config) as client:
            places = await client.search("Rynek Główny")
    """

    def __init__(self, config: PlannerConfig):
        """Initialize the client.

        Args:
            config: Configuration with Nominatim URL, user agent and search bias.
        """
        self._config = config
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "NominatimClient":
        """Enter async context - create HTTP client."""
        headers = {
            "Accept-Language": "pl,en",
            "User-Agent": self._config.nominatim_user_agent,
        }
        self._client = httpx.AsyncClient(headers=headers, timeout=30.0)
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context - close HTTP client."""
        if self._client:
            await self._client.aclose()
            self._client = None

    async def search(self, query: str, limit: int | None = None) -> list[GeocodingResult]:
        """Search places matching a free-text query, biased to the configured city.

        Returns:
            Matching places, best first (may be empty).

        Raises:
            RuntimeError: If client not initialized.
            httpx.HTTPError: If the HTTP request fails.
        """
        if not self._client:
            raise RuntimeError("Client not initialized - use 'async with'")

        city = self._config.geocoding_city
        params = {
            "q": f"{query}, {city}" if city else query,
            "format": "json",
            "limit": str(limit or self._config.geocoding_limit),
            "addressdetails": "1",
            "bounded": "1",
            "viewbox": self._config.geocoding_viewbox,
        }
        url = f"{self._config.nominatim_base_url.rstrip('/')}/search"
        response = await self._client.get(url, params=params)
        response.raise_for_status()

        return [
            GeocodingResult(
                lat=float(item["lat"]),
                lng=float(item["lon"]),
                display_name=item["display_name"],
                place_id=str(item["place_id"]),
            )
            for item in response.json()
        ]
