import httpx

from krk_mcp.data.config import PlannerConfig
from krk_mcp.models.network import Point
from krk_mcp.models.paths import OSRMResponse, PathProfile, PathResult


class PathServiceError(RuntimeError):
    """The path service answered but returned no usable route."""


class OSRMClient:
    """Async HTTP client for point-to-point paths from an OSRM server.

    The underlying HTTP client is created on first use and reused until
    aclose(). Also usable as an async context manager:

        async with OSRMClient(config) as client:
            path = await client.get_path(origin, destination, PathProfile.WALKING)
    """

    def __init__(self, config: PlannerConfig):
        """Initialize the client.

        Args:
            config: Planner configuration with OSRM URL and timeout.
        """
        self._config = config
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "OSRMClient":
        """Enter async context - create HTTP client."""
        self._ensure_client()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        """Exit async context - close HTTP client."""
        await self.aclose()

    def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self._config.osrm_timeout_seconds)
        return self._client

    async def aclose(self) -> None:
        if self._client:
            await self._client.aclose()
            self._client = None

    def route_url(self, origin: Point, destination: Point, profile: PathProfile) -> str:
        base = self._config.osrm_base_url.rstrip("/")
        coords = f"{origin.lng},{origin.lat};{destination.lng},{destination.lat}"
        return f"{base}/route/v1/{profile.value}/{coords}"

    async def get_path(
        self, origin: Point, destination: Point, profile: PathProfile
    ) -> PathResult:
        """Fetch the fastest path between two points.

        Returns:
            PathResult for the first route in the response.

        Raises:
            httpx.HTTPError: If the HTTP request fails.
            PathServiceError: If the service found no route.
        """
        client = self._ensure_client()
        response = await client.get(
            self.route_url(origin, destination, profile),
            params={"geometries": "geojson", "overview": "full"},
        )
        response.raise_for_status()

        data = OSRMResponse.model_validate(response.json())
        if data.code != "Ok" or not data.routes:
            raise PathServiceError(f"No {profile.value} route: {data.message or data.code}")

        route = data.routes[0]
        coordinates = route.geometry.get("coordinates") or []
        return PathResult(
            distance_meters=route.distance,
            duration_seconds=route.duration,
            geometry=[(float(lng), float(lat)) for lng, lat in coordinates],
        )
