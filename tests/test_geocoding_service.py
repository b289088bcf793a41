"""Tests for the place search service."""

from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from krk_mcp.data.config import PlannerConfig
from krk_mcp.services import geocoding_service


@pytest.fixture(autouse=True)
def clear_cache():
    """Reset the results cache before and after each test."""
    geocoding_service.clear_cache()
    yield
    geocoding_service.clear_cache()


@pytest.fixture
def config() -> PlannerConfig:
    return PlannerConfig(KRK_NOMINATIM_URL="https://nominatim.example.com")


def _nominatim_payload() -> list[dict]:
    return [
        {
            "place_id": 1,
            "lat": "50.0540",
            "lon": "19.9354",
            "display_name": "Wawel, Kraków, Polska",
        }
    ]


def _mock_client(get: AsyncMock) -> AsyncMock:
    mock_client = AsyncMock()
    mock_client.get = get
    return mock_client


@pytest.mark.asyncio
async def test_search_places_returns_results(config: PlannerConfig):
    mock_response = MagicMock()
    mock_response.json.return_value = _nominatim_payload()

    with patch("httpx.AsyncClient") as mock_client_class:
        mock_client_class.return_value = _mock_client(AsyncMock(return_value=mock_response))

        result = await geocoding_service.search_places("Wawel", config=config)

    assert result.api_available is True
    assert result.count == 1
    assert result.results[0].display_name.startswith("Wawel")
    assert result.results[0].lat == pytest.approx(50.054)


@pytest.mark.asyncio
async def test_search_places_unavailable(config: PlannerConfig):
    """Geocoder failures are reported, not raised."""
    get = AsyncMock(side_effect=httpx.ConnectError("connection refused"))

    with patch("httpx.AsyncClient") as mock_client_class:
        mock_client_class.return_value = _mock_client(get)

        result = await geocoding_service.search_places("Wawel", config=config)

    assert result.api_available is False
    assert result.results == []
    assert result.count == 0


@pytest.mark.asyncio
async def test_search_places_caches_results(config: PlannerConfig):
    mock_response = MagicMock()
    mock_response.json.return_value = _nominatim_payload()
    get = AsyncMock(return_value=mock_response)

    with patch("httpx.AsyncClient") as mock_client_class:
        mock_client_class.return_value = _mock_client(get)

        first = await geocoding_service.search_places("Wawel", config=config)
        second = await geocoding_service.search_places("wawel", config=config)

    assert get.await_count == 1
    assert second.results == first.results


@pytest.mark.asyncio
async def test_failures_are_not_cached(config: PlannerConfig):
    mock_response = MagicMock()
    mock_response.json.return_value = _nominatim_payload()
    get = AsyncMock(side_effect=[httpx.ConnectError("down"), mock_response])

    with patch("httpx.AsyncClient") as mock_client_class:
        mock_client_class.return_value = _mock_client(get)

        failed = await geocoding_service.search_places("Wawel", config=config)
        recovered = await geocoding_service.search_places("Wawel", config=config)

    assert failed.api_available is False
    assert recovered.api_available is True
    assert recovered.count == 1


@pytest.mark.asyncio
async def test_empty_query_skips_geocoder(config: PlannerConfig):
    with patch("httpx.AsyncClient") as mock_client_class:
        result = await geocoding_service.search_places("   ", config=config)

    mock_client_class.assert_not_called()
    assert result.api_available is True
    assert result.count == 0
