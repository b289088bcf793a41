"""Tests for the MCP server, health tool and CLI."""

import json
import sys
from datetime import datetime
from unittest.mock import AsyncMock, patch

import pytest

from krk_mcp import __version__
from krk_mcp.models.network import Point, TransportMode
from krk_mcp.models.responses import (
    PlanTripResponse,
    RoutingMetadata,
    RoutingWarning,
    WalkingSegment,
    WarningSeverity,
    WarningType,
)
from krk_mcp.server import health, main, print_plan
from krk_mcp.services import planner_service
from krk_mcp.services.candidates import assemble_itinerary

NOW = datetime(2025, 3, 10, 8, 0)


@pytest.fixture(autouse=True)
def reset_service():
    """Reset the planner singletons before and after each test."""
    planner_service.reset_service()
    yield
    planner_service.reset_service()


def _walking_response() -> PlanTripResponse:
    start, end = Point(lat=50.0614, lng=19.9372), Point(lat=50.0625, lng=19.9375)
    segment = WalkingSegment(
        segment_id="walk_1_walk1",
        start_point=start,
        end_point=end,
        distance_meters=124.0,
        duration_minutes=2,
        geometry=[(start.lng, start.lat), (end.lng, end.lat)],
        instructions="Walk to your destination",
    )
    return PlanTripResponse(
        primary_route=assemble_itinerary("walk_1", [segment], departure=NOW),
        warnings=[
            RoutingWarning(
                type=WarningType.DISRUPTION,
                severity=WarningSeverity.INFO,
                message="Line 13: Track works",
            )
        ],
        metadata=RoutingMetadata(
            request_id="req_1",
            algorithm="walking-only",
            version="1.0.0",
            processing_time_ms=1.5,
            data_timestamp=NOW,
        ),
    )


def test_health_returns_ok_status():
    """Health check should return status ok."""
    response = health()
    assert response.status == "ok"


def test_health_returns_version():
    """Health check should return the current version."""
    response = health()
    assert response.version == __version__


def test_health_returns_timestamp():
    """Health check should return a valid ISO timestamp."""
    response = health()
    assert response.timestamp is not None
    # Should be parseable as ISO format
    assert "T" in response.timestamp


def test_health_reports_network():
    """Health check should describe the loaded network."""
    response = health()
    assert response.network == "Kraków city network (2025.1)"
    assert response.stop_count == 38


def test_print_plan(capsys):
    print_plan(_walking_response())

    out = capsys.readouterr().out
    assert "[info] Line 13: Track works" in out
    assert "Best route: 2 min, 124 m walking, 0 transfer(s)" in out
    assert "Walk to your destination (2 min)" in out


def test_print_plan_without_route(capsys):
    response = _walking_response().model_copy(update={"primary_route": None, "warnings": []})

    print_plan(response)

    assert "No route found." in capsys.readouterr().out


def test_cli_plan_json(capsys):
    run_plan = AsyncMock(return_value=_walking_response())
    argv = ["krk-mcp", "plan", "50.0614", "19.9372", "50.0625", "19.9375", "--modes", "tram,train", "--json"]

    with patch.object(sys, "argv", argv), patch("krk_mcp.server.run_plan", run_plan):
        main()

    (request,), _ = run_plan.call_args
    assert request.start == Point(lat=50.0614, lng=19.9372)
    assert request.allowed_modes == frozenset(
        {TransportMode.WALKING, TransportMode.TRAM, TransportMode.TRAIN}
    )
    payload = json.loads(capsys.readouterr().out)
    assert payload["success"] is True
    assert payload["metadata"]["algorithm"] == "walking-only"
