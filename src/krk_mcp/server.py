import argparse
import asyncio
import logging
from datetime import UTC, datetime

from pydantic import BaseModel

from krk_mcp.app import mcp
from krk_mcp.models.network import Point
from krk_mcp.models.responses import PlanTripRequest, PlanTripResponse, RoutingPreferences

# Register tools on the shared mcp instance
from krk_mcp.tools import place_tools, stop_tools, trip_tools  # noqa: F401


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    timestamp: str
    network: str
    stop_count: int


@mcp.tool()
def health() -> HealthResponse:
    """Check if the Kraków transit MCP server is running and healthy.

    Returns the server status, version, loaded network and current timestamp.
    """
    from krk_mcp import __version__
    from krk_mcp.services.planner_service import get_network_index

    index = get_network_index()
    return HealthResponse(
        status="ok",
        version=__version__,
        timestamp=datetime.now(UTC).isoformat(),
        network=f"{index.name} ({index.version})",
        stop_count=len(index.stops),
    )


async def run_plan(request: PlanTripRequest) -> PlanTripResponse:
    """Plan one trip and release HTTP connections."""
    from krk_mcp.services.planner_service import close_service, plan_trip

    try:
        return await plan_trip(request)
    finally:
        await close_service()


def print_plan(response: PlanTripResponse) -> None:
    for warning in response.warnings:
        print(f"[{warning.severity.value}] {warning.message}")

    routes = [r for r in [response.primary_route, *response.alternative_routes] if r]
    if not routes:
        print("No route found.")
        return

    for i, route in enumerate(routes):
        label = "Best route" if i == 0 else f"Alternative {i}"
        print(
            f"\n{label}: {route.total_duration_minutes} min, "
            f"{route.walking_distance_meters:.0f} m walking, {route.transfer_count} transfer(s)"
        )
        for segment in route.segments:
            print(f"  - {segment.instructions} ({segment.duration_minutes} min)")


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="krk-mcp",
        description="Kraków Transit MCP Server",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose logging",
    )
    subparsers = parser.add_subparsers(dest="command")

    # plan command
    plan_parser = subparsers.add_parser(
        "plan",
        help="Plan a single trip and print it",
    )
    plan_parser.add_argument("start_lat", type=float)
    plan_parser.add_argument("start_lng", type=float)
    plan_parser.add_argument("end_lat", type=float)
    plan_parser.add_argument("end_lng", type=float)
    plan_parser.add_argument(
        "--modes",
        default="walking,bus,tram",
        help="Comma-separated modes: walking,bus,tram,train (default: walking,bus,tram)",
    )
    plan_parser.add_argument("--minimize-walking", action="store_true")
    plan_parser.add_argument("--minimize-transfers", action="store_true")
    plan_parser.add_argument("--prefer-express", action="store_true")
    plan_parser.add_argument(
        "--json",
        action="store_true",
        help="Print the full response as JSON",
    )

    args = parser.parse_args()

    # Configure logging
    log_level = logging.DEBUG if args.verbose else logging.INFO
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    if args.command == "plan":
        request = PlanTripRequest(
            start=Point(lat=args.start_lat, lng=args.start_lng),
            end=Point(lat=args.end_lat, lng=args.end_lng),
            allowed_modes=trip_tools.parse_modes(args.modes.split(",")),
            preferences=RoutingPreferences(
                minimize_walking=args.minimize_walking,
                minimize_transfers=args.minimize_transfers,
                prefer_express=args.prefer_express,
            ),
        )
        response = asyncio.run(run_plan(request))
        if args.json:
            print(response.model_dump_json(indent=2))
        else:
            print_plan(response)
    else:
        # Default: run MCP server
        mcp.run()


if __name__ == "__main__":
    main()
