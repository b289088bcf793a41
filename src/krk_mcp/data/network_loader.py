"""Loader for the static transit network dataset."""

import logging
from importlib import resources
from pathlib import Path

from krk_mcp.models.network import NetworkDataset

logger = logging.getLogger(__name__)

BUNDLED_NETWORK = "krakow_network.json"


def load_network(path: Path | None = None) -> NetworkDataset:
    """Load and validate a network dataset.

    Args:
        path: Optional JSON file. Uses the bundled Kraków network if not provided.

    Returns:
        The validated NetworkDataset.

    Raises:
        FileNotFoundError: If path doesn't exist.
        pydantic.ValidationError: If the file is not a valid dataset.
    """
    if path is None:
        text = resources.files("krk_mcp.data").joinpath(BUNDLED_NETWORK).read_text(encoding="utf-8")
        source = BUNDLED_NETWORK
    else:
        if not path.exists():
            raise FileNotFoundError(f"Network dataset not found at {path}")
        text = path.read_text(encoding="utf-8")
        source = str(path)

    dataset = NetworkDataset.model_validate_json(text)
    logger.info(
        f"Loaded network '{dataset.name}' ({dataset.version}) from {source}: "
        f"{len(dataset.stops)} stops, {len(dataset.lines)} lines, "
        f"{len(dataset.disruptions)} disruptions"
    )
    return dataset
