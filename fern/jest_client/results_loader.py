"""Load Jest results written by ``jest --json --outputFile``."""

import json
from pathlib import Path

from pydantic import ValidationError

from fern.jest_client.models.jest_result import JestAggregatedResult


async def load_aggregated_result(results_path: Path) -> JestAggregatedResult:
    """Load aggregated Jest results from a JSON file.

    Args:
        results_path: Path to the Jest JSON results file

    Returns:
        Parsed aggregated results

    Raises:
        FileNotFoundError: If the results file doesn't exist
        ValueError: If JSON is invalid or doesn't match the Jest result schema

    """
    if not results_path.exists():
        raise FileNotFoundError(f"Results file not found: {results_path}")

    try:
        with results_path.open() as f:
            data = json.load(f)
    except json.JSONDecodeError as e:
        raise ValueError(f"Invalid JSON in {results_path}: {e}") from e

    if data is None:
        raise ValueError(f"Empty results file: {results_path}")

    try:
        return JestAggregatedResult.model_validate(data)
    except ValidationError as e:
        raise ValueError(f"Invalid Jest results in {results_path}: {e}") from e
