"""Map Jest test statuses to Fern statuses."""

from fern.jest_client.models.test_run import SpecStatus

_STATUS_MAPPING: dict[str, SpecStatus] = {
    "passed": "passed",
    "failed": "failed",
    "skipped": "skipped",
    "pending": "skipped",
    "disabled": "skipped",
    "todo": "pending",
}


def normalize_status(jest_status: str) -> SpecStatus:
    """Map a Jest status to a Fern status, ``unknown`` if unrecognized."""
    return _STATUS_MAPPING.get(jest_status, "unknown")
