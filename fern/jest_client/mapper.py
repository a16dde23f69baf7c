"""Map Jest aggregated results to the Fern reporting schema."""

import random
import re
import string
import time
from datetime import datetime, timedelta, timezone

from fern.jest_client.config import CLIENT_NAME
from fern.jest_client.models.environment import CIInfo, GitInfo
from fern.jest_client.models.jest_result import (
    JestAggregatedResult,
    JestTestResult,
    JestTestSuiteResult,
)
from fern.jest_client.models.test_run import SpecRun, SuiteRun, Tag, TestRun
from fern.jest_client.status import normalize_status
from fern.jest_client.tags import extract_tags_from_string

DEFAULT_TAG = "default"
FAILED_MESSAGE = "Test failed"

_SUITE_SUFFIX_PATTERN = re.compile(r"\.(test|spec)\.(js|ts|jsx|tsx)$")
_RUN_ID_ALPHABET = string.digits + string.ascii_lowercase
_EPOCH = datetime.fromtimestamp(0, tz=timezone.utc)


def _now_ms() -> float:
    return time.time() * 1000


def _to_iso(epoch_ms: float) -> str:
    """Format epoch milliseconds as ISO-8601 UTC, e.g. 2024-01-01T00:00:00.000Z."""
    instant = _EPOCH + timedelta(milliseconds=epoch_ms)
    return instant.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def generate_test_seed() -> int:
    """Generate a run seed from the wall clock and a sub-millisecond component.

    Unique with very high probability across runs on the same host, not
    guaranteed.
    """
    sub_ms = time.perf_counter_ns() % 1_000_000
    return time.time_ns() // 1_000_000 * 1_000_000 + sub_ms


def generate_run_id() -> str:
    """Generate a string run identifier such as ``jest-1700000000000-k3x9az``.

    Not used for the reported TestRun, whose id is the numeric seed. Kept for
    callers that need a readable per-run label, e.g. in artifact names.
    """
    suffix = "".join(random.choices(_RUN_ID_ALPHABET, k=6))  # noqa: S311
    return f"jest-{int(_now_ms())}-{suffix}"


def extract_suite_name(file_path: str) -> str:
    """Derive a suite name from a test file path.

    ``/a/b/calculator.test.ts`` becomes ``calculator``.
    """
    file_name = file_path.split("/")[-1] or file_path
    return _SUITE_SUFFIX_PATTERN.sub("", file_name)


def build_spec_description(test: JestTestResult) -> str:
    """Join ancestor titles and the test title with ``' > '``."""
    return " > ".join([*test.ancestor_titles, test.title])


def extract_failure_message(test: JestTestResult) -> str:
    """Extract the failure message for a test.

    Passed and skipped tests have no message. Otherwise raw failure messages
    are preferred over structured failure details; a failed test without
    either gets a generic message.
    """
    status = normalize_status(test.status)
    if status in {"passed", "skipped"}:
        return ""

    if test.failure_messages:
        return "\n".join(test.failure_messages)

    detail_messages = [
        detail.message
        for detail in test.failure_details
        if detail is not None and detail.message
    ]
    if detail_messages:
        return "\n".join(detail_messages)

    return FAILED_MESSAGE if status == "failed" else ""


def extract_tags_from_test(test: JestTestResult) -> list[Tag]:
    """Collect tags from the test title and its ancestor titles.

    Names are deduplicated (first occurrence wins) and numbered from 1. A
    test without any tag markers gets a single ``default`` tag.
    """
    names = extract_tags_from_string(test.title)
    for ancestor in test.ancestor_titles:
        names.extend(extract_tags_from_string(ancestor))

    unique_names = list(dict.fromkeys(names)) or [DEFAULT_TAG]
    return [Tag(id=index, name=name) for index, name in enumerate(unique_names, 1)]


def map_test(
    test: JestTestResult, suite_start_time: float, suite_id: int, spec_id: int
) -> SpecRun:
    """Convert a Jest test result to a SpecRun.

    Jest doesn't report per-test start times, so every spec starts at the
    suite start and ends ``duration`` milliseconds later.

    Args:
        test: Jest test result
        suite_start_time: Suite start, epoch ms
        suite_id: Id of the parent SuiteRun
        spec_id: 1-based position of the test within its suite

    Returns:
        Mapped spec run

    """
    duration = test.duration or 0
    return SpecRun(
        id=spec_id,
        suite_id=suite_id,
        spec_description=build_spec_description(test),
        status=normalize_status(test.status),
        message=extract_failure_message(test),
        tags=extract_tags_from_test(test),
        start_time=_to_iso(suite_start_time),
        end_time=_to_iso(suite_start_time + duration),
    )


def map_suite(
    suite: JestTestSuiteResult, test_run_id: int, suite_id: int
) -> SuiteRun:
    """Convert a Jest test file result to a SuiteRun.

    Missing suite start or end times default to the current time.
    """
    now = _now_ms()
    suite_start = suite.start_time or now
    suite_end = suite.end_time or now

    spec_runs = [
        map_test(test, suite_start, suite_id, index)
        for index, test in enumerate(suite.test_results, 1)
    ]

    return SuiteRun(
        id=suite_id,
        test_run_id=test_run_id,
        suite_name=extract_suite_name(suite.test_file_path),
        start_time=_to_iso(suite_start),
        end_time=_to_iso(suite_end),
        spec_runs=spec_runs,
    )


def map_aggregate(
    results: JestAggregatedResult,
    project_id: str,
    project_name: str,
    git_info: GitInfo,
    ci_info: CIInfo,
) -> TestRun:
    """Convert Jest aggregated results to a Fern TestRun.

    Args:
        results: Aggregated Jest results
        project_id: Fern project identifier
        project_name: Project display name
        git_info: Branch and commit of the code under test
        ci_info: Build actor and URL

    Returns:
        Fully populated test run

    """
    test_seed = generate_test_seed()
    test_run_id = test_seed

    suite_runs = [
        map_suite(suite, test_run_id, index)
        for index, suite in enumerate(results.test_results, 1)
    ]

    # Jest has no run end time; the run ends when mapping completes.
    return TestRun(
        id=test_run_id,
        test_project_name=project_name,
        test_project_id=project_id,
        test_seed=test_seed,
        start_time=_to_iso(results.start_time),
        end_time=_to_iso(_now_ms()),
        git_branch=git_info.branch,
        git_sha=git_info.sha,
        build_trigger_actor=ci_info.actor,
        build_url=ci_info.build_url,
        client_type=CLIENT_NAME,
        suite_runs=suite_runs,
    )


def map_test_run_to_create_input(test_run: TestRun) -> TestRun:
    """Return the request body for a test run; the TestRun is sent as-is."""
    return test_run


def generate_test_summary(test_run: TestRun) -> str:
    """Generate a multi-line test run summary for logging."""
    specs = [spec for suite in test_run.suite_runs for spec in suite.spec_runs]
    passed = sum(1 for spec in specs if spec.status == "passed")
    failed = sum(1 for spec in specs if spec.status == "failed")
    skipped = sum(1 for spec in specs if spec.status == "skipped")

    return "\n".join(
        [
            "Fern Test Run Summary:",
            f"  Project: {test_run.test_project_id}",
            f"  Branch: {test_run.git_branch}",
            f"  Commit: {test_run.git_sha[:8]}",
            f"  Suites: {len(test_run.suite_runs)}",
            f"  Tests: {len(specs)} total, {passed} passed, {failed} failed, "
            f"{skipped} skipped",
        ]
    )
