"""Data models for Jest results, the Fern reporting schema and run metadata."""

from fern.jest_client.models.environment import CIInfo, GitInfo
from fern.jest_client.models.jest_result import (
    FailureDetail,
    JestAggregatedResult,
    JestTestResult,
    JestTestSuiteResult,
)
from fern.jest_client.models.test_run import (
    SpecRun,
    SpecStatus,
    SuiteRun,
    Tag,
    TestRun,
)

__all__ = [
    "CIInfo",
    "FailureDetail",
    "GitInfo",
    "JestAggregatedResult",
    "JestTestResult",
    "JestTestSuiteResult",
    "SpecRun",
    "SpecStatus",
    "SuiteRun",
    "Tag",
    "TestRun",
]
