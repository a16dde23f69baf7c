"""Models for Jest's aggregated results (``jest --json`` output)."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _JestModel(BaseModel):
    """Base for Jest result models: camelCase keys, unknown keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class FailureDetail(_JestModel):
    """Structured failure detail attached to a failed test."""

    model_config = ConfigDict(extra="allow")

    message: str | None = Field(default=None, description="Error message")
    stack: str | None = Field(default=None, description="Stack trace")


class JestTestResult(_JestModel):
    """Result of a single Jest test case."""

    __test__ = False

    ancestor_titles: list[str] = Field(
        default_factory=list, description="Titles of enclosing describe blocks"
    )
    title: str = Field(..., description="Test title")
    full_name: str = Field(default="", description="Ancestors and title joined")
    status: str = Field(..., description="Jest status (passed, failed, todo, ...)")
    duration: float | None = Field(default=None, description="Duration in ms")
    failure_messages: list[str] = Field(
        default_factory=list, description="Raw failure messages"
    )
    failure_details: list[FailureDetail | None] = Field(
        default_factory=list, description="Structured failure details"
    )


class JestTestSuiteResult(_JestModel):
    """Result of one Jest test file."""

    __test__ = False

    test_file_path: str = Field(..., description="Absolute path of the test file")
    start_time: float | None = Field(default=None, description="Epoch ms")
    end_time: float | None = Field(default=None, description="Epoch ms")
    num_passing_tests: int = Field(default=0)
    num_failing_tests: int = Field(default=0)
    num_pending_tests: int = Field(default=0)
    test_results: list[JestTestResult] = Field(
        default_factory=list, description="Tests in this file"
    )


class JestAggregatedResult(_JestModel):
    """Aggregated result handed over when a Jest run completes."""

    start_time: float = Field(..., description="Run start, epoch ms")
    success: bool | None = Field(default=None)
    num_total_tests: int = Field(default=0)
    test_results: list[JestTestSuiteResult] = Field(
        default_factory=list, description="Per-file results"
    )
