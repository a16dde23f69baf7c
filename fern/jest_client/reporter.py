"""Reporter that sends completed Jest runs to Fern."""

import asyncio
import inspect
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping

from fern.jest_client.client import DeliveryError, FernApiClient, create_fern_client
from fern.jest_client.config import ReporterConfig, ReporterOptions, resolve_config
from fern.jest_client.environment import get_ci_info, get_git_info
from fern.jest_client.mapper import (
    generate_test_summary,
    map_aggregate,
    map_test_run_to_create_input,
)
from fern.jest_client.models.environment import CIInfo, GitInfo
from fern.jest_client.models.jest_result import (
    JestAggregatedResult,
    JestTestSuiteResult,
)
from fern.jest_client.models.test_run import TestRun

logger = logging.getLogger(__name__)

GitInfoProvider = Callable[[], Awaitable[GitInfo]]
CIInfoProvider = Callable[[], CIInfo]
PreReportHook = Callable[[TestRun], Awaitable[None] | None]
PostReportHook = Callable[[TestRun, Mapping[str, object]], Awaitable[None] | None]


async def _call_hook(hook: Callable[..., object], *args: object) -> None:
    result = hook(*args)
    if inspect.isawaitable(result):
        await result


class FernReporter:
    """Maps a completed Jest run and reports it to fern-reporter.

    Pre-report hooks run in order with the mapped TestRun before it is sent;
    post-report hooks run in order with the TestRun and the response body
    after a successful delivery.
    """

    def __init__(
        self,
        options: ReporterOptions | None = None,
        *,
        environ: Mapping[str, str] | None = None,
        client: FernApiClient | None = None,
        git_info_provider: GitInfoProvider | None = None,
        ci_info_provider: CIInfoProvider | None = None,
        pre_report_hooks: Iterable[PreReportHook] = (),
        post_report_hooks: Iterable[PostReportHook] = (),
    ) -> None:
        """Initialize reporter, resolving options against the environment."""
        self.config: ReporterConfig = resolve_config(options, environ)
        self._git_info_provider = git_info_provider or (
            lambda: get_git_info(environ)
        )
        self._ci_info_provider = ci_info_provider or (lambda: get_ci_info(environ))
        self.pre_report_hooks: list[PreReportHook] = list(pre_report_hooks)
        self.post_report_hooks: list[PostReportHook] = list(post_report_hooks)
        self.client: FernApiClient | None = None

        if not self.config.enabled:
            logger.info("Fern reporter is disabled")
            return

        self.client = client or create_fern_client(
            self.config.project_id, self.config.client_options()
        )
        logger.info(f"Fern reporter initialized for project: {self.config.project_id}")
        logger.info(f"Reporting to: {self.client.base_url}")

    @property
    def enabled(self) -> bool:
        """Whether reporting is enabled."""
        return self.client is not None

    def add_pre_report_hook(self, hook: PreReportHook) -> None:
        """Register a hook to run before the test run is sent."""
        self.pre_report_hooks.append(hook)

    def add_post_report_hook(self, hook: PostReportHook) -> None:
        """Register a hook to run after the test run was delivered."""
        self.post_report_hooks.append(hook)

    def on_test_start(self, test_path: str) -> None:
        """Log a test file start when debugging."""
        if self.enabled and self.config.debug:
            logger.info(f"Starting test: {test_path}")

    def on_test_result(self, test_path: str, suite_result: JestTestSuiteResult) -> None:
        """Log a test file completion when debugging."""
        if self.enabled and self.config.debug:
            logger.info(
                f"Completed test: {test_path} "
                f"({suite_result.num_passing_tests} passed, "
                f"{suite_result.num_failing_tests} failed, "
                f"{suite_result.num_pending_tests} pending)"
            )

    async def on_run_complete(self, results: JestAggregatedResult) -> TestRun | None:
        """Map the completed run and send it to Fern.

        Delivery failures are logged and swallowed so that reporting never
        changes the outcome of the test run, unless ``fail_on_error`` is set.

        Args:
            results: Aggregated Jest results

        Returns:
            The mapped test run, or None when the reporter is disabled

        Raises:
            DeliveryError: If delivery failed and fail_on_error is set

        """
        if self.client is None:
            return None

        logger.info("Collecting test results for Fern reporting...")
        git_info, ci_info = await asyncio.gather(
            self._git_info_provider(),
            asyncio.to_thread(self._ci_info_provider),
        )

        test_run = map_aggregate(
            results,
            self.config.project_id,
            self.config.project_name,
            git_info,
            ci_info,
        )
        logger.info(generate_test_summary(test_run))

        for pre_hook in self.pre_report_hooks:
            await _call_hook(pre_hook, test_run)

        try:
            logger.info("Sending test results to Fern...")
            response = await self.client.report(map_test_run_to_create_input(test_run))
        except DeliveryError as e:
            logger.error(f"Failed to send test results to Fern: {e}")
            if self.config.fail_on_error:
                raise
            return test_run

        logger.info("Test results successfully sent to Fern")

        for post_hook in self.post_report_hooks:
            await _call_hook(post_hook, test_run, response)

        return test_run

    async def test_connection(self) -> bool:
        """Check connectivity to the Fern API."""
        if self.client is None:
            return False

        is_healthy = await self.client.ping()
        if is_healthy:
            logger.info("Fern API connection successful")
        else:
            logger.warning("Fern API is not responding correctly")
        return is_healthy

