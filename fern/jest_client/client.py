"""HTTP client for sending test runs to fern-reporter."""

import asyncio
import json
import logging
from collections.abc import Mapping

import aiohttp

from fern.jest_client.config import (
    HEALTH_ENDPOINT,
    TEST_RUNS_ENDPOINT,
    USER_AGENT,
    ClientOptions,
)
from fern.jest_client.models.test_run import TestRun

logger = logging.getLogger(__name__)


class DeliveryError(RuntimeError):
    """A test run could not be delivered to fern-reporter.

    ``status`` and ``body`` are set when the server answered; both are
    ``None`` when the request never got a response, in which case the
    underlying network error is available as ``__cause__``.
    """

    def __init__(
        self,
        message: str,
        url: str,
        status: int | None = None,
        body: str | None = None,
    ) -> None:
        """Initialize delivery error with response details, if any."""
        super().__init__(message)
        self.url = url
        self.status = status
        self.body = body

    @property
    def response_received(self) -> bool:
        """Whether the server sent a response."""
        return self.status is not None


def is_retryable(error: DeliveryError) -> bool:
    """Decide whether a failed delivery attempt may be retried.

    Requests that got no response at all (connection refused, DNS failure,
    reset, timeout) and 5xx responses are retried. Any other status is a
    terminal failure.
    """
    if not error.response_received:
        return True
    return error.status is not None and 500 <= error.status < 600


class FernApiClient:
    """Client for the fern-reporter test run API."""

    def __init__(self, project_id: str, options: ClientOptions | None = None) -> None:
        """Initialize client with project ID and connection options."""
        options = options or ClientOptions()
        self._project_id = project_id
        self._base_url = options.base_url.rstrip("/")
        self.timeout = options.timeout
        self.headers = {
            "Content-Type": "application/json",
            "User-Agent": USER_AGENT,
            **options.headers,
        }
        self.retries = options.retries
        self.retry_delay = options.retry_delay

    @property
    def base_url(self) -> str:
        """Configured fern-reporter base URL."""
        return self._base_url

    @property
    def project_id(self) -> str:
        """Project this client reports for."""
        return self._project_id

    def _session(self) -> aiohttp.ClientSession:
        return aiohttp.ClientSession(
            headers=self.headers,
            timeout=aiohttp.ClientTimeout(total=self.timeout / 1000),
        )

    async def report(self, test_run: TestRun) -> Mapping[str, object]:
        """Send a test run to fern-reporter.

        Failed attempts that got no response or a 5xx response are retried
        up to ``retries`` times, waiting ``retry_delay * attempt`` ms before
        each retry.

        Args:
            test_run: Mapped test run to post

        Returns:
            Parsed JSON response body, empty if the body is not JSON

        Raises:
            DeliveryError: If the run was rejected or retries were exhausted

        """
        url = f"{self._base_url}{TEST_RUNS_ENDPOINT}"
        payload = test_run.model_dump(mode="json")

        async with self._session() as session:
            attempt = 0
            while True:
                try:
                    data = await self._post(session, url, payload)
                    break
                except DeliveryError as e:
                    if attempt >= self.retries or not is_retryable(e):
                        self._log_failure(e)
                        raise
                    attempt += 1
                    logger.info(
                        f"Retrying request (attempt {attempt}/{self.retries})"
                    )
                    await asyncio.sleep(self.retry_delay * attempt / 1000)

        logger.info(
            f"Project: {test_run.test_project_name} ({test_run.test_project_id})"
        )
        logger.info(f"Test Seed: {test_run.test_seed}")
        logger.info(f"Branch: {test_run.git_branch}")
        logger.info(f"Suites: {len(test_run.suite_runs)}")
        if data.get("id") is not None:
            logger.info(f"Fern Test Run ID: {data['id']}")

        return data

    async def _post(
        self,
        session: aiohttp.ClientSession,
        url: str,
        payload: Mapping[str, object],
    ) -> Mapping[str, object]:
        """Make a single POST attempt."""
        try:
            async with session.post(url, json=payload) as response:
                text = await response.text(errors="replace")
                if not 200 <= response.status < 300:
                    raise DeliveryError(
                        f"Failed to report test run: {response.status} {text}",
                        url=url,
                        status=response.status,
                        body=text,
                    )
                logger.info(
                    f"Successfully reported test run to Fern ({response.status})"
                )
                return _parse_body(text)
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise DeliveryError(
                f"Failed to reach Fern API: {type(e).__name__}: {e}", url=url
            ) from e

    def _log_failure(self, error: DeliveryError) -> None:
        if error.response_received:
            logger.error(f"Failed to report to Fern API ({error.status})")
            if error.body:
                logger.error(f"Response data: {error.body}")
        else:
            logger.error(f"Failed to reach Fern API: {error.__cause__}")
            logger.error(f"URL: {error.url}")

    async def ping(self) -> bool:
        """Check fern-reporter health, returning False on any failure."""
        url = f"{self._base_url}{HEALTH_ENDPOINT}"
        try:
            async with self._session() as session:
                async with session.get(url) as response:
                    if 200 <= response.status < 300:
                        return True
                    logger.warning(
                        f"Fern API health check failed: {response.status}"
                    )
                    return False
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            logger.warning(f"Fern API health check failed: {e}")
            return False


def _parse_body(text: str) -> Mapping[str, object]:
    """Parse a JSON object response body, ignoring anything else."""
    if not text:
        return {}
    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        return {}
    return data if isinstance(data, dict) else {}


def create_fern_client(
    project_id: str, options: ClientOptions | None = None
) -> FernApiClient:
    """Create a FernApiClient."""
    return FernApiClient(project_id, options)
