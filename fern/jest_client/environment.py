"""Detect git and CI metadata for a test run."""

import asyncio
import logging
import os
from collections.abc import Mapping
from pathlib import Path

from fern.jest_client.config import GIT_REPO_PATH, get_env_var
from fern.jest_client.models.environment import CIInfo, GitInfo

logger = logging.getLogger(__name__)

UNKNOWN = "unknown"

_CI_INDICATORS = (
    "CI",
    "CONTINUOUS_INTEGRATION",
    "BUILD_NUMBER",
    "GITHUB_ACTIONS",
    "GITLAB_CI",
    "CIRCLECI",
    "JENKINS_URL",
)


def is_ci(environ: Mapping[str, str] | None = None) -> bool:
    """Check if running in a CI environment."""
    env = os.environ if environ is None else environ
    return any(env.get(name) for name in _CI_INDICATORS)


def get_working_directory(environ: Mapping[str, str] | None = None) -> Path:
    """Directory to start git discovery from (``GIT_REPO_PATH`` or cwd)."""
    env = os.environ if environ is None else environ
    repo_path = get_env_var(env, GIT_REPO_PATH)
    return to_absolute_path(repo_path) if repo_path else Path.cwd()


def to_absolute_path(path: str) -> Path:
    """Convert a path to an absolute path, expanding ``~``."""
    return Path(path).expanduser().resolve()


def find_git_root(start_path: Path) -> Path | None:
    """Find the git root by walking up from start_path."""
    current = start_path.resolve()
    for candidate in (current, *current.parents):
        if (candidate / ".git").exists():
            return candidate
    return None


def get_ci_info(environ: Mapping[str, str] | None = None) -> CIInfo:
    """Detect the CI provider and build details.

    Providers are checked in order: GitHub Actions, GitLab CI, Jenkins,
    CircleCI. Outside CI the actor is ``local-developer``; an unrecognized
    CI gets the generic ``ci-user`` actor.
    """
    env = os.environ if environ is None else environ

    if actor := get_env_var(env, "GITHUB_ACTOR"):
        server_url = get_env_var(env, "GITHUB_SERVER_URL", "https://github.com")
        repository = get_env_var(env, "GITHUB_REPOSITORY", "")
        run_id = get_env_var(env, "GITHUB_RUN_ID", "")
        return CIInfo(
            actor=actor,
            build_url=f"{server_url}/{repository}/actions/runs/{run_id}",
            is_ci=True,
            provider="github-actions",
        )

    if actor := get_env_var(env, "GITLAB_USER_LOGIN"):
        project_url = get_env_var(env, "CI_PROJECT_URL", "")
        pipeline_id = get_env_var(env, "CI_PIPELINE_ID", "")
        return CIInfo(
            actor=actor,
            build_url=f"{project_url}/-/pipelines/{pipeline_id}",
            is_ci=True,
            provider="gitlab-ci",
        )

    if actor := get_env_var(env, "BUILD_USER"):
        return CIInfo(
            actor=actor,
            build_url=get_env_var(env, "BUILD_URL", "") or "",
            is_ci=True,
            provider="jenkins",
        )

    if actor := get_env_var(env, "CIRCLE_USERNAME"):
        return CIInfo(
            actor=actor,
            build_url=get_env_var(env, "CIRCLE_BUILD_URL", "") or "",
            is_ci=True,
            provider="circleci",
        )

    if not is_ci(env):
        return CIInfo(actor="local-developer", build_url="", is_ci=False)

    return CIInfo(actor="ci-user", build_url="", is_ci=True, provider=UNKNOWN)


def get_git_info_from_ci(environ: Mapping[str, str]) -> GitInfo:
    """Read branch and commit from CI provider environment variables."""
    if sha := get_env_var(environ, "GITHUB_SHA"):
        ref = get_env_var(environ, "GITHUB_REF", "") or ""
        branch = (
            ref.replace("refs/heads/", "")
            .replace("refs/pull/", "pr-")
            .replace("/merge", "")
        )
        return GitInfo(branch=branch or UNKNOWN, sha=sha)

    if sha := get_env_var(environ, "CI_COMMIT_SHA"):
        return GitInfo(
            branch=get_env_var(environ, "CI_COMMIT_REF_NAME", UNKNOWN) or UNKNOWN,
            sha=sha,
        )

    if sha := get_env_var(environ, "GIT_COMMIT"):
        return GitInfo(
            branch=get_env_var(environ, "GIT_BRANCH", UNKNOWN) or UNKNOWN, sha=sha
        )

    if sha := get_env_var(environ, "CIRCLE_SHA1"):
        return GitInfo(
            branch=get_env_var(environ, "CIRCLE_BRANCH", UNKNOWN) or UNKNOWN,
            sha=sha,
        )

    return GitInfo()


async def _run_git(repo_path: Path, *args: str) -> str:
    """Run a git command and return its stripped stdout."""
    process = await asyncio.create_subprocess_exec(
        "git",
        *args,
        cwd=repo_path,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.PIPE,
    )
    stdout, stderr = await process.communicate()
    if process.returncode != 0:
        raise RuntimeError(f"git {' '.join(args)} failed: {stderr.decode().strip()}")
    return stdout.decode().strip()


async def get_git_info(
    environ: Mapping[str, str] | None = None, cwd: Path | None = None
) -> GitInfo:
    """Get the branch and commit of the code under test.

    CI environment variables are used when available; otherwise the git
    repository enclosing ``cwd`` is queried. Fields that cannot be
    determined are ``unknown``.

    Args:
        environ: Environment mapping (default: os.environ)
        cwd: Directory to start repository discovery from

    Returns:
        Git branch and commit SHA

    """
    env = os.environ if environ is None else environ

    if is_ci(env):
        ci_git_info = get_git_info_from_ci(env)
        if ci_git_info.branch != UNKNOWN or ci_git_info.sha != UNKNOWN:
            return ci_git_info

    git_root = find_git_root(cwd or get_working_directory(env))
    if git_root is None:
        logger.warning("Git repository not found, using default values")
        return GitInfo()

    branch = UNKNOWN
    try:
        branch = await _run_git(git_root, "branch", "--show-current") or UNKNOWN
    except (OSError, RuntimeError) as e:
        logger.warning(f"Failed to get git branch: {e}")

    sha = UNKNOWN
    try:
        sha = await _run_git(git_root, "rev-parse", "HEAD") or UNKNOWN
    except (OSError, RuntimeError) as e:
        logger.warning(f"Failed to get git commit SHA: {e}")

    return GitInfo(branch=branch, sha=sha, repo_path=str(git_root))
