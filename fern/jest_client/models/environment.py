"""Models for git and CI metadata attached to a test run."""

from pydantic import BaseModel, ConfigDict, Field


class GitInfo(BaseModel):
    """Git branch and commit of the repository under test."""

    model_config = ConfigDict(frozen=True)

    branch: str = Field(default="unknown", description="Current branch")
    sha: str = Field(default="unknown", description="Current commit SHA")
    repo_path: str | None = Field(default=None, description="Git root, if found")


class CIInfo(BaseModel):
    """Who triggered the build and where it can be found."""

    model_config = ConfigDict(frozen=True)

    actor: str = Field(..., description="User or bot that triggered the build")
    build_url: str = Field(default="", description="Link to the CI build")
    is_ci: bool = Field(..., description="Whether running under CI")
    provider: str | None = Field(default=None, description="Detected CI provider")
