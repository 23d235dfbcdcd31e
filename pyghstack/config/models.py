"""Pydantic models for config types."""

from typing import List
from pydantic import BaseModel, Field

class RepoConfig(BaseModel):
    """Repository configuration."""
    # "org/repo" entries searched for PRs; empty means discover from git remotes
    remotes: List[str] = Field(default_factory=list)
    github_remote: str = "origin"

    class Config:
        """Pydantic config."""
        extra = "allow"

class ToolConfig(BaseModel):
    """Tool configuration."""
    concurrency: int = 0
    http_timeout: int = 30
    git_timeout: int = 300

    class Config:
        """Pydantic config."""
        extra = "allow"

class StackConfig(BaseModel):
    """Full pyghstack configuration."""
    repo: RepoConfig = Field(default_factory=RepoConfig)
    tool: ToolConfig = Field(default_factory=ToolConfig)

    class Config:
        """Pydantic config."""
        extra = "allow"
