from functools import lru_cache
from typing import Literal

from pydantic import AliasChoices, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from prreview.core.exceptions import ConfigurationError

DEFAULT_REVIEW_EXTENSIONS = [".js", ".ts", ".py", ".cpp", ".h", ".java", ".cs"]
DEFAULT_EXCLUDED_EXTENSIONS = [".md", ".json"]
DEFAULT_EXCLUDED_FILES = [
    "package-lock.json",
    "npm-shrinkwrap.json",
    "yarn.lock",
    "pnpm-lock.yaml",
    "poetry.lock",
    "Pipfile.lock",
    "Cargo.lock",
    "Gemfile.lock",
    "composer.lock",
    "go.sum",
]


class Settings(BaseSettings):  # type: ignore[misc]
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True,
        populate_by_name=True,
    )

    # Application
    log_level: str = "INFO"
    log_format: Literal["console", "json"] = "console"

    # GitHub (action inputs arrive as INPUT_<NAME>)
    github_token: SecretStr = Field(
        default=...,
        validation_alias=AliasChoices("github_token", "input_github-token"),
    )
    github_api_url: str = "https://api.github.com"
    github_repository: str | None = None
    github_event_name: str | None = None
    github_event_path: str | None = None
    github_output: str | None = None
    pr_number: int | None = Field(
        default=None,
        validation_alias=AliasChoices("pr_number", "input_pr-number"),
    )

    # Anthropic
    anthropic_api_key: SecretStr | None = Field(
        default=None,
        validation_alias=AliasChoices("anthropic_api_key", "input_anthropic-key"),
    )

    # Working copy
    repo_path: str = Field(
        default=".",
        validation_alias=AliasChoices("repo_path", "github_workspace"),
    )
    git_remote: str = "origin"
    diff_context_lines: int = 10

    # Diff filtering
    review_extensions: list[str] = Field(default_factory=lambda: list(DEFAULT_REVIEW_EXTENSIONS))
    excluded_extensions: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EXCLUDED_EXTENSIONS)
    )
    excluded_files: list[str] = Field(default_factory=lambda: list(DEFAULT_EXCLUDED_FILES))

    # Metrics
    metrics_pushgateway_url: str | None = None

    @property
    def repository_coordinates(self) -> tuple[str, str]:
        """Split GITHUB_REPOSITORY into (owner, repo)."""
        if not self.github_repository or "/" not in self.github_repository:
            raise ConfigurationError(
                "GITHUB_REPOSITORY must be set as 'owner/repo'",
                details={"github_repository": self.github_repository},
            )
        owner, repo = self.github_repository.split("/", 1)
        return owner, repo


@lru_cache
def get_settings() -> Settings:
    return Settings()
