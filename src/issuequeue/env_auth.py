"""Environment-based authentication for issuequeue.

The GitHub token is read from environment variables, optionally after
loading a ``.env`` file. Without a token the search API still works, just
with a much lower rate limit.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from .logging import get_logger

TOKEN_ALTERNATIVES = ("GH_TOKEN", "GITHUB_ACCESS_TOKEN", "GH_ACCESS_TOKEN", "GITHUB_PAT")


@dataclass
class EnvAuthConfig:
    """Configuration for environment-based authentication."""

    load_dotenv: bool = True
    dotenv_path: str | None = None
    github_token_var: str = "GITHUB_TOKEN"


class EnvironmentAuthManager:
    """Resolves the GitHub token from environment variables and .env files."""

    def __init__(self, config: EnvAuthConfig):
        self.config = config
        self.logger = get_logger()
        self._dotenv_loaded = False

        if config.load_dotenv:
            self._load_dotenv()

    @property
    def dotenv_loaded(self) -> bool:
        return self._dotenv_loaded

    def _load_dotenv(self) -> None:
        """Load the configured .env file, or the first conventional one found."""
        candidates = [self.config.dotenv_path] if self.config.dotenv_path else ['.env', '.env.local']
        for location in candidates:
            env_path = Path(location)
            if env_path.exists():
                # Variables already set in the real environment take precedence
                load_dotenv(str(env_path), override=False)
                self._dotenv_loaded = True
                self.logger.debug(f"Loaded environment variables from {env_path}")
                return

    def get_github_token(self) -> str | None:
        """Get GitHub token from environment variables."""
        token = os.getenv(self.config.github_token_var)
        if token:
            self.logger.debug("Found GitHub token in environment variables")
            return token

        for alt_var in TOKEN_ALTERNATIVES:
            token = os.getenv(alt_var)
            if token:
                self.logger.debug(f"Found GitHub token in {alt_var}")
                return token

        return None

    def get_authentication_recommendations(self) -> list[str]:
        if self.get_github_token():
            return []
        return [
            "Set GITHUB_TOKEN environment variable",
            "Or create .env file with GITHUB_TOKEN=your_token",
            "Unauthenticated search requests are limited to 10 per minute",
        ]


def create_env_auth_manager(config: EnvAuthConfig | None = None) -> EnvironmentAuthManager:
    """Factory function to create environment authentication manager."""
    if config is None:
        config = EnvAuthConfig()
    return EnvironmentAuthManager(config)


__all__ = [
    "EnvAuthConfig",
    "EnvironmentAuthManager",
    "create_env_auth_manager",
]
