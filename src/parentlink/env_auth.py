"""Environment-based authentication for parentlink.

Resolves the GitHub token from environment variables, optionally after
loading a ``.env`` file with python-dotenv. The token needs read/write access
to issues and read access to the organization's projects.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

from dotenv import load_dotenv

from .logging import get_logger

TOKEN_VARIABLES = ("PARENTLINK_GITHUB_TOKEN", "GITHUB_TOKEN", "GH_TOKEN", "GITHUB_PAT")
DOTENV_LOCATIONS = (".env", ".env.local")


@dataclass
class EnvAuthConfig:
    """Configuration for environment-based authentication."""

    load_dotenv: bool = True
    dotenv_path: str | None = None
    token_variables: tuple[str, ...] = field(default=TOKEN_VARIABLES)


class EnvironmentAuthManager:
    """Manages authentication through environment variables and .env files."""

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
        """Load the configured .env file, or the first default location found."""
        candidates = (
            (self.config.dotenv_path,) if self.config.dotenv_path else DOTENV_LOCATIONS
        )
        for location in candidates:
            env_path = Path(location)
            if env_path.exists():
                # existing environment variables win over file values
                load_dotenv(str(env_path), override=False)
                self._dotenv_loaded = True
                self.logger.debug(f"Loaded environment variables from {env_path}")
                return

    def get_github_token(self) -> str | None:
        """Get GitHub token from environment variables."""
        for name in self.config.token_variables:
            raw = os.getenv(name)
            if raw is None:
                continue
            token = raw.strip()
            if token:
                self.logger.debug(f"Found GitHub token in {name}")
                return token
        return None


def create_env_auth_manager(config: EnvAuthConfig | None = None) -> EnvironmentAuthManager:
    """Factory function to create environment authentication manager."""
    if config is None:
        config = EnvAuthConfig()
    return EnvironmentAuthManager(config)


def resolve_token(
    explicit: str | None = None, config: EnvAuthConfig | None = None
) -> str | None:
    """Explicit token first, then the environment."""
    if explicit and explicit.strip():
        return explicit.strip()
    return create_env_auth_manager(config).get_github_token()


__all__ = [
    "EnvAuthConfig",
    "EnvironmentAuthManager",
    "create_env_auth_manager",
    "resolve_token",
]
