import pytest

from parentlink.env_auth import (
    TOKEN_VARIABLES,
    EnvAuthConfig,
    EnvironmentAuthManager,
    create_env_auth_manager,
    resolve_token,
)


@pytest.fixture(autouse=True)
def _clear_tokens(monkeypatch):
    for name in TOKEN_VARIABLES:
        monkeypatch.delenv(name, raising=False)


def test_env_auth_config_defaults():
    """Test EnvAuthConfig with defaults."""
    config = EnvAuthConfig()

    assert config.load_dotenv is True
    assert config.dotenv_path is None
    assert config.token_variables[0] == "PARENTLINK_GITHUB_TOKEN"


def test_environment_auth_manager_no_token():
    """Test EnvironmentAuthManager when no token is available."""
    manager = EnvironmentAuthManager(EnvAuthConfig(load_dotenv=False))
    assert manager.get_github_token() is None
    assert not manager.dotenv_loaded


def test_token_variable_precedence(monkeypatch):
    monkeypatch.setenv("GH_TOKEN", "gh_value")
    monkeypatch.setenv("GITHUB_TOKEN", "github_value")
    manager = EnvironmentAuthManager(EnvAuthConfig(load_dotenv=False))
    assert manager.get_github_token() == "github_value"

    monkeypatch.setenv("PARENTLINK_GITHUB_TOKEN", "parentlink_value")
    assert manager.get_github_token() == "parentlink_value"


def test_blank_token_is_skipped(monkeypatch):
    monkeypatch.setenv("PARENTLINK_GITHUB_TOKEN", "   ")
    monkeypatch.setenv("GITHUB_PAT", "pat_value")
    manager = EnvironmentAuthManager(EnvAuthConfig(load_dotenv=False))
    assert manager.get_github_token() == "pat_value"


def test_dotenv_file_is_loaded(tmp_path, monkeypatch):
    env_file = tmp_path / "custom.env"
    env_file.write_text("GITHUB_TOKEN=from_dotenv\n")
    # load_dotenv writes into os.environ; let monkeypatch restore it
    monkeypatch.setenv("GITHUB_TOKEN", "")
    monkeypatch.delenv("GITHUB_TOKEN")

    manager = EnvironmentAuthManager(EnvAuthConfig(dotenv_path=str(env_file)))

    assert manager.dotenv_loaded
    assert manager.get_github_token() == "from_dotenv"


def test_dotenv_does_not_override_environment(tmp_path, monkeypatch):
    env_file = tmp_path / ".env"
    env_file.write_text("GITHUB_TOKEN=from_dotenv\n")
    monkeypatch.setenv("GITHUB_TOKEN", "from_env")

    manager = EnvironmentAuthManager(EnvAuthConfig(dotenv_path=str(env_file)))
    assert manager.get_github_token() == "from_env"


def test_default_dotenv_locations(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    manager = create_env_auth_manager()
    assert not manager.dotenv_loaded


def test_resolve_token_prefers_explicit(monkeypatch):
    monkeypatch.setenv("GITHUB_TOKEN", "env_value")
    config = EnvAuthConfig(load_dotenv=False)
    assert resolve_token(" explicit ", config) == "explicit"
    assert resolve_token(None, config) == "env_value"
    assert resolve_token("", config) == "env_value"
