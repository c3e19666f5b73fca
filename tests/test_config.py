from __future__ import annotations

import textwrap

import pytest

from parentlink.config import ConfigError, build_config, default_config, load_config

FULL_CONFIG = textwrap.dedent(
    """\
    project:
      org: acme
      number: 7
      field: Initiative
      field_page_size: 25
      item_page_size: 50
    github:
      graphql_url: https://ghe.example.com/api/graphql
      token: $PL_TEST_TOKEN
    behavior:
      dry_run_default: true
      summary_json: out/summary.json
    concurrency:
      max_workers: 4
    retry:
      attempts: 5
      base_sleep: 1.5
    logging:
      json_enabled: true
      level: DEBUG
    environment:
      load_dotenv: false
      dotenv_path: custom.env
    """
)


def test_load_full_config(tmp_path, monkeypatch):
    monkeypatch.setenv('PL_TEST_TOKEN', 'secret-value')
    path = tmp_path / 'parentlink.config.yaml'
    path.write_text(FULL_CONFIG)

    cfg = load_config(path)

    assert cfg.source_file == path
    assert cfg.require_target() == ('acme', 7, 'Initiative')
    assert cfg.field_page_size == 25
    assert cfg.item_page_size == 50
    assert cfg.graphql_url == 'https://ghe.example.com/api/graphql'
    assert cfg.token == 'secret-value'
    assert cfg.dry_run_default is True
    assert cfg.summary_json == 'out/summary.json'
    assert cfg.max_workers == 4
    assert (cfg.retry_attempts, cfg.retry_base_sleep) == (5, 1.5)
    assert cfg.logging_json_enabled is True
    assert cfg.logging_level == 'DEBUG'
    assert cfg.env_auth_load_dotenv is False
    assert cfg.env_auth_dotenv_path == 'custom.env'


def test_unset_env_token_resolves_to_none(tmp_path, monkeypatch):
    monkeypatch.delenv('PL_TEST_TOKEN', raising=False)
    path = tmp_path / 'c.yaml'
    path.write_text(FULL_CONFIG)
    assert load_config(path).token is None


def test_default_config(monkeypatch):
    monkeypatch.delenv('PARENTLINK_GITHUB_GRAPHQL', raising=False)
    cfg = default_config()
    assert cfg.source_file is None
    assert cfg.org is None
    assert cfg.field_page_size == 50
    assert cfg.item_page_size == 100
    assert cfg.max_workers == 8
    assert cfg.graphql_url == 'https://api.github.com/graphql'
    assert cfg.dry_run_default is False
    assert cfg.env_auth_load_dotenv is True


def test_graphql_url_env_override(monkeypatch):
    monkeypatch.setenv('PARENTLINK_GITHUB_GRAPHQL', 'http://localhost:9999/graphql')
    assert default_config().graphql_url == 'http://localhost:9999/graphql'


def test_require_target_lists_missing_settings():
    cfg = build_config({'project': {'org': 'acme'}})
    with pytest.raises(ConfigError) as excinfo:
        cfg.require_target()
    assert 'project.number' in str(excinfo.value)
    assert 'project.field' in str(excinfo.value)


def test_missing_file_raises(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / 'absent.yaml')


def test_invalid_yaml_raises(tmp_path):
    path = tmp_path / 'bad.yaml'
    path.write_text('project: [unclosed')
    with pytest.raises(ConfigError):
        load_config(path)


def test_non_mapping_root_raises(tmp_path):
    path = tmp_path / 'list.yaml'
    path.write_text('- a\n- b\n')
    with pytest.raises(ConfigError):
        load_config(path)


@pytest.mark.parametrize(
    'raw',
    [
        {'project': {'item_page_size': 0}},
        {'project': {'field_page_size': 101}},
        {'project': {'item_page_size': 'many'}},
        {'project': {'number': -1}},
        {'concurrency': {'max_workers': 0}},
        {'concurrency': {'max_workers': 'lots'}},
        {'retry': {'attempts': 'x'}},
        {'retry': {'attempts': 0}},
        {'retry': {'base_sleep': 'soon'}},
    ],
)
def test_invalid_values_raise(raw):
    with pytest.raises(ConfigError):
        build_config(raw)


@pytest.mark.parametrize(
    ('name', 'value'),
    [('PARENTLINK_RETRY_ATTEMPTS', 'three'), ('PARENTLINK_RETRY_BASE', 'half')],
)
def test_invalid_retry_environment_raises(monkeypatch, name, value):
    monkeypatch.setenv(name, value)
    with pytest.raises(ConfigError) as excinfo:
        default_config()
    assert name in str(excinfo.value)


def test_retry_file_settings_win_over_environment(monkeypatch):
    monkeypatch.setenv('PARENTLINK_RETRY_ATTEMPTS', 'three')
    cfg = build_config({'retry': {'attempts': 2}, 'project': {'org': 'acme'}})
    assert cfg.retry_attempts == 2
