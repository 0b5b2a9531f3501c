import io

import pytest

from config import logic
from config.loader import load_config
from config.logic import deep_merge, load_and_merge_configs
from config.models import Config, RepositoryConfig
from utils.errors import ConfigError


def test_env_var_substitution(monkeypatch):
    monkeypatch.setenv("AGENT_TEST_REPO", "octo/demo")
    data = load_config(io.StringIO("repository:\n  repository: ${AGENT_TEST_REPO}\n"))
    assert data == {"repository": {"repository": "octo/demo"}}


def test_env_var_default(monkeypatch):
    monkeypatch.delenv("AGENT_TEST_MISSING", raising=False)
    data = load_config(io.StringIO("a: ${AGENT_TEST_MISSING:-fallback}\nb: ${AGENT_TEST_MISSING:-}\n"))
    assert data == {"a": "fallback", "b": ""}


def test_missing_env_var_raises(monkeypatch):
    monkeypatch.delenv("AGENT_TEST_MISSING", raising=False)
    with pytest.raises(ConfigError, match="AGENT_TEST_MISSING"):
        load_config(io.StringIO("a: ${AGENT_TEST_MISSING}\n"))


def test_invalid_yaml_raises():
    with pytest.raises(ConfigError):
        load_config(io.StringIO("a: [unclosed\n"))


def test_empty_file_is_empty_dict():
    assert load_config(io.StringIO("")) == {}


def test_deep_merge_replaces_lists_and_merges_dicts():
    target = {"synthesis": {"pipeline_dirs": ["a"], "status_document": "README.md"}}
    merged = deep_merge(target, {"synthesis": {"pipeline_dirs": ["b"]}})
    assert merged == {"synthesis": {"pipeline_dirs": ["b"], "status_document": "README.md"}}


def test_blank_repository_and_token_become_none():
    config = RepositoryConfig(repository="  ", token="")
    assert config.repository is None
    assert config.token is None
    assert config.owner is None


def test_repository_owner_and_name():
    config = RepositoryConfig(repository="octo/demo")
    assert (config.owner, config.name) == ("octo", "demo")
    assert RepositoryConfig(repository="octo").name is None


def test_defaults_from_packaged_yaml(tmp_path, monkeypatch):
    monkeypatch.setattr(logic, "USER_CONFIG_PATH", tmp_path / "absent.yaml")
    monkeypatch.setattr(logic, "find_project_config", lambda start_dir=None: None)
    monkeypatch.delenv("GITHUB_REPOSITORY", raising=False)
    monkeypatch.delenv("GH_PAT", raising=False)

    config = load_and_merge_configs()

    assert config == Config()


def test_project_config_is_merged(tmp_path, monkeypatch):
    project_config = tmp_path / ".continuous-agent.yaml"
    project_config.write_text("document:\n  path: docs/STATUS.md\n", encoding="utf-8")
    monkeypatch.setattr(logic, "USER_CONFIG_PATH", tmp_path / "absent.yaml")
    monkeypatch.setattr(logic, "find_project_config", lambda start_dir=None: project_config)

    config = load_and_merge_configs()

    assert config.document.path == "docs/STATUS.md"
    assert config.document.marker == "## 🤖 Automated Development Status"


def test_custom_config_overrides_everything(tmp_path):
    custom = tmp_path / "custom.yaml"
    custom.write_text("source:\n  type: static\n  options:\n    path: prs.json\n", encoding="utf-8")

    config = load_and_merge_configs(custom_config_path=str(custom))

    assert config.source.type == "static"
    assert config.source.options == {"path": "prs.json"}
    assert config.repository.repository is None


def test_missing_custom_config_raises(tmp_path):
    with pytest.raises(ConfigError, match="not found"):
        load_and_merge_configs(custom_config_path=str(tmp_path / "nope.yaml"))


def test_invalid_values_raise_config_error(tmp_path):
    custom = tmp_path / "custom.yaml"
    custom.write_text("repository:\n  per_page: 0\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="validation failed"):
        load_and_merge_configs(custom_config_path=str(custom))


def test_find_project_config_walks_up_to_project_root(tmp_path):
    (tmp_path / "pyproject.toml").write_text("", encoding="utf-8")
    project_config = tmp_path / ".continuous-agent.yaml"
    project_config.write_text("{}\n", encoding="utf-8")
    nested = tmp_path / "docs" / "guide"
    nested.mkdir(parents=True)

    assert logic.find_project_config(nested) == project_config.resolve()


def test_find_project_config_stops_at_root_without_file(tmp_path):
    (tmp_path / ".git").mkdir()
    nested = tmp_path / "src"
    nested.mkdir()

    assert logic.find_project_config(nested) is None
