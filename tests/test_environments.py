"""
Unit tests for the environment registry, its stores and karate-config rendering.
"""

import json

import pytest
import yaml
from pydantic import ValidationError as PydanticValidationError

from featurerun.core.exceptions import ConfigurationError, FileOperationError
from featurerun.environments.karate_config import render_karate_config, write_karate_config
from featurerun.environments.manager import EnvironmentManager
from featurerun.environments.models import DEFAULT_ENVIRONMENTS, TestEnvironment
from featurerun.environments.store import FileEnvironmentStore, MemoryEnvironmentStore


def _env(env_id="qa", **kwargs):
    values = dict(id=env_id, name=env_id.upper(), base_url=f"https://{env_id}.example.com")
    values.update(kwargs)
    return TestEnvironment(**values)


class TestTestEnvironment:
    """Test cases for the TestEnvironment model."""

    def test_trailing_slash_is_stripped(self):
        env = _env(base_url="https://qa.example.com/")
        assert env.base_url == "https://qa.example.com"

    def test_rejects_non_http_url(self):
        with pytest.raises(PydanticValidationError):
            _env(base_url="ftp://qa.example.com")

    def test_rejects_empty_name(self):
        with pytest.raises(PydanticValidationError):
            _env(name="  ")

    def test_rejects_unknown_fields(self):
        with pytest.raises(PydanticValidationError):
            TestEnvironment(id="x", name="X", base_url="http://x", color="red")


class TestEnvironmentManager:
    """Test cases for EnvironmentManager."""

    def test_seeds_defaults_when_store_is_empty(self):
        store = MemoryEnvironmentStore()
        manager = EnvironmentManager(store)

        ids = [env.id for env in manager.get_environments()]
        assert ids == ["dev", "test", "prod"]
        assert manager.current_environment_id == "dev"
        assert store.save_count == 1
        assert set(store.load()) == {"dev", "test", "prod"}

    def test_loads_existing_records(self):
        store = MemoryEnvironmentStore(
            {"qa": {"name": "QA", "base_url": "https://qa.example.com"}}
        )
        manager = EnvironmentManager(store)

        assert [env.id for env in manager.get_environments()] == ["qa"]
        assert manager.current_environment_id == "qa"
        assert store.save_count == 0

    def test_prefers_stored_default(self):
        store = MemoryEnvironmentStore(
            {
                "a": {"name": "A", "base_url": "http://a"},
                "b": {"name": "B", "base_url": "http://b", "is_default": True},
            }
        )

        assert EnvironmentManager(store).current_environment_id == "b"

    def test_skips_invalid_records(self):
        store = MemoryEnvironmentStore(
            {
                "bad": {"name": "Bad", "base_url": "not-a-url"},
                "good": {"name": "Good", "base_url": "http://good"},
            }
        )
        manager = EnvironmentManager(store)

        assert [env.id for env in manager.get_environments()] == ["good"]

    def test_set_current_environment(self, environments):
        env = environments.set_current_environment("test")

        assert env.id == "test"
        assert environments.get_current_environment().id == "test"

    def test_set_unknown_environment(self, environments):
        with pytest.raises(ConfigurationError) as exc_info:
            environments.set_current_environment("missing")

        assert exc_info.value.environment_id == "missing"
        assert environments.current_environment_id == "dev"

    def test_resolve(self, environments):
        assert environments.resolve().id == "dev"
        assert environments.resolve("prod").id == "prod"

        with pytest.raises(ConfigurationError):
            environments.resolve("nope")

    def test_add_environment_generates_id(self, environments):
        env = environments.add_environment(TestEnvironment(name="Staging", base_url="http://stage"))

        assert env.id.startswith("env-")
        assert environments.get_environment(env.id) == env
        assert environments.current_environment_id == "dev"

    def test_add_default_environment_becomes_current(self, environments):
        environments.add_environment(_env("qa", is_default=True))

        assert environments.current_environment_id == "qa"

    def test_first_added_environment_becomes_current(self):
        manager = EnvironmentManager(MemoryEnvironmentStore({"x": {"name": "X", "base_url": "http://x"}}))
        manager.remove_environment("x")
        assert manager.current_environment_id is None

        manager.add_environment(_env("qa"))

        assert manager.current_environment_id == "qa"

    def test_add_duplicate_environment(self, environments):
        with pytest.raises(ConfigurationError):
            environments.add_environment(_env("dev"))

    def test_update_environment(self, environments):
        store = environments.store
        saves = store.save_count

        updated = environments.update_environment("test", base_url="https://new.example.com/", id="ignored")

        assert updated.id == "test"
        assert updated.base_url == "https://new.example.com"
        assert store.save_count == saves + 1
        assert store.load()["test"]["base_url"] == "https://new.example.com"

    def test_update_rejects_invalid_values(self, environments):
        with pytest.raises(PydanticValidationError):
            environments.update_environment("test", base_url="nope")

        assert environments.get_environment("test").base_url == "https://test-api.example.com"

    def test_update_unknown_environment(self, environments):
        with pytest.raises(ConfigurationError):
            environments.update_environment("missing", name="Missing")

    def test_remove_current_environment_reselects(self, environments):
        environments.remove_environment("dev")

        assert environments.get_environment("dev") is None
        assert environments.current_environment_id == "test"

    def test_remove_unknown_environment(self, environments):
        with pytest.raises(ConfigurationError):
            environments.remove_environment("missing")

    def test_write_karate_config(self, environments, tmp_path):
        path = environments.write_karate_config(tmp_path / "karate" / "karate-config.js")

        content = path.read_text()
        assert "var env = karate.env || \"dev\";" in content
        assert "config.baseUrl = \"https://api.example.com\";" in content


class TestFileEnvironmentStore:
    """Test cases for FileEnvironmentStore."""

    def test_missing_file_loads_empty(self, tmp_path):
        assert FileEnvironmentStore(tmp_path / "envs.yaml").load() == {}

    def test_yaml_round_trip_through_manager(self, tmp_path):
        path = tmp_path / ".featurerun" / "environments.yaml"
        EnvironmentManager(FileEnvironmentStore(path)).add_environment(_env("qa"))

        data = yaml.safe_load(path.read_text())
        assert set(data) == {"dev", "test", "prod", "qa"}

        reloaded = EnvironmentManager(FileEnvironmentStore(path))
        assert reloaded.get_environment("qa").base_url == "https://qa.example.com"

    def test_json_store(self, tmp_path):
        path = tmp_path / "environments.json"
        EnvironmentManager(FileEnvironmentStore(path))

        data = json.loads(path.read_text())
        assert data["dev"]["base_url"] == "http://localhost:8080"

    def test_corrupt_file(self, tmp_path):
        path = tmp_path / "environments.json"
        path.write_text("{not json")

        with pytest.raises(FileOperationError):
            FileEnvironmentStore(path).load()

    def test_non_mapping_file(self, tmp_path):
        path = tmp_path / "environments.yaml"
        path.write_text("- dev\n- prod\n")

        with pytest.raises(FileOperationError):
            FileEnvironmentStore(path).load()


class TestKarateConfig:
    """Test cases for karate-config.js rendering."""

    def test_renders_every_environment(self):
        content = render_karate_config(DEFAULT_ENVIRONMENTS, "test")

        assert content.startswith("function fn() {")
        assert "var env = karate.env || \"test\";" in content
        for env in DEFAULT_ENVIRONMENTS:
            assert f"if (env === \"{env.id}\")" in content
        assert "config.timeoutMs = 15000;" in content
        assert content.rstrip().endswith("}")

    def test_renders_variables_and_escapes_strings(self):
        env = _env("qa", variables={"apiKey": "abc\"123"})

        content = render_karate_config([env])

        assert "config[\"apiKey\"] = \"abc\\\"123\";" in content
        assert "karate.env || \"dev\"" in content

    def test_write_failure_raises_file_operation_error(self, tmp_path):
        blocker = tmp_path / "file"
        blocker.write_text("")

        with pytest.raises(FileOperationError):
            write_karate_config(blocker / "karate-config.js", DEFAULT_ENVIRONMENTS)
