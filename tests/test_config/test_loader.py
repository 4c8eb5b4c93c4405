"""YAML 配置加载测试"""

import pytest
import yaml

from ycascade.config import AppSettings, ConfigLoader, load_yaml_config


SETTINGS_YAML = """
database:
  url: "sqlite:///./app.db"
logging:
  level: "DEBUG"
cascade:
  require_explicit_detach_policy: false
user_stamp:
  created_by_column: "creator_id"
"""


@pytest.fixture(autouse=True)
def clear_loader_cache():
    ConfigLoader.clear_cache()
    yield
    ConfigLoader.clear_cache()


class TestConfigLoader:
    """ConfigLoader 测试"""

    def test_load(self, temp_file):
        path = temp_file("settings.yaml", SETTINGS_YAML)

        config = ConfigLoader.load(path)

        assert config["logging"]["level"] == "DEBUG"
        assert config["cascade"]["require_explicit_detach_policy"] is False

    def test_relative_path_with_base_dir(self, temp_dir, temp_file):
        temp_file("conf/app.yaml", "logging:\n  level: WARNING\n")

        config = ConfigLoader.load("conf/app.yaml", base_dir=temp_dir)

        assert config["logging"]["level"] == "WARNING"

    def test_cache_and_reload(self, temp_file):
        path = temp_file("cached.yaml", "logging:\n  level: INFO\n")
        assert ConfigLoader.load(path)["logging"]["level"] == "INFO"

        with open(path, "w", encoding="utf-8") as f:
            f.write("logging:\n  level: ERROR\n")

        assert ConfigLoader.load(path)["logging"]["level"] == "INFO"
        assert ConfigLoader.reload(path)["logging"]["level"] == "ERROR"
        assert path in ConfigLoader.get_cached_paths()

    def test_empty_file(self, temp_file):
        assert ConfigLoader.load(temp_file("empty.yaml", "")) == {}

    def test_missing_file(self, temp_dir):
        with pytest.raises(FileNotFoundError):
            ConfigLoader.load("missing.yaml", base_dir=temp_dir)

    def test_invalid_yaml(self, temp_file):
        path = temp_file("broken.yaml", "cascade: [unclosed\n")

        with pytest.raises(yaml.YAMLError):
            ConfigLoader.load(path)


class TestLoadYamlConfig:
    """load_yaml_config 测试"""

    def test_builds_settings(self, temp_file):
        settings = load_yaml_config(temp_file("app.yaml", SETTINGS_YAML), AppSettings)

        assert settings.database.url == "sqlite:///./app.db"
        assert settings.cascade.require_explicit_detach_policy is False
        assert settings.user_stamp.created_by_column == "creator_id"

    def test_overrides(self, temp_file):
        settings = load_yaml_config(
            temp_file("app2.yaml", SETTINGS_YAML),
            AppSettings,
            logging={"level": "ERROR"},
        )

        assert settings.logging.level == "ERROR"
