"""配置单元测试"""

from unittest.mock import patch

import pytest
from pydantic import ValidationError

from literature.config import Environment, Settings, get_settings, reload_settings


@pytest.fixture(autouse=True)
def reset_settings():
    yield
    reload_settings()


class TestSettings:
    """测试配置加载"""

    def test_defaults(self, monkeypatch):
        """默认值"""
        monkeypatch.delenv("LITERATURE_MAX_RESULT_WINDOW", raising=False)
        settings = Settings(environment=Environment.TEST)

        assert settings.elasticsearch_index == "literature"
        assert settings.max_result_window == 100_000
        assert settings.pit_keep_alive == "1m"
        assert settings.strict_parameters is False

    def test_env_prefix(self, monkeypatch):
        """环境变量使用 LITERATURE_ 前缀"""
        monkeypatch.setenv("LITERATURE_ELASTICSEARCH_HOSTS", '["http://es1:9200","http://es2:9200"]')
        monkeypatch.setenv("LITERATURE_PIT_KEEP_ALIVE", "5m")

        settings = Settings()

        assert settings.elasticsearch_hosts == ["http://es1:9200", "http://es2:9200"]
        assert settings.pit_keep_alive == "5m"

    def test_empty_hosts_rejected(self):
        with pytest.raises(ValidationError):
            Settings(elasticsearch_hosts=[])

    def test_production_forces_json_logs(self):
        """生产环境强制 JSON 日志"""
        settings = Settings(environment=Environment.PRODUCTION, log_format="console")
        assert settings.log_format == "json"

    def test_env_overrides_yaml(self, monkeypatch):
        """环境变量优先于 YAML"""
        monkeypatch.setenv("LITERATURE_ELASTICSEARCH_INDEX", "from-env")
        yaml_config = {"elasticsearch_index": "from-yaml", "max_result_window": 5000, "unknown": 1}

        with patch("literature.config.settings._load_yaml_config", return_value=yaml_config):
            settings = reload_settings()

        assert settings.elasticsearch_index == "from-env"
        assert settings.max_result_window == 5000
        assert get_settings() is settings
