"""配置管理

支持多源配置，优先级从高到低：
1. 环境变量（LITERATURE_*）
2. YAML 配置文件（conf.yaml）
3. 默认值

环境变量命名规范：
- LITERATURE_ELASTICSEARCH_HOSTS='["http://es1:9200","http://es2:9200"]'
- LITERATURE_ELASTICSEARCH_INDEX
- LITERATURE_MAX_RESULT_WINDOW
"""

from enum import Enum
from pathlib import Path
from typing import Any, Literal

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

load_dotenv()

# YAML 配置文件路径
CONFIG_FILE = Path("conf.yaml")


class Environment(str, Enum):
    """环境类型"""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"
    TEST = "test"

    @property
    def is_production(self) -> bool:
        return self == Environment.PRODUCTION


def detect_environment() -> Environment:
    """检测当前环境"""
    import os

    env = os.getenv("LITERATURE_ENV", os.getenv("ENVIRONMENT", "development"))
    try:
        return Environment(env)
    except ValueError:
        return Environment.DEVELOPMENT


class Settings(BaseSettings):
    """应用配置"""

    environment: Environment = Field(default_factory=detect_environment)

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    log_format: Literal["json", "console"] = "console"

    elasticsearch_hosts: list[str] = ["http://localhost:9200"]
    elasticsearch_index: str = "literature"
    elasticsearch_username: str | None = None
    elasticsearch_password: str | None = None
    elasticsearch_api_key: str | None = None
    elasticsearch_verify_certs: bool = True
    elasticsearch_connect_timeout: float = 3.0  # 秒
    elasticsearch_request_timeout: float = 30.0  # 秒

    # 超过该窗口的 offset 会被截断后再发给 ES
    max_result_window: int = Field(default=100_000, ge=1)
    pit_keep_alive: str = "1m"
    export_page_limit: int = Field(default=300, ge=1)

    # 为 True 时，未映射到 ES 字段的参数直接报错而不是被忽略
    strict_parameters: bool = False

    model_config = SettingsConfigDict(
        env_prefix="literature_",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("elasticsearch_hosts")
    @classmethod
    def validate_hosts(cls, v: list[str]) -> list[str]:
        """至少需要一个 ES 节点"""
        if not v:
            raise ValueError("LITERATURE_ELASTICSEARCH_HOSTS 不能为空")
        return v

    @property
    def is_production(self) -> bool:
        return self.environment.is_production

    def model_post_init(self, __context) -> None:
        """初始化后处理"""
        if self.is_production and self.log_format == "console":
            self.log_format = "json"


def _load_yaml_config() -> dict[str, Any]:
    """从 YAML 文件加载配置

    Returns:
        配置字典，文件不存在时返回空字典
    """
    if not CONFIG_FILE.exists():
        return {}

    import yaml

    with open(CONFIG_FILE, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def _load_env_overrides() -> set[str]:
    """返回已经通过环境变量设置的字段名"""
    import os

    prefix = Settings.model_config.get("env_prefix", "")
    return {
        name
        for name in Settings.model_fields
        if f"{prefix}{name}".upper() in {k.upper() for k in os.environ}
    }


_settings: Settings | None = None


def get_settings() -> Settings:
    """获取配置实例（单例）

    配置加载优先级：
    1. 环境变量（LITERATURE_*）
    2. YAML 配置文件（conf.yaml）
    3. Pydantic 默认值

    Returns:
        Settings 实例
    """
    global _settings
    if _settings is None:
        yaml_config = _load_yaml_config()
        # 环境变量覆盖 YAML：只把没被环境变量设置的字段作为初始化参数传入
        overridden = _load_env_overrides()
        init_values = {
            k: v for k, v in yaml_config.items() if k in Settings.model_fields and k not in overridden
        }
        _settings = Settings(**init_values)
    return _settings


def reload_settings() -> Settings:
    """重新加载配置

    Returns:
        新的 Settings 实例
    """
    global _settings
    _settings = None
    return get_settings()
