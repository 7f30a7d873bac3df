"""配置管理模块"""

from literature.config.settings import Environment, Settings, get_settings, reload_settings

__all__ = [
    "Environment",
    "Settings",
    "get_settings",
    "reload_settings",
]
