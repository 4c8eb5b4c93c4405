"""配置模块

提供配置管理功能：
- AppSettings: 应用基础配置，支持 YAML + 环境变量
- 子配置类: CascadeSettings, UserStampSettings, DatabaseSettings, LoggingSettings
- ConfigLoader: YAML 配置加载器
- configure_cascade / get_cascade_settings: 进程级级联配置

快速开始:
    from ycascade.config import AppSettings, load_yaml_config, configure_cascade

    settings = load_yaml_config("config/settings.yaml", AppSettings)
    configure_cascade(settings.cascade, settings.user_stamp)

配置优先级: 环境变量 > YAML 文件 > 默认值
"""

from .settings import (
    AppSettings,
    CascadeSettings,
    UserStampSettings,
    DatabaseSettings,
    LoggingSettings,
    configure_cascade,
    get_cascade_settings,
    get_user_stamp_settings,
    reset_cascade_settings,
)

from .loader import (
    ConfigLoader,
    load_yaml_config,
)

__all__ = [
    "AppSettings",
    "CascadeSettings",
    "UserStampSettings",
    "DatabaseSettings",
    "LoggingSettings",
    "configure_cascade",
    "get_cascade_settings",
    "get_user_stamp_settings",
    "reset_cascade_settings",
    "ConfigLoader",
    "load_yaml_config",
]
