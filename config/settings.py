"""
配置加载器
支持从 YAML 文件和环境变量加载配置
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

PROJECT_ROOT = Path(__file__).resolve().parent.parent


@dataclass(frozen=True)
class AppConfig:
    """Runtime configuration for the personalization service."""

    rules_file: Path
    variants_file: Path
    profiles_file: Path
    default_variant: str = "default"
    id_strategy: str = "sequential"
    log_level: str = "INFO"
    log_file: Optional[Path] = None


class Settings:
    """配置管理器"""

    def __init__(self, config_path: Optional[str] = None):
        self.config_path = config_path or self._get_default_config_path()
        self._config: Dict[str, Any] = {}
        self._load_config()

    def _get_default_config_path(self) -> str:
        """获取默认配置文件路径"""
        env_path = os.getenv("PERSONALIZATION_CONFIG")
        if env_path:
            return env_path
        return str(Path(__file__).parent / "app.yaml")

    def _load_config(self):
        """加载配置"""
        # 1. 加载YAML配置
        if os.path.exists(self.config_path):
            with open(self.config_path, "r", encoding="utf-8") as f:
                self._config = yaml.safe_load(f) or {}

        # 2. 环境变量覆盖
        self._load_env_overrides()

    def _load_env_overrides(self):
        """加载环境变量覆盖"""
        env_mappings = {
            # 存储
            "RULES_FILE": ("storage", "rules_file"),
            # 内容
            "VARIANTS_FILE": ("content", "variants_file"),
            "PROFILES_FILE": ("content", "profiles_file"),
            "DEFAULT_VARIANT": ("content", "default_variant"),
            # 规则
            "RULE_ID_STRATEGY": ("rules", "id_strategy"),
            # 日志配置
            "LOG_LEVEL": ("logging", "level"),
            "LOG_FILE": ("logging", "file"),
        }

        for env_key, (section, key) in env_mappings.items():
            env_value = os.getenv(env_key)
            if env_value is not None:
                if not isinstance(self._config.get(section), dict):
                    self._config[section] = {}

                self._config[section][key] = self._convert_env_value(env_value)

    def _convert_env_value(self, value: str) -> Any:
        """转换环境变量值"""
        # 布尔值
        if value.lower() in ("true", "false"):
            return value.lower() == "true"

        # 数字
        try:
            if "." in value:
                return float(value)
            else:
                return int(value)
        except ValueError:
            pass

        # 字符串
        return value

    def get(self, section: str, key: str, default: Any = None) -> Any:
        """获取配置值"""
        return self.get_section(section).get(key, default)

    def get_section(self, section: str) -> Dict[str, Any]:
        """获取配置段"""
        value = self._config.get(section)
        return value if isinstance(value, dict) else {}

    def _resolve_path(self, value: Any) -> Path:
        path = Path(str(value))
        return path if path.is_absolute() else PROJECT_ROOT / path

    def to_app_config(self) -> AppConfig:
        """转换为运行配置"""
        log_file = self.get("logging", "file")

        return AppConfig(
            rules_file=self._resolve_path(self.get("storage", "rules_file", "data/rules.json")),
            variants_file=self._resolve_path(
                self.get("content", "variants_file", "config/content_variants.yaml")
            ),
            profiles_file=self._resolve_path(
                self.get("content", "profiles_file", "config/sample_profiles.yaml")
            ),
            default_variant=str(self.get("content", "default_variant", "default")),
            id_strategy=str(self.get("rules", "id_strategy", "sequential")),
            log_level=str(self.get("logging", "level", "INFO")),
            log_file=self._resolve_path(log_file) if log_file else None,
        )

    def get_logging_config(self) -> Dict[str, Any]:
        """获取日志配置"""
        return self.get_section("logging")


# 全局配置实例
_settings = None


def get_settings() -> Settings:
    """获取全局配置实例"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def reload_settings():
    """重新加载配置"""
    global _settings
    _settings = None
    return get_settings()
