"""
结构化日志系统
记录画像ID、阶段、规则数量、命中变体和耗时等关键字段
"""

import json
import logging
import sys
import time
import traceback
from contextvars import ContextVar
from dataclasses import asdict, dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

# 上下文变量
current_profile_id: ContextVar[Optional[str]] = ContextVar("current_profile_id", default=None)
current_stage: ContextVar[Optional[str]] = ContextVar("current_stage", default=None)

# setup_structured_logging 配置的日志器
LOGGER_NAMESPACES: Tuple[str, ...] = ("engine", "services", "config", "scripts")


class EvaluationStage(Enum):
    """处理阶段"""
    LOAD_RULES = "load_rules"
    MUTATE_RULES = "mutate_rules"
    EVALUATE = "evaluate"
    SAVE_RULES = "save_rules"
    RESOLVE_CONTENT = "resolve_content"


@dataclass
class StructuredLogEntry:
    """结构化日志条目"""
    timestamp: str
    level: str
    logger: str
    message: str
    profile_id: Optional[str] = None
    stage: Optional[str] = None

    # 业务指标
    rule_count: Optional[int] = None
    variant_key: Optional[str] = None
    rule_id: Optional[str] = None
    duration_ms: Optional[float] = None

    # 错误信息
    error_type: Optional[str] = None
    error_details: Optional[str] = None
    stack_trace: Optional[str] = None

    extra_data: Optional[Dict[str, Any]] = None

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典，去掉None值"""
        return {k: v for k, v in asdict(self).items() if v is not None}

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, separators=(",", ":"))


class StructuredFormatter(logging.Formatter):
    """JSON行格式化器"""

    _METRIC_FIELDS = ("rule_count", "variant_key", "rule_id", "duration_ms", "extra_data")

    def format(self, record: logging.LogRecord) -> str:
        log_entry = StructuredLogEntry(
            timestamp=datetime.fromtimestamp(record.created).isoformat(),
            level=record.levelname,
            logger=record.name,
            message=record.getMessage(),
            profile_id=current_profile_id.get(),
            stage=current_stage.get(),
        )

        for name in self._METRIC_FIELDS:
            if hasattr(record, name):
                setattr(log_entry, name, getattr(record, name))

        if record.exc_info:
            exc_type, exc_value, _ = record.exc_info
            log_entry.error_type = exc_type.__name__ if exc_type else None
            log_entry.error_details = str(exc_value) if exc_value else None
            log_entry.stack_trace = "".join(traceback.format_exception(*record.exc_info))

        return log_entry.to_json()


class PersonalizationLoggerAdapter(logging.LoggerAdapter):
    """业务日志适配器"""

    def __init__(self, logger: logging.Logger):
        super().__init__(logger, {})

    def process(self, msg, kwargs):
        return msg, kwargs

    def log_rules_loaded(self, rule_count: int, source: str, **kwargs):
        self.info(f"已加载 {rule_count} 条规则: {source}", extra={"rule_count": rule_count, **kwargs})

    def log_evaluation(self, variant_key: str, rule_id: Optional[str], rule_count: int,
                       duration_ms: float, **kwargs):
        """记录一次求值"""
        matched = f"规则 {rule_id}" if rule_id is not None else "无规则命中"
        self.info(f"求值完成: {matched} -> {variant_key}", extra={
            "variant_key": variant_key,
            "rule_id": rule_id,
            "rule_count": rule_count,
            "duration_ms": duration_ms,
            **kwargs,
        })

    def log_error_with_context(self, message: str, error: Exception, **kwargs):
        """记录带上下文的错误"""
        self.error(message, exc_info=(type(error), error, error.__traceback__), extra=kwargs)


class LoggingContext:
    """日志上下文管理器，设置画像ID和阶段"""

    def __init__(self, profile_id: Optional[str] = None, stage: Optional[EvaluationStage] = None):
        self.profile_id = profile_id
        self.stage = stage.value if stage else None
        self.start_time = time.perf_counter()
        self._profile_token = None
        self._stage_token = None

    def __enter__(self) -> "LoggingContext":
        if self.profile_id is not None:
            self._profile_token = current_profile_id.set(self.profile_id)
        if self.stage:
            self._stage_token = current_stage.set(self.stage)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._profile_token:
            current_profile_id.reset(self._profile_token)
        if self._stage_token:
            current_stage.reset(self._stage_token)

    @property
    def duration_ms(self) -> float:
        return (time.perf_counter() - self.start_time) * 1000


def setup_structured_logging(log_file: Optional[str] = None,
                             log_level: str = "INFO",
                             enable_console: bool = True) -> None:
    """
    设置结构化日志

    Args:
        log_file: JSON行日志文件路径
        log_level: 日志级别
        enable_console: 是否输出到控制台（人类可读格式）
    """
    level = getattr(logging, log_level.upper(), logging.INFO)
    handlers = []

    if enable_console:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(level)
        console_handler.setFormatter(logging.Formatter(
            "%(asctime)s [%(levelname)8s] [%(name)s] %(message)s",
            datefmt="%H:%M:%S",
        ))
        handlers.append(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setLevel(level)
        file_handler.setFormatter(StructuredFormatter())
        handlers.append(file_handler)

    for name in LOGGER_NAMESPACES:
        namespace_logger = logging.getLogger(name)
        namespace_logger.setLevel(level)
        for handler in list(namespace_logger.handlers):
            namespace_logger.removeHandler(handler)
            handler.close()
        for handler in handlers:
            namespace_logger.addHandler(handler)
