"""Simple YAML configuration loader for QuizCapture."""

import copy
import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULTS: Dict[str, Any] = {
    "recording": {
        "connect_timeout_ms": 10000,
    },
    "segmentation": {
        "enabled": True,
        "threshold_ms": 10000,
        "tick_ms": 250,
        "min_segment_chars": 20,
    },
    "timer": {
        "tick_ms": 1000,
        "grace_ms": 2000,
        "auto_reset_ms": None,
    },
    "backend": {
        "base_url": "http://localhost:8000/api",
        "room_id": "",
        "host_id": "unknown",
        "ai_provider": "gemini",
        "question_count": 5,
        "timeout_seconds": 60,
        "auth_token": None,
    },
    "workers": {
        "max_concurrent": 2,
    },
    "logging": {
        "level": "INFO",
        "file_path": "logs/quizcapture.log",
        "console_output": True,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class QuizCaptureConfig:
    """QuizCapture configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, built-in defaults
                        are used.
        """
        self.config_file = Path(config_path) if config_path else None

        if self.config_file is not None and not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        if self.config_file is None:
            logger.info("No configuration file given, using defaults")
            self.config = copy.deepcopy(DEFAULTS)
        else:
            logger.info(f"Loading configuration from: {self.config_file}")
            self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        if not config:
            raise ValueError("Configuration file is empty")
        if not isinstance(config, dict):
            raise ValueError("Configuration file must contain a mapping")

        config = _merge(DEFAULTS, config)
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        log_path = config.get('logging', {}).get('file_path')
        if log_path and not os.path.isabs(log_path):
            config['logging']['file_path'] = str(config_dir / log_path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Look up a section value such as 'timer.grace_ms'; `default` when absent."""
        value: Any = self.config
        for section in key_path.split('.'):
            if not isinstance(value, dict) or section not in value:
                return default
            value = value[section]
        return value


@dataclass(frozen=True)
class SessionSettings:
    """Typed knobs consumed by the recording session controller."""
    threshold_ms: int = 10000
    segmentation_tick_ms: int = 250
    min_segment_chars: int = 20
    segmentation_enabled: bool = True
    timer_tick_ms: int = 1000
    grace_ms: int = 2000
    auto_reset_ms: Optional[int] = None
    connect_timeout_ms: int = 10000
    room_id: str = ""
    host_id: str = "unknown"

    def __post_init__(self):
        if self.threshold_ms <= 0:
            raise ValueError(f"segmentation.threshold_ms must be positive, got {self.threshold_ms}")
        if self.segmentation_tick_ms <= 0 or self.timer_tick_ms <= 0:
            raise ValueError("Tick intervals must be positive")
        if self.grace_ms < 0:
            raise ValueError(f"timer.grace_ms must not be negative, got {self.grace_ms}")

    @classmethod
    def from_config(cls, config: QuizCaptureConfig) -> "SessionSettings":
        return cls(
            threshold_ms=int(config.get('segmentation.threshold_ms')),
            segmentation_tick_ms=int(config.get('segmentation.tick_ms')),
            min_segment_chars=int(config.get('segmentation.min_segment_chars')),
            segmentation_enabled=bool(config.get('segmentation.enabled')),
            timer_tick_ms=int(config.get('timer.tick_ms')),
            grace_ms=int(config.get('timer.grace_ms')),
            auto_reset_ms=config.get('timer.auto_reset_ms'),
            connect_timeout_ms=int(config.get('recording.connect_timeout_ms')),
            room_id=str(config.get('backend.room_id') or ""),
            host_id=str(config.get('backend.host_id') or "unknown"),
        )
