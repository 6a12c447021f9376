"""Recorder configuration and the YAML configuration loader."""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

from pydantic import BaseModel, ConfigDict, ValidationError

from ..models.audio import AudioConstraints

logger = logging.getLogger(__name__)


class RecorderConfig(BaseModel):
    """Immutable recorder options.

    Values are validated by type only. ``volume_threshold`` is on the 0-255
    analyzer scale: a negative value means volume is never treated as
    silent, and 255 or more means it always is.
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    auto_stop: bool = False
    volume_threshold: float = 30
    silence_threshold: int = 2000  # milliseconds

    sample_rate: int = 16000
    frames_per_buffer: int = 1024
    input_device_index: Optional[int] = None
    timeslice_ms: int = 1000
    frame_interval_ms: float = 16
    fft_size: int = 256
    smoothing_time_constant: float = 0.8
    min_decibels: float = -100
    max_decibels: float = -30

    def constraints(self) -> AudioConstraints:
        """Device constraints: mono, 16-bit, no signal processing."""
        return AudioConstraints(
            sample_size=16,
            channel_count=1,
            noise_suppression=False,
            echo_cancellation=False,
            sample_rate=self.sample_rate,
            input_device_index=self.input_device_index,
        )


class MicRecorderConfig:
    """YAML configuration loader."""

    def __init__(self, config_path: str):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file
        """
        self.config_file = Path(config_path)

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                config = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")

        if config is None:
            config = {}
        if not isinstance(config, dict):
            raise ValueError("Configuration file must contain a mapping")

        self._resolve_paths(config)
        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve the log file path relative to the config file location."""
        logging_section = config.get('logging')
        if isinstance(logging_section, dict) and 'file_path' in logging_section:
            log_path = logging_section['file_path']
            if not os.path.isabs(log_path):
                logging_section['file_path'] = str(self.config_file.parent / log_path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'recorder.auto_stop').

        Args:
            key_path: Dot-separated key path
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split('.')
        value = self.config

        for key in keys:
            if isinstance(value, dict) and key in value:
                value = value[key]
            else:
                return default

        return value

    def set(self, key_path: str, value: Any) -> None:
        """Set configuration value using dot notation."""
        keys = key_path.split('.')
        config_dict = self.config

        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def recorder_config(self, **overrides: Any) -> RecorderConfig:
        """Build a validated RecorderConfig from the ``recorder`` section.

        Args:
            overrides: Values that take precedence over the file (None is ignored)
        """
        section = dict(self.get('recorder', {}) or {})
        section.update({key: value for key, value in overrides.items() if value is not None})
        try:
            return RecorderConfig(**section)
        except ValidationError as e:
            raise ValueError(f"Invalid recorder configuration: {e}")
