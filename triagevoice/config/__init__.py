"""Simple YAML configuration loader for triagevoice."""

import copy
import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional
import logging

logger = logging.getLogger(__name__)


DEFAULT_CONFIG: Dict[str, Any] = {
    "audio": {
        "sample_rate": 16000,
        "chunk_size": 1024,
        "channels": 1,
        "input_device_index": None,
        "output_device_index": None,
    },
    "vad": {
        "silence_threshold": 15,
        "silence_duration_ms": 600,
        "min_speaking_duration_ms": 300,
        "max_recording_ms": 15000,
        "fft_size": 256,
        "smoothing_time_constant": 0.8,
    },
    "recorder": {
        "settle_delay_ms": 300,
        "frame_interval_ms": 1000.0 / 60.0,
        "min_blob_bytes": 500,
        "pre_roll_ms": 200,
        "preferred_mime_types": ["audio/wav"],
    },
    "lemonfox": {
        "base_url": "https://api.lemonfox.ai/v1",
        "api_key_env": "LEMONFOX_API_KEY",
        "chat_model": "llama-4-maverick",
        "stt_model": "whisper-1",
        "tts_model": "tts-1",
        "max_tokens": 200,
        "temperature": 0.9,
        "tts_speed": 1.1,
        "timeout_seconds": 60,
    },
    "conversation": {
        "language": "es",
        "voice": "dora",
        "history_limit": 10,
        "auto_play": True,
        "case_description": None,
        "case_category": None,
    },
    "logging": {
        "level": "INFO",
        "file_path": "data/logs/triagevoice.log",
        "console_output": True,
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into a copy of ``base``."""
    merged = copy.deepcopy(base)
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


class VoiceTriageConfig:
    """triagevoice configuration loader."""

    def __init__(self, config_path: Optional[str] = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to YAML config file. If None, the built-in
                        defaults are used.
        """
        if config_path is None:
            self.config_file = None
            logger.info("No configuration file given, using defaults")
            self.config = copy.deepcopy(DEFAULT_CONFIG)
            return

        self.config_file = Path(config_path)

        if not self.config_file.exists():
            raise FileNotFoundError(f"Configuration file not found: {self.config_file}")

        logger.info(f"Loading configuration from: {self.config_file}")
        self.config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load and parse YAML configuration file."""
        try:
            with open(self.config_file, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in configuration file: {e}")
        except OSError as e:
            raise ValueError(f"Failed to load configuration: {e}")

        if not loaded:
            raise ValueError("Configuration file is empty")
        if not isinstance(loaded, dict):
            raise ValueError("Configuration file must contain a mapping at the top level")

        config = _merge(DEFAULT_CONFIG, loaded)

        # Resolve relative paths
        self._resolve_paths(config)

        logger.info("Configuration loaded successfully")
        return config

    def _resolve_paths(self, config: Dict[str, Any]) -> None:
        """Resolve relative paths in configuration relative to config file location."""
        config_dir = self.config_file.parent

        # Resolve log file path
        if 'logging' in config and config['logging'].get('file_path'):
            log_path = config['logging']['file_path']
            if not os.path.isabs(log_path):
                config['logging']['file_path'] = str(config_dir / log_path)

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get configuration value using dot notation (e.g., 'vad.silence_threshold').

        Args:
            key_path: Dot-separated key path (e.g., 'lemonfox.chat_model')
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
        """Set configuration value using dot notation.

        Args:
            key_path: Dot-separated path to config value (e.g., 'conversation.voice')
            value: Value to set
        """
        keys = key_path.split('.')
        config_dict = self.config

        # Navigate to the parent dictionary
        for key in keys[:-1]:
            if key not in config_dict:
                config_dict[key] = {}
            config_dict = config_dict[key]

        # Set the final value
        config_dict[keys[-1]] = value
        logger.debug(f"Configuration key '{key_path}' set to: {value}")

    def get_api_key(self) -> str:
        """Get the LemonFox API key from the environment - CRASHES if not found."""
        env_name = self.get('lemonfox.api_key_env', 'LEMONFOX_API_KEY')
        api_key = os.environ.get(env_name, "").strip()
        if not api_key:
            raise ValueError(f"API key not configured: set the {env_name} environment variable")
        return api_key
