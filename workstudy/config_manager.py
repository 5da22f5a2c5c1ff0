"""Sectioned key/value configuration stored in an INI-like text file."""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path

from workstudy.directory_manager import (
    DirectoryManager,
    create_directory_if_not_exists,
    join_path,
)

logger = logging.getLogger(__name__)

PathLike = str | os.PathLike

CONFIG_FILE_NAME = "work_assistant.conf"

APP_SECTION = "app"
OCR_SECTION = "ocr"
AI_SECTION = "ai"
STORAGE_SECTION = "storage"
WEB_SECTION = "web"
MONITOR_SECTION = "monitor"

APP_LOG_LEVEL = "log_level"
APP_AUTO_START = "auto_start"
APP_MINIMIZE_TO_TRAY = "minimize_to_tray"
APP_CHECK_UPDATES = "check_updates"

OCR_DEFAULT_MODE = "default_mode"
OCR_LANGUAGE = "language"
OCR_CONFIDENCE_THRESHOLD = "confidence_threshold"
OCR_USE_GPU = "use_gpu"
OCR_MAX_IMAGE_SIZE = "max_image_size"

AI_MODEL_PATH = "model_path"
AI_CONTEXT_LENGTH = "context_length"
AI_GPU_LAYERS = "gpu_layers"
AI_TEMPERATURE = "temperature"

STORAGE_AUTO_BACKUP = "auto_backup"
STORAGE_BACKUP_INTERVAL_HOURS = "backup_interval_hours"
STORAGE_MAX_STORAGE_SIZE_GB = "max_storage_size_gb"
STORAGE_ENCRYPTION_ENABLED = "encryption_enabled"

WEB_ENABLED = "enabled"
WEB_HOST = "host"
WEB_PORT = "port"
WEB_ENABLE_CORS = "enable_cors"
WEB_ENABLE_WEBSOCKET = "enable_websocket"

MONITOR_WINDOW_EVENTS = "window_events"
MONITOR_SCREEN_CAPTURE = "screen_capture"
MONITOR_CAPTURE_INTERVAL_MS = "capture_interval_ms"
MONITOR_OCR_INTERVAL_FRAMES = "ocr_interval_frames"

REQUIRED_SECTIONS = (
    APP_SECTION,
    OCR_SECTION,
    AI_SECTION,
    STORAGE_SECTION,
    WEB_SECTION,
    MONITOR_SECTION,
)

_BLANK = " \t"
_TRUE_WORDS = frozenset({"true", "1", "yes", "on"})
_INT_MIN, _INT_MAX = -(2**31), 2**31 - 1
_INT_PREFIX = re.compile(r"\s*[+-]?\d+")
_FLOAT_PREFIX = re.compile(
    r"\s*[+-]?(?:\d+\.?\d*(?:[eE][+-]?\d+)?|\.\d+(?:[eE][+-]?\d+)?|inf(?:inity)?|nan)",
    re.IGNORECASE,
)


class ConfigError(Exception):
    """Raised when configuration cannot be set up, saved or validated."""


def parse_config_line(line: str) -> tuple[str, str, str] | None:
    """Split ``key = value`` or ``section.key = value`` into (section, key, value).

    The section is empty when the key has no dot. Returns None when the line
    has no '=' or the key is empty.
    """
    key_part, sep, value_part = line.partition("=")
    if not sep:
        return None
    key_part = key_part.strip(_BLANK)
    value_part = value_part.strip(_BLANK)
    section, dot, key = key_part.partition(".")
    if not dot:
        section, key = "", key_part
    if not key:
        return None
    return section, key, value_part


def escape_value(value: str) -> str:
    """Escape backslashes, newlines and tabs for writing to the file."""
    return value.replace("\\", "\\\\").replace("\n", "\\n").replace("\t", "\\t")


def unescape_value(value: str) -> str:
    """Undo escape_value's substitutions, applied one after another."""
    return value.replace("\\\\", "\\").replace("\\n", "\n").replace("\\t", "\t")


class ConfigManager:
    """Holds configuration values by section and key, all stored as strings."""

    def __init__(self) -> None:
        self.initialized = False
        self.config_dir = ""
        self.config_file_path = ""
        self._data: dict[str, dict[str, str]] = {}

    def __enter__(self) -> ConfigManager:
        return self

    def __exit__(self, *exc_info: object) -> None:
        if self.initialized:
            self.save()

    def initialize(self, config_dir: PathLike | None = None) -> None:
        """Set up the config directory, apply defaults and load any saved file."""
        if config_dir is None or os.fspath(config_dir) == "":
            self.config_dir = DirectoryManager().config_dir
        else:
            self.config_dir = os.fspath(config_dir)
        if not create_directory_if_not_exists(self.config_dir):
            raise ConfigError(f"failed to create config directory: {self.config_dir}")
        self.config_file_path = join_path(self.config_dir, CONFIG_FILE_NAME)
        self._set_defaults()
        try:
            self.load()
        except ConfigError as exc:
            logger.warning("Loaded configuration is invalid: %s", exc)
        self.initialized = True
        logger.info("Configuration manager initialized with: %s", self.config_file_path)

    def load(self, config_file: PathLike | None = None) -> None:
        """Merge values from a file into the configuration.

        A missing file leaves the configuration unchanged. Lines that cannot
        be parsed are skipped. Raises ConfigError when the merged
        configuration fails validation.
        """
        path = os.fspath(config_file) if config_file else self.config_file_path
        try:
            with open(path, encoding="utf-8") as handle:
                lines = handle.read().splitlines()
        except OSError:
            logger.info("Config file not found, using defaults: %s", path)
            return

        current_section = ""
        for number, raw in enumerate(lines, start=1):
            line = raw.strip(_BLANK)
            if not line or line[0] in "#;":
                continue
            if line[0] == "[" and line[-1] == "]" and len(line) >= 2:
                current_section = line[1:-1]
                continue
            parsed = parse_config_line(line)
            if parsed is None:
                logger.error("Invalid config line %d: %s", number, line)
                continue
            section, key, value = parsed
            if section:
                current_section = section
            else:
                section = current_section
            if section and key:
                self._data.setdefault(section, {})[key] = unescape_value(value)

        logger.info("Configuration loaded from: %s", path)
        problem = self._validation_problem()
        if problem:
            raise ConfigError(problem)

    def save(self, config_file: PathLike | None = None) -> None:
        """Write the configuration to a file; raises ConfigError when it cannot."""
        path = os.fspath(config_file) if config_file else self.config_file_path
        parts = [
            "# Work Assistant Configuration File\n",
            "# Generated automatically - modify with care\n",
            "\n",
        ]
        for section, values in self._data.items():
            parts.append(f"[{section}]\n")
            parts.extend(f"{key} = {escape_value(value)}\n" for key, value in values.items())
            parts.append("\n")
        try:
            Path(path).write_text("".join(parts), encoding="utf-8")
        except OSError as exc:
            raise ConfigError(f"failed to write config file {path}: {exc}") from exc
        logger.info("Configuration saved to: %s", path)

    # Reading values

    def get_string(self, section: str, key: str, default: str = "") -> str:
        """The stored value, or the default when there is none."""
        return self._data.get(section, {}).get(key, default)

    def get_int(self, section: str, key: str, default: int = 0) -> int:
        """The value's leading integer, or the default when absent or unparsable."""
        value = self.get_string(section, key)
        match = _INT_PREFIX.match(value)
        if not value or not match:
            return default
        number = int(match.group())
        if not _INT_MIN <= number <= _INT_MAX:
            return default
        return number

    def get_bool(self, section: str, key: str, default: bool = False) -> bool:
        """True for true/1/yes/on in any case; the default when absent."""
        value = self.get_string(section, key)
        if not value:
            return default
        return value.lower() in _TRUE_WORDS

    def get_double(self, section: str, key: str, default: float = 0.0) -> float:
        """The value's leading number, or the default when absent or unparsable."""
        value = self.get_string(section, key)
        match = _FLOAT_PREFIX.match(value)
        if not value or not match:
            return default
        return float(match.group())

    # Writing values

    def set_string(self, section: str, key: str, value: str) -> None:
        """Store a string value."""
        self._data.setdefault(section, {})[key] = value

    def set_int(self, section: str, key: str, value: int) -> None:
        """Store an integer value."""
        self.set_string(section, key, str(int(value)))

    def set_bool(self, section: str, key: str, value: bool) -> None:
        """Store a boolean as true or false."""
        self.set_string(section, key, "true" if value else "false")

    def set_double(self, section: str, key: str, value: float) -> None:
        """Store a number with six decimal places."""
        self.set_string(section, key, f"{float(value):f}")

    # Inspection

    def _validation_problem(self) -> str:
        for section in REQUIRED_SECTIONS:
            if section not in self._data:
                return f"missing required config section: {section}"
        port = self.get_int(WEB_SECTION, WEB_PORT, 8080)
        if not 1 <= port <= 65535:
            return f"invalid web port: {port}"
        confidence = self.get_double(OCR_SECTION, OCR_CONFIDENCE_THRESHOLD, 0.7)
        if not 0.0 <= confidence <= 1.0:
            return f"invalid OCR confidence threshold: {confidence}"
        return ""

    def validate(self) -> bool:
        """True when every required section exists and checked values are in range."""
        problem = self._validation_problem()
        if problem:
            logger.error("%s", problem)
            return False
        return True

    def section_keys(self, section: str) -> list[str]:
        """The keys stored in a section; empty when the section is missing."""
        return list(self._data.get(section, {}))

    def has_key(self, section: str, key: str) -> bool:
        """True when the section holds the key."""
        return key in self._data.get(section, {})

    def remove_key(self, section: str, key: str) -> bool:
        """Remove a key; True when it was present."""
        values = self._data.get(section)
        if values is None or key not in values:
            return False
        del values[key]
        return True

    def reset_to_defaults(self) -> None:
        """Discard all values and restore the defaults."""
        self._data.clear()
        self._set_defaults()

    def full_key(self, section: str, key: str) -> str:
        """The dotted form section.key."""
        return f"{section}.{key}"

    def _set_defaults(self) -> None:
        self.set_string(APP_SECTION, APP_LOG_LEVEL, "info")
        self.set_bool(APP_SECTION, APP_AUTO_START, False)
        self.set_bool(APP_SECTION, APP_MINIMIZE_TO_TRAY, True)
        self.set_bool(APP_SECTION, APP_CHECK_UPDATES, True)

        self.set_int(OCR_SECTION, OCR_DEFAULT_MODE, 3)
        self.set_string(OCR_SECTION, OCR_LANGUAGE, "eng")
        self.set_double(OCR_SECTION, OCR_CONFIDENCE_THRESHOLD, 0.7)
        self.set_bool(OCR_SECTION, OCR_USE_GPU, True)
        self.set_int(OCR_SECTION, OCR_MAX_IMAGE_SIZE, 2048)

        self.set_string(AI_SECTION, AI_MODEL_PATH, "models/qwen2.5-1.5b-instruct-q4_k_m.gguf")
        self.set_int(AI_SECTION, AI_CONTEXT_LENGTH, 2048)
        self.set_int(AI_SECTION, AI_GPU_LAYERS, 32)
        self.set_double(AI_SECTION, AI_TEMPERATURE, 0.7)

        self.set_bool(STORAGE_SECTION, STORAGE_AUTO_BACKUP, True)
        self.set_int(STORAGE_SECTION, STORAGE_BACKUP_INTERVAL_HOURS, 24)
        self.set_int(STORAGE_SECTION, STORAGE_MAX_STORAGE_SIZE_GB, 10)
        self.set_bool(STORAGE_SECTION, STORAGE_ENCRYPTION_ENABLED, True)

        self.set_bool(WEB_SECTION, WEB_ENABLED, True)
        self.set_string(WEB_SECTION, WEB_HOST, "127.0.0.1")
        self.set_int(WEB_SECTION, WEB_PORT, 8080)
        self.set_bool(WEB_SECTION, WEB_ENABLE_CORS, True)
        self.set_bool(WEB_SECTION, WEB_ENABLE_WEBSOCKET, True)

        self.set_bool(MONITOR_SECTION, MONITOR_WINDOW_EVENTS, True)
        self.set_bool(MONITOR_SECTION, MONITOR_SCREEN_CAPTURE, True)
        self.set_int(MONITOR_SECTION, MONITOR_CAPTURE_INTERVAL_MS, 1000)
        self.set_int(MONITOR_SECTION, MONITOR_OCR_INTERVAL_FRAMES, 10)