"""
Configuration Management for ollamactl

Handles configuration loading from the config file, .env and environment.
"""

import os
import sys
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional
from urllib.parse import urlsplit

import structlog
import yaml
from dotenv import load_dotenv

logger = structlog.get_logger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 11434

SERVER_LOG_NAME = "server.log"
APP_LOG_NAME = "app.log"


def parse_host(value: Optional[str]) -> str:
    """Turn OLLAMA_HOST style values into a base URL

    Accepts `host`, `host:port`, `:port` and full URLs.
    """
    value = (value or "").strip().rstrip("/")
    if not value:
        return f"http://{DEFAULT_HOST}:{DEFAULT_PORT}"

    scheme = "http"
    if "://" in value:
        scheme, value = value.split("://", 1)

    parts = urlsplit(f"{scheme}://{value}")
    host = parts.hostname or DEFAULT_HOST
    if ":" in host:
        host = f"[{host}]"
    try:
        port = parts.port
    except ValueError:
        port = None
    if port is None:
        port = 443 if scheme == "https" and ":" not in parts.netloc else DEFAULT_PORT
    return f"{scheme}://{host}:{port}{parts.path.rstrip('/')}"


def default_logs_dir() -> Path:
    """Where the server and desktop app write their logs"""
    if sys.platform == "win32":
        base = os.getenv("LOCALAPPDATA")
        if base:
            return Path(base) / "Ollama"
    return Path.home() / ".ollama" / "logs"


@dataclass
class APIConfig:
    """API configuration"""
    host: str = f"http://{DEFAULT_HOST}:{DEFAULT_PORT}"
    timeout: Optional[float] = None
    registry_url: str = "https://ollama.com"


@dataclass
class LogsConfig:
    """Log viewing configuration"""
    directory: str = ""
    poll_interval: float = 0.1
    tail: int = 0


@dataclass
class LoggingConfig:
    """Logging configuration for ollamactl itself"""
    level: str = "WARNING"
    format: str = "plain"  # plain, json


class Config:
    """
    Main configuration class that loads and manages all configuration settings
    """

    def __init__(self, config_path: Optional[Path] = None):
        self.config_path = Path(config_path) if config_path else self._get_default_config_path()
        self.config_dir = self.config_path.parent

        # Load environment variables
        load_dotenv()

        self.api = APIConfig()
        self.logs = LogsConfig()
        self.logging = LoggingConfig()

        self._load_config()
        self._validate_config()

        logger.debug("Configuration loaded", config_path=str(self.config_path))

    @staticmethod
    def _get_default_config_path() -> Path:
        """Get the default configuration file path"""
        return Path.home() / ".ollamactl" / "config.yaml"

    def _load_config(self):
        """Load configuration from file and environment variables"""
        if self.config_path.exists():
            try:
                with open(self.config_path, 'r', encoding='utf-8') as f:
                    config_data = yaml.safe_load(f) or {}
                self._apply_config_data(config_data)
                logger.debug("Configuration loaded from file")
            except (OSError, yaml.YAMLError) as e:
                logger.warning("Failed to load config file", error=str(e))

        self._load_from_environment()

    def _apply_config_data(self, config_data: Dict[str, Any]):
        """Apply configuration data to config objects"""
        if "api" in config_data:
            api_config = config_data["api"] or {}
            if "host" in api_config:
                self.api.host = parse_host(api_config["host"])
            self.api.timeout = api_config.get("timeout", self.api.timeout)
            self.api.registry_url = api_config.get("registry_url", self.api.registry_url)

        if "logs" in config_data:
            logs_config = config_data["logs"] or {}
            self.logs.directory = logs_config.get("directory", self.logs.directory)
            self.logs.poll_interval = logs_config.get("poll_interval", self.logs.poll_interval)
            self.logs.tail = logs_config.get("tail", self.logs.tail)

        if "logging" in config_data:
            logging_config = config_data["logging"] or {}
            self.logging.level = logging_config.get("level", self.logging.level)
            self.logging.format = logging_config.get("format", self.logging.format)

    def _load_from_environment(self):
        """Load configuration from environment variables"""
        if os.getenv("OLLAMA_HOST"):
            self.api.host = parse_host(os.getenv("OLLAMA_HOST"))

        if os.getenv("OLLAMACTL_LOGS_DIR"):
            self.logs.directory = os.getenv("OLLAMACTL_LOGS_DIR")

        if os.getenv("OLLAMACTL_LOG_LEVEL"):
            self.logging.level = os.getenv("OLLAMACTL_LOG_LEVEL")

    def _validate_config(self):
        """Validate configuration settings"""
        errors = []

        if self.logs.poll_interval <= 0:
            errors.append("Log poll interval must be positive")

        if self.logs.tail < 0:
            errors.append("Log tail must not be negative")

        if self.api.timeout is not None and self.api.timeout <= 0:
            errors.append("API timeout must be positive")

        if self.logging.format not in ("plain", "json"):
            errors.append(f"Unknown logging format: {self.logging.format}")

        if errors:
            error_msg = "Configuration validation failed:\n" + "\n".join(f"  - {error}" for error in errors)
            logger.error("Configuration validation failed", errors=errors)
            raise ValueError(error_msg)

    def save_config(self):
        """Save current configuration to file"""
        config_data = {
            "api": {
                "host": self.api.host,
                "timeout": self.api.timeout,
                "registry_url": self.api.registry_url,
            },
            "logs": {
                "directory": self.logs.directory,
                "poll_interval": self.logs.poll_interval,
                "tail": self.logs.tail,
            },
            "logging": {
                "level": self.logging.level,
                "format": self.logging.format,
            },
        }

        self.config_dir.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, 'w', encoding='utf-8') as f:
            yaml.dump(config_data, f, default_flow_style=False, indent=2)

        logger.info("Configuration saved", path=str(self.config_path))

    @property
    def logs_dir(self) -> Path:
        """Directory holding server.log and app.log"""
        if self.logs.directory:
            return Path(self.logs.directory).expanduser()
        return default_logs_dir()

    @property
    def server_log_file(self) -> Path:
        return self.logs_dir / SERVER_LOG_NAME

    @property
    def app_log_file(self) -> Path:
        return self.logs_dir / APP_LOG_NAME

    @property
    def host(self) -> str:
        """Get the server base URL"""
        return self.api.host
