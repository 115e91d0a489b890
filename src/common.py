"""
Signal Radar - Common Module

Shared configuration loading, logging setup and retry helpers.

Author: khopilot
"""

import logging
from pathlib import Path
from typing import Any, Dict, Optional, TypedDict

import requests
import yaml
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

# -----------------------------------------------------------------------------
# Type Definitions
# -----------------------------------------------------------------------------

class Config(TypedDict, total=False):
    exchanges: Dict[str, Any]
    monitor: Dict[str, Any]
    signals: Dict[str, Any]
    tracker: Dict[str, Any]
    whales: Dict[str, Any]
    database: Dict[str, Any]
    telegram: Dict[str, Any]
    logging: Dict[str, Any]


LOGGER_NAMESPACE = "signal_radar"
DEFAULT_LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DEFAULT_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

logger = logging.getLogger(LOGGER_NAMESPACE)


# -----------------------------------------------------------------------------
# Configuration Management
# -----------------------------------------------------------------------------

def load_config(config_path: Optional[str] = None) -> Config:
    """
    Load configuration from YAML file.

    Args:
        config_path: Path to config file. Defaults to config.yaml in project root.

    Returns:
        Config dictionary with all settings.

    Raises:
        FileNotFoundError: If config file does not exist.
        yaml.YAMLError: If config file is malformed.
    """
    if config_path is None:
        config_path = Path(__file__).parent.parent / "config.yaml"
    else:
        config_path = Path(config_path)

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, "r", encoding="utf-8") as f:
        config = yaml.safe_load(f) or {}

    logger.debug("Configuration loaded from %s", config_path)
    return config


def setup_logging(
    config: Optional[Config] = None,
    log_file: Optional[Path] = None,
) -> logging.Logger:
    """
    Configure centralized logging for the signal_radar namespace.

    Args:
        config: Configuration dictionary. If None, uses defaults.
        log_file: Optional file to mirror console output into.

    Returns:
        Configured namespace root logger.
    """
    log_cfg = (config or {}).get("logging", {})
    log_level = log_cfg.get("level", "INFO")
    log_format = log_cfg.get("format", DEFAULT_LOG_FORMAT)
    date_format = log_cfg.get("date_format", DEFAULT_DATE_FORMAT)
    level = getattr(logging, str(log_level).upper(), logging.INFO)

    root_logger = logging.getLogger(LOGGER_NAMESPACE)
    root_logger.setLevel(level)

    # Remove existing handlers to avoid duplicates
    root_logger.handlers.clear()

    formatter = logging.Formatter(log_format, datefmt=date_format)

    console_handler = logging.StreamHandler()
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file)
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    return root_logger


# -----------------------------------------------------------------------------
# Retry Decorator for outbound HTTP
# -----------------------------------------------------------------------------

def create_retry_decorator(max_retries: int = 3):
    """
    Create a retry decorator with configurable attempts.

    Only used at the edges (alert delivery). Core reads never retry.

    Args:
        max_retries: Maximum number of retry attempts.

    Returns:
        Tenacity retry decorator.
    """
    return retry(
        stop=stop_after_attempt(max_retries),
        wait=wait_exponential(multiplier=1, min=1, max=10),
        retry=retry_if_exception_type((requests.RequestException, requests.Timeout)),
        reraise=True,
    )
