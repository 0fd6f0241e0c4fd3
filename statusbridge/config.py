#!/usr/bin/env python3
"""
statusbridge configuration.

Precedence, lowest to highest:
- BridgeConfig defaults
- optional YAML settings file (--settings)
- environment variables (field name upper-cased, .env files honoured)
- command line arguments that were explicitly given

Query definitions live in their own YAML file (--config, default queries.yaml):
a flat mapping of Statuspage metric id -> PromQL expression.
"""

import argparse
import logging
import os
from datetime import timedelta
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, field_validator

from .durations import parse_duration
from .errors import ConfigError

logger = logging.getLogger("statusbridge.config")

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


class BridgeConfig(BaseModel):
    prometheus_url: str = "http://localhost:9090"
    statuspage_api_key: str = ""
    statuspage_page_id: str = ""
    config: str = "queries.yaml"     # query definitions file
    interval: str = "30s"            # push interval / range query step
    rounding: int = Field(6, ge=0)
    backfill: Optional[str] = None   # e.g. "5d"; empty means no backfill
    log_level: str = "INFO"
    timeout: float = Field(30, gt=0)
    # Self-observability app, served only when a port is set
    status_host: str = "127.0.0.1"
    status_port: Optional[int] = Field(None, ge=1, le=65535)
    once: bool = False
    dry_run: bool = False

    @field_validator("log_level")
    @classmethod
    def _check_log_level(cls, value: str) -> str:
        value = value.upper()
        if value not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return value

    @field_validator("interval")
    @classmethod
    def _check_interval(cls, value: str) -> str:
        try:
            parsed = parse_duration(value)
        except ConfigError as e:
            raise ValueError(str(e)) from e
        if parsed <= timedelta(0):
            raise ValueError("interval must be greater than zero")
        return value

    @field_validator("backfill")
    @classmethod
    def _check_backfill(cls, value: Optional[str]) -> Optional[str]:
        if not value:
            return None
        try:
            parse_duration(value)
        except ConfigError as e:
            raise ValueError(str(e)) from e
        return value

    @property
    def interval_delta(self) -> timedelta:
        return parse_duration(self.interval)

    @property
    def backfill_delta(self) -> Optional[timedelta]:
        """Backfill duration, or None when absent or zero."""
        if not self.backfill:
            return None
        parsed = parse_duration(self.backfill)
        return parsed if parsed > timedelta(0) else None

    def check_credentials(self) -> None:
        """Statuspage credentials are required unless running dry."""
        if self.dry_run:
            return
        missing = [name for name in ("statuspage_api_key", "statuspage_page_id") if not getattr(self, name)]
        if missing:
            raise ConfigError(f"Missing required settings: {', '.join(missing)}")


def load_settings_file(path: Path) -> Dict[str, Any]:
    """Read the optional YAML settings file."""
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
    except OSError as e:
        raise ConfigError(f"Couldn't read settings file {path}: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Couldn't parse settings file {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Settings file {path} must contain a mapping")
    logger.debug(f"Loaded settings from {path}: {sorted(data)}")
    return data


def env_overrides(environ: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
    """Settings given as environment variables, e.g. STATUSPAGE_API_KEY."""
    if environ is None:
        load_dotenv()
        environ = os.environ
    overrides = {}
    for name in BridgeConfig.model_fields:
        value = environ.get(name.upper())
        if value:
            overrides[name] = value
    return overrides


def args_overrides(args: argparse.Namespace) -> Dict[str, Any]:
    """Only arguments that were explicitly provided (non-None) override."""
    return {
        name: getattr(args, name)
        for name in BridgeConfig.model_fields
        if getattr(args, name, None) is not None
    }


def build_config(
    settings_path: Optional[Path] = None,
    args: Optional[argparse.Namespace] = None,
    environ: Optional[Dict[str, str]] = None,
) -> BridgeConfig:
    """
    Merge settings file, environment and arguments into a validated BridgeConfig.

    Raises:
        ConfigError: unreadable settings file or invalid values
    """
    data: Dict[str, Any] = {}
    if settings_path is not None:
        data.update(load_settings_file(settings_path))
    data.update(env_overrides(environ))
    if args is not None:
        data.update(args_overrides(args))

    try:
        return BridgeConfig(**data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e


def load_queries(path: Path) -> Dict[str, str]:
    """
    Load the metric id -> query expression mapping.

    Raises:
        ConfigError: file unreadable, not YAML, or not a non-empty string mapping
    """
    try:
        with open(path, "r") as f:
            data = yaml.safe_load(f)
    except OSError as e:
        raise ConfigError(f"Couldn't read config file: {e}") from e
    except yaml.YAMLError as e:
        raise ConfigError(f"Couldn't parse config file: {e}") from e

    if not isinstance(data, dict) or not data:
        raise ConfigError(f"Config file {path} must map metric ids to queries")

    queries = {}
    for metric_id, query in data.items():
        if not isinstance(metric_id, str) or not metric_id.strip():
            raise ConfigError(f"Invalid metric id in {path}: {metric_id!r}")
        if not isinstance(query, str) or not query.strip():
            raise ConfigError(f"Query for metric {metric_id} must be a non-empty string")
        queries[metric_id] = query
    return queries
