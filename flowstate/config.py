from __future__ import annotations

import logging
import os
from typing import Literal, Optional

import yaml
from pydantic import BaseModel


class DynamoDBConfig(BaseModel):
    """Configuration for the DynamoDB backend."""

    table_name: Optional[str] = None
    region: Optional[str] = None
    endpoint_url: Optional[str] = None


class StorageConfig(BaseModel):
    """Storage backend settings."""

    backend: Literal["inmemory", "sqlite", "postgres", "dynamodb"] = "inmemory"
    sqlite_path: str = "flowstate.db"
    database_url: Optional[str] = None
    dynamodb: DynamoDBConfig = DynamoDBConfig()


class FlowstateConfig(BaseModel):
    """Top-level configuration model."""

    storage: StorageConfig = StorageConfig()
    log_calls: bool = True
    log_level: str = "WARNING"


def load_config(path: Optional[str] = None) -> FlowstateConfig:
    """Load configuration from YAML file.

    Args:
        path: Optional path to config file. Falls back to FLOWSTATE_CONFIG env
            variable or 'flowstate.yaml' in the current directory.
    """

    config_path = path or os.getenv("FLOWSTATE_CONFIG", "flowstate.yaml")
    if os.path.exists(config_path):
        with open(config_path) as f:
            data = yaml.safe_load(f) or {}
        config = FlowstateConfig(**data)
    else:
        config = FlowstateConfig()

    table_name = os.getenv("WORKFLOW_TABLE_NAME")
    if table_name:
        config.storage.dynamodb.table_name = table_name
        config.storage.backend = "dynamodb"

    env_backend = os.getenv("FLOWSTATE_BACKEND")
    if env_backend:
        config.storage.backend = env_backend.lower()

    env_db_url = os.getenv("FLOWSTATE_DATABASE_URL")
    if env_db_url:
        config.storage.database_url = env_db_url
    return config


def configure_logging(level: str | int = logging.WARNING) -> None:
    """Install a basic stream handler for command line use."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logging.basicConfig(
        level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )
