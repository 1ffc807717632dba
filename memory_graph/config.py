"""
Configuration for Memory Graph.

Supports loading from:
1. Environment variables (highest priority)
2. YAML config file
3. Default values (fallback)
"""

import os
from pathlib import Path
from typing import Any

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field


class StorageConfig(BaseModel):
    """Domain store configuration."""

    backend: str = "json"  # json, sqlite
    storage_dir: str = "memory-data"
    sqlite_filename: str = "memory.db"
    default_path: str = "/"
    default_domain: str = "general"
    default_domain_name: str = "General"
    default_domain_description: str = "Default domain for general memories"

    @property
    def sqlite_path(self) -> Path:
        return Path(self.storage_dir) / self.sqlite_filename


class TraversalConfig(BaseModel):
    """Traversal defaults applied when a request leaves them unset."""

    max_depth: int = 2
    max_nodes_per_domain: int | None = None
    follow_domain_pointers: bool = True


class RecallConfig(BaseModel):
    """Recall tuning."""

    fuzzy_threshold: float = 0.3
    default_max_nodes: int = 10


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: str = "INFO"
    log_to_file: bool = False
    log_dir: str = "logs"
    file_rotation: str = "10 MB"
    file_retention: str = "7 days"
    compression: str = "zip"
    serialize: bool = True


class ServerConfig(BaseModel):
    """HTTP server configuration."""

    host: str = "0.0.0.0"
    port: int = 8000


class Config(BaseModel):
    """Main configuration."""

    storage: StorageConfig = Field(default_factory=StorageConfig)
    traversal: TraversalConfig = Field(default_factory=TraversalConfig)
    recall: RecallConfig = Field(default_factory=RecallConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)

    @classmethod
    def from_env(cls, env_file: str | Path | None = None) -> "Config":
        """
        Load configuration from environment variables.

        Priority: .env file -> system environment variables -> defaults

        Args:
            env_file: Optional path to .env file (default: .env in working directory)

        Returns:
            Config instance

        Environment variables:
            MEMGRAPH_STORAGE_BACKEND: Storage backend (json, sqlite); falls back to STORAGE_TYPE
            MEMGRAPH_STORAGE_DIR: Data directory; falls back to MEMORY_DIR
            MEMGRAPH_DEFAULT_PATH: Default memory path; falls back to DEFAULT_PATH
            MEMGRAPH_DEFAULT_DOMAIN: Domain created when the registry is empty
            MEMGRAPH_MAX_DEPTH: Default traversal depth
            MEMGRAPH_MAX_NODES_PER_DOMAIN: Default per-domain traversal cap
            MEMGRAPH_FUZZY_THRESHOLD: Fuzzy keyword distance ratio
            MEMGRAPH_LOG_LEVEL: Log level
            MEMGRAPH_HOST / MEMGRAPH_PORT: HTTP bind address
        """
        if env_file:
            load_dotenv(env_file)
        elif Path(".env").exists():
            load_dotenv()

        def get_env(key: str, default: Any = None, fallback: str | None = None) -> Any:
            """Get environment variable with type conversion."""
            value = os.getenv(key)
            if (value is None or value == "") and fallback:
                value = os.getenv(fallback)
            if value is None:
                return default
            # If value is empty string, return default
            if value == "":
                return default
            # Convert boolean strings
            if isinstance(default, bool):
                return str(value).lower() in ("true", "1", "yes")
            # Convert numeric strings
            if isinstance(default, int):
                return int(value)
            if isinstance(default, float):
                return float(value)
            return value

        max_nodes_per_domain = get_env("MEMGRAPH_MAX_NODES_PER_DOMAIN")

        return cls(
            storage=StorageConfig(
                backend=get_env("MEMGRAPH_STORAGE_BACKEND", "json", fallback="STORAGE_TYPE"),
                storage_dir=get_env("MEMGRAPH_STORAGE_DIR", "memory-data", fallback="MEMORY_DIR"),
                sqlite_filename=get_env("MEMGRAPH_SQLITE_FILENAME", "memory.db"),
                default_path=get_env("MEMGRAPH_DEFAULT_PATH", "/", fallback="DEFAULT_PATH"),
                default_domain=get_env("MEMGRAPH_DEFAULT_DOMAIN", "general"),
            ),
            traversal=TraversalConfig(
                max_depth=get_env("MEMGRAPH_MAX_DEPTH", 2),
                max_nodes_per_domain=(
                    int(max_nodes_per_domain) if max_nodes_per_domain is not None else None
                ),
                follow_domain_pointers=get_env("MEMGRAPH_FOLLOW_DOMAIN_POINTERS", True),
            ),
            recall=RecallConfig(
                fuzzy_threshold=get_env("MEMGRAPH_FUZZY_THRESHOLD", 0.3),
                default_max_nodes=get_env("MEMGRAPH_DEFAULT_MAX_NODES", 10),
            ),
            logging=LoggingConfig(
                level=get_env("MEMGRAPH_LOG_LEVEL", "INFO"),
                log_to_file=get_env("MEMGRAPH_LOG_TO_FILE", False),
                log_dir=get_env("MEMGRAPH_LOG_DIR", "logs"),
                file_rotation=get_env("MEMGRAPH_LOG_FILE_ROTATION", "10 MB"),
                file_retention=get_env("MEMGRAPH_LOG_FILE_RETENTION", "7 days"),
                compression=get_env("MEMGRAPH_LOG_COMPRESSION", "zip"),
                serialize=get_env("MEMGRAPH_LOG_SERIALIZE", True),
            ),
            server=ServerConfig(
                host=get_env("MEMGRAPH_HOST", "0.0.0.0"),
                port=get_env("MEMGRAPH_PORT", 8000),
            ),
        )

    @classmethod
    def from_yaml(cls, yaml_path: str | Path) -> "Config":
        """
        Load configuration from YAML file.

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            Config instance

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            yaml.YAMLError: If YAML is invalid
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Config file not found: {yaml_path}")

        with open(yaml_path) as f:
            data = yaml.safe_load(f) or {}

        return cls(**data)

    @classmethod
    def from_env_or_yaml(
        cls, yaml_path: str | Path | None = None, env_file: str | Path | None = None
    ) -> "Config":
        """
        Load configuration with priority: env vars > YAML > defaults.

        Args:
            yaml_path: Optional path to YAML config
            env_file: Optional path to .env file

        Returns:
            Config instance
        """
        if yaml_path and Path(yaml_path).exists():
            with open(yaml_path) as f:
                config_dict = yaml.safe_load(f) or {}
        else:
            config_dict = {}

        env_config = cls.from_env(env_file)

        # Env sections that differ from defaults override the YAML sections
        final_dict = {**config_dict}
        default = cls()
        for section in ("storage", "traversal", "recall", "logging", "server"):
            env_section = getattr(env_config, section)
            if env_section != getattr(default, section):
                final_dict[section] = env_section.model_dump()

        return cls(**final_dict) if final_dict else env_config


# Default config instance
default_config = Config()
