"""
Configuration loading utilities.

Supports environment variable interpolation and config inheritance.
Minimal configs only need: project, database.url, specification.path
"""

import os
import re
from pathlib import Path
from typing import Any

import yaml

from pipeload.config.settings import (
    DatabaseConfig,
    ImportSettings,
    LoadConfig,
    LoggingConfig,
    PostInstallConfig,
    SourceConfig,
    SpecificationConfig,
    TableMode,
)


def _interpolate_env_vars(value: str) -> str:
    """
    Interpolate environment variables in string values.

    Supports ${VAR} and ${VAR:default} syntax.
    """
    pattern = r"\$\{([^}:]+)(?::([^}]*))?\}"

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1)
        default = match.group(2)
        return os.environ.get(var_name, default if default is not None else "")

    return re.sub(pattern, replacer, value)


def _process_config_values(obj: Any) -> Any:
    """Recursively process config values for env var interpolation."""
    if isinstance(obj, str):
        return _interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _process_config_values(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_process_config_values(item) for item in obj]
    return obj


def _deep_merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep merge two dictionaries, with override taking precedence."""
    result = base.copy()
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _optional_path(value: Any) -> Path | None:
    return Path(value) if value else None


def load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and process environment variables."""
    with path.open(encoding="utf-8") as f:
        data = yaml.safe_load(f)
    return _process_config_values(data) if data else {}


def load_config(
    config_path: Path,
    base_path: Path | None = None,
) -> ImportSettings:
    """
    Load import configuration from YAML file(s).

    Minimal config requires only:
        - project: str
        - database.url: SQLAlchemy URL
        - specification.path: path to the column specification

    Relative paths for source.data_dir, specification.path and
    post_install.scripts_dir are resolved against the config file's folder.

    Args:
        config_path: Path to the main configuration file.
        base_path: Optional path to base configuration for inheritance.

    Returns:
        Fully validated ImportSettings instance.
    """
    if base_path is not None:
        base_data = load_yaml(base_path)
    else:
        potential_base = config_path.parent / "base.yaml"
        if potential_base.exists() and potential_base.resolve() != config_path.resolve():
            base_data = load_yaml(potential_base)
        else:
            base_data = {}

    main_data = load_yaml(config_path)
    merged = _deep_merge(base_data, main_data)
    root = config_path.parent

    def _resolve(value: Any) -> Path | None:
        path = _optional_path(value)
        if path is None or path.is_absolute():
            return path
        return root / path

    project = merged.get("project")
    if not project:
        msg = "Config must specify 'project' name"
        raise ValueError(msg)

    database_data = merged.get("database", {})
    url = database_data.get("url")
    if not url:
        msg = "Config must specify 'database.url'"
        raise ValueError(msg)
    database = DatabaseConfig(
        url=url,
        schema_name=database_data.get("schema") or None,
        create_schema=database_data.get("create_schema", False),
    )

    spec_data = merged.get("specification", {})
    spec_path = spec_data.get("path")
    if not spec_path:
        msg = "Config must specify 'specification.path'"
        raise ValueError(msg)
    specification = SpecificationConfig(
        path=_resolve(spec_path),
        sheet=spec_data.get("sheet", 0),
    )

    source_data = merged.get("source", {})
    source = SourceConfig(
        data_dir=_resolve(source_data.get("data_dir", "./data")),
        pattern=source_data.get("pattern", "*.txt"),
        encoding=source_data.get("encoding", "utf-8"),
        use_file_prefix=source_data.get("use_file_prefix", True),
        prefix_separator=source_data.get("prefix_separator", "_"),
    )

    load_data = merged.get("load", {})
    load = LoadConfig(
        batch_size=load_data.get("batch_size", 10_000),
        timeout_seconds=load_data.get("timeout_seconds", 300),
        progress_interval=load_data.get("progress_interval", 10_000),
        table_mode=TableMode(load_data.get("table_mode", "recreate")),
        include_import_id=load_data.get("include_import_id", True),
        stop_on_error=load_data.get("stop_on_error", False),
    )

    post_install_data = merged.get("post_install", {})
    post_install = PostInstallConfig(
        scripts_dir=_resolve(post_install_data.get("scripts_dir")),
    )

    logging_data = merged.get("logging", {})
    logging_config = LoggingConfig(
        level=logging_data.get("level", "INFO"),
        json_output=logging_data.get("json", False),
        log_file=_optional_path(logging_data.get("file")),
    )

    return ImportSettings(
        project=project,
        database=database,
        source=source,
        specification=specification,
        load=load,
        post_install=post_install,
        logging=logging_config,
    )
