"""YAML cluster file parsing for Colbridge.

This module loads cluster and filesystem settings from a YAML file and
layers them over environment-derived configuration. One strict schema
keeps CLI and SDK callers reading the same file the same way.
"""

from __future__ import annotations

from dataclasses import replace
from pathlib import Path
from typing import Any, Mapping, cast

from core.config import ClusterConfig, parse_backend, parse_port, parse_quorum, parse_timeout
from core.constants import CONFIG_FILE_VERSION
from core.errors import ColbridgeConfigError, ColbridgeDependencyError

_CLUSTER_KEYS = {"backend", "quorum", "client_port", "thrift_port", "timeout_seconds"}
_FILESYSTEM_KEYS = {"default_fs", "user"}


def load_cluster_config(config_path: str, base: ClusterConfig | None = None) -> ClusterConfig:
    """Load a YAML cluster file and merge it over a base config.

    Args:
        config_path: File path to YAML cluster file.
        base: Config to override; environment config when omitted.

    Returns:
        Merged, validated config.

    Raises:
        ColbridgeDependencyError: If PyYAML is unavailable.
        ColbridgeConfigError: If file is invalid or schema checks fail.
    """
    payload = _load_yaml_payload(config_path)
    root_mapping = _expect_mapping(payload, "cluster file root")
    _validate_keys(root_mapping, {"version", "cluster", "filesystem"}, "cluster file root")
    _parse_version(root_mapping)
    overrides: dict[str, Any] = {}
    overrides.update(_parse_cluster_section(root_mapping.get("cluster")))
    overrides.update(_parse_filesystem_section(root_mapping.get("filesystem")))
    return replace(base or ClusterConfig.from_env(), **overrides)


def _load_yaml_payload(config_path: str) -> object:
    try:
        import yaml  # type: ignore[import-untyped]
    except ImportError as error:  # pragma: no cover - dependency failure
        raise ColbridgeDependencyError(
            "YAML cluster files require PyYAML. Install with 'pip install pyyaml'."
        ) from error
    config_file = Path(config_path).expanduser().resolve()
    if not config_file.exists():
        raise ColbridgeConfigError(
            f"Cluster file does not exist at {config_file}. Provide a valid YAML file path."
        )
    try:
        payload = cast(object, yaml.safe_load(config_file.read_text(encoding="utf-8")))
    except OSError as error:
        raise ColbridgeConfigError(
            f"Failed to read cluster file at {config_file}: {error}. "
            "Check file permissions and retry."
        ) from error
    except yaml.YAMLError as error:
        raise ColbridgeConfigError(
            f"Failed to parse YAML cluster file at {config_file}: {error}. "
            "Fix YAML syntax and retry."
        ) from error
    if payload is None:
        raise ColbridgeConfigError(f"Cluster file at {config_file} is empty. Define 'version'.")
    return payload


def _expect_mapping(value: object, context: str) -> Mapping[str, object]:
    if isinstance(value, Mapping):
        normalized_mapping = {}
        for key, payload in value.items():
            if not isinstance(key, str):
                raise ColbridgeConfigError(
                    f"Invalid {context}: expected string keys, got {type(key).__name__}."
                )
            normalized_mapping[key] = payload
        return normalized_mapping
    raise ColbridgeConfigError(
        f"Invalid {context}: expected object mapping, got {type(value).__name__}."
    )


def _parse_version(root_mapping: Mapping[str, object]) -> int:
    raw_version = root_mapping.get("version")
    if not isinstance(raw_version, int) or isinstance(raw_version, bool):
        raise ColbridgeConfigError(
            f"Cluster file field 'version' must be an integer. Set version: {CONFIG_FILE_VERSION}."
        )
    if raw_version != CONFIG_FILE_VERSION:
        raise ColbridgeConfigError(
            f"Unsupported cluster file version {raw_version}. Use version: {CONFIG_FILE_VERSION}."
        )
    return raw_version


def _parse_cluster_section(raw_section: object) -> dict[str, Any]:
    if raw_section is None:
        return {}
    section = _expect_mapping(raw_section, "cluster section")
    _validate_keys(section, _CLUSTER_KEYS, "cluster section")
    overrides: dict[str, Any] = {}
    if "backend" in section:
        overrides["backend"] = parse_backend(_expect_string(section["backend"], "backend"))
    if "quorum" in section:
        overrides["quorum"] = _parse_quorum_value(section["quorum"])
    if "client_port" in section:
        overrides["client_port"] = parse_port(str(section["client_port"]), "client_port")
    if "thrift_port" in section:
        overrides["thrift_port"] = parse_port(str(section["thrift_port"]), "thrift_port")
    if "timeout_seconds" in section:
        raw_timeout = section["timeout_seconds"]
        overrides["timeout_seconds"] = (
            None if raw_timeout is None else parse_timeout(str(raw_timeout))
        )
    return overrides


def _parse_filesystem_section(raw_section: object) -> dict[str, Any]:
    if raw_section is None:
        return {}
    section = _expect_mapping(raw_section, "filesystem section")
    _validate_keys(section, _FILESYSTEM_KEYS, "filesystem section")
    overrides: dict[str, Any] = {}
    if "default_fs" in section:
        overrides["default_fs"] = _expect_string(section["default_fs"], "default_fs")
    if "user" in section:
        raw_user = section["user"]
        overrides["user"] = None if raw_user is None else _expect_string(raw_user, "user")
    return overrides


def _parse_quorum_value(raw_value: object) -> tuple[str, ...]:
    if isinstance(raw_value, str):
        return parse_quorum(raw_value)
    if isinstance(raw_value, list) and all(isinstance(host, str) for host in raw_value):
        return parse_quorum(",".join(raw_value))
    raise ColbridgeConfigError(
        "Cluster file field 'quorum' must be a host string or a list of host strings."
    )


def _expect_string(raw_value: object, field_name: str) -> str:
    if isinstance(raw_value, str) and raw_value.strip():
        return raw_value.strip()
    raise ColbridgeConfigError(f"Cluster file field '{field_name}' must be a non-empty string.")


def _validate_keys(mapping: Mapping[str, object], allowed_keys: set[str], context: str) -> None:
    unknown_keys = sorted(set(mapping) - allowed_keys)
    if unknown_keys:
        raise ColbridgeConfigError(
            f"Invalid {context}: unknown fields {', '.join(unknown_keys)}."
        )
