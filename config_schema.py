"""
provtree Configuration Schema - Self-Validating Strategy Config

This module defines ProvtreeConfig, the file-based configuration of every
summarization strategy and of ProvRank. One section per strategy, each held
in the frozen dataclasses of provtree.types_config.

Consumed by:
- provtree.registry (strategy factories)
- provtree_cli.py (--config)

Design Principles:
- Self-validating: Draft 2020-12 JSON schema plus range rules
- Self-healing: invalid values -> defaults + UserWarning (non-strict)
- Strict mode: ValueError listing every problem
- Immutable: frozen after load
- Auditable: config_hash over the canonical content
"""

from __future__ import annotations

import hashlib
import json
import warnings
from dataclasses import asdict, dataclass, field, fields, replace
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml
from jsonschema import Draft202012Validator

from provtree.types_config import (
    EquivalenceConfig,
    FileExtConfig,
    RankConfig,
    SmallGroupsConfig,
    TimestampConfig,
    UniqueInOutConfig,
)


__all__ = [
    'ProvtreeConfig',
    'load',
    'default',
]


# =============================================================================
# JSON Schema Definition (Draft 2020-12)
# =============================================================================

_POSITIVE_INT = {"type": "integer", "minimum": 1}
_NULLABLE_POSITIVE_INT = {"type": ["integer", "null"], "minimum": 1}

_SECTION_SCHEMAS: Dict[str, Dict[str, Any]] = {
    "file_ext": {
        "type": "object",
        "description": "File-extension grouping",
        "properties": {
            "threshold": _POSITIVE_INT,
            "same_inputs_outputs": {"type": "boolean"},
        },
        "additionalProperties": False,
    },
    "unique_inout": {
        "type": "object",
        "description": "Hub plus exclusive neighbours",
        "properties": {
            "threshold": _POSITIVE_INT,
        },
        "additionalProperties": False,
    },
    "timestamps": {
        "type": "object",
        "description": "Adaptive timestamp clustering",
        "properties": {
            "min_nodes_per_cluster": _POSITIVE_INT,
            "max_nodes_per_cluster": _POSITIVE_INT,
            "min_clusters": _NULLABLE_POSITIVE_INT,
            "max_clusters": _NULLABLE_POSITIVE_INT,
            "processes_only": {"type": "boolean"},
            "use_adjusted_time": {"type": "boolean"},
            "keep_versions_together": {"type": "boolean"},
            "untimestamped_later": {"type": "boolean"},
            "use_break_times": {"type": "boolean"},
            "initial_multiplier": {"type": "number", "exclusiveMinimum": 0},
            "max_retries": {"type": "integer", "minimum": 0},
        },
        "additionalProperties": False,
    },
    "small_groups": {
        "type": "object",
        "description": "Bounded-size fallback grouping",
        "properties": {
            "node_threshold": _POSITIVE_INT,
            "edge_threshold": {"type": "integer", "minimum": 0},
            "max_iterations": _POSITIVE_INT,
        },
        "additionalProperties": False,
    },
    "equivalence": {
        "type": "object",
        "description": "Built-in equivalence predicate",
        "properties": {
            "checker": {"type": "string",
                        "enum": ["hash", "consecutive", "same_connected_nodes", "regex"]},
            "hash_constant": _POSITIVE_INT,
            "consecutive_size": _POSITIVE_INT,
            "pattern": {"type": "string"},
            "label": {"type": "string"},
        },
        "additionalProperties": False,
    },
    "ranking": {
        "type": "object",
        "description": "ProvRank",
        "properties": {
            "iterations": {"type": "integer", "minimum": 0},
        },
        "additionalProperties": False,
    },
}

_JSON_SCHEMA: Dict[str, Any] = {
    "$schema": "https://json-schema.org/draft/2020-12/schema",
    "title": "ProvtreeConfig",
    "description": "provtree strategy configuration",
    "type": "object",
    "properties": {
        "version": {"type": "string", "pattern": r"^\d+\.\d+$"},
        **_SECTION_SCHEMAS,
    },
    "additionalProperties": False,
}

_SECTION_TYPES: Dict[str, type] = {
    "file_ext": FileExtConfig,
    "unique_inout": UniqueInOutConfig,
    "timestamps": TimestampConfig,
    "small_groups": SmallGroupsConfig,
    "equivalence": EquivalenceConfig,
    "ranking": RankConfig,
}

Draft202012Validator.check_schema(_JSON_SCHEMA)
_COMPILED_VALIDATOR = Draft202012Validator(_JSON_SCHEMA)


def _compute_hash(data: Dict[str, Any]) -> str:
    """SHA3-256 of the canonical config content, 16 hex chars."""
    hashable = {k: v for k, v in data.items() if k != "config_hash"}
    canonical = json.dumps(hashable, sort_keys=True, separators=(',', ':'))
    return hashlib.sha3_256(canonical.encode()).hexdigest()[:16]


# =============================================================================
# ProvtreeConfig Dataclass
# =============================================================================

@dataclass(frozen=True)
class ProvtreeConfig:
    """
    Configuration of every strategy.

    Attributes:
        version: Config schema version (e.g. "1.0")
        file_ext: FileExtConfig
        unique_inout: UniqueInOutConfig
        timestamps: TimestampConfig
        small_groups: SmallGroupsConfig
        equivalence: EquivalenceConfig
        ranking: RankConfig
        config_hash: SHA3-256 prefix of the content
    """
    version: str = "1.0"
    file_ext: FileExtConfig = field(default_factory=FileExtConfig)
    unique_inout: UniqueInOutConfig = field(default_factory=UniqueInOutConfig)
    timestamps: TimestampConfig = field(default_factory=TimestampConfig)
    small_groups: SmallGroupsConfig = field(default_factory=SmallGroupsConfig)
    equivalence: EquivalenceConfig = field(default_factory=EquivalenceConfig)
    ranking: RankConfig = field(default_factory=RankConfig)
    config_hash: str = ""

    @property
    def schema(self) -> Dict[str, Any]:
        """JSON Schema dict for external validation."""
        return json.loads(json.dumps(_JSON_SCHEMA))

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"version": self.version}
        for name in _SECTION_TYPES:
            data[name] = asdict(getattr(self, name))
        data["config_hash"] = self.config_hash
        return data

    def to_json(self, pretty: bool = False) -> str:
        if pretty:
            return json.dumps(self.to_dict(), indent=2, sort_keys=True)
        return json.dumps(self.to_dict(), separators=(',', ':'))

    def save(self, path: Union[str, Path]) -> None:
        """Write config to a .json or .yaml file."""
        data = self.to_dict()
        data.pop("config_hash")
        path_obj = Path(path)
        if path_obj.suffix in ('.yaml', '.yml'):
            content = yaml.safe_dump(data, default_flow_style=False, sort_keys=True)
        else:
            content = json.dumps(data, indent=2, sort_keys=True)
        path_obj.write_text(content)

    @classmethod
    def default(cls) -> ProvtreeConfig:
        return _create_config({}, validate=False, strict=False)

    @classmethod
    def from_dict(
        cls,
        data: Dict[str, Any],
        validate: bool = True,
        strict: bool = False
    ) -> ProvtreeConfig:
        """
        Create from dictionary. Same validation as load().

        Args:
            data: Configuration dictionary
            validate: Whether to validate (default True)
            strict: If True, raise on invalid; if False, self-heal
        """
        return _create_config(data, validate, strict)


# =============================================================================
# Module-Level Functions
# =============================================================================

def load(
    path: Union[str, Path],
    validate: bool = True,
    strict: bool = False
) -> ProvtreeConfig:
    """
    Load config from a JSON/YAML file.

    Raises:
        FileNotFoundError: If path doesn't exist
        ValueError: If strict=True and validation fails, or the document
            is not a mapping
    """
    path_obj = Path(path)
    if not path_obj.exists():
        raise FileNotFoundError(f"Config file not found: {path}")

    content = path_obj.read_text()
    if path_obj.suffix in ('.yaml', '.yml'):
        data = yaml.safe_load(content)
    else:
        data = json.loads(content)

    return _create_config(data, validate, strict)


def default() -> ProvtreeConfig:
    """Config with every documented default."""
    return ProvtreeConfig.default()


# =============================================================================
# Internal Validation Functions
# =============================================================================

def _path(err: Any) -> str:
    return "/".join(str(p) for p in err.absolute_path) or "<root>"


def _validate(data: Dict[str, Any]) -> List[str]:
    """
    Validate config data. Returns the list of problems.

    Rules:
    - schema: known sections and fields, types, minimums, enums
    - timestamps: min_nodes_per_cluster <= max_nodes_per_cluster
    - timestamps: min_clusters <= max_clusters when both are given
    """
    errors: List[str] = []
    for err in sorted(_COMPILED_VALIDATOR.iter_errors(data), key=_path):
        errors.append(f"Schema: {_path(err)}: {err.message}")

    ts = data.get("timestamps")
    if isinstance(ts, dict):
        lo = ts.get("min_nodes_per_cluster", TimestampConfig.min_nodes_per_cluster)
        hi = ts.get("max_nodes_per_cluster", TimestampConfig.max_nodes_per_cluster)
        if isinstance(lo, int) and isinstance(hi, int) and lo > hi:
            errors.append(f"timestamps: min_nodes_per_cluster {lo} > max_nodes_per_cluster {hi}")
        lo_c, hi_c = ts.get("min_clusters"), ts.get("max_clusters")
        if isinstance(lo_c, int) and isinstance(hi_c, int) and lo_c > hi_c:
            errors.append(f"timestamps: min_clusters {lo_c} > max_clusters {hi_c}")
    return errors


def _self_heal(data: Dict[str, Any], warns: List[str]) -> Dict[str, Any]:
    """Drop unknown keys and reset invalid fields to their defaults."""
    healed: Dict[str, Any] = {}

    version = data.get("version", "1.0")
    if not Draft202012Validator(_JSON_SCHEMA["properties"]["version"]).is_valid(version):
        warns.append(f"Invalid version {version!r}, using default: 1.0")
        version = "1.0"
    healed["version"] = version

    for key in data:
        if key not in _SECTION_TYPES and key not in ("version", "config_hash"):
            warns.append(f"Ignoring unknown section: {key}")

    for name, section_type in _SECTION_TYPES.items():
        raw = data.get(name, {})
        if raw is None:
            raw = {}
        if not isinstance(raw, dict):
            warns.append(f"Section '{name}' must be a mapping, using defaults")
            raw = {}
        props = _SECTION_SCHEMAS[name]["properties"]
        defaults = {f.name: f.default for f in fields(section_type)}
        section: Dict[str, Any] = {}
        for key, val in raw.items():
            if key not in props:
                warns.append(f"Ignoring unknown field: {name}.{key}")
                continue
            if not Draft202012Validator(props[key]).is_valid(val):
                warns.append(f"Invalid {name}.{key}={val!r}, using default: {defaults[key]}")
                continue
            section[key] = val
        healed[name] = section

    ts = healed["timestamps"]
    lo = ts.get("min_nodes_per_cluster", TimestampConfig.min_nodes_per_cluster)
    hi = ts.get("max_nodes_per_cluster", TimestampConfig.max_nodes_per_cluster)
    if lo > hi:
        warns.append(f"min_nodes_per_cluster {lo} > max_nodes_per_cluster {hi}, using defaults")
        ts.pop("min_nodes_per_cluster", None)
        ts.pop("max_nodes_per_cluster", None)
    lo_c, hi_c = ts.get("min_clusters"), ts.get("max_clusters")
    if lo_c is not None and hi_c is not None and lo_c > hi_c:
        warns.append(f"min_clusters {lo_c} > max_clusters {hi_c}, using defaults")
        ts.pop("min_clusters", None)
        ts.pop("max_clusters", None)

    return healed


def _create_config(data: Any, validate: bool, strict: bool) -> ProvtreeConfig:
    """
    Internal factory for creating ProvtreeConfig from data.

    Handles validation, self-healing, and hash computation.
    """
    if data is None:
        data = {}
    if not isinstance(data, dict):
        raise ValueError(f"Config must be a mapping, got {type(data).__name__}")
    data = dict(data)
    data.pop("config_hash", None)

    all_warnings: List[str] = []
    if validate:
        errors = _validate(data)
        if errors:
            if strict:
                raise ValueError("Config validation failed:\n" + "\n".join(f"  - {e}" for e in errors))
            data = _self_heal(data, all_warnings)
            errors = _validate(data)
            if errors:
                raise ValueError("Config validation failed after self-healing:\n" +
                                 "\n".join(f"  - {e}" for e in errors))

    for w in all_warnings:
        warnings.warn(f"ProvtreeConfig: {w}", UserWarning, stacklevel=3)

    sections: Dict[str, Any] = {}
    for name, section_type in _SECTION_TYPES.items():
        sections[name] = section_type(**(data.get(name) or {}))

    config = ProvtreeConfig(version=str(data.get("version", "1.0")), **sections)
    return replace(config, config_hash=_compute_hash(config.to_dict()))
