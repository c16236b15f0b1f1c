"""
tests/test_config_schema.py - Tests for ProvtreeConfig

Validates:
- Defaults match the strategy dataclasses
- JSON and YAML loading
- Self-healing of invalid values with UserWarning
- Strict mode raising ValueError
- config_hash stability
- Registry factories pick up config sections
"""

import json
import warnings

import pytest
import yaml

import config_schema
from config_schema import ProvtreeConfig
from provtree import (
    FileExtConfig,
    SmallGroupsSummarizer,
    TIMESTAMPS_RAW_TIME,
    TimestampConfig,
    create_summarizer,
    strategy_names,
)
from provtree.equivalence import RegexChecker


# =============================================================================
# TEST: defaults
# =============================================================================

class TestDefaults:
    """Tests for the default configuration."""

    def test_default_sections(self):
        """Every section holds its dataclass defaults."""
        config = config_schema.default()
        assert config.version == "1.0"
        assert config.file_ext == FileExtConfig()
        assert config.timestamps == TimestampConfig()
        assert config.ranking.iterations == 200
        assert config.small_groups.node_threshold == 200

    def test_hash_is_stable(self):
        """Two default configs hash the same, 16 hex characters."""
        a = config_schema.default()
        b = ProvtreeConfig.default()
        assert a.config_hash == b.config_hash
        assert len(a.config_hash) == 16
        int(a.config_hash, 16)

    def test_frozen(self):
        """Configs cannot be modified after creation."""
        config = config_schema.default()
        with pytest.raises(AttributeError):
            config.version = "2.0"

    def test_schema_is_a_copy(self):
        """The exposed schema can be modified without affecting validation."""
        config = config_schema.default()
        schema = config.schema
        schema["properties"].clear()
        assert "file_ext" in config.schema["properties"]


# =============================================================================
# TEST: loading
# =============================================================================

class TestLoad:
    """Tests for loading config files."""

    def test_load_json(self, tmp_path):
        """Values from a JSON file override the defaults."""
        path = tmp_path / "config.json"
        path.write_text(json.dumps({"file_ext": {"threshold": 6}, "ranking": {"iterations": 50}}))
        config = config_schema.load(path)
        assert config.file_ext.threshold == 6
        assert config.file_ext.same_inputs_outputs is True
        assert config.ranking.iterations == 50
        assert config.config_hash != config_schema.default().config_hash

    def test_load_yaml(self, tmp_path):
        """YAML files are read the same way."""
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"timestamps": {"processes_only": True, "max_clusters": 30}}))
        config = config_schema.load(path)
        assert config.timestamps.processes_only is True
        assert config.timestamps.cluster_band == (5, 30)

    def test_save_and_reload(self, tmp_path):
        """A saved config loads back with the same hash."""
        config = ProvtreeConfig.from_dict({"unique_inout": {"threshold": 7}})
        path = tmp_path / "saved.yml"
        config.save(path)
        assert config_schema.load(path).config_hash == config.config_hash

    def test_missing_file(self, tmp_path):
        """A missing file raises FileNotFoundError."""
        with pytest.raises(FileNotFoundError):
            config_schema.load(tmp_path / "nope.json")

    def test_not_a_mapping(self, tmp_path):
        """A document that is not a mapping is rejected."""
        path = tmp_path / "list.json"
        path.write_text("[1, 2, 3]")
        with pytest.raises(ValueError, match="mapping"):
            config_schema.load(path)

    def test_empty_yaml(self, tmp_path):
        """An empty YAML document yields the defaults."""
        path = tmp_path / "empty.yaml"
        path.write_text("")
        assert config_schema.load(path).config_hash == config_schema.default().config_hash


# =============================================================================
# TEST: validation
# =============================================================================

class TestValidation:
    """Tests for self-healing and strict validation."""

    def test_invalid_value_healed(self):
        """An out-of-range value falls back to its default with a warning."""
        with pytest.warns(UserWarning, match="file_ext.threshold"):
            config = ProvtreeConfig.from_dict({"file_ext": {"threshold": -1}})
        assert config.file_ext.threshold == 4

    def test_unknown_section_healed(self):
        """Unknown sections are dropped with a warning."""
        with pytest.warns(UserWarning, match="unknown section"):
            config = ProvtreeConfig.from_dict({"bogus": {"x": 1}})
        assert config.config_hash == config_schema.default().config_hash

    def test_unknown_field_healed(self):
        """Unknown fields are dropped with a warning."""
        with pytest.warns(UserWarning, match="small_groups.colour"):
            config = ProvtreeConfig.from_dict({"small_groups": {"colour": "red", "edge_threshold": 9}})
        assert config.small_groups.edge_threshold == 9

    def test_min_above_max_healed(self):
        """A cluster minimum above the maximum resets both."""
        with pytest.warns(UserWarning, match="min_nodes_per_cluster"):
            config = ProvtreeConfig.from_dict({"timestamps": {"min_nodes_per_cluster": 80}})
        assert config.timestamps.min_nodes_per_cluster == 5
        assert config.timestamps.max_nodes_per_cluster == 60

    def test_bad_checker_healed(self):
        """An unknown equivalence checker name falls back to the default."""
        with pytest.warns(UserWarning):
            config = ProvtreeConfig.from_dict({"equivalence": {"checker": "magic"}})
        assert config.equivalence.checker == "same_connected_nodes"

    def test_strict_raises(self):
        """Strict mode lists the problems in a ValueError."""
        with pytest.raises(ValueError, match="threshold"):
            ProvtreeConfig.from_dict({"file_ext": {"threshold": 0}}, strict=True)

    def test_valid_config_is_silent(self):
        """A valid config emits no warnings."""
        with warnings.catch_warnings():
            warnings.simplefilter("error")
            ProvtreeConfig.from_dict({"equivalence": {"checker": "regex", "pattern": r".*\.so"}})

    def test_validate_false_skips_checks(self):
        """Without validation values are taken as given."""
        config = ProvtreeConfig.from_dict({"ranking": {"iterations": 3}}, validate=False)
        assert config.ranking.iterations == 3


# =============================================================================
# TEST: registry
# =============================================================================

class TestRegistry:
    """Tests for building summarizers from a config."""

    def test_strategy_names(self):
        """Every strategy key is registered."""
        assert set(strategy_names()) == {
            "file_ext", "unique_inout", "timestamps", "timestamps_processes",
            "timestamps_raw",
            "small_groups", "process_tree", "equivalence",
        }

    def test_factories_use_sections(self):
        """Config sections reach the summarizers."""
        config = ProvtreeConfig.from_dict({
            "file_ext": {"threshold": 6},
            "small_groups": {"node_threshold": 50},
            "equivalence": {"checker": "regex", "pattern": "a.*", "label": "A"},
        })
        assert create_summarizer("file_ext", config).config.threshold == 6
        small = create_summarizer("small_groups", config)
        assert isinstance(small, SmallGroupsSummarizer)
        assert small.config.node_threshold == 50
        checker = create_summarizer("equivalence", config).checker
        assert isinstance(checker, RegexChecker)
        assert checker.group_label == "A"

    def test_defaults_without_config(self):
        """Factories fall back to defaults."""
        assert create_summarizer("file_ext").config.threshold == 4
        assert create_summarizer("timestamps_processes").config.processes_only is True
        assert create_summarizer("timestamps_raw").config == TIMESTAMPS_RAW_TIME

    def test_raw_time_keeps_section(self):
        """The raw-time strategy keeps the configured band and flips both time flags."""
        config = ProvtreeConfig.from_dict({"timestamps": {"max_nodes_per_cluster": 40}})
        raw = create_summarizer("timestamps_raw", config).config
        assert raw.max_nodes_per_cluster == 40
        assert raw.use_adjusted_time is False
        assert raw.use_break_times is False

    def test_unknown_strategy(self):
        """Unknown keys raise KeyError."""
        with pytest.raises(KeyError):
            create_summarizer("nope")
