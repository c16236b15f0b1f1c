"""
provtree/types_config.py - Strategy Config Dataclasses and Presets

Immutable configuration for each summarization strategy and for ranking.
Frozen dataclasses, no behavior beyond derived properties.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

from .constants import (
    DEFAULT_CONSECUTIVE_SIZE,
    DEFAULT_EDGE_THRESHOLD,
    DEFAULT_EXT_SAME_IO,
    DEFAULT_EXT_THRESHOLD,
    DEFAULT_HASH_CONSTANT,
    DEFAULT_MAX_NODES_PER_CLUSTER,
    DEFAULT_MIN_NODES_PER_CLUSTER,
    DEFAULT_NODE_THRESHOLD,
    DEFAULT_RANK_ITERATIONS,
    DEFAULT_THRESHOLD_MULTIPLIER,
    DEFAULT_UNIQUE_INOUT_THRESHOLD,
    SMALL_GROUPS_MAX_ITERATIONS,
    THRESHOLD_SEARCH_RETRIES,
)


@dataclass(frozen=True)
class FileExtConfig:
    """File-extension grouping."""
    threshold: int = DEFAULT_EXT_THRESHOLD
    same_inputs_outputs: bool = DEFAULT_EXT_SAME_IO


@dataclass(frozen=True)
class UniqueInOutConfig:
    """Hub plus exclusive leaf producers/consumers."""
    threshold: int = DEFAULT_UNIQUE_INOUT_THRESHOLD


@dataclass(frozen=True)
class TimestampConfig:
    """Adaptive timestamp clustering."""
    min_nodes_per_cluster: int = DEFAULT_MIN_NODES_PER_CLUSTER
    max_nodes_per_cluster: int = DEFAULT_MAX_NODES_PER_CLUSTER
    # Desired cluster-count band for the threshold search; None -> per-cluster bounds
    min_clusters: Optional[int] = None
    max_clusters: Optional[int] = None
    processes_only: bool = False
    use_adjusted_time: bool = True
    keep_versions_together: bool = True
    untimestamped_later: bool = False
    use_break_times: bool = True
    initial_multiplier: float = DEFAULT_THRESHOLD_MULTIPLIER
    max_retries: int = THRESHOLD_SEARCH_RETRIES

    @property
    def cluster_band(self) -> Tuple[int, int]:
        lo = self.min_nodes_per_cluster if self.min_clusters is None else self.min_clusters
        hi = self.max_nodes_per_cluster if self.max_clusters is None else self.max_clusters
        return lo, hi


@dataclass(frozen=True)
class SmallGroupsConfig:
    """Bounded-size fallback grouping."""
    node_threshold: int = DEFAULT_NODE_THRESHOLD
    edge_threshold: int = DEFAULT_EDGE_THRESHOLD
    max_iterations: int = SMALL_GROUPS_MAX_ITERATIONS


@dataclass(frozen=True)
class EquivalenceConfig:
    """Which built-in predicate the equivalence summarizer uses."""
    checker: str = "same_connected_nodes"  # hash | consecutive | same_connected_nodes | regex
    hash_constant: int = DEFAULT_HASH_CONSTANT
    consecutive_size: int = DEFAULT_CONSECUTIVE_SIZE
    pattern: str = ".*"
    label: str = "regex"


@dataclass(frozen=True)
class RankConfig:
    """ProvRank iteration count."""
    iterations: int = DEFAULT_RANK_ITERATIONS


# =============================================================================
# PRESETS
# =============================================================================

TIMESTAMPS_PROCESSES_ONLY = TimestampConfig(processes_only=True)

TIMESTAMPS_RAW_TIME = TimestampConfig(
    use_adjusted_time=False,
    use_break_times=False,
)
