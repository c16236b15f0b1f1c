"""
provtree/constants.py - Graph Model Enums and Algorithm Constants

All strategy defaults live here. Centralized for tuning.
Pure data, no behavior.
"""

from enum import Enum

# =============================================================================
# GRAPH MODEL ENUMS
# =============================================================================


class EdgeType(Enum):
    """Edge type of a provenance dependency."""
    DATA = "data"          # Data dependency
    CONTROL = "control"    # Control dependency (process to process)
    VERSION = "version"    # Version edge
    COMPOUND = "compound"  # Combination of multiple edges
    OTHER = "other"


class ObjectType(Enum):
    """Coarse type of the logical object behind a version chain."""
    PROCESS = "process"
    ARTIFACT = "artifact"
    AGENT = "agent"
    OTHER = "other"


class GraphDirection(Enum):
    """How edges are followed by traversal-based measures."""
    DIRECTED = "directed"
    INVERTED = "inverted"
    UNDIRECTED = "undirected"


# =============================================================================
# TIME
# =============================================================================

MIN_TIMESTAMP = 0.001  # Smaller raw timestamps count as "not set"
TIMELINE_EPSILON = 0.0001  # Nudge for processes without a start time

# =============================================================================
# PROGRESS
# =============================================================================

PROGRESS_DETERMINATE_MIN = 10  # At most this many work units -> indeterminate

# =============================================================================
# FILE EXTENSION SUMMARIZER
# =============================================================================

DEFAULT_EXT_THRESHOLD = 4
DEFAULT_EXT_SAME_IO = True
SHARED_LIBRARY_MARKER = ".so."
SHARED_LIBRARY_EXT = "so"

# =============================================================================
# UNIQUE IN/OUT SUMMARIZER
# =============================================================================

DEFAULT_UNIQUE_INOUT_THRESHOLD = 4

# =============================================================================
# TIMESTAMP CLUSTERING SUMMARIZER
# =============================================================================

DEFAULT_MIN_NODES_PER_CLUSTER = 5
DEFAULT_MAX_NODES_PER_CLUSTER = 60
DEFAULT_THRESHOLD_MULTIPLIER = 3.0
THRESHOLD_SEARCH_RETRIES = 20

# =============================================================================
# SMALL GROUPS SUMMARIZER
# =============================================================================

DEFAULT_NODE_THRESHOLD = 200
DEFAULT_EDGE_THRESHOLD = 300
SMALL_GROUPS_MAX_ITERATIONS = 1000

# =============================================================================
# EQUIVALENCE CHECKERS
# =============================================================================

DEFAULT_HASH_CONSTANT = 10
DEFAULT_CONSECUTIVE_SIZE = 10

# =============================================================================
# RANKING
# =============================================================================

DEFAULT_RANK_ITERATIONS = 200
