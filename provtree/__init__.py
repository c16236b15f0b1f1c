"""
provtree - Provenance Graph Summarization

Public API: graph model, containment tree utilities, summarization
strategies, process timeline, ProvRank, SubRank and centrality measures.
"""

# =============================================================================
# CONSTANTS
# =============================================================================
from .constants import EdgeType, ObjectType, GraphDirection

# =============================================================================
# ERRORS
# =============================================================================
from .errors import InvalidGraphError, JobCanceled, JobError, TreeInvariantError

# =============================================================================
# TYPES (Dataclasses)
# =============================================================================
from .types_config import (
    FileExtConfig,
    UniqueInOutConfig,
    TimestampConfig,
    SmallGroupsConfig,
    EquivalenceConfig,
    RankConfig,
    TIMESTAMPS_PROCESSES_ONLY,
    TIMESTAMPS_RAW_TIME,
)

# =============================================================================
# GRAPH MODEL
# =============================================================================
from .graph import (
    BaseNode,
    Edge,
    SummaryEdge,
    SummaryGroup,
    SummaryListener,
    BaseGraph,
    GraphStat,
)
from .prov import PObject, ProvNode, ProvGraph

# =============================================================================
# TREE UTILITIES
# =============================================================================
from .tree_ops import (
    common_ancestor,
    collect_summary_groups,
    assign_unassigned,
    remove_small_summaries,
    remove_singleton_summaries,
    check_consistency,
)

# =============================================================================
# JOBS
# =============================================================================
from .jobs import (
    JobObserver,
    CancellationToken,
    RecordingObserver,
    JobStatus,
    JobOutcome,
    run_summary_job,
    run_rank_job,
)

# =============================================================================
# SUMMARIZERS
# =============================================================================
from .summarizer import GraphSummarizer
from .equivalence import (
    SummaryChecker,
    SummaryLabeler,
    HashChecker,
    ConsecutiveIndexChecker,
    SameConnectedNodesChecker,
    RegexChecker,
    EquivalenceSummarizer,
)
from .file_ext import FileExtSummarizer, file_extension
from .unique_inout import UniqueInOutSummarizer
from .timestamps import TimestampsSummarizer, ProcessesOnlyTimestampsSummarizer
from .small_groups import SmallGroupsSummarizer
from .timeline import TimelineEvent, compute_process_timeline
from .process_tree import ProcessTreeSummarizer
from .registry import STRATEGIES, create_summarizer, strategy_names

# =============================================================================
# RANKING & CENTRALITY
# =============================================================================
from .ranking import ProvRank, SubRank, rank_graph, subrank_graph
from .centrality import betweenness_centrality, dangalchev_closeness_centrality

# =============================================================================
# INPUT
# =============================================================================
from .graph_io import from_networkx, load_node_link
