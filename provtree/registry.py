"""
provtree/registry.py - Summarizer Registry

Maps strategy keys to human-readable names and factories. Factories take a
ProvtreeConfig-like object (or None for defaults).
"""

from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, List, Optional

from .equivalence import EquivalenceSummarizer, checker_from_config
from .file_ext import FileExtSummarizer
from .process_tree import ProcessTreeSummarizer
from .small_groups import SmallGroupsSummarizer
from .summarizer import GraphSummarizer
from .timestamps import ProcessesOnlyTimestampsSummarizer, TimestampsSummarizer
from .types_config import TIMESTAMPS_RAW_TIME, EquivalenceConfig, TimestampConfig
from .unique_inout import UniqueInOutSummarizer


@dataclass(frozen=True)
class StrategyInfo:
    key: str
    title: str
    needs_prov_graph: bool
    factory: Callable[[Optional[Any]], GraphSummarizer]


def _section(config: Optional[Any], name: str) -> Optional[Any]:
    return getattr(config, name, None) if config is not None else None


def _raw_time(section: Optional[TimestampConfig]) -> TimestampConfig:
    """Timestamp section switched to raw times measured from cluster starts."""
    if section is None:
        return TIMESTAMPS_RAW_TIME
    return replace(section, use_adjusted_time=False, use_break_times=False)


STRATEGIES: Dict[str, StrategyInfo] = {
    info.key: info for info in [
        StrategyInfo("file_ext", "File Extensions", True,
                     lambda c: FileExtSummarizer(_section(c, "file_ext"))),
        StrategyInfo("unique_inout", "Unique In/Out Relationships", False,
                     lambda c: UniqueInOutSummarizer(_section(c, "unique_inout"))),
        StrategyInfo("timestamps", "Timestamps", True,
                     lambda c: TimestampsSummarizer(_section(c, "timestamps"))),
        StrategyInfo("timestamps_processes", "Timestamps (Processes Only)", True,
                     lambda c: ProcessesOnlyTimestampsSummarizer(_section(c, "timestamps"))),
        StrategyInfo("timestamps_raw", "Timestamps (Raw Time)", True,
                     lambda c: TimestampsSummarizer(_raw_time(_section(c, "timestamps")))),
        StrategyInfo("small_groups", "Small Groups", False,
                     lambda c: SmallGroupsSummarizer(_section(c, "small_groups"))),
        StrategyInfo("process_tree", "Process Tree", True,
                     lambda c: ProcessTreeSummarizer()),
        StrategyInfo("equivalence", "Equivalence", False,
                     lambda c: EquivalenceSummarizer(
                         checker_from_config(_section(c, "equivalence") or EquivalenceConfig()))),
    ]
}


def strategy_names() -> List[str]:
    return list(STRATEGIES)


def create_summarizer(key: str, config: Optional[Any] = None) -> GraphSummarizer:
    """Instantiate a registered strategy. Unknown keys raise KeyError."""
    try:
        info = STRATEGIES[key]
    except KeyError:
        raise KeyError(f"Unknown strategy {key!r}; choose from {', '.join(STRATEGIES)}") from None
    return info.factory(config)
