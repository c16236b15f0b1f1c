"""
provtree/file_ext.py - File-Extension Summarizer

Within every group, visible artifact children are bucketed by the extension
of their object's name and, optionally, by identical input/output node sets.
Buckets of at least `threshold` nodes become a group labeled "*.<ext>".
"""

from typing import Any, Dict, List, Optional

from .constants import SHARED_LIBRARY_EXT, SHARED_LIBRARY_MARKER, ObjectType
from .graph import BaseGraph
from .jobs import CancellationToken, JobObserver
from .prov import ProvNode
from .summarizer import GraphSummarizer, each_group
from .types_config import FileExtConfig


def file_extension(name: Optional[str]) -> Optional[str]:
    """
    Extension of a path's basename.

    "libc.so.6" -> "so"; "a.log" -> "log"; ".bashrc", "dir.", "README" -> None.
    """
    if not name:
        return None
    base = name.rsplit("/", 1)[-1]
    if base.find(SHARED_LIBRARY_MARKER) > 0:
        return SHARED_LIBRARY_EXT
    i = base.rfind(".")
    if 0 < i < len(base) - 1:
        return base[i + 1:]
    return None


def split_by_inputs_outputs(nodes: List[ProvNode]) -> List[List[ProvNode]]:
    """Partition nodes into maximal runs with equal incoming and outgoing node sets."""
    subsets: List[List[ProvNode]] = []
    keys: List[tuple] = []
    for n in nodes:
        key = (frozenset(n.incoming_nodes()), frozenset(n.outgoing_nodes()))
        for i, k in enumerate(keys):
            if k == key:
                subsets[i].append(n)
                break
        else:
            keys.append(key)
            subsets.append([n])
    return subsets


class FileExtSummarizer(GraphSummarizer):
    """Group artifacts that share a file extension."""

    name = "File Extensions"
    requires_prov_graph = True

    def __init__(self, config: Optional[FileExtConfig] = None):
        self.config = config or FileExtConfig()

    def _run(
        self,
        graph: BaseGraph,
        observer: Optional[JobObserver],
        token: Optional[CancellationToken],
    ) -> Dict[str, Any]:
        threshold = self.config.threshold
        labels: List[str] = []

        for sn in each_group(graph, observer, token):
            buckets: Dict[str, List[ProvNode]] = {}
            for n in sn.children:
                if n.is_group or not n.visible or n.parent is not sn:
                    continue
                obj = getattr(n, "obj", None)
                if obj is None or obj.type is not ObjectType.ARTIFACT:
                    continue
                ext = file_extension(obj.name)
                if ext is None:
                    continue
                buckets.setdefault(ext, []).append(n)

            for ext, bucket in buckets.items():
                if self.config.same_inputs_outputs:
                    subsets = split_by_inputs_outputs(bucket)
                else:
                    subsets = [bucket]
                for subset in subsets:
                    if len(subset) < threshold:
                        continue
                    s = graph.new_group(sn, f"*.{ext}")
                    for n in subset:
                        s.move_from_ancestor(n)
                    labels.append(s.label)

        return {"labels": labels}
