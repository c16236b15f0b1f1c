#!/usr/bin/env python3
"""
provtree_cli.py - provtree command line

Loads a provenance graph from a networkx node-link JSON file and runs one
summarization strategy, ProvRank or SubRank, the process timeline or a centrality
measure on it.

Commands:
    provtree strategies
    provtree summarize GRAPH --strategy NAME [--config FILE] [--receipts FILE]
    provtree rank GRAPH [--algorithm provrank|subrank] [--iterations N] [--top K]
    provtree timeline GRAPH
    provtree centrality GRAPH --measure betweenness|closeness [--direction ...]
    provtree validate-config CONFIG [--strict]

Every command takes --output rich|json.
Exit codes: 0 success, 1 cancelled, 2 load or processing error.
"""

import json
import sys
from typing import Any, Dict, Optional

import click
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

import config_schema
from receipts import write_receipt_jsonl
from provtree import (
    CancellationToken,
    GraphDirection,
    JobStatus,
    ProvRank,
    RecordingObserver,
    STRATEGIES,
    SubRank,
    SummaryGroup,
    TimelineEvent,
    betweenness_centrality,
    compute_process_timeline,
    create_summarizer,
    dangalchev_closeness_centrality,
    load_node_link,
    run_rank_job,
    run_summary_job,
)

console = Console()

# Children shown per group in rich output
TREE_PREVIEW = 12


# =============================================================================
# OUTPUT HELPERS
# =============================================================================

# Status marks for one-line rich messages
MARKS = {
    "done": "[green]✓[/green]",
    "error": "[red]✗[/red]",
    "cancelled": "[yellow]⚠[/yellow]",
}


def report(kind: str, message: str) -> None:
    """One status line, prefixed by the mark for `kind`."""
    console.print(f"{MARKS[kind]} {message}")


def suggest_rank(graph_path: str) -> None:
    console.print(f"\n[dim]Rank the same graph:[/dim] [cyan]provtree rank {graph_path}[/cyan]")


def _fail(output: str, message: str, **extra: Any) -> None:
    if output == "json":
        click.echo(json.dumps({"error": message, **extra}))
    else:
        report("error", message)
    sys.exit(2)


def _group_dict(group: SummaryGroup) -> Dict[str, Any]:
    return {
        "label": group.label,
        "index": group.index,
        "nodes": [c.index for c in group.children if not c.is_group],
        "groups": [_group_dict(c) for c in group.children if c.is_group],
    }


def _group_tree(group: SummaryGroup, tree: Optional[Tree] = None) -> Tree:
    if tree is None:
        tree = Tree(f"[bold]{group.label or 'root'}[/bold] ({group.child_count()})")
    children = group.children
    for child in children[:TREE_PREVIEW]:
        if child.is_group:
            _group_tree(child, tree.add(f"[cyan]{child.label or '(group)'}[/cyan] ({child.child_count()})"))
        else:
            tree.add(f"{child.label} [dim]#{child.index}[/dim]")
    if len(children) > TREE_PREVIEW:
        tree.add(f"[dim]... {len(children) - TREE_PREVIEW} more[/dim]")
    return tree


def _timeline_tree(event: TimelineEvent, tree: Optional[Tree] = None) -> Tree:
    if tree is None:
        tree = Tree(f"[bold]timeline[/bold] {event.start:.4f} .. {event.finish:.4f}")
    for sub in event.subevents:
        _timeline_tree(sub, tree.add(f"{sub.name} [dim]{sub.start:.4f} .. {sub.finish:.4f}[/dim]"))
    return tree


def _load(graph_path: str, output: str):
    try:
        return load_node_link(graph_path)
    except (OSError, ValueError, KeyError, TypeError) as e:
        _fail(output, f"Cannot load graph: {e}", path=graph_path)


# =============================================================================
# CLI
# =============================================================================

@click.group()
def cli():
    """provtree - provenance graph summarization."""
    pass


@cli.command("strategies")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich")
def strategies_cmd(output: str) -> None:
    """List the registered summarization strategies."""
    if output == "json":
        click.echo(json.dumps([
            {"key": s.key, "title": s.title, "needs_prov_graph": s.needs_prov_graph}
            for s in STRATEGIES.values()
        ], indent=2))
        return
    table = Table(title="Strategies")
    table.add_column("Key", style="cyan")
    table.add_column("Name")
    table.add_column("Provenance graph")
    for s in STRATEGIES.values():
        table.add_row(s.key, s.title, "yes" if s.needs_prov_graph else "no")
    console.print(table)


@cli.command("summarize")
@click.argument("graph_path", type=click.Path(exists=True))
@click.option("--strategy", "-s", required=True, type=click.Choice(list(STRATEGIES)))
@click.option("--config", "-c", "config_path", type=click.Path(exists=True), help="Config file")
@click.option("--strict", is_flag=True, help="Reject invalid config instead of healing it")
@click.option("--receipts", "-r", "receipts_path", type=click.Path(), help="Append receipts (JSONL)")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich")
def summarize_cmd(
    graph_path: str,
    strategy: str,
    config_path: Optional[str],
    strict: bool,
    receipts_path: Optional[str],
    output: str,
) -> None:
    """Run one summarization strategy and print the containment tree."""
    graph = _load(graph_path, output)
    try:
        config = config_schema.load(config_path, strict=strict) if config_path else config_schema.default()
    except (OSError, ValueError) as e:
        _fail(output, f"Invalid config: {e}", path=config_path)

    summarizer = create_summarizer(strategy, config)
    token = CancellationToken()
    try:
        outcome = run_summary_job(summarizer, graph, RecordingObserver(), token)
    except KeyboardInterrupt:
        report("cancelled", "Summarization interrupted")
        sys.exit(1)

    if outcome.status is JobStatus.CANCELLED:
        report("cancelled", f"{summarizer.name} was cancelled")
        sys.exit(1)
    if outcome.status is JobStatus.FAILED:
        _fail(output, f"{summarizer.name} failed: {outcome.error}")

    if receipts_path:
        with open(receipts_path, "a") as fh:
            write_receipt_jsonl(outcome.receipt, fh)

    if output == "json":
        click.echo(json.dumps({
            "receipt": outcome.receipt,
            "config_hash": config.config_hash,
            "tree": _group_dict(graph.root),
        }, indent=2, default=str))
        return

    r = outcome.receipt
    console.print(Panel(
        _group_tree(graph.root),
        title=f"[bold green]{summarizer.name}[/bold green]",
        subtitle=f"{r['nodes']} nodes, {r['groups']} groups, {r['elapsed_ms']} ms",
        border_style="green",
    ))
    report("done", f"Created {r['groups_created']} groups")
    suggest_rank(graph_path)


@cli.command("rank")
@click.argument("graph_path", type=click.Path(exists=True))
@click.option("--algorithm", "-a", default="provrank", type=click.Choice(["provrank", "subrank"]),
              help="ProvRank (iterative) or SubRank (ancestor share, acyclic graphs only)")
@click.option("--iterations", "-n", default=None, type=click.IntRange(min=0), help="ProvRank rounds")
@click.option("--top", "-k", default=10, type=click.IntRange(min=1), help="Nodes to show")
@click.option("--config", "-c", "config_path", type=click.Path(exists=True), help="Config file")
@click.option("--receipts", "-r", "receipts_path", type=click.Path(), help="Append receipts (JSONL)")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich")
def rank_cmd(
    graph_path: str,
    algorithm: str,
    iterations: Optional[int],
    top: int,
    config_path: Optional[str],
    receipts_path: Optional[str],
    output: str,
) -> None:
    """Compute ProvRank or SubRank and print the top nodes."""
    graph = _load(graph_path, output)
    if algorithm == "subrank":
        ranker = SubRank(graph)
        score = "subrank"
        title = "SubRank"
    else:
        if iterations is None:
            try:
                config = config_schema.load(config_path) if config_path else config_schema.default()
            except (OSError, ValueError) as e:
                _fail(output, f"Invalid config: {e}", path=config_path)
            iterations = config.ranking.iterations
        ranker = ProvRank(graph, iterations)
        score = "rank"
        title = f"ProvRank ({iterations} iterations)"

    try:
        outcome = run_rank_job(ranker, RecordingObserver(), CancellationToken())
    except KeyboardInterrupt:
        report("cancelled", "Ranking interrupted")
        sys.exit(1)
    if outcome.status is JobStatus.CANCELLED:
        report("cancelled", f"{ranker.name} was cancelled")
        sys.exit(1)
    if outcome.status is JobStatus.FAILED:
        _fail(output, f"{ranker.name} failed: {outcome.error}")

    if receipts_path:
        with open(receipts_path, "a") as fh:
            write_receipt_jsonl(outcome.receipt, fh)

    best = ranker.top(top)
    if output == "json":
        click.echo(json.dumps({
            "receipt": outcome.receipt,
            "top": [{"index": n.index, "label": n.label, score: getattr(n, score)} for n in best],
        }, indent=2, default=str))
        return

    table = Table(title=title)
    table.add_column("#", justify="right")
    table.add_column("Node", style="cyan")
    table.add_column(title.split()[0], justify="right")
    for n in best:
        table.add_row(str(n.index), n.label, f"{getattr(n, score):.6f}")
    console.print(table)


@cli.command("timeline")
@click.argument("graph_path", type=click.Path(exists=True))
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich")
def timeline_cmd(graph_path: str, output: str) -> None:
    """Print the reconstructed process timeline."""
    graph = _load(graph_path, output)
    timeline = compute_process_timeline(graph)
    if output == "json":
        click.echo(json.dumps(timeline.to_dict(), indent=2))
        return
    console.print(_timeline_tree(timeline))


@cli.command("centrality")
@click.argument("graph_path", type=click.Path(exists=True))
@click.option("--measure", "-m", required=True, type=click.Choice(["betweenness", "closeness"]))
@click.option("--direction", "-d", default="directed",
              type=click.Choice([d.value for d in GraphDirection]))
@click.option("--top", "-k", default=10, type=click.IntRange(min=1), help="Nodes to show")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich")
def centrality_cmd(graph_path: str, measure: str, direction: str, top: int, output: str) -> None:
    """Compute a node centrality measure."""
    graph = _load(graph_path, output)
    d = GraphDirection(direction)
    if measure == "betweenness":
        values = betweenness_centrality(graph, d)
    else:
        values = dangalchev_closeness_centrality(graph, d)
    best = sorted(values.items(), key=lambda kv: (-kv[1], kv[0]))[:top]

    if output == "json":
        click.echo(json.dumps({
            "measure": measure,
            "direction": direction,
            "top": [{"index": i, "label": graph.nodes[i].label, "value": v} for i, v in best],
        }, indent=2))
        return

    table = Table(title=f"{measure.title()} centrality ({direction})")
    table.add_column("#", justify="right")
    table.add_column("Node", style="cyan")
    table.add_column("Value", justify="right")
    for i, v in best:
        table.add_row(str(i), graph.nodes[i].label, f"{v:.6f}")
    console.print(table)


@cli.command("validate-config")
@click.argument("config_path", type=click.Path(exists=True))
@click.option("--strict", is_flag=True, help="Fail instead of healing")
@click.option("--output", "-o", type=click.Choice(["rich", "json"]), default="rich")
def validate_config_cmd(config_path: str, strict: bool, output: str) -> None:
    """Validate a provtree config file."""
    try:
        config = config_schema.load(config_path, strict=strict)
    except (OSError, ValueError) as e:
        _fail(output, f"Validation failed: {e}", path=config_path)

    if output == "json":
        click.echo(json.dumps({"path": config_path, "valid": True, "config": config.to_dict()}, indent=2))
        return
    ts = config.timestamps
    console.print(Panel(
        f"File: {config_path}\n"
        f"file_ext.threshold: {config.file_ext.threshold}    "
        f"unique_inout.threshold: {config.unique_inout.threshold}\n"
        f"timestamps: {ts.min_nodes_per_cluster}..{ts.max_nodes_per_cluster} per cluster\n"
        f"small_groups: {config.small_groups.node_threshold} nodes / "
        f"{config.small_groups.edge_threshold} edges\n"
        f"ranking.iterations: {config.ranking.iterations}\n"
        f"Hash: {config.config_hash}",
        title="[bold green]Config Validation: PASSED[/bold green]",
        border_style="green",
    ))


def main() -> int:
    """Entry point for the provtree CLI."""
    try:
        cli(standalone_mode=False)
        return 0
    except click.ClickException as e:
        e.show()
        return 2
    except click.exceptions.Abort:
        return 1
    except SystemExit as e:
        return e.code if isinstance(e.code, int) else 0


if __name__ == "__main__":
    sys.exit(main())
