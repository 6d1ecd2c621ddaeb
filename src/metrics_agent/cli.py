"""Metrics Agent CLI - one-shot collection from text metrics endpoints."""

import json
import logging
import sys
from typing import Optional

import click
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.markup import escape

from . import __version__
from .agent import Agent
from .config import LOG_LEVELS, load_config
from .errors import AggregatedError, ConfigError
from .sources import PollResult, Sample, list_sources

console = Console()


def setup_logging(level: str):
    """Configure logging."""
    logging.basicConfig(
        level=getattr(logging, level.upper()),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[logging.StreamHandler()],
    )


def _load_agent(config_path: Optional[str], log_level: Optional[str] = None) -> Agent:
    try:
        config = load_config(config_path)
    except ConfigError as e:
        console.print(f"[red]x {escape(str(e))}[/red]")
        sys.exit(2)

    setup_logging(log_level or config.log_level)
    agent = Agent(config)
    agent.setup()
    return agent


@click.group()
@click.version_option(version=__version__, prog_name="metrics-agent")
def main():
    """Metrics Agent - scrape metrics from REST status pages and Prometheus endpoints."""
    pass


@main.command()
@click.option("--config", "-c", "config_path", help="Path to agent config file")
@click.option("--name", "-n", "names", multiple=True, help="Only poll these collectors")
@click.option("--log-level", type=click.Choice(LOG_LEVELS, case_sensitive=False), default=None, help="Log level")
@click.option("--json", "as_json", is_flag=True, help="Print samples as JSON")
def collect(config_path: Optional[str], names: tuple[str, ...], log_level: Optional[str], as_json: bool):
    """Poll every configured collector once and show the samples."""
    agent = _load_agent(config_path, log_level)
    if names:
        agent.collectors = [c for c in agent.collectors if c.name in names]

    try:
        results = agent.collect_once()
    finally:
        agent.close()

    if as_json:
        click.echo(json.dumps([_result_to_dict(r) for r in results], indent=2))
    else:
        for result in results:
            _display_result(result)

    if agent.failed or any(not r.success for r in results):
        sys.exit(1)


def _flatten(result: PollResult) -> list[Sample]:
    if isinstance(result.samples, dict):
        return [s for samples in result.samples.values() for s in samples]
    return list(result.samples)


def _result_to_dict(result: PollResult) -> dict:
    return {
        "source": result.source,
        "success": result.success,
        "next_collection_time": result.next_collection_time.isoformat(),
        "error": str(result.error) if result.error else None,
        "samples": [s.to_dict() for s in _flatten(result)],
    }


def _display_result(result: PollResult):
    """Display one poll result in a table."""
    if not result.success:
        console.print(f"[red]x {result.source}: {escape(str(result.error))}[/red]")
        return

    samples = _flatten(result)
    table = Table(title=f"{result.source}: {len(samples)} samples", show_lines=False)
    table.add_column("Name", style="cyan")
    table.add_column("Value", justify="right")
    table.add_column("Type", style="green")
    table.add_column("Label", style="dim")

    for sample in samples[:50]:  # Show first 50
        value_str = "[red]-[/red]" if sample.value is None else str(sample.value)
        table.add_row(escape(sample.name), value_str, sample.metric_type.value, escape(sample.label or ""))

    console.print(table)

    if len(samples) > 50:
        console.print(f"[dim]... and {len(samples) - 50} more samples[/dim]")

    if isinstance(result.error, AggregatedError):
        for error in result.error:
            console.print(f"  [yellow]! {escape(str(error))}[/yellow]")

    console.print(f"[dim]Next collection: {result.next_collection_time.isoformat()}[/dim]\n")


@main.command()
@click.option("--config", "-c", "config_path", help="Path to agent config file")
def discover(config_path: Optional[str]):
    """List the metrics exposed by Prometheus collectors."""
    agent = _load_agent(config_path)
    try:
        discovered = agent.discover()
    finally:
        agent.close()

    if not discovered:
        console.print("[yellow]No Prometheus collectors configured[/yellow]")
        return

    for name, specs in discovered.items():
        table = Table(title=f"{name}: {len(specs)} metrics")
        table.add_column("Name", style="cyan")
        table.add_column("Type", style="green")
        table.add_column("Format")
        table.add_column("Units", style="dim")
        for spec in specs:
            table.add_row(spec.name, spec.metric_type, spec.value_format, spec.units)
        console.print(table)


@main.command()
@click.option("--config", "-c", "config_path", help="Path to agent config file")
def validate(config_path: Optional[str]):
    """Validate collector configs without polling."""
    agent = _load_agent(config_path, "ERROR")

    for collector in agent.collectors:
        console.print(
            f"[green]+ {collector.name}[/green] "
            f"({collector.config.kind.value}, {len(collector.config.metrics)} metrics, "
            f"{collector.config.endpoint})"
        )
    for name, error in agent.failed.items():
        console.print(f"[red]x {name} ({error.kind.value}): {escape(str(error))}[/red]")

    if agent.failed:
        sys.exit(1)


@main.command()
def sources():
    """List available collector kinds."""
    console.print("[bold]Available Collectors:[/bold]\n")

    table = Table(show_header=True)
    table.add_column("Kind", style="cyan")
    table.add_column("Description")

    source_info = {
        "REST": "Text status page, one regex per metric",
        "Prometheus": "Prometheus exposition-format endpoint",
        "generic": "Text status page, polling frequency per metric",
    }

    registered = list_sources()

    for kind, desc in source_info.items():
        status = "[green]+" if kind in registered else "[red]x"
        table.add_row(f"{status} {kind}", desc)

    console.print(table)


@main.command()
@click.option("--output", "-o", type=click.Path(), help="Output file path")
def init(output: Optional[str]):
    """Generate a sample configuration file."""
    sample_config = """# Metrics Agent Configuration

# Collectors - one per metrics endpoint
collectors:
  # nginx stub_status page, see nginx.json:
  # {
  #   "source": "http://localhost:8000/nginx_status",
  #   "polling_frequency": 10,
  #   "metrics_config": [
  #     {"name": "activeConnections", "metric_type": "gauge",
  #      "units": "integer", "regex": "Active connections: ([0-9]+)"}
  #   ]
  # }
  - name: nginx
    kind: REST
    config: nginx.json
    enabled: true

  # Prometheus exposition endpoint
  - name: node
    kind: Prometheus
    enabled: false
    inline:
      source: http://localhost:9100/metrics
      polling_frequency: 15
      metrics_config:
        - name: node_load1

# Agent settings
timeout: 30
max_workers: 1
log_level: INFO
"""

    output_path = output or "metrics-agent.yaml"

    with open(output_path, "w") as f:
        f.write(sample_config)

    console.print(Panel(f"[green]+ Created config file: {output_path}[/green]", title="metrics-agent"))
    console.print("\nEdit the file to point at your endpoints, then run:")
    console.print(f"  [cyan]metrics-agent collect -c {output_path}[/cyan]")


if __name__ == "__main__":
    main()
