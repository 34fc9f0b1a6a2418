"""CLI entry point: python -m racejudge <config.yaml>"""

import argparse
import logging
import sys
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from racejudge.config import ConfigError, load_config
from racejudge.core.types import PlayerPhase
from racejudge.rehearsal import RehearsalEngine, RehearsalResult


def _print_result(console: Console, result: RehearsalResult) -> None:
    """Per-player phase and turn outcome tallies."""
    table = Table(title=f"{result.match_id}: {result.steps} steps")
    table.add_column("Player")
    table.add_column("Phase")
    table.add_column("Turns", justify="right")
    table.add_column("Normal", justify="right")
    table.add_column("Timed out", justify="right")
    table.add_column("Died", justify="right")
    table.add_column("Invalid", justify="right")
    table.add_column("Time left (ms)", justify="right")
    table.add_column("Out because")

    for name, phase in result.phases.items():
        tally = result.fidelity.get(name, {})
        style = "green" if phase is PlayerPhase.RACING else "red"
        table.add_row(
            name,
            f"[{style}]{phase.value}[/{style}]",
            str(tally.get("turns", 0)),
            str(tally.get("normal", 0)),
            str(tally.get("timedout", 0)),
            str(tally.get("died", 0)),
            str(tally.get("invalid", 0)),
            f"{result.time_left_ms.get(name, 0.0):.0f}",
            tally.get("disqualified") or "",
        )
    console.print(table)
    console.print(f"Telemetry: {result.telemetry_path}")


def main() -> None:
    parser = argparse.ArgumentParser(
        prog="racejudge",
        description="Rehearse AI racing programs against the judge protocol",
    )
    parser.add_argument(
        "config",
        type=Path,
        help="Path to match YAML config file",
    )
    parser.add_argument(
        "-o", "--output",
        type=Path,
        default=None,
        help="Output directory (default: output/)",
    )
    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        default=False,
        help="Log hook and lifecycle details",
    )
    args = parser.parse_args()

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )

    if not args.config.exists():
        print(f"Error: config file not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    try:
        config = load_config(args.config)
    except ConfigError as exc:
        print(f"Error: invalid config {args.config}: {exc}", file=sys.stderr)
        sys.exit(1)
    if args.output:
        config.output_dir = args.output

    console = Console()
    console.print(f"Match: {config.name}")
    console.print(f"Players: {', '.join(p.name for p in config.players)}")
    console.print(
        f"Course: {config.course.width}x{config.course.length}, "
        f"vision {config.course.vision}, think time {config.course.think_time} ms, "
        f"step limit {config.course.step_limit}"
    )
    console.print()

    result = RehearsalEngine(config).run()
    _print_result(console, result)


if __name__ == "__main__":
    main()
