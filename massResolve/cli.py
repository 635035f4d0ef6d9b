"""Command-line entry point for massResolve."""
from __future__ import annotations

import argparse
import asyncio
import sys
from typing import List, Optional, TextIO

from rich.console import Console
from rich.markup import escape
from rich.traceback import install as install_rich_traceback

from massResolve.config import ResolveConfig
from massResolve.errors import ConfigError, MassResolveError
from massResolve.logging_config import configure_all, get_logger, sanitize_log_data
from massResolve.pipeline.driver import PipelineResult, run_pipeline

console = Console(stderr=True)
logger = get_logger("cli")


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="massresolve",
        description="Resolve a list of domains to their IPv4 addresses using a pool of DNS resolvers",
    )
    parser.add_argument("-i", "--input", default=None, help="Domains list, one per line")
    parser.add_argument("-t", "--threads", type=int, default=None, help="Workers to run (default: 5)")
    parser.add_argument("-r", "--resolvers", default=None, help="Resolver file (format: ip:port)")
    parser.add_argument("--only-ip", action="store_true", help="Output only IP addresses")
    parser.add_argument(
        "--public-dns",
        action="store_true",
        help="Use nameservers from public-dns.info for the client's country",
    )
    parser.add_argument("-c", "--config", default=None, help="Path to YAML config file")
    parser.add_argument("--timeout", type=float, default=None, help="Per-attempt DNS timeout in seconds")
    parser.add_argument("--no-probe", action="store_true", help="Skip resolver reachability probe")
    parser.add_argument("--stats", action="store_true", help="Print run statistics to stderr")
    parser.add_argument("--log-level", default=None, help="Diagnostic log level (default: WARNING)")
    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> ResolveConfig:
    base = ResolveConfig.load(args.config) if args.config else ResolveConfig()
    return base.merged({
        "input_path": args.input,
        "workers": args.threads,
        "resolver_file": args.resolvers,
        "only_addresses": True if args.only_ip else None,
        "public_dns": True if args.public_dns else None,
        "show_stats": True if args.stats else None,
        "dns": {
            "timeout_seconds": args.timeout,
            "probe_resolvers": False if args.no_probe else None,
        },
    })


def write_lines(lines: List[str], out: TextIO) -> None:
    for line in lines:
        out.write(f"{line}\n")
    out.flush()


def print_stats(result: PipelineResult) -> None:
    stats = result.stats
    console.print(
        f"[bold]jobs[/bold]={stats.jobs} resolved={stats.resolved} "
        f"[red]failed[/red]={stats.failed} answers={stats.answers} "
        f"rejected={stats.rejected} lines={stats.lines} "
        f"elapsed={stats.duration_ms / 1000:.1f}s",
        highlight=False,
    )
    if stats.jobs and stats.failed == stats.jobs:
        console.print("[yellow]Every lookup failed; check resolver reachability.", highlight=False)


def main(argv: Optional[List[str]] = None, out: Optional[TextIO] = None) -> int:
    args = parse_args(argv)
    if args.log_level:
        configure_all(log_level=args.log_level)

    try:
        cfg = build_config(args)
    except ConfigError as exc:
        console.print(f"[red]Configuration error:[/red] {escape(str(exc))}", highlight=False)
        return 1

    if not cfg.input_path:
        console.print("Please check your input file.", highlight=False)
        return 0

    logger.debug("Configuration loaded", extra={"config": sanitize_log_data(cfg.model_dump())})

    try:
        result = asyncio.run(run_pipeline(cfg))
    except MassResolveError as exc:
        logger.error(f"Run aborted: {exc}", extra={"outcome": "error", "error_type": type(exc).__name__})
        console.print(f"[red]{type(exc).__name__}:[/red] {escape(str(exc))}", highlight=False)
        return 1
    except KeyboardInterrupt:
        console.print("[yellow]Interrupted", highlight=False)
        return 130

    write_lines(result.lines, out or sys.stdout)
    if cfg.show_stats:
        print_stats(result)
    return 0


def run() -> None:
    install_rich_traceback()
    sys.exit(main())


if __name__ == "__main__":
    run()
