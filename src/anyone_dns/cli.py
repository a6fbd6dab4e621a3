"""
Command-line interface for the anyone-dns service.

This module provides the main CLI entry point with commands for:
- resolve: Resolve a single name to its hidden service address
- resolve-list: Resolve names from a file in paced batches
- hosts: Refresh once and print or write the hosts list
- watch: Keep the hosts list fresh until interrupted
- self-test: Validate configuration and probe the endpoints
"""

import argparse
import asyncio
import json
import sys
from pathlib import Path
from typing import Optional

from . import __version__
from .config import ServiceConfig, load_config_from_env
from .enums import LogLevel
from .exceptions import ConfigurationError
from .models import CacheSnapshot, ResolutionSuccess
from .orchestrator import CacheOrchestrator
from .self_test import run_self_test
from .service_logger import ServiceLogger


ENVIRONMENT_HELP = """\
required environment:
  JSON_RPC_URL                        JSON-RPC endpoint of the registry chain
  ANYONE_API_BASE_URL                 Base URL of the anyone domains inventory
  UNS_REGISTRY_PROXY_READER_ADDRESS   Registry proxy reader contract address;
                                      no default address is built in, so it
                                      must be set alongside the two above
"""


def banner() -> str:
    return f"Anyone DNS Service version {__version__}"


def create_logger(config: ServiceConfig, verbose: bool = False) -> ServiceLogger:
    """Build the service logger from config; ``verbose`` forces debug level."""
    if verbose:
        return ServiceLogger(output_format=config.logging.output_format, level=LogLevel.DEBUG)
    return ServiceLogger.from_config(config.logging)


def write_hosts_file(path: Path, hosts_text: str) -> None:
    """Replace ``path`` with the hosts text, via a temporary file in the same directory."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = path.with_name(path.name + ".tmp")
    with open(tmp_path, "w", encoding="utf-8") as f:
        f.write(hosts_text)
        if hosts_text:
            f.write("\n")
    tmp_path.replace(path)


def read_domains_file(domains_file: Path) -> list[str]:
    """One name per line; blank lines and ``#`` comments are skipped."""
    with open(domains_file, "r", encoding="utf-8") as f:
        return [line.strip() for line in f if line.strip() and not line.lstrip().startswith("#")]


async def resolve_single_domain(
    domain: str,
    config: ServiceConfig,
    verbose: bool = False,
) -> int:
    """
    Resolve one name and print the outcome.

    Returns:
        Exit code (0 when resolved, 1 otherwise)
    """
    logger = create_logger(config, verbose)

    async with CacheOrchestrator.from_config(config, logger=logger) as orchestrator:
        result = await orchestrator.resolve(domain)

    if isinstance(result, ResolutionSuccess):
        print(f"{result.domain} {result.address}")
        return 0

    print(f"{result.domain}: {result.error.value}", file=sys.stderr)
    if verbose and result.message:
        print(f"  {result.message}", file=sys.stderr)
    return 1


async def resolve_domain_list(
    domains_file: Path,
    config: ServiceConfig,
    batch_size: Optional[int] = None,
    delay_ms: Optional[int] = None,
    output_file: Optional[Path] = None,
    verbose: bool = False,
) -> int:
    """
    Resolve every name listed in a file.

    Returns:
        Exit code (0 if any name resolved, 1 otherwise)
    """
    try:
        domains = read_domains_file(domains_file)
    except FileNotFoundError:
        print(f"Error: File not found: {domains_file}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error reading file: {e}", file=sys.stderr)
        return 1

    if not domains:
        print("Error: No domains found in file", file=sys.stderr)
        return 1

    batch_size = batch_size if batch_size is not None else config.batch.batch_size
    delay_ms = delay_ms if delay_ms is not None else config.batch.delay_ms
    if batch_size < 1 or delay_ms < 0:
        print("Error: --batch-size must be >= 1 and --delay-ms >= 0", file=sys.stderr)
        return 1

    print(f"Resolving {len(domains)} domain(s)...")
    logger = create_logger(config, verbose)

    async with CacheOrchestrator.from_config(config, logger=logger) as orchestrator:
        results = await orchestrator.resolve_all(domains, batch_size, delay_ms)

    resolved_count = 0
    for result in results:
        if isinstance(result, ResolutionSuccess):
            resolved_count += 1
            print(f"  ✓ {result.domain} {result.address}")
        else:
            print(f"  ✗ {result.domain}: {result.error.value}")

    print(f"\nSummary: {resolved_count}/{len(results)} domain(s) resolved")

    if output_file:
        try:
            output_file.parent.mkdir(parents=True, exist_ok=True)
            with open(output_file, "w", encoding="utf-8") as f:
                json.dump([r.to_dict() for r in results], f, indent=2, ensure_ascii=False)
            print(f"Results written to: {output_file}")
        except OSError as e:
            print(f"Error writing results: {e}", file=sys.stderr)

    return 0 if resolved_count > 0 else 1


async def print_hosts(
    config: ServiceConfig,
    output_file: Optional[Path] = None,
    verbose: bool = False,
) -> int:
    """Run one refresh and emit the hosts list."""
    logger = create_logger(config, verbose)

    async with CacheOrchestrator.from_config(config, logger=logger) as orchestrator:
        outcome = await orchestrator.refresh()
        hosts_text = orchestrator.get_hosts_text()

    if not outcome.success:
        for error in outcome.errors:
            print(f"Error: {error}", file=sys.stderr)
        return 1

    if output_file:
        try:
            write_hosts_file(output_file, hosts_text)
        except OSError as e:
            print(f"Error writing hosts file: {e}", file=sys.stderr)
            return 1
        print(
            f"Wrote {outcome.resolved_count}/{outcome.domain_count} mapping(s) "
            f"to: {output_file}"
        )
    elif hosts_text:
        print(hosts_text)

    return 0


async def watch_hosts(
    config: ServiceConfig,
    output_file: Optional[Path] = None,
    verbose: bool = False,
) -> int:
    """Keep refreshing every cache TTL, rewriting or printing the hosts list each time."""
    logger = create_logger(config, verbose)

    async def on_refresh(snapshot: CacheSnapshot) -> None:
        if output_file:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, write_hosts_file, output_file, snapshot.hosts_text)
        elif snapshot.hosts_text:
            print(snapshot.hosts_text, flush=True)

    print(banner())
    print(f"Refreshing every {config.cache_ttl_ms}ms. Press Ctrl+C to stop.")

    async with CacheOrchestrator.from_config(config, logger=logger) as orchestrator:
        orchestrator.add_refresh_listener(on_refresh)
        await orchestrator.enqueue_refresh()
        await orchestrator.scheduler.wait()

    return 0


def _load_config(args: argparse.Namespace) -> Optional[ServiceConfig]:
    env_file = Path(args.env_file) if args.env_file else None
    try:
        return load_config_from_env(env_file=env_file)
    except ConfigurationError as e:
        print(f"Error: {e.message}", file=sys.stderr)
        for problem in e.details.get("errors", []):
            print(f"  - {problem}", file=sys.stderr)
        return None


def cmd_resolve(args: argparse.Namespace) -> int:
    """Handle the 'resolve' command."""
    config = _load_config(args)
    if config is None:
        return 1
    return asyncio.run(resolve_single_domain(args.domain, config, verbose=args.verbose))


def cmd_resolve_list(args: argparse.Namespace) -> int:
    """Handle the 'resolve-list' command."""
    config = _load_config(args)
    if config is None:
        return 1
    return asyncio.run(resolve_domain_list(
        domains_file=Path(args.file),
        config=config,
        batch_size=args.batch_size,
        delay_ms=args.delay_ms,
        output_file=Path(args.output) if args.output else None,
        verbose=args.verbose,
    ))


def cmd_hosts(args: argparse.Namespace) -> int:
    """Handle the 'hosts' command."""
    config = _load_config(args)
    if config is None:
        return 1
    output_file = Path(args.output) if args.output else None
    return asyncio.run(print_hosts(config, output_file=output_file, verbose=args.verbose))


def cmd_watch(args: argparse.Namespace) -> int:
    """Handle the 'watch' command."""
    config = _load_config(args)
    if config is None:
        return 1
    output_file = Path(args.output) if args.output else None
    try:
        return asyncio.run(watch_hosts(config, output_file=output_file, verbose=args.verbose))
    except KeyboardInterrupt:
        print("\nStopped.")
        return 0


def cmd_self_test(args: argparse.Namespace) -> int:
    """Handle the 'self-test' command."""
    config = _load_config(args)
    if config is None:
        return 1
    print(banner())
    result = asyncio.run(run_self_test(config=config, print_output=True))
    return 0 if result.success else 1


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser for the CLI."""
    parser = argparse.ArgumentParser(
        prog="anyone-dns",
        description="Resolve anyone names to hidden service addresses",
        epilog=ENVIRONMENT_HELP,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument(
        "--version",
        action="version",
        version=banner(),
    )

    # Shared by every subcommand
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument(
        "--env-file", "-e",
        help="Path to a .env file (default: ./.env if present)",
    )
    common.add_argument(
        "--verbose", "-v",
        action="store_true",
        help="Enable debug logging",
    )

    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # 'resolve' command
    resolve_parser = subparsers.add_parser(
        "resolve",
        parents=[common],
        help="Resolve a single name",
    )
    resolve_parser.add_argument(
        "domain",
        help="Name to resolve (e.g., example.anyone)",
    )
    resolve_parser.set_defaults(func=cmd_resolve)

    # 'resolve-list' command
    resolve_list_parser = subparsers.add_parser(
        "resolve-list",
        parents=[common],
        help="Resolve names from a file",
    )
    resolve_list_parser.add_argument(
        "file",
        help="Path to file containing names (one per line)",
    )
    resolve_list_parser.add_argument(
        "--batch-size", "-b",
        type=int,
        help="Names resolved concurrently per batch (default: RESOLVE_BATCH_SIZE)",
    )
    resolve_list_parser.add_argument(
        "--delay-ms", "-d",
        type=int,
        help="Pause between batches in ms (default: RESOLVE_BATCH_DELAY_MS)",
    )
    resolve_list_parser.add_argument(
        "--output", "-o",
        help="Path to write results as JSON",
    )
    resolve_list_parser.set_defaults(func=cmd_resolve_list)

    # 'hosts' command
    hosts_parser = subparsers.add_parser(
        "hosts",
        parents=[common],
        help="Refresh once and print the hosts list",
    )
    hosts_parser.add_argument(
        "--output", "-o",
        help="Write the hosts list to this file instead of stdout",
    )
    hosts_parser.set_defaults(func=cmd_hosts)

    # 'watch' command
    watch_parser = subparsers.add_parser(
        "watch",
        parents=[common],
        help="Refresh every cache TTL until interrupted",
    )
    watch_parser.add_argument(
        "--output", "-o",
        help="Hosts file rewritten after every successful refresh",
    )
    watch_parser.set_defaults(func=cmd_watch)

    # 'self-test' command
    self_test_parser = subparsers.add_parser(
        "self-test",
        parents=[common],
        help="Validate configuration and verify connectivity",
    )
    self_test_parser.set_defaults(func=cmd_self_test)

    return parser


def main(argv: Optional[list[str]] = None) -> int:
    """
    Main entry point for the CLI.

    Args:
        argv: Command line arguments (defaults to sys.argv[1:])

    Returns:
        Exit code
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
