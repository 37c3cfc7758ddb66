from __future__ import annotations

import argparse
import asyncio
import json
import logging
from pathlib import Path
import sys
from typing import Any

from rich import print as rprint
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from dependency_age import __version__
from dependency_age.core.batching import BatchSizer
from dependency_age.core.cache import CacheWriteFailure, FileSystemMetadataCache
from dependency_age.core.config import (
    ConfigurationError,
    DependencyAgeConfig,
    load_config,
)
from dependency_age.core.enrichment import EnrichmentOrchestrator
from dependency_age.core.lock_file import LockFileError, read_lock_file
from dependency_age.core.models import Package
from dependency_age.core.paths.global_paths import (
    DEFAULT_CACHE_FILENAME,
    resolve_cache_file,
)
from dependency_age.core.rating import (
    age_reduction,
    format_age,
    rate_package,
    rating_summary,
)
from dependency_age.core.registry import PackagistRegistryClient, RegistryError
from dependency_age.core.release_cycle import analyze_release_cycle, format_cycle_rating
from dependency_age.core.utils import logger


def parse_arguments(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Report the age of the packages installed from composer.lock"
    )
    parser.add_argument(
        "-v", "--version", action="version", version=f"%(prog)s {__version__}"
    )
    parser.add_argument(
        "--lock-file",
        type=Path,
        default=Path("composer.lock"),
        metavar="FILE",
        help="Path to composer.lock (default: ./composer.lock)",
    )
    parser.add_argument(
        "--config", type=Path, metavar="FILE", help="Path to a TOML configuration file"
    )
    parser.add_argument(
        "--no-dev", action="store_true", help="Exclude development dependencies"
    )
    parser.add_argument(
        "--ignore",
        metavar="PACKAGES",
        help="Comma-separated list of packages to ignore (in addition to config)",
    )
    parser.add_argument(
        "--offline",
        action="store_true",
        help="Offline mode: use only cached data, no registry requests",
    )
    parser.add_argument("--no-cache", action="store_true", help="Disable cache usage")
    parser.add_argument("--cache-file", type=Path, metavar="FILE", help="Cache file path")
    parser.add_argument(
        "--cache-ttl", type=int, metavar="SECONDS", help="Cache TTL in seconds"
    )
    parser.add_argument(
        "--clear-cache", action="store_true", help="Delete the cache file and exit"
    )
    parser.add_argument(
        "--cache-stats", action="store_true", help="Show cache statistics and exit"
    )
    parser.add_argument(
        "--format",
        choices=["table", "json"],
        default="table",
        help="Output format (default: table)",
    )
    parser.add_argument(
        "--fail-on-critical",
        action="store_true",
        help="Exit with status 1 when a package is rated critical",
    )
    parser.add_argument(
        "--release-cycle",
        action="store_true",
        help="Fetch recent release history and show each package's release cycle",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable debug logging")
    return parser.parse_args(argv)


def configure_logging(verbose: bool) -> None:
    handler = RichHandler(console=Console(stderr=True), show_path=False)
    logger.handlers = [handler]
    logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    logger.propagate = False


def build_config(args: argparse.Namespace) -> DependencyAgeConfig:
    config = load_config(args.config)
    overrides: dict[str, Any] = {}
    if args.no_dev:
        overrides["include_dev"] = False
    if args.ignore:
        overrides["ignore"] = [
            name.strip() for name in args.ignore.split(",") if name.strip()
        ]
    if args.cache_file is not None:
        overrides["cache"] = {"cache_file": str(args.cache_file)}
    if args.cache_ttl is not None:
        overrides.setdefault("cache", {})["ttl"] = args.cache_ttl
    if args.no_cache:
        overrides.setdefault("cache", {})["enabled"] = False
    return config.with_overrides(**overrides)


def build_cache(config: DependencyAgeConfig) -> FileSystemMetadataCache | None:
    if not config.cache.enabled:
        return None
    if config.cache.cache_file == DEFAULT_CACHE_FILENAME:
        cache_file = resolve_cache_file()
    else:
        custom = Path(config.cache.cache_file).expanduser()
        cache_file = resolve_cache_file(
            custom if custom.is_absolute() else Path.cwd() / custom
        )
    return FileSystemMetadataCache(
        cache_file, ttl=config.cache.ttl, max_size_bytes=config.cache.max_size_bytes
    )


def select_packages(packages: list[Package], config: DependencyAgeConfig) -> list[Package]:
    return [
        package
        for package in packages
        if (config.include_dev or package.is_production)
        and not config.is_package_ignored(package.name)
    ]


async def analyze(
    packages: list[Package],
    config: DependencyAgeConfig,
    cache: FileSystemMetadataCache | None,
    *,
    offline: bool,
    release_cycle: bool = False,
) -> list[Package]:
    batch_sizer = BatchSizer(config.batch)
    if not offline and await batch_sizer.is_offline():
        rprint("[yellow]Registry appears to be offline, enabling offline mode...[/]")
        offline = True

    async with PackagistRegistryClient(config.registry) as registry:
        orchestrator = EnrichmentOrchestrator(
            registry,
            config.enrichment,
            cache=cache,
            batch_sizer=batch_sizer,
            offline=offline,
        )
        enriched = await orchestrator.enrich_many(packages)
        if not release_cycle:
            return enriched
        return await attach_release_history(orchestrator, enriched)


async def attach_release_history(
    orchestrator: EnrichmentOrchestrator, packages: list[Package]
) -> list[Package]:
    with_history: list[Package] = []
    for package in packages:
        try:
            with_history.append(await orchestrator.enrich_release_history(package))
        except RegistryError as exc:
            logger.debug("No release history for %s: %s", package.name, exc)
            with_history.append(package)
    return with_history


def render_table(
    packages: list[Package], config: DependencyAgeConfig, *, release_cycle: bool = False
) -> None:
    table = Table(title="Dependency age")
    table.add_column("Package")
    table.add_column("Version")
    table.add_column("Age", justify="right")
    table.add_column("Rating")
    table.add_column("Latest")
    table.add_column("Impact", justify="right")
    if release_cycle:
        table.add_column("Release cycle")

    for package in packages:
        rating = rate_package(package, config.thresholds)
        reduction = age_reduction(package)
        row = [
            package.name + (" (dev)" if package.is_dev else ""),
            package.version,
            rating.age_formatted,
            f"{rating.emoji} {rating.description}",
            package.latest_version or "-",
            f"-{format_age(reduction)}" if reduction else "",
        ]
        if release_cycle:
            cycle = analyze_release_cycle(package)
            row.append(f"{format_cycle_rating(cycle)} {cycle.description}")
        table.add_row(*row)

    summary = rating_summary(packages, config.thresholds)
    console = Console()
    console.print(table)
    console.print(
        f"Health score: {summary.health_score}% ({summary.overall_rating}), "
        f"{summary.total_packages} packages"
    )


def _cycle_payload(package: Package) -> dict[str, Any]:
    cycle = analyze_release_cycle(package)
    return {
        "pattern": str(cycle.pattern),
        "rating": cycle.rating,
        "frequency_days": cycle.frequency_days,
        "trend": str(cycle.trend),
        "last_release_age": cycle.last_release_age,
        "description": cycle.description,
    }


def render_json(
    packages: list[Package], config: DependencyAgeConfig, *, release_cycle: bool = False
) -> None:
    summary = rating_summary(packages, config.thresholds)
    entries: list[dict[str, Any]] = []
    for package in packages:
        entry: dict[str, Any] = {
            "name": package.name,
            "version": package.version,
            "is_dev": package.is_dev,
            "release_date": package.release_date.isoformat()
            if package.release_date
            else None,
            "latest_version": package.latest_version,
            "latest_release_date": package.latest_release_date.isoformat()
            if package.latest_release_date
            else None,
            "rating": str(rate_package(package, config.thresholds).category),
        }
        if release_cycle:
            entry["release_cycle"] = _cycle_payload(package)
        entries.append(entry)

    payload = {
        "packages": entries,
        "summary": {
            "total_packages": summary.total_packages,
            "distribution": {str(k): v for k, v in summary.distribution.items()},
            "health_score": summary.health_score,
            "overall_rating": summary.overall_rating,
        },
    }
    print(json.dumps(payload, indent=2))


async def run(args: argparse.Namespace, config: DependencyAgeConfig) -> int:
    cache = build_cache(config)

    if args.clear_cache or args.cache_stats:
        if cache is None:
            rprint("[red]Error: caching is disabled[/]")
            return 1
        if args.clear_cache:
            await cache.clear()
            rprint(f"Cache cleared: {cache.cache_file}")
        else:
            stats = await cache.stats()
            rprint(
                f"Cache file: {cache.cache_file}\n"
                f"Exists: {stats.exists}, size: {stats.size} bytes, "
                f"packages: {stats.packages}, entries: {stats.entries}, "
                f"valid: {stats.valid}"
            )
        return 0

    if args.offline and cache is None:
        rprint("[red]Error: --offline requires caching (remove --no-cache)[/]")
        return 1

    packages = select_packages(read_lock_file(args.lock_file), config)
    enriched = await analyze(
        packages, config, cache, offline=args.offline, release_cycle=args.release_cycle
    )

    if args.format == "json":
        render_json(enriched, config, release_cycle=args.release_cycle)
    else:
        render_table(enriched, config, release_cycle=args.release_cycle)

    if args.fail_on_critical and rating_summary(enriched, config.thresholds).has_critical:
        return 1
    return 0


def main(argv: list[str] | None = None) -> None:
    args = parse_arguments(argv)
    configure_logging(args.verbose)

    try:
        config = build_config(args)
        exit_code = asyncio.run(run(args, config))
    except (ConfigurationError, LockFileError, CacheWriteFailure) as e:
        rprint(f"[red]Error: {e}[/]")
        sys.exit(1)

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
