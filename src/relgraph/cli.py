"""
Command-line interface for relgraph.

Provides:
- consolidate: garbage removal and duplicate merging against the primary store
- intro-paths: ranked warm-introduction routes from internal owners to a target
- paths-between: routes between two arbitrary entities
- stats: store counts
"""

import argparse
import json
import logging
import sys
from typing import List, Optional

from .config import Settings
from .consolidation import ConsolidationEngine
from .database import SQLAlchemyStore, build_mirror
from .database.mirror import close_quietly
from .graph import PathFinder, load_snapshot


def setup_logging(verbose: bool = False, level: str = "INFO") -> logging.Logger:
    """Setup logging configuration."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    return logging.getLogger(__name__)


def get_store(db_url: str, settings: Settings) -> SQLAlchemyStore:
    """Create database store from URL."""
    return SQLAlchemyStore(url=db_url, page_size=settings.page_size)


def _print_paths(paths, args: argparse.Namespace) -> None:
    if args.format == "json":
        print(json.dumps([p.to_dict() for p in paths], indent=2, ensure_ascii=False))
        return
    if not paths:
        print("No paths found.")
        return
    print(f"\n{'#':<4} {'Strength':<10} {'Hops':<6} {'LinkedIn':<9} Route")
    print("-" * 100)
    for i, p in enumerate(paths, 1):
        print(f"{i:<4} {p.strength:<10.3f} {p.total_hops:<6} {len(p.linkedin_connections):<9} {p.explanation}")
    print(f"\nTotal: {len(paths)} path(s)")


# ============================================================================
# Commands
# ============================================================================

def cmd_consolidate(store: SQLAlchemyStore, settings: Settings, args: argparse.Namespace) -> None:
    """Run a consolidation pass."""
    mirror = None if args.dry_run else build_mirror(settings)
    try:
        engine = ConsolidationEngine(store, mirror=mirror, page_size=settings.page_size)
        report = engine.run(dry_run=args.dry_run)
    finally:
        close_quietly(mirror)

    if args.format == "json":
        print(json.dumps(report.to_dict(), indent=2, ensure_ascii=False, default=str))
        return

    title = "Consolidation plan (dry run)" if report.dry_run else "Consolidation report"
    print(f"\n{title}")
    print("=" * 50)
    for key in (
        "garbage_deleted",
        "garbage_edges_deleted",
        "merged_groups",
        "entities_merged",
        "edges_repointed",
        "edges_removed",
        "self_loops_removed",
        "failed_groups",
        "mirror_failures",
    ):
        print(f"  {key.replace('_', ' ').capitalize():<25} {getattr(report, key)}")

    if report.dry_run:
        if report.garbage:
            print(f"\nGarbage entities ({len(report.garbage)}):")
            for g in report.garbage:
                print(f"  {g['id']:<38} {g['type'] or '':<14} {g['reason']:<14} {g['name']}")
        if report.groups:
            print(f"\nDuplicate groups ({len(report.groups)}):")
            for group in report.groups:
                print(
                    f"  [{group.entity_type}] {group.name}: keep {group.winner_id} "
                    f"(score {group.scores.get(group.winner_id, 0)}), merge {len(group.loser_ids)}"
                )

    if report.errors:
        print("\nErrors:")
        for err in report.errors:
            print(f"  - {err}")


def cmd_intro_paths(store: SQLAlchemyStore, settings: Settings, args: argparse.Namespace) -> None:
    """Find warm-introduction paths to a target entity."""
    snapshot = load_snapshot(store, page_size=settings.page_size)
    finder = PathFinder(snapshot.entities, snapshot.edges)
    paths = finder.find_intro_paths(
        args.target_id,
        max_hops=args.max_hops if args.max_hops is not None else settings.max_hops,
        max_paths=args.max_paths if args.max_paths is not None else settings.max_paths,
        min_strength=args.min_strength if args.min_strength is not None else settings.min_strength,
        prefer_linkedin=not args.no_linkedin,
        workers=args.workers,
    )

    if args.insights:
        insights = finder.get_path_insights(paths)
        if args.format == "json":
            print(json.dumps(
                {"paths": [p.to_dict() for p in paths], "insights": insights.to_dict()},
                indent=2,
                ensure_ascii=False,
            ))
            return
        _print_paths(paths, args)
        print("\nInsights:")
        for key, value in insights.to_dict().items():
            print(f"  {key:<20} {value}")
        return

    _print_paths(paths, args)


def cmd_paths_between(store: SQLAlchemyStore, settings: Settings, args: argparse.Namespace) -> None:
    """Find paths between two entities."""
    snapshot = load_snapshot(store, page_size=settings.page_size)
    finder = PathFinder(snapshot.entities, snapshot.edges)
    paths = finder.find_paths_between(
        args.source_id,
        args.target_id,
        max_hops=args.max_hops,
        max_paths=args.max_paths,
        min_strength=args.min_strength,
    )
    _print_paths(paths, args)


def cmd_stats(store: SQLAlchemyStore, settings: Settings, args: argparse.Namespace) -> None:
    """Show database statistics."""
    stats = store.stats()
    if args.format == "json":
        print(json.dumps(stats, indent=2))
        return

    print("\nDatabase Statistics")
    print("=" * 40)
    print(f"  Entities:            {stats['entities']}")
    for entity_type, count in sorted(stats["entities_by_type"].items()):
        print(f"    {entity_type:<18} {count}")
    print(f"  Internal owners:     {stats['internal_owners']}")
    print(f"  Edges:               {stats['edges']}")
    print(f"  Duplicate edge keys: {stats['duplicate_edge_keys']}")


# ============================================================================
# Main CLI Parser
# ============================================================================

def create_parser(settings: Optional[Settings] = None) -> argparse.ArgumentParser:
    """Create the CLI argument parser."""
    settings = settings or Settings.from_env()
    parser = argparse.ArgumentParser(
        prog="relgraph",
        description="Relationship graph consolidation and introduction path finding",
    )
    parser.add_argument(
        "--db-url",
        default=settings.db_url,
        help=f"Database URL (default: {settings.db_url})",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose output")
    parser.add_argument("--format", choices=["table", "json"], default="table", help="Output format")

    subparsers = parser.add_subparsers(dest="command", required=True)

    consolidate = subparsers.add_parser("consolidate", help="Remove garbage entities and merge duplicates")
    consolidate.add_argument("--dry-run", action="store_true", help="Report planned changes without applying them")

    intro = subparsers.add_parser("intro-paths", help="Find warm-introduction paths to an entity")
    intro.add_argument("target_id", help="Target entity id")
    intro.add_argument("--max-hops", type=int, help=f"Maximum hops (default: {settings.max_hops})")
    intro.add_argument("--max-paths", type=int, help=f"Maximum paths returned (default: {settings.max_paths})")
    intro.add_argument("--min-strength", type=float, help=f"Minimum path strength (default: {settings.min_strength})")
    intro.add_argument("--no-linkedin", action="store_true", help="Rank by strength only")
    intro.add_argument("--workers", type=int, default=1, help="Threads for per-seed searches")
    intro.add_argument("--insights", action="store_true", help="Also print path insights")

    between = subparsers.add_parser("paths-between", help="Find paths between two entities")
    between.add_argument("source_id", help="Source entity id")
    between.add_argument("target_id", help="Target entity id")
    between.add_argument("--max-hops", type=int, help="Maximum hops (default: 6)")
    between.add_argument("--max-paths", type=int, help="Maximum paths returned (default: 5)")
    between.add_argument("--min-strength", type=float, help="Minimum path strength (default: 0.2)")

    subparsers.add_parser("stats", help="Show database statistics")

    return parser


def main(argv: Optional[List[str]] = None) -> None:
    """Main entry point for the relgraph CLI."""
    settings = Settings.from_env()
    parser = create_parser(settings)
    args = parser.parse_args(argv)

    logger = setup_logging(args.verbose or settings.debug, settings.log_level)

    commands = {
        "consolidate": cmd_consolidate,
        "intro-paths": cmd_intro_paths,
        "paths-between": cmd_paths_between,
        "stats": cmd_stats,
    }

    handler = commands.get(args.command)
    if handler:
        try:
            store = get_store(args.db_url, settings)
            handler(store, settings, args)
        except Exception as e:
            logger.error(f"Command failed: {e}")
            if args.verbose:
                import traceback
                traceback.print_exc()
            sys.exit(1)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
