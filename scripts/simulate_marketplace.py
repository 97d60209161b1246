#!/usr/bin/env python3
"""Simulate marketplace activity and export the resulting listings and loans.

Runs ``MarketplaceActivityScenario`` against an in-memory lending service,
publishing lifecycle events to the chosen sink, then writes JSON snapshots
of every listing and loan plus per-user dashboard stats.
"""

import argparse
import sys
from pathlib import Path

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from p2p_lending.config import LendingConfig, ScenarioConfig
from p2p_lending.logging import get_logger, setup_logging
from p2p_lending.scenarios import MarketplaceActivityScenario
from p2p_lending.sinks import ConsoleSink, JsonFileSink, KafkaSink

logger = get_logger(__name__)


def build_sink(kind: str, config: LendingConfig):
    """Create the event sink selected on the command line."""
    if kind == "console":
        return ConsoleSink(pretty=False)
    if kind == "kafka":
        return KafkaSink(config.kafka)
    if kind == "json":
        return JsonFileSink(config.output.json_output_dir, pretty=config.output.pretty_json)
    return None


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Simulate p2p lending marketplace activity")
    parser.add_argument("--users", type=int, default=20, help="Number of users (default: 20)")
    parser.add_argument("--listings", type=int, default=100, help="Number of listings (default: 100)")
    parser.add_argument("--match-rate", type=float, default=0.6, help="Share of listings matched (default: 0.6)")
    parser.add_argument("--seed", type=int, default=None, help="Random seed (default: SEED env or none)")
    parser.add_argument(
        "--events",
        choices=["none", "console", "json", "kafka"],
        default="none",
        help="Where to publish lifecycle events (default: none)",
    )
    parser.add_argument("--output-dir", type=Path, default=None, help="Snapshot directory (default: OUTPUT_DIR env)")
    parser.add_argument("--log-level", default=None, help="Log level (default: LOG_LEVEL env or INFO)")
    parser.add_argument("--json-logs", action="store_true", help="Emit logs as JSON")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> None:
    args = parse_args(argv)
    config = LendingConfig.from_env()
    if args.output_dir is not None:
        config.output.json_output_dir = args.output_dir
    if args.seed is not None:
        config.seed = args.seed

    setup_logging(args.log_level or config.log_level, "json" if args.json_logs else "standard")

    config.scenario = ScenarioConfig(
        name="marketplace_activity",
        num_users=args.users,
        num_listings=args.listings,
        match_rate=args.match_rate,
    )

    sink = build_sink(args.events, config)
    scenario = MarketplaceActivityScenario(
        seed=config.seed, sink=sink, unit=config.currency.to_unit(), config=config.scenario
    )
    if sink is not None:
        scenario.service.event_topic = config.event_topic
    service = scenario.generate()

    snapshot = JsonFileSink(config.output.json_output_dir, pretty=True)
    snapshot.write_batch("listings", list(service.marketplace.listings.values()))
    snapshot.write_batch("loans", list(service.loan_book.loans.values()))
    users = sorted({listing.owner_id for listing in service.marketplace.listings.values()})
    snapshot.write_batch("user_stats", [service.user_stats(user) for user in users])
    snapshot.close()

    if sink is not None:
        sink.close()

    logger.info("Simulation finished: %s", service.summary())


if __name__ == "__main__":
    main()
