"""
Run a decay simulation from a JSON file of archive items.

The file holds a list of item records (or an object with an "items" list);
each record takes title, content, item_type, tags, source_url and size_kb.
Items are ingested, valued with the heuristic analyzer and then decayed step
by step until the simulated horizon is reached or --steps cycles ran.

Usage:
  python -m smartdecay.simulate --items items.json
  python -m smartdecay.simulate --items items.json --steps 10 --seed 7
  python -m smartdecay.simulate --items items.json --baseline --store-dir data/

Prints a JSON summary on stdout. Logs go to stderr.
"""
from __future__ import annotations

import argparse
import json
import logging
import random
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from smartdecay.archive import ArchiveService
from smartdecay.baselines.simulator import BaselineSimulator
from smartdecay.decay.scheduler import DecayScheduler
from smartdecay.integration.valuation import HeuristicValuationService
from smartdecay.models.base import DEFAULT_OWNER
from smartdecay.observability.domain_events import DomainEventBus, RedisEventForwarder
from smartdecay.observability.events import EventSpooler, observability_enabled_by_env
from smartdecay.observability.instrumentation import with_obs_context
from smartdecay.observability.json_formatter import JsonFormatter
from smartdecay.observability.logging_filter import install_log_context_filter
from smartdecay.stores.factory import create_store
from smartdecay.timeline.replay import dashboard_stats, stage_distribution
from smartdecay.utils import get_settings

logger = logging.getLogger("smartdecay.simulate")


def _setup_logging(verbose: bool, json_logs: bool = False):
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s %(context)s", stream=sys.stderr)
    if json_logs:
        for handler in logging.getLogger().handlers:
            handler.setFormatter(JsonFormatter())
    install_log_context_filter()


def load_item_records(path: Path) -> List[Dict[str, Any]]:
    with open(path, "r") as f:
        data = json.load(f)
    if isinstance(data, dict):
        data = data.get("items", [])
    if not isinstance(data, list):
        raise ValueError(f"{path} must contain a list of items")
    return data


@with_obs_context(lambda records, **kw: {"owner_id": kw.get("owner_id", DEFAULT_OWNER), "component": "simulate"})
def run_simulation(records: List[Dict[str, Any]], *, steps: Optional[int] = None, baseline: bool = False,
                   store_dir: Optional[str] = None, seed: Optional[int] = None,
                   owner_id: str = DEFAULT_OWNER, config_path: Optional[str] = None) -> Dict[str, Any]:
    settings = get_settings(config_path)
    store = create_store(settings.store, data_dir=store_dir)
    rng = random.Random(seed)

    bus = DomainEventBus()
    if settings.observability.enabled or observability_enabled_by_env():
        bus.subscribe(RedisEventForwarder(EventSpooler(settings.observability)))

    archive = ArchiveService(store, owner_id, valuation_service=HeuristicValuationService(rng), rng=rng)
    archive.initialize(settings)
    archive.attach(bus)
    archive.ingest_many(records)
    archive.refresh_scores()

    scheduler = DecayScheduler.for_owner(store, owner_id, settings, event_bus=bus)
    cycles = 0
    while steps is None or cycles < steps:
        if scheduler.step() is None:
            break
        cycles += 1

    summary: Dict[str, Any] = {
        "owner_id": owner_id,
        "cycles": cycles,
        "state": scheduler.state.to_json_dict(),
        "complete": scheduler.state.is_complete,
        "dashboard": dashboard_stats(store, owner_id),
        "stages": stage_distribution(store, owner_id),
        "unread_alerts": store.unread_alert_count(owner_id),
    }
    if baseline:
        baseline_config = settings.baseline
        if seed is not None and baseline_config.seed is None:
            baseline_config = baseline_config.model_copy(update={"seed": seed})
        results = BaselineSimulator(store, config=baseline_config).run(owner_id, scheduler.state)
        summary["baselines"] = [r.to_json_dict() for r in results]
    return summary


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Simulate value-driven decay of an archive under shrinking capacity.")
    parser.add_argument("--items", required=True, type=Path, help="JSON file with the items to archive")
    parser.add_argument("--steps", type=int, default=None, help="Run at most N decay cycles (default: until complete)")
    parser.add_argument("--baseline", action="store_true", help="Also compare against time-based and random retention")
    parser.add_argument("--store-dir", default=None, help="Persist records as JSON files in this directory")
    parser.add_argument("--seed", type=int, default=None, help="Seed for sizes, scores and the random baseline")
    parser.add_argument("--owner", default=DEFAULT_OWNER, help="Owner the simulation runs for")
    parser.add_argument("--config", default=None, help="Configuration file (default: $SMARTDECAY_CONFIG or config.json)")
    parser.add_argument("--json-logs", action="store_true", help="Log as JSON lines")
    parser.add_argument("-v", "--verbose", action="store_true", help="Verbose logging")
    args = parser.parse_args(argv)

    _setup_logging(args.verbose, args.json_logs)

    if args.steps is not None and args.steps < 0:
        parser.error("--steps must not be negative")

    try:
        records = load_item_records(args.items)
    except (OSError, ValueError) as e:
        logger.error(f"Cannot read items from {args.items}: {e}")
        return 2

    summary = run_simulation(
        records,
        steps=args.steps,
        baseline=args.baseline,
        store_dir=args.store_dir,
        seed=args.seed,
        owner_id=args.owner,
        config_path=args.config,
    )
    print(json.dumps(summary, indent=2, default=str))
    return 0


if __name__ == "__main__":
    sys.exit(main())
