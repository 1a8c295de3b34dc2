"""
CLI entry point. Handles --once, --dry-run, --platform and the run-log maintenance commands.
"""
from __future__ import annotations

import argparse
import os
import sys

from dotenv import load_dotenv

load_dotenv()


def main() -> None:
    parser = argparse.ArgumentParser(description="Affiliate product feed sync")
    parser.add_argument("--once", action="store_true", help="Run one sync over the configured feeds")
    parser.add_argument("--dry-run", action="store_true", help="No download/DB writes, log the plan only")
    parser.add_argument("--platform", type=str, metavar="LABEL", help="Sync only the feeds of this platform")
    parser.add_argument("--config", type=str, metavar="PATH", help="config.yaml path (default: CONFIG_PATH or ./config.yaml)")
    parser.add_argument("--check-stuck", action="store_true", help="List run logs stuck in 'running'")
    parser.add_argument("--fail-stuck", action="store_true", help="Mark stuck run logs as error")
    parser.add_argument("--stats", action="store_true", help="Print product counts per category and run health")
    args = parser.parse_args()

    if not (args.once or args.check_stuck or args.fail_stuck or args.stats):
        parser.print_help()
        sys.exit(0)

    from feedsync.config import load_config
    from feedsync.errors import ConfigError, SyncAlreadyRunning
    from feedsync.job.params import SyncConfig
    from feedsync.util.log import get_logger, setup_logging

    setup_logging()
    logger = get_logger("main")
    raw_config = load_config(args.config)

    if args.check_stuck or args.fail_stuck or args.stats:
        _maintenance(args, raw_config)
        return

    try:
        config = SyncConfig.from_sources(raw_config, os.environ)
        if args.platform:
            config = config.only(args.platform)
        from feedsync.job.runner import run_sync

        result = run_sync(config, dry_run=args.dry_run)
    except ConfigError as e:
        logger.error("configuration error: %s", e)
        sys.exit(2)
    except SyncAlreadyRunning as e:
        logger.error("%s", e)
        sys.exit(3)
    if result.state != "success" and not result.dry_run:
        sys.exit(1)


def _maintenance(args: argparse.Namespace, raw_config: dict) -> None:
    from feedsync.job import health
    from feedsync.store import db, repo
    from feedsync.util.log import get_logger

    logger = get_logger("main")
    run_cfg = raw_config.get("run") or {}
    timeout = float(run_cfg.get("lock_timeout_minutes", 60))
    label = str(run_cfg.get("label") or "awin-sync")

    conn = db.get_connection()
    try:
        db.init_schema(conn)
        if args.check_stuck:
            stuck = health.find_stuck_runs(conn, timeout)
            if not stuck:
                logger.info("no stuck runs (timeout=%s min)", timeout)
            for row in stuck:
                logger.warning(
                    "stuck: id=%s label=%s started=%s found=%s added=%s",
                    row.id, row.platform, row.created_at, row.items_found, row.items_added,
                )
        if args.fail_stuck:
            n = health.fail_stuck_runs(conn, timeout)
            logger.info("marked %d stuck run(s) as error", n)
        if args.stats:
            logger.info("products total=%d", repo.count_products(conn))
            for category, n in repo.count_by_category(conn).items():
                logger.info("  %-22s %d", category, n)
            h = health.platform_health(conn, label)
            logger.info(
                "health label=%s status=%s runs=%d success_rate=%d%% avg_duration_ms=%d",
                h.label, h.status, h.runs_considered, h.success_rate, h.avg_duration_ms,
            )
    finally:
        conn.close()


if __name__ == "__main__":
    main()
