"""Command-line entry point: volstat [options] PATH."""

from __future__ import annotations

import argparse
import logging
import sys
from typing import List, Optional

import uvicorn

from volstat.collectors.info import VERSION
from volstat.collectors.mounts import resolve_mount
from volstat.config import ConfigError, VolstatConfig, load_config
from volstat.cycle import UpdateCycle
from volstat.main import create_app
from volstat.scheduler import PeriodicTask
from volstat.snapshot import SnapshotStore

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

logger = logging.getLogger("volstat")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="volstat",
        description="Expose volume usage of a directory as Prometheus metrics",
    )
    parser.add_argument("--version", action="version", version=f"volstat {VERSION}")
    parser.add_argument("path", nargs="?", help="directory to scan")
    parser.add_argument("--host", default=None, help="listen host (default: all interfaces)")
    parser.add_argument("--port", type=int, default=None, help="listen port (default: 8080)")
    parser.add_argument("--interval", type=float, default=None, help="seconds between scans (default: 60)")
    parser.add_argument("--config", default=None, help="YAML config file")
    parser.add_argument("--log-level", default=None, help="logging level (default: INFO)")
    return parser


def resolve_config(args: argparse.Namespace) -> VolstatConfig:
    return load_config(
        args.config,
        overrides={
            "target_path": args.path,
            "http_host": args.host,
            "http_port": args.port,
            "interval_seconds": args.interval,
            "log_level": args.log_level,
        },
    )


def serve(cfg: VolstatConfig) -> None:
    mount = resolve_mount(cfg.target_path, cfg.mountinfo_path)
    store = SnapshotStore()
    cycle = UpdateCycle(mount, store)

    # eager first pass so the first scrape has data
    cycle()

    task = PeriodicTask(cfg.interval_seconds, cycle, name="volstat-update")
    app = create_app(mount, store, task=task, config_path=cfg.config_path)

    logger.info("listening on %s:%d", cfg.http_host, cfg.http_port)
    # uvicorn handles SIGINT/SIGTERM and runs the lifespan shutdown, which stops the task;
    # a bind failure makes it exit with status 1
    uvicorn.run(app, host=cfg.http_host, port=cfg.http_port, log_config=None, log_level=cfg.log_level.lower())


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=logging.INFO,
        format=LOG_FORMAT,
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    try:
        cfg = resolve_config(args)
    except ConfigError as e:
        logger.error("configuration error: %s", e)
        return 2

    logging.getLogger().setLevel(cfg.log_level)
    serve(cfg)
    return 0


if __name__ == "__main__":
    sys.exit(main())
