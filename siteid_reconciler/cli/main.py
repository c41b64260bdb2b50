"""
CLI: siteid-reconciler [--config PATH] [--service ID ...] [--policy-host HOST] ...

Runs one reconciliation and prints a block per mismatch on stdout.
Progress and diagnostics go to stderr through logging.
Exit: 0 completed (mismatches may be present), 1 fatal pipeline error, 2 configuration error.
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import IO, List, Optional

from .. import config
from .._version import __version__
from ..core.errors import ConfigError, PipelineAborted
from ..pipeline.coordinator import Reconciler
from ..providers.base import PolicySource, ServiceSource
from ..providers.defaults import create_policy_source, create_service_source

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_FATAL = 1
EXIT_CONFIG = 2

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="siteid-reconciler",
        description="Verify Fastly hostname_to_site_id dictionaries against policy docs",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--config", default=None, help="Path to config YAML (default: config.yaml at repo root or $SITEID_CONFIG)")
    parser.add_argument(
        "--service",
        dest="services",
        action="append",
        default=None,
        metavar="SERVICE_ID",
        help="Fastly service ID to check (repeatable); overrides the configured list",
    )
    parser.add_argument("--dictionary", default=None, help="Edge dictionary name (default from config: hostname_to_site_id)")
    parser.add_argument("--policy-host", dest="policy_host", default=None, help="Policy docs host (default from config)")
    parser.add_argument("--timeout", type=float, default=None, metavar="SEC", help="HTTP timeout in seconds (default from config: 15)")
    parser.add_argument(
        "--log-level",
        dest="log_level",
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Log level for stderr diagnostics (default: INFO)",
    )
    return parser


def _configure_logging(level: str) -> None:
    logging.basicConfig(level=getattr(logging, level), format=LOG_FORMAT, stream=sys.stderr)


def _apply_overrides(cfg: dict, args: argparse.Namespace) -> dict:
    cfg = dict(cfg)
    if args.services:
        cfg["fastly"] = dict(cfg["fastly"], service_ids=list(args.services))
    if args.dictionary:
        cfg["fastly"] = dict(cfg["fastly"], dictionary_name=args.dictionary)
    if args.policy_host:
        cfg["policy"] = dict(cfg["policy"], host=args.policy_host)
    if args.timeout is not None:
        cfg["http"] = dict(cfg["http"], timeout_s=args.timeout)
    return cfg


def main(
    argv: Optional[List[str]] = None,
    *,
    service_source: Optional[ServiceSource] = None,
    policy_source: Optional[PolicySource] = None,
    stdout: Optional[IO[str]] = None,
) -> int:
    """
    Entry point. service_source / policy_source replace the default HTTP clients when given (for tests).
    """
    if argv is None:
        argv = sys.argv[1:]
    args = build_parser().parse_args(argv)
    _configure_logging(args.log_level)
    out = stdout if stdout is not None else sys.stdout

    try:
        cfg = _apply_overrides(config.get_config(args.config), args)
        service_ids = config.service_ids(cfg)
        if not service_ids:
            raise ConfigError("No service IDs configured")
        dictionary_name = config.dictionary_name(cfg)
        policy_host = config.policy_host(cfg)
        if service_source is None:
            service_source = create_service_source(cfg)
        if policy_source is None:
            policy_source = create_policy_source(cfg)
    except ConfigError as exc:
        logger.error("Configuration error: %s", exc)
        return EXIT_CONFIG

    logger.info("Checking %d services against %s", len(service_ids), policy_host)
    reconciler = Reconciler(
        service_source,
        policy_source,
        service_ids,
        dictionary_name=dictionary_name,
    )
    try:
        result = reconciler.run()
    except PipelineAborted as exc:
        logger.error("Reconciliation aborted: %s", exc)
        return EXIT_FATAL

    out.write(result.render_report())
    out.flush()
    return EXIT_OK


if __name__ == "__main__":
    raise SystemExit(main())
