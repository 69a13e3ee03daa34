# =============================================================================
# stagelineage/cli/sync.py — one lineage synchronisation run
# =============================================================================
#
# Builds a DataStageCache for a window of changes, runs the change scan
# against the IGC REST API, translates every cached job into a Process and
# prints the result.
#
# Typical usage:
#   python -m stagelineage.cli.sync --to 2024-05-01T00:00:00Z
#   python -m stagelineage.cli.sync --from 2024-04-30T00:00:00Z --mode granular
#   python -m stagelineage.cli.sync --project dstage1 --lineage-enabled-only --json
#
# Connection details come from config/config.yaml, .env and the environment
# (see stagelineage.config).  Logs go to stderr; results go to stdout.
# =============================================================================

"""Command-line entry point for a single lineage synchronisation run."""

from __future__ import annotations

import argparse
import json
import sys
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import Any

import structlog
from pydantic import ValidationError

from stagelineage.config.loader import load_config
from stagelineage.config.settings import Settings
from stagelineage.interfaces.repository_client import IRepositoryClient
from stagelineage.models.lineage import CacheWindow, LineageMode, Process
from stagelineage.services.datastage_cache import DataStageCache
from stagelineage.utils.errors import ConfigurationError, StageLineageError
from stagelineage.utils.logging import configure_logging

logger = structlog.get_logger(logger_name=__name__)


# ---------------------------------------------------------------------------
# Argument handling
# ---------------------------------------------------------------------------


def _parse_timestamp(value: str) -> datetime:
    """Parse an ISO-8601 timestamp; a trailing ``Z`` means UTC."""
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise argparse.ArgumentTypeError(f"not an ISO-8601 timestamp: {value!r}") from exc
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="python -m stagelineage.cli.sync",
        description="Cache changed DataStage jobs for a window and print their lineage Processes.",
    )
    parser.add_argument(
        "--from",
        dest="start",
        type=_parse_timestamp,
        default=None,
        help="Only include jobs modified after this time (default: since the beginning).",
    )
    parser.add_argument(
        "--to",
        dest="end",
        type=_parse_timestamp,
        default=None,
        help="Only include jobs modified up to this time (default: now, UTC).",
    )
    parser.add_argument(
        "--mode",
        choices=[m.value for m in LineageMode],
        default=None,
        help="Lineage detail level (default: from configuration).",
    )
    parser.add_argument(
        "--project",
        dest="projects",
        action="append",
        default=None,
        help="Limit to this project; repeat for several projects.",
    )
    parser.add_argument(
        "--lineage-enabled-only",
        action="store_true",
        default=None,
        help="Limit to jobs flagged for lineage.",
    )
    parser.add_argument(
        "--config",
        default="config/config.yaml",
        help="Path to the YAML configuration file.",
    )
    parser.add_argument(
        "--json",
        action="store_true",
        dest="json_output",
        help="Print results as JSON instead of text.",
    )
    parser.add_argument(
        "--json-logs",
        action="store_true",
        help="Emit log lines as JSON.",
    )
    return parser


def _settings_from_config(config: dict[str, Any]) -> Settings:
    """Build Settings from the merged YAML + environment configuration."""
    igc = config.get("igc", {})
    sync = config.get("sync", {})
    values: dict[str, Any] = {
        "igc_host": igc.get("host"),
        "igc_port": igc.get("port"),
        "igc_username": igc.get("username"),
        "igc_password": igc.get("password"),
        "igc_verify_ssl": igc.get("verify_ssl"),
        "igc_page_size": igc.get("page_size"),
        "igc_timeout": igc.get("timeout"),
        "lineage_mode": sync.get("mode"),
        "limit_to_projects": sync.get("projects"),
        "limit_to_lineage_enabled": sync.get("lineage_enabled_only"),
        "log_level": config.get("logging", {}).get("level"),
        "app_env": config.get("app", {}).get("env"),
    }
    try:
        return Settings(**{k: v for k, v in values.items() if v is not None})
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid configuration: {exc}") from exc


def build_cache(args: argparse.Namespace, settings: Settings) -> DataStageCache:
    """Construct the cache for the window and filters in *args* / *settings*."""
    end = args.end or datetime.now(timezone.utc)
    try:
        window = CacheWindow(start=args.start, end=end)
    except ValidationError as exc:
        raise ConfigurationError(f"Invalid window: {exc}") from exc
    mode = LineageMode(args.mode) if args.mode else settings.lineage_mode
    projects = args.projects if args.projects is not None else settings.limit_to_projects
    lineage_enabled = (
        args.lineage_enabled_only
        if args.lineage_enabled_only is not None
        else settings.limit_to_lineage_enabled
    )
    return DataStageCache(
        window,
        mode=mode,
        limit_to_projects=projects,
        limit_to_lineage_enabled=lineage_enabled,
    )


# ---------------------------------------------------------------------------
# Output
# ---------------------------------------------------------------------------


def _format_text_output(cache: DataStageCache, processes: list[Process]) -> str:
    lines: list[str] = []
    start = cache.start.isoformat() if cache.start else "beginning"
    lines.append(f"Window: {start} .. {cache.end.isoformat()}  |  Mode: {cache.mode.value}")
    lines.append(f"Jobs cached: {len(cache.get_all_jobs())}  |  Processes: {len(processes)}")
    for process in processes:
        lines.append("")
        lines.append(f"{process.qualified_name}  [{process.job_type.value}]")
        for name in process.input_stores:
            lines.append(f"  <- {name}")
        for name in process.output_stores:
            lines.append(f"  -> {name}")
    return "\n".join(lines)


def _format_json_output(cache: DataStageCache, processes: list[Process]) -> str:
    output = {
        "window": cache.window.model_dump(mode="json"),
        "mode": cache.mode.value,
        "jobs": len(cache.get_all_jobs()),
        "processes": [p.model_dump(mode="json") for p in processes],
    }
    return json.dumps(output, indent=2, default=str)


# ---------------------------------------------------------------------------
# Runner
# ---------------------------------------------------------------------------


def run(args: argparse.Namespace, settings: Settings, client: IRepositoryClient) -> str:
    """Initialise a cache with *client* and return the formatted report."""
    cache = build_cache(args, settings)
    cache.initialize(client)
    processes: list[Process] = []
    for job in sorted(cache.get_all_jobs(), key=lambda j: j.name):
        process = cache.get_process_by_rid(job.rid)
        if process is not None:
            processes.append(process)
    logger.info("sync_complete", jobs=len(cache.get_all_jobs()), processes=len(processes))
    if args.json_output:
        return _format_json_output(cache, processes)
    return _format_text_output(cache, processes)


def main(argv: Sequence[str] | None = None) -> int:
    """CLI entry point.  Returns the process exit code."""
    from stagelineage.providers.igc.rest_client import IGCRestClient

    args = _build_parser().parse_args(argv)
    try:
        settings = _settings_from_config(load_config(args.config))
    except ConfigurationError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 2
    configure_logging(settings.log_level, json_output=args.json_logs)

    if not settings.has_credentials():
        print("Error: IGC_USERNAME and IGC_PASSWORD must be set", file=sys.stderr)
        return 2

    try:
        with IGCRestClient(settings) as client:
            print(run(args, settings, client))
    except StageLineageError as exc:
        logger.error("sync_failed", error=str(exc))
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
