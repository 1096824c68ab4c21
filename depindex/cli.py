"""CLI entrypoint for the locality deprivation index pipeline."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

from depindex.common.config_loader import ConfigBundle, load_all_configs
from depindex.common.constants import DEFAULT_STAGES, EXIT_HARD_FAIL, EXIT_PARTIAL, EXIT_SUCCESS, STAGES
from depindex.common.errors import ContractError, PipelineError
from depindex.common.ids import generate_run_id
from depindex.common.logging import build_logger, log_event
from depindex.common.time_utils import elapsed_ms, parse_run_date
from depindex.pipeline.export import run_export
from depindex.pipeline.fetch import run_fetch
from depindex.pipeline.overlay import run_overlay_stage
from depindex.pipeline.reports import write_run_summary
from depindex.pipeline.validate import run_validate


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=[*STAGES, "all"])
    parser.add_argument("--run-date", default=None)
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARN", "ERROR"])
    parser.add_argument("--strict", action="store_true")
    return parser.parse_args(argv)


def execute_stage(
    stage: str,
    bundle: ConfigBundle,
    data_dir: Path,
    run_id: str,
    run_date: str,
    logger: logging.Logger,
):
    if stage == "fetch":
        return run_fetch(bundle.pipeline, data_dir)
    if stage == "overlay":
        return run_overlay_stage(bundle, data_dir, run_id, logger)
    if stage == "export":
        return run_export(bundle.pipeline, data_dir)
    if stage == "validate":
        return run_validate(bundle.pipeline, data_dir, run_id, run_date)
    raise ValueError(f"Unknown stage: {stage}")


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    run_date = parse_run_date(args.run_date)
    config_dir = Path(args.config_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None
    data_dir = Path(args.data_dir)

    level = "WARNING" if args.log_level == "WARN" else args.log_level
    logger = build_logger(run_id, data_dir=data_dir, level=level)
    bundle = load_all_configs(config_dir, overlay_config_dir=overlay_config_dir)
    stages = DEFAULT_STAGES if args.command == "all" else (args.command,)

    had_partial_failure = False

    for stage in stages:
        started = time.perf_counter()
        log_event(logger, "stage start", run_id=run_id, stage=stage, event="STAGE_START", status="ok")
        try:
            execute_stage(stage, bundle, data_dir, run_id, run_date, logger)
        except ContractError as exc:
            log_event(
                logger,
                f"stage {stage} broke a contract: {exc}",
                level=logging.ERROR,
                run_id=run_id,
                stage=stage,
                event="STAGE_FAIL",
                status="error",
                error_code=exc.error_code,
            )
            return EXIT_HARD_FAIL
        except PipelineError as exc:
            had_partial_failure = True
            log_event(
                logger,
                f"stage {stage} failed: {exc}",
                level=logging.ERROR,
                run_id=run_id,
                stage=stage,
                event="STAGE_FAIL",
                status="error",
                error_code=exc.error_code,
            )
            if args.strict:
                return EXIT_HARD_FAIL
            # Later stages consume this stage's output.
            break
        except Exception:
            logger.exception(
                f"unexpected failure in stage {stage}",
                extra={
                    "run_id": run_id,
                    "stage": stage,
                    "event": "STAGE_FAIL",
                    "status": "error",
                    "error_code": "UNEXPECTED_ERROR",
                },
            )
            return EXIT_HARD_FAIL
        log_event(
            logger,
            "stage end",
            run_id=run_id,
            stage=stage,
            event="STAGE_END",
            status="ok",
            duration_ms=elapsed_ms(started),
        )

    if "validate" in stages:
        write_run_summary(data_dir, run_id=run_id, run_date=run_date, stages=list(stages))
    if had_partial_failure:
        return EXIT_PARTIAL
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError:
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
