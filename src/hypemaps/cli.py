"""CLI entrypoint for hypemaps."""

from __future__ import annotations

import argparse
import logging
from pathlib import Path
from typing import Sequence

from .config import AppConfig, load_config
from .render import format_render_lines, run_render
from .util import ensure_directories, setup_logging
from .validate import Validator, format_report_lines

LOGGER = logging.getLogger("hypemaps.cli")


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="hypemaps",
        description="Sub-basin choropleth maps from HYPE map output files.",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    def add_common(p: argparse.ArgumentParser) -> None:
        p.add_argument("--config", default="config.yaml", help="Path to YAML config.")
        p.add_argument("--verbose", action="store_true", help="Enable debug logs.")

    validate_p = subparsers.add_parser("validate", help="Validate config and input files.")
    add_common(validate_p)

    render_p = subparsers.add_parser("render", help="Render the configured map to an image file.")
    add_common(render_p)
    render_p.add_argument(
        "--output",
        default=None,
        help="Override paths.output_image.",
    )
    render_p.add_argument(
        "--var",
        default=None,
        help="HYPE variable code used for automatic colors (e.g. CCTN, COUT).",
    )
    render_p.add_argument(
        "--skip-validate",
        action="store_true",
        help="Render without running input validation first.",
    )

    return parser


def _load_and_setup(args: argparse.Namespace) -> AppConfig:
    cfg = load_config(args.config)
    log_path = cfg.paths.logs_dir / "hypemaps.log"
    setup_logging(log_path, verbose=args.verbose)
    ensure_directories([cfg.paths.logs_dir, cfg.paths.output_image.parent])
    return cfg


def _run_validate(cfg: AppConfig) -> int:
    report = Validator(cfg).run()
    for line in format_report_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _run_render(
    cfg: AppConfig,
    *,
    output: str | None,
    var_name: str | None,
    skip_validate: bool,
) -> int:
    if not skip_validate:
        validation = Validator(cfg).run()
        for line in format_report_lines(validation):
            LOGGER.info(line)
        if not validation.ok:
            LOGGER.error("Render aborted due to validation errors.")
            return 1

    output_path = Path(output).resolve() if output else None
    report = run_render(cfg, output_path=output_path, var_name=var_name)
    for line in format_render_lines(report):
        LOGGER.info(line)
    return 0 if report.ok else 1


def _dispatch(args: argparse.Namespace) -> int:
    cfg = _load_and_setup(args)
    command = str(args.command)
    if command == "validate":
        return _run_validate(cfg)
    if command == "render":
        return _run_render(
            cfg,
            output=args.output,
            var_name=args.var,
            skip_validate=bool(args.skip_validate),
        )
    raise ValueError(f"Unknown command: {command}")


def main(argv: Sequence[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    return _dispatch(args)


if __name__ == "__main__":
    raise SystemExit(main())
