from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path

from trackfit.assembler import build
from trackfit.config import Config
from trackfit.encoder import FitToolEncoder
from trackfit.errors import TrackFitError
from trackfit.readback import write_summary
from trackfit.samples import load_samples

log = logging.getLogger(__name__)


def write_fit(data: bytes, fit_path: Path) -> Path:
    fit_path.parent.mkdir(parents=True, exist_ok=True)
    fit_path.write_bytes(data)
    log.info("Wrote %s (%d bytes)", fit_path, len(data))
    return fit_path


def convert(config: Config) -> Path:
    """
    Run one conversion: load samples -> assemble FIT -> write file.

    Returns the path of the written FIT file. Input errors are raised before
    anything is written.
    """
    samples = load_samples(config.input_path)
    data = build(
        samples,
        repeat_count=config.repeat_count,
        encoder=FitToolEncoder(),
        sport=config.sport,
    )
    fit_path = write_fit(data, config.fit_path)

    if config.write_summary:
        write_summary(fit_path, config.summary_path)

    return fit_path


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="trackfit",
        description="Convert a JSON track of sensor samples into a FIT activity file.",
    )
    parser.add_argument("input", nargs="?", type=Path, help="JSON samples file (default: $TRACKFIT_INPUT)")
    parser.add_argument("-o", "--output", type=Path, help="FIT file to write (default: INPUT with .fit suffix)")
    parser.add_argument("-n", "--repeat", type=int, help="Replay the track this many times (default: 1)")
    parser.add_argument("--summary", action="store_true", help="Also write a YAML read-back of the FIT file")
    parser.add_argument("--env-file", type=Path, help="Load settings from this .env file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    return parser.parse_args(argv)


def config_from_args(args: argparse.Namespace) -> Config:
    """Environment settings, overridden by whatever was given on the command line."""
    config = Config.from_env(args.env_file)
    overrides = {}
    if args.input is not None:
        overrides["input_path"] = args.input
    if args.output is not None:
        overrides["output_path"] = args.output
    if args.repeat is not None:
        overrides["repeat_count"] = args.repeat
    if args.summary:
        overrides["write_summary"] = True
    return dataclasses.replace(config, **overrides)


def main(argv: list[str] | None = None) -> None:
    """CLI entry point for one conversion."""
    args = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    try:
        config = config_from_args(args)
        fit_path = convert(config)
    except TrackFitError as e:
        log.error("Conversion failed: %s", e)
        sys.exit(1)
    print(f"Conversion result: {fit_path}")


if __name__ == "__main__":
    main()
