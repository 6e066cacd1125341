"""Launch the arena server."""

from __future__ import annotations

import argparse
import logging
import os

import uvicorn


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Run the bot arena server.")
    parser.add_argument("--host", type=str, default="0.0.0.0")
    parser.add_argument("--port", type=int, default=int(os.getenv("PORT", "3000")))
    parser.add_argument(
        "--tweak-modules",
        type=str,
        default=None,
        help="Comma-separated modules exposing register(registry)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed spawn velocities and heel angles")
    parser.add_argument("--reduced-particles", action="store_true", help="Halve cosmetic particle bursts")
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["debug", "info", "warning", "error"],
        default="info",
    )
    return parser


def main() -> None:
    args = _build_parser().parse_args()
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper()),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # Config is read from the environment at import time, so set it before the app loads.
    if args.tweak_modules:
        os.environ["HEELARENA_TWEAK_PLUGIN_MODULES"] = args.tweak_modules
    if args.seed is not None:
        os.environ["HEELARENA_RANDOM_SEED"] = str(max(0, args.seed))
    if args.reduced_particles:
        os.environ["HEELARENA_REDUCED_PARTICLES"] = "1"
    uvicorn.run("heelarena.server:app", host=args.host, port=args.port, reload=False, log_level=args.log_level)


if __name__ == "__main__":
    main()
