# SPDX-License-Identifier: BSD-3-Clause

"""Command line interface."""

from __future__ import annotations

import asyncio
import logging
import sys
from argparse import ArgumentParser, ArgumentTypeError
from pathlib import Path

import httpx

from heelgun.config import ConfigError, load_config
from heelgun.fetch import create_client
from heelgun.pipeline import DEFAULT_CONCURRENCY, Pipeline
from heelgun.recorder import FailureRecorder, RecordError
from heelgun.target import TestTarget
from heelgun.version import VERSION_STRING

DEFAULT_ITERATIONS = 100
DEFAULT_OUTDIR = "output"
DEFAULT_TIMEOUT = 10.0


async def _run_pipeline(
    url: str,
    targets: list[TestTarget],
    iterations: int,
    recorder: FailureRecorder,
    concurrency: int,
    seed: int | None,
    timeout: float,
    transport: httpx.AsyncBaseTransport | None,
) -> None:
    async with recorder:
        async with create_client(timeout, concurrency, transport) as client:
            pipeline = Pipeline(
                client, url, iterations, recorder, concurrency=concurrency, seed=seed
            )
            await pipeline.run(targets)


def run(
    url: str,
    config_path: str,
    iterations: int = DEFAULT_ITERATIONS,
    outdir: str = DEFAULT_OUTDIR,
    concurrency: int = DEFAULT_CONCURRENCY,
    seed: int | None = None,
    timeout: float = DEFAULT_TIMEOUT,
    transport: httpx.AsyncBaseTransport | None = None,
) -> int:
    """
    Runs heelgun with the given arguments.

    @param url:
        Base URL of the server to test.
    @param config_path:
        Path of the file that defines the test targets.
    @param iterations:
        Number of requests to make for each test target.
    @param outdir:
        Directory to write the failure log and response bodies to.
    @param concurrency:
        Maximum number of requests in flight at the same time.
    @param seed:
        Seed for the random generation of requests.
    @param timeout:
        Number of seconds to wait for the server on each request.
    @param transport:
        HTTP transport to use instead of the network, for testing.
    @return:
        0 if the test run completed, non-zero on errors.
        Failures found in the server do not count as errors.
    """

    try:
        targets = load_config(config_path)
    except ConfigError as ex:
        print(f"Bad configuration: {ex}", file=sys.stderr)
        return 1

    recorder = FailureRecorder(outdir)
    print(f'Testing "{url}" with {len(targets):d} targets...')
    try:
        asyncio.run(
            _run_pipeline(
                url,
                targets,
                iterations,
                recorder,
                concurrency,
                seed,
                timeout,
                transport,
            )
        )
    except RecordError as ex:
        print("Irrecoverable error occurred.", file=sys.stderr)
        print(f"\t{ex}", file=sys.stderr)
        print("Server test stopped abruptly.", file=sys.stderr)
        return 1
    print("Done testing:", recorder.tally.summary())

    print(f"Failure log recorded in {recorder.log_path}")
    return 0


def _positive_int(arg: str) -> int:
    try:
        value = int(arg)
    except ValueError:
        raise ArgumentTypeError(f"invalid integer: {arg!r}") from None
    if value < 1:
        raise ArgumentTypeError(f"must be positive: {value:d}")
    return value


def main() -> int:
    """
    Parse command line arguments and call L{run} with the results.

    This is the entry point that gets called by the wrapper script.
    """

    parser = ArgumentParser(
        description="heelgun: test the robustness of an HTTP server "
        "by sending it randomized requests",
        epilog="This is a test tool; do not use on production sites.",
    )
    parser.add_argument("url", metavar="URL", help="base URL of the server to test")
    parser.add_argument(
        "config",
        metavar="CONFIG",
        help="test target definitions: .json, .yml/.yaml or a Play \"routes\" file",
    )
    parser.add_argument(
        "outdir",
        metavar="OUTDIR",
        nargs="?",
        default=DEFAULT_OUTDIR,
        help=f"directory to write the failure log to (default: {DEFAULT_OUTDIR})",
    )
    parser.add_argument(
        "-N",
        "--iterations",
        type=_positive_int,
        default=DEFAULT_ITERATIONS,
        help=f"number of requests per test target (default: {DEFAULT_ITERATIONS})",
    )
    parser.add_argument(
        "--concurrency",
        type=_positive_int,
        default=DEFAULT_CONCURRENCY,
        help="maximum number of requests in flight "
        f"(default: {DEFAULT_CONCURRENCY})",
    )
    parser.add_argument(
        "--seed", type=int, help="seed for the random generation of requests"
    )
    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help=f"seconds to wait for each response (default: {DEFAULT_TIMEOUT:g})",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="increase amount of logging, can be passed multiple times",
    )
    parser.add_argument(
        "-V", "--version", action="version", version=f"heelgun {VERSION_STRING}"
    )

    args = parser.parse_args()

    level_map = {0: logging.WARNING, 1: logging.INFO, 2: logging.DEBUG}
    level = level_map.get(args.verbose, logging.DEBUG)
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")
    if level > logging.DEBUG:
        # Every request would be logged at INFO level.
        logging.getLogger("httpx").setLevel(logging.WARNING)

    return run(
        args.url,
        args.config,
        args.iterations,
        args.outdir,
        concurrency=args.concurrency,
        seed=args.seed,
        timeout=args.timeout,
    )
