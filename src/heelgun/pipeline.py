# SPDX-License-Identifier: BSD-3-Clause

"""
Sends test requests to the server and passes on the outcomes.

The L{Pipeline} class is where the work is done: for every test target
it samples a number of request URIs, sends the requests and hands the
classified outcomes to a L{FailureRecorder}.

Each sampled request is a L{Trial}. A trial that fails before an outcome
is known, because the URI is invalid, the request cannot be built or no
connection could be made, is logged and skipped; the other trials are
not affected.
"""

from __future__ import annotations

import asyncio
from logging import LoggerAdapter, getLogger
from random import Random
from typing import Any, Iterable, Iterator, MutableMapping

import httpx

from heelgun.outcome import (
    ConnectionFailure,
    OutcomeKind,
    ServerOutcome,
    classify_error,
    classify_response,
)
from heelgun.recorder import FailureRecorder
from heelgun.target import InvalidURIError, TestTarget

DEFAULT_CONCURRENCY = 16
"""Default maximum number of requests in flight at the same time."""

_LOG = getLogger(__name__)


class TrialLogger(LoggerAdapter):
    """Logs messages about a single trial.

    The trial's ordinal, method and URI are put in front of each message.
    """

    def __init__(self, trial: Trial):
        super().__init__(_LOG, dict(trial=trial.index))
        self.trial = trial

    def process(
        self, msg: Any, kwargs: MutableMapping[str, Any]
    ) -> tuple[Any, MutableMapping[str, Any]]:
        trial = self.trial
        return f"{trial.index:4d} > {trial.target.method} {trial.uri}: {msg}", kwargs


class Trial:
    """One sampled request for a test target."""

    def __init__(self, index: int, target: TestTarget, uri: str):
        self.index = index
        """Ordinal of this trial within its target."""
        self.target = target
        self.uri = uri
        self.log = TrialLogger(self)

    def __repr__(self) -> str:
        return f"Trial({self.index:d}, {self.target}, {self.uri!r})"


class TrialError(Exception):
    """Raised when a trial cannot be completed."""


class RequestBuildError(TrialError):
    """Raised when no HTTP request can be built for a sampled URI."""


def sample_trials(
    target: TestTarget,
    base_url: str,
    iterations: int,
    rng: Random,
    recorder: FailureRecorder,
) -> Iterator[Trial]:
    """
    Sample request URIs for a test target.

    @param iterations:
        Number of trials to sample.
    @param rng:
        Source of randomness, which should not be shared with other targets.
    @param recorder:
        Sampling errors are counted in its tally.
    @return:
        Yields one L{Trial} for every URI that was sampled successfully.
        Failed samples are logged and skipped.
    """
    for index in range(iterations):
        try:
            uri = target.sample(base_url, rng)
        except InvalidURIError as ex:
            recorder.tally.trial_errors += 1
            _LOG.error("%4d > %s: %s", index, target, ex)
        else:
            yield Trial(index, target, uri)


def build_request(client: httpx.AsyncClient, trial: Trial) -> httpx.Request:
    """
    Build the HTTP request for a trial. The request has an empty body.

    @raise RequestBuildError:
        If the method and URI do not make a valid request.
    """
    try:
        request = client.build_request(str(trial.target.method), trial.uri)
    except httpx.InvalidURL as ex:
        raise RequestBuildError(f"Cannot build request: {ex}") from ex
    if request.url.scheme not in ("http", "https"):
        raise RequestBuildError(f'Unsupported scheme "{request.url.scheme}"')
    return request


async def issue(client: httpx.AsyncClient, trial: Trial) -> ServerOutcome:
    """
    Send the request for a trial and classify the result.

    @raise RequestBuildError:
        If the request could not be built.
    @raise ConnectionFailure:
        If no connection to the server could be made.
    """
    request = build_request(client, trial)
    method = trial.target.method
    trial.log.info("sending")
    try:
        response = await client.send(request)
    except httpx.RequestError as ex:
        outcome = classify_error(method, trial.uri, ex)
        trial.log.warning("HTTP exchange failed: %s", outcome.reason)
        return outcome

    outcome = classify_response(
        method, trial.uri, response.status_code, response.content
    )
    if outcome.kind is OutcomeKind.BAD_SERVER_ERROR:
        trial.log.warning("returned error %d", response.status_code)
    else:
        trial.log.info("response: %d", response.status_code)
    return outcome


class Pipeline:
    """
    Runs the trials for a collection of test targets.

    All trials of all targets are started together; at most
    C{concurrency} of them have a request in flight at any time.
    Outcomes are recorded in the order in which they complete.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        base_url: str,
        iterations: int,
        recorder: FailureRecorder,
        concurrency: int = DEFAULT_CONCURRENCY,
        seed: int | None = None,
    ):
        """
        Initialize a pipeline.

        @param client:
            HTTP client to send the requests with.
        @param base_url:
            URL of the server under test.
        @param iterations:
            Number of trials per test target.
        @param recorder:
            Receives the outcome of every trial.
        @param concurrency:
            Maximum number of requests in flight at the same time.
        @param seed:
            Seed for the random sampling of request URIs, or C{None}
            for a different run every time.
        """
        if concurrency < 1:
            raise ValueError(f"concurrency must be positive, got {concurrency:d}")
        self.client = client
        self.base_url = base_url
        self.iterations = iterations
        self.recorder = recorder
        self.concurrency = concurrency
        self._rng = Random(seed)

    def trials(self, targets: Iterable[TestTarget]) -> Iterator[Trial]:
        """
        Sample the trials for all test targets.

        Each target gets its own random number generator, seeded from
        the pipeline's generator.
        """
        for target in targets:
            rng = Random(self._rng.getrandbits(64))
            yield from sample_trials(
                target, self.base_url, self.iterations, rng, self.recorder
            )

    async def run(self, targets: Iterable[TestTarget]) -> None:
        """
        Run all trials and record their outcomes.

        Trials that fail are logged and skipped.

        @raise heelgun.recorder.RecordError:
            If an outcome could not be written to the failure log.
            The trials that are still running are cancelled.
        """
        semaphore = asyncio.Semaphore(self.concurrency)
        tasks = [
            asyncio.create_task(self._run_trial(trial, semaphore))
            for trial in self.trials(targets)
        ]
        if not tasks:
            _LOG.warning("No trials to run")
            return
        try:
            await asyncio.gather(*tasks)
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _run_trial(self, trial: Trial, semaphore: asyncio.Semaphore) -> None:
        recorder = self.recorder
        async with semaphore:
            try:
                outcome = await issue(self.client, trial)
            except ConnectionFailure as ex:
                recorder.tally.trial_errors += 1
                trial.log.error("connection failed: %s", ex.error)
                return
            except TrialError as ex:
                recorder.tally.trial_errors += 1
                trial.log.error("%s", ex)
                return
        recorder.record(outcome)
