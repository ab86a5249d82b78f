# SPDX-License-Identifier: BSD-3-Clause

"""
Records the failures found during a test run.

Every bad L{ServerOutcome} becomes one row in C{failures.csv} in the
output directory. For server errors, the response body is saved as well,
at a path derived from the request method and URI, so the error page or
stack trace the server produced can be inspected afterwards.

The failure log is the record of the test run: if a row cannot be
written, L{RecordError} is raised and the run cannot continue.
Saving response bodies is done on the side by separate tasks; when one
of those fails, the problem is logged but the run goes on.
"""

from __future__ import annotations

import asyncio
import csv
from logging import getLogger
from pathlib import Path
from types import TracebackType
from typing import IO, Any

from heelgun.outcome import OutcomeKind, ServerOutcome
from heelgun.target import Method, path_and_query

FAILURE_LOG_NAME = "failures.csv"
FAILURE_LOG_HEADER = ("method", "uri", "reason")

_LOG = getLogger(__name__)


class RecordError(Exception):
    """Raised when the failure log cannot be created or written."""


BODY_FILE_NAME = "%body"
"""Name of the file a response body is saved to, inside the directory
for its request path.

A '%' that is not followed by two hex digits cannot occur in a valid URI,
so this name never equals a path component.
"""


def body_path(outdir: Path, method: Method, uri: str) -> Path:
    """
    Return the path at which the response body for a request is saved.

    The path is C{<outdir>/<METHOD>/<path-and-query>/%body}, so bodies
    for C{/users} and C{/users/42} can both be kept. Empty path components
    are dropped and dot components are escaped, so the result never
    points outside C{outdir/<METHOD>}.
    """
    parts = []
    for component in path_and_query(uri).split("/"):
        if not component:
            continue
        if component == ".":
            component = "%2E"
        elif component == "..":
            component = "%2E%2E"
        parts.append(component)
    return outdir.joinpath(str(method), *parts, BODY_FILE_NAME)


def _write_body(path: Path, body: bytes) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_bytes(body)


class Tally:
    """Counts what happened during a test run."""

    def __init__(self) -> None:
        self.good = 0
        """Number of requests that got a reasonable response."""
        self.server_errors = 0
        """Number of requests that got a server error response."""
        self.transport_errors = 0
        """Number of requests for which the HTTP exchange broke down."""
        self.trial_errors = 0
        """Number of trials that could not be sampled, built or sent."""
        self.capture_errors = 0
        """Number of response bodies that could not be saved."""

    @property
    def failures(self) -> int:
        """Number of bad outcomes: these are the findings of the run."""
        return self.server_errors + self.transport_errors

    def summary(self) -> str:
        """Return a short string summarizing the test run."""
        total = self.good + self.failures
        text = (
            f"{total:d} requests checked, "
            f"{self.good:d} passed, "
            f"{self.failures:d} failed"
        )
        if self.trial_errors:
            text += f", {self.trial_errors:d} not sent"
        if self.capture_errors:
            text += f", {self.capture_errors:d} response bodies not saved"
        return text


class FailureRecorder:
    """
    Writes bad outcomes to the failure log and saves server error bodies.

    The recorder must be used from a single event loop: rows are written
    synchronously, so they never interleave, and body captures are
    started as tasks on the running loop.
    Use it as an asynchronous context manager, or call L{open} and
    L{aclose} explicitly.
    """

    def __init__(self, outdir: Path | str):
        """Initialize a recorder that writes into the directory C{outdir}."""

        self.outdir = Path(outdir)
        """Directory that will contain the failure log and response bodies."""

        self.log_path = self.outdir / FAILURE_LOG_NAME
        """Path of the failure log."""

        self.tally = Tally()
        """Counts of the outcomes and errors seen so far."""

        self._out: IO[str] | None = None
        self._writer: Any = None
        self._captures: list[tuple[ServerOutcome, Path, asyncio.Task[None]]] = []

    def open(self) -> None:
        """
        Create the output directory and the failure log.

        An existing failure log is overwritten.

        @raise RecordError:
            If the directory or log file cannot be created.
        """
        try:
            self.outdir.mkdir(parents=True, exist_ok=True)
            # pylint: disable=consider-using-with
            out = open(self.log_path, "w", encoding="utf-8", newline="")
        except OSError as ex:
            raise RecordError(
                f'Cannot create failure log "{self.log_path}": {ex}'
            ) from ex
        self._out = out
        self._writer = csv.writer(out)
        self._write_row(FAILURE_LOG_HEADER)

    def _write_row(self, row: tuple[str, ...]) -> None:
        out = self._out
        if out is None:
            raise RecordError("Failure log is not open")
        try:
            self._writer.writerow(row)
            out.flush()
        except (OSError, csv.Error) as ex:
            raise RecordError(f"Failed to write outcome: {ex}") from ex

    def record(self, outcome: ServerOutcome) -> None:
        """
        Record a single outcome.

        Good outcomes are only counted. Bad outcomes are appended to the
        failure log; for server errors, saving the response body is started
        as a separate task.

        @raise RecordError:
            If the failure log could not be written.
        """
        tally = self.tally
        kind = outcome.kind
        if kind is OutcomeKind.GOOD:
            tally.good += 1
            _LOG.debug("%s %s -> %s", outcome.method, outcome.uri, outcome.status)
            return

        if kind is OutcomeKind.BAD_SERVER_ERROR:
            tally.server_errors += 1
        else:
            tally.transport_errors += 1
        self._write_row((str(outcome.method), outcome.uri, outcome.reason))

        if kind is OutcomeKind.BAD_SERVER_ERROR:
            self._capture_body(outcome)

    def _capture_body(self, outcome: ServerOutcome) -> None:
        path = body_path(self.outdir, outcome.method, outcome.uri)
        body = outcome.body or b""
        task = asyncio.get_running_loop().create_task(
            asyncio.to_thread(_write_body, path, body)
        )
        self._captures.append((outcome, path, task))

    async def wait_captures(self) -> None:
        """
        Wait for all pending body captures to finish.

        Captures that failed are logged and counted; the errors are not
        raised.
        """
        captures = self._captures
        self._captures = []
        if not captures:
            return
        results = await asyncio.gather(
            *(task for outcome_, path_, task in captures), return_exceptions=True
        )
        for (outcome, path, task_), result in zip(captures, results):
            if isinstance(result, Exception):
                self.tally.capture_errors += 1
                _LOG.error(
                    'Failed to save response body of %s %s to "%s": %s',
                    outcome.method,
                    outcome.uri,
                    path,
                    result,
                )
            elif isinstance(result, BaseException):
                raise result
            else:
                _LOG.debug('Saved response body to "%s"', path)

    async def aclose(self) -> None:
        """Wait for pending body captures and close the failure log."""
        try:
            await self.wait_captures()
        finally:
            out = self._out
            if out is not None:
                self._out = None
                self._writer = None
                out.close()

    async def __aenter__(self) -> FailureRecorder:
        self.open()
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_value: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        await self.aclose()
