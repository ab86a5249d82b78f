# SPDX-License-Identifier: BSD-3-Clause

"""
Classifies the results of test requests.

A request that reached the server results in a L{ServerOutcome}:
either a reasonable response (L{OutcomeKind.GOOD}), a server error
response (L{OutcomeKind.BAD_SERVER_ERROR}) or a breakdown at the HTTP
level that the server is held responsible for
(L{OutcomeKind.BAD_TRANSPORT}).

A request that could not reach the server at all does not have an
outcome: L{classify_error} raises L{ConnectionFailure} for those.
"""

from __future__ import annotations

from enum import Enum, auto

import httpx

from heelgun.target import Method


class OutcomeKind(Enum):
    """The kinds of outcome a test request can have."""

    GOOD = auto()
    """The server returned a response that is not a server error."""

    BAD_SERVER_ERROR = auto()
    """The server returned a server error (5xx) response."""

    BAD_TRANSPORT = auto()
    """The exchange broke down after the connection was made."""


class ServerOutcome:
    """The classified result of one test request."""

    def __init__(
        self,
        method: Method,
        uri: str,
        kind: OutcomeKind,
        status: int | None = None,
        body: bytes | None = None,
        error: Exception | None = None,
    ):
        self.method = method
        """The HTTP method of the request."""

        self.uri = uri
        """The URI of the request."""

        self.kind = kind
        """The kind of outcome."""

        self.status = status
        """The HTTP status code, or C{None} if no response was received."""

        self.body = body
        """The response body of a server error, C{None} for other kinds."""

        self.error = error
        """The exception that broke the exchange, for L{OutcomeKind.BAD_TRANSPORT}."""

    @property
    def is_bad(self) -> bool:
        """C{True} iff this outcome should be recorded as a failure."""
        return self.kind is not OutcomeKind.GOOD

    @property
    def reason(self) -> str:
        """Short description of what happened, used in the failure log."""
        if self.kind is OutcomeKind.BAD_TRANSPORT:
            error = self.error
            assert error is not None
            return str(error) or error.__class__.__name__
        else:
            return str(self.status)

    def __repr__(self) -> str:
        return (
            f"ServerOutcome({self.method}, {self.uri!r}, {self.kind.name}, "
            f"reason={self.reason!r})"
        )


class ConnectionFailure(Exception):
    """
    Raised when a request could not be delivered to the server because
    no connection could be made.

    This is a problem of the test run, not a finding about the server.
    """

    def __init__(self, method: Method, uri: str, error: Exception):
        super().__init__(method, uri, error)
        self.method = method
        self.uri = uri
        self.error = error

    def __str__(self) -> str:
        return f"Connection failed for {self.method} {self.uri}: {self.error}"


_CONNECTION_ERRORS = (httpx.ConnectError, httpx.ConnectTimeout, httpx.PoolTimeout)


def classify_response(
    method: Method, uri: str, status: int, body: bytes | None = None
) -> ServerOutcome:
    """
    Classify a response received from the server.

    @param status:
        The HTTP status code of the response.
    @param body:
        The response body; it is only kept for server errors.
    """
    if status >= 500:
        return ServerOutcome(
            method, uri, OutcomeKind.BAD_SERVER_ERROR, status=status, body=body
        )
    else:
        return ServerOutcome(method, uri, OutcomeKind.GOOD, status=status)


def classify_error(
    method: Method, uri: str, error: httpx.RequestError
) -> ServerOutcome:
    """
    Classify an error that occurred while issuing a request.

    @raise ConnectionFailure:
        If C{error} means no connection to the server could be made.
    """
    if isinstance(error, _CONNECTION_ERRORS):
        raise ConnectionFailure(method, uri, error) from error
    return ServerOutcome(method, uri, OutcomeKind.BAD_TRANSPORT, error=error)
