"""
Unit tests for `heelgun.outcome`.
"""

import httpx
from pytest import mark, raises

from heelgun.outcome import (
    ConnectionFailure,
    OutcomeKind,
    classify_error,
    classify_response,
)
from heelgun.target import Method

URI = "http://x/users/42"


@mark.parametrize("status", (500, 501, 502, 503, 504, 599))
def test_server_error(status):
    """Test whether 5xx responses are classified as server errors."""
    outcome = classify_response(Method.GET, URI, status, b"Traceback")
    assert outcome.kind is OutcomeKind.BAD_SERVER_ERROR
    assert outcome.is_bad
    assert outcome.status == status
    assert outcome.body == b"Traceback"
    assert outcome.reason == str(status)


@mark.parametrize("status", (200, 201, 204, 301, 302, 400, 404, 405, 418, 499))
def test_good(status):
    """Test whether responses below 500 are classified as good."""
    outcome = classify_response(Method.POST, URI, status, b"body")
    assert outcome.kind is OutcomeKind.GOOD
    assert not outcome.is_bad
    assert outcome.status == status
    assert outcome.body is None


@mark.parametrize(
    "error",
    (
        httpx.ConnectError("Connection refused"),
        httpx.ConnectTimeout("timed out"),
        httpx.PoolTimeout("no connection available"),
    ),
)
def test_connection_error(error):
    """Test whether connection-level errors are not outcomes."""
    with raises(ConnectionFailure) as excinfo:
        classify_error(Method.GET, URI, error)
    failure = excinfo.value
    assert failure.error is error
    assert failure.method is Method.GET
    assert failure.uri == URI
    assert URI in str(failure)


@mark.parametrize(
    "error",
    (
        httpx.RemoteProtocolError("Server disconnected without sending a response."),
        httpx.ReadError("Connection reset by peer"),
        httpx.ReadTimeout("timed out"),
        httpx.DecodingError("Invalid gzip data"),
        httpx.LocalProtocolError("Illegal header value"),
    ),
)
def test_transport_error(error):
    """Test whether other HTTP errors are blamed on the server."""
    outcome = classify_error(Method.DELETE, URI, error)
    assert outcome.kind is OutcomeKind.BAD_TRANSPORT
    assert outcome.is_bad
    assert outcome.status is None
    assert outcome.error is error
    assert outcome.reason == str(error)


def test_transport_error_no_message():
    """Test whether an error without message is described by its type."""
    outcome = classify_error(Method.GET, URI, httpx.RemoteProtocolError(""))
    assert outcome.reason == "RemoteProtocolError"
