# SPDX-License-Identifier: BSD-3-Clause

"""
Home of the L{TestTarget} class.

A test target describes one endpoint of the server under test, the HTTP
method to use on it and the arguments to pass. Calling L{TestTarget.sample}
produces the URI for a single test request.
"""

from __future__ import annotations

import re
from enum import Enum
from random import Random
from typing import Iterable, Iterator, Union
from urllib.parse import urlsplit

from heelgun.generator import ArgGenerator


class Method(Enum):
    """The HTTP methods that test requests can use."""

    GET = "GET"
    PUT = "PUT"
    POST = "POST"
    DELETE = "DELETE"

    @classmethod
    def parse(cls, text: str) -> Method:
        """
        Look up a method by name, ignoring case.

        @raise ValueError:
            If C{text} does not name a supported method.
        """
        try:
            return cls[text.upper()]
        except KeyError:
            raise ValueError(f'Invalid method "{text}"') from None

    def __str__(self) -> str:
        return self.value


class PathSegment:
    """Argument that adds one segment to the path of the request URI."""

    def __init__(self, generator: ArgGenerator):
        self.generator = generator

    def generators(self) -> Iterator[ArgGenerator]:
        """Yield the generators used by this argument."""
        yield self.generator

    def __eq__(self, other: object) -> bool:
        if isinstance(other, PathSegment):
            return self.generator == other.generator
        else:
            return NotImplemented

    def __hash__(self) -> int:
        return hash(self.generator)

    def __repr__(self) -> str:
        return f"PathSegment({self.generator!r})"


class QueryParam:
    """Argument that adds one name-value pair to the query of the request URI."""

    def __init__(self, name: ArgGenerator, value: ArgGenerator):
        self.name = name
        self.value = value

    def generators(self) -> Iterator[ArgGenerator]:
        """Yield the generators used by this argument."""
        yield self.name
        yield self.value

    def __eq__(self, other: object) -> bool:
        if isinstance(other, QueryParam):
            return self.name == other.name and self.value == other.value
        else:
            return NotImplemented

    def __hash__(self) -> int:
        return hash(self.name) ^ hash(self.value)

    def __repr__(self) -> str:
        return f"QueryParam({self.name!r}, {self.value!r})"


TestArg = Union[PathSegment, QueryParam]


class InvalidURIError(ValueError):
    """Raised when a sampled request URI is not a valid URI."""

    def __init__(self, uri: str, message: str):
        super().__init__(uri, message)
        self.uri = uri
        """The text that failed to parse as a URI."""

    def __str__(self) -> str:
        return f'Invalid request URI "{self.args[0]}": {self.args[1]}'


# Characters allowed by RFC 3986, with '%' only as part of an escape.
# '#' is excluded: a fragment is never sent to the server.
_RE_URI_CHARS = re.compile(
    r"(?:[A-Za-z0-9\-._~:/?\[\]@!$&'()*+,;=]|%[0-9A-Fa-f]{2})*"
)


def parse_uri(uri: str) -> str:
    """
    Check that the given text is an absolute HTTP(S) URI.

    @return:
        The URI, unmodified.
    @raise InvalidURIError:
        If C{uri} contains characters that are not allowed in a URI
        (and are not percent-encoded), or it is not an absolute
        C{http} or C{https} URI.
    """
    if _RE_URI_CHARS.fullmatch(uri) is None:
        raise InvalidURIError(uri, "contains characters that must be escaped")
    try:
        parts = urlsplit(uri)
    except ValueError as ex:
        raise InvalidURIError(uri, str(ex)) from ex
    if parts.scheme not in ("http", "https"):
        raise InvalidURIError(uri, "scheme must be http or https")
    if not parts.netloc:
        raise InvalidURIError(uri, "host is missing")
    return uri


def path_and_query(uri: str) -> str:
    """Return the path of C{uri} followed by its query, if any."""
    parts = urlsplit(uri)
    path = parts.path or "/"
    return f"{path}?{parts.query}" if parts.query else path


class TestTarget:
    """
    An endpoint to test, combined with the method and arguments
    to test it with.

    Targets are not modified after construction.
    """

    __test__ = False  # not a pytest test class

    def __init__(self, endpoint: str, method: Method, args: Iterable[TestArg] = ()):
        """
        Initialize a test target.

        @param endpoint:
            Path of the endpoint, relative to the base URL.
        @param method:
            HTTP method to use for requests.
        @param args:
            Path segments and query parameters to add, in order.
        """

        self.endpoint = endpoint
        """Path of the endpoint, relative to the base URL."""

        self.method = method
        """HTTP method to use for requests."""

        self.args = tuple(args)
        """Path segments and query parameters to add, in order."""

    def sample(self, base_url: str, rng: Random) -> str:
        """
        Randomly build a request URI to test this target.

        @param base_url:
            URL of the server under test; the endpoint is appended to it.
        @param rng:
            Source of randomness for the argument generators.
        @return:
            The full request URI.
        @raise InvalidURIError:
            If the result is not a valid URI. This happens when the base
            URL or endpoint is broken or when a generator produced
            characters that are not allowed in a URI.
        """

        uri = base_url.rstrip("/")
        endpoint = self.endpoint
        if endpoint and not endpoint.startswith("/"):
            uri += "/"
        uri += endpoint

        query = ""
        for arg in self.args:
            if isinstance(arg, PathSegment):
                uri += "/" + arg.generator.sample(rng)
            else:
                query += "&" if query else "?"
                query += arg.name.sample(rng)
                value = arg.value.sample(rng)
                if value:
                    query += "=" + value

        return parse_uri(uri + query)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, TestTarget):
            return (self.endpoint, self.method, self.args) == (
                other.endpoint,
                other.method,
                other.args,
            )
        else:
            return NotImplemented

    def __hash__(self) -> int:
        return hash((self.endpoint, self.method, self.args))

    def __repr__(self) -> str:
        return f"TestTarget({self.endpoint!r}, {self.method}, {list(self.args)!r})"

    def __str__(self) -> str:
        return f"{self.method} {self.endpoint or '/'}"
