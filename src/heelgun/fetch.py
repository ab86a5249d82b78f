# SPDX-License-Identifier: BSD-3-Clause

"""
Creates the HTTP client that test requests are sent with.

The client does not follow redirects: a redirect is a perfectly good
response to a test request, so there is no need to look further.
"""

from __future__ import annotations

import httpx

from heelgun.version import VERSION_STRING

USER_AGENT_PREFIX = "heelgun"
USER_AGENT = f"{USER_AGENT_PREFIX}/{VERSION_STRING}"


def create_client(
    timeout: float,
    max_connections: int,
    transport: httpx.AsyncBaseTransport | None = None,
) -> httpx.AsyncClient:
    """
    Create an asynchronous HTTP client for sending test requests.

    @param timeout:
        Number of seconds to wait for connecting, sending and receiving.
    @param max_connections:
        Maximum number of connections to keep open at the same time.
    @param transport:
        Transport to send requests through, or C{None} to use the network.
    @return:
        A client that should be closed after use, preferably by using
        it as an asynchronous context manager.
    """
    return httpx.AsyncClient(
        headers={"User-Agent": USER_AGENT, "Accept": "*/*"},
        timeout=httpx.Timeout(timeout),
        limits=httpx.Limits(
            max_connections=max_connections,
            max_keepalive_connections=max_connections,
        ),
        follow_redirects=False,
        transport=transport,
    )
