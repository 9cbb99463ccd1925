"""Infrastructure fixtures: httpx clients backed by in-process handlers."""

import httpx
import pytest

from songvert.infrastructure.connectors.http import create_http_client


class RecordingHandler:
    """MockTransport handler that records requests and answers from a route table.

    Routes map a URL path to a JSON body, an ``httpx.Response``, or a callable
    taking the request.
    """

    def __init__(self, routes):
        self.routes = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route = self.routes.get(request.url.path)
        if route is None:
            return httpx.Response(404, json={"errors": [{"status": "404"}]})
        if callable(route):
            route = route(request)
        if isinstance(route, httpx.Response):
            return route
        return httpx.Response(200, json=route)


@pytest.fixture
def mock_http():
    """Build an AsyncClient whose requests are answered by ``routes``."""

    def build(routes) -> tuple[httpx.AsyncClient, RecordingHandler]:
        handler = RecordingHandler(routes)
        client = create_http_client(transport=httpx.MockTransport(handler))
        return client, handler

    return build
