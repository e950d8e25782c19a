"""httpx MockTransport helpers shared by the HTTP-facing tests."""

from __future__ import annotations

import json
from functools import partial

import httpx


def sse(*payloads) -> bytes:
    """Encode payloads as ``data:`` events; strings are sent verbatim."""
    lines = []
    for p in payloads:
        data = p if isinstance(p, str) else json.dumps(p)
        lines.append(f"data: {data}\n\n")
    return "".join(lines).encode()


def sse_response(*payloads):
    return partial(
        httpx.Response,
        200,
        content=sse(*payloads),
        headers={"content-type": "text/event-stream"},
    )


class Recorder:
    """MockTransport handler: one response factory per request, the last repeats."""

    def __init__(self, *factories):
        self.factories = list(factories)
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if len(self.factories) > 1:
            return self.factories.pop(0)()
        return self.factories[0]()

    @property
    def body(self) -> dict:
        return json.loads(self.requests[-1].content)

    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self)
