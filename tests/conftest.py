"""Shared pytest fixtures."""

import asyncio
import json
from typing import Any
from uuid import uuid4

import httpx
import pytest

from lorrybook.client.config import ClientConfig
from lorrybook.client.numbering import NumberingAllocator

API_BASE_URL = "http://numbering.test/api/v1"
API_TOKEN = "test-token"


def make_config(document_type: str, starting_number: int, current_number: int | None = None, prefix: str = "") -> dict[str, Any]:
    """Build a numbering configuration as the API serializes it."""
    return {
        "id": str(uuid4()),
        "type": document_type,
        "starting_number": starting_number,
        "current_number": starting_number if current_number is None else current_number,
        "prefix": prefix,
        "created_at": "2026-01-05T10:00:00Z",
        "updated_at": "2026-01-05T10:00:00Z",
    }


class FakeNumberingBackend:
    """In-memory numbering API served through httpx.MockTransport.

    Set ``failures[endpoint]`` to an HTTP status code, or to "network" to
    raise a connection error, e.g. ``failures["numbering/configs"] = 500``.
    Set ``delays[endpoint]`` to hold a response back for that many seconds
    after the backend has already applied the request.
    """

    def __init__(self, configs: list[dict[str, Any]]) -> None:
        self.configs = {config["type"]: dict(config) for config in configs}
        self.duplicates: set[tuple[str, int]] = set()
        self.failures: dict[str, int | str] = {}
        self.requests: list[httpx.Request] = []
        self.delays: dict[str, float] = {}

    def calls(self, method: str, endpoint: str) -> int:
        return sum(
            1 for r in self.requests if r.method == method and r.url.path == f"/api/v1/{endpoint}"
        )

    async def handler(self, request: httpx.Request) -> httpx.Response:
        response = self._respond(request)
        delay = self.delays.get(request.url.path.removeprefix("/api/v1/"))
        if delay:
            await asyncio.sleep(delay)
        return response

    def _respond(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        endpoint = request.url.path.removeprefix("/api/v1/")

        failure = self.failures.get(endpoint)
        if failure == "network":
            raise httpx.ConnectError("Connection refused", request=request)
        if isinstance(failure, int):
            return httpx.Response(failure, json={"message": "Backend failure", "type": "internal_server_error"})

        body = json.loads(request.content) if request.content else {}

        if request.method == "GET" and endpoint == "numbering/configs":
            return httpx.Response(200, json=list(self.configs.values()))

        if request.method == "POST" and endpoint == "numbering/configs":
            if body["starting_number"] < 1:
                return httpx.Response(400, json={"message": "Starting number must be at least 1", "type": "validation_error"})
            config = make_config(body["type"], body["starting_number"], prefix=body["prefix"])
            self.configs[body["type"]] = config
            return httpx.Response(200, json=config)

        if request.method == "POST" and endpoint == "numbering/update-current":
            config = self.configs.get(body["type"])
            if config is None:
                return httpx.Response(404, json={"message": "Configuration not found", "type": "not_found"})
            if body["current_number"] != config["current_number"] + 1:
                return httpx.Response(
                    400, json={"message": "Current number has moved", "type": "validation_error"}
                )
            config["current_number"] = body["current_number"]
            return httpx.Response(200, json=config)

        if request.method == "POST" and endpoint == "numbering/check-duplicate":
            return httpx.Response(200, json={"is_duplicate": (body["type"], body["number"]) in self.duplicates})

        if request.method == "POST" and endpoint.startswith("numbering/next/"):
            config = self.configs.get(endpoint.removeprefix("numbering/next/"))
            if config is None:
                return httpx.Response(404, json={"message": "Configuration not found", "type": "not_found"})
            number = config["current_number"]
            config["current_number"] = number + 1
            return httpx.Response(200, json={"number": number, "current_number": number + 1})

        return httpx.Response(404, json={"message": "Not Found"})


@pytest.fixture
def client_config():
    return ClientConfig(api_base_url=API_BASE_URL, api_token=API_TOKEN, duplicate_check_fail_open=True)


@pytest.fixture
def backend():
    """Backend holding an invoice counter at 2050 and the default lorry receipt counter."""
    return FakeNumberingBackend(
        [
            make_config("invoice", 1001, current_number=2050, prefix="INV"),
            make_config("consignment", 5001, prefix="LR"),
        ]
    )


@pytest.fixture
def http(backend):
    return httpx.AsyncClient(transport=httpx.MockTransport(backend.handler))


@pytest.fixture
def allocator(client_config, http):
    return NumberingAllocator(client_config, http)


@pytest.fixture
def config_factory():
    return make_config
