"""Tests for the numbering API routes, served by an in-memory App."""

import httpx
import pytest
from fastapi.testclient import TestClient

from lorrybook.client.errors import SaveError
from lorrybook.client.numbering import NumberingAllocator
from lorrybook.config import Config
from lorrybook.core.modules.numbering.models import DocumentType, NumberingConfig, default_config
from lorrybook.core.modules.session.models import AuthToken
from lorrybook.errors import AccessDeniedError, AuthenticationError, NotFoundError, ValidationError
from lorrybook.web.server import create_fastapi_app

ADMIN_TOKEN = "admin-token"
CLERK_TOKEN = "clerk-token"


class InMemoryApp:
    """Stands in for App with the same method surface and no database."""

    def __init__(self) -> None:
        self.configs = {t: default_config(t) for t in DocumentType}
        self.used_numbers: set[tuple[DocumentType, int]] = set()

    async def is_auth_token_valid(self, auth_token: AuthToken) -> bool:
        return auth_token in (ADMIN_TOKEN, CLERK_TOKEN)

    async def login(self, username: str, password: str) -> AuthToken:
        if (username, password) != ("admin", "secret-password"):
            raise AuthenticationError("Invalid username or password")
        return AuthToken(ADMIN_TOKEN)

    async def get_numbering_configs(self, auth_token: AuthToken) -> list[NumberingConfig]:
        return list(self.configs.values())

    async def save_numbering_config(
        self, auth_token: AuthToken, document_type: DocumentType, starting_number: int, prefix: str
    ) -> NumberingConfig:
        if auth_token != ADMIN_TOKEN:
            raise AccessDeniedError("Admin privileges required to change numbering settings")
        self.configs[document_type] = NumberingConfig(
            type=document_type, starting_number=starting_number, current_number=starting_number, prefix=prefix
        )
        return self.configs[document_type]

    async def update_current_number(
        self, auth_token: AuthToken, document_type: DocumentType, current_number: int
    ) -> NumberingConfig:
        config = self.configs[document_type]
        if current_number != config.current_number + 1:
            raise ValidationError(f"Current number has moved to {config.current_number}")
        self.configs[document_type] = config.model_copy(update={"current_number": current_number})
        return self.configs[document_type]

    async def check_duplicate_number(self, auth_token: AuthToken, document_type: DocumentType, number: int) -> bool:
        return (document_type, number) in self.used_numbers

    async def allocate_next_number(self, auth_token: AuthToken, document_type: DocumentType) -> tuple[int, NumberingConfig]:
        if document_type not in self.configs:
            raise NotFoundError(f"Numbering configuration for '{document_type}' not found")
        config = self.configs[document_type]
        self.configs[document_type] = config.model_copy(update={"current_number": config.current_number + 1})
        return config.current_number, self.configs[document_type]


@pytest.fixture
def memory_app():
    return InMemoryApp()


@pytest.fixture
def fastapi_app(memory_app):
    config = Config(database_url="mongodb://localhost:27017/lorrybook_test", admin_password="secret-password")
    app = create_fastapi_app(memory_app, config)  # type: ignore[arg-type]
    # Routes resolve the App through app.state; set it without running the lifespan
    app.state.app = memory_app
    return app


@pytest.fixture
def api(fastapi_app):
    return TestClient(fastapi_app)


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}


class TestAuthRoutes:
    def test_login_returns_token(self, api):
        response = api.post("/api/v1/auth/login", json={"username": "admin", "password": "secret-password"})

        assert response.status_code == 200
        assert response.json() == {"token": ADMIN_TOKEN}

    def test_bad_credentials(self, api):
        response = api.post("/api/v1/auth/login", json={"username": "admin", "password": "wrong"})

        assert response.status_code == 401
        assert response.json()["type"] == "authentication_error"

    def test_health_is_public(self, api):
        assert api.get("/health").json() == {"status": "healthy"}


class TestNumberingRoutes:
    """Tests for the numbering endpoints."""

    def test_requires_bearer_token(self, api):
        response = api.get("/api/v1/numbering/configs")

        assert response.status_code == 401
        assert response.json()["type"] == "authentication_error"

    def test_rejects_unknown_token(self, api):
        response = api.get("/api/v1/numbering/configs", headers=auth("stolen"))

        assert response.status_code == 401

    def test_list_configs(self, api):
        response = api.get("/api/v1/numbering/configs", headers=auth(CLERK_TOKEN))

        assert response.status_code == 200
        by_type = {item["type"]: item for item in response.json()}
        assert by_type["invoice"]["prefix"] == "INV"
        assert by_type["consignment"]["current_number"] == 5001
        assert "id" in by_type["invoice"]

    def test_save_config_as_admin(self, api):
        response = api.post(
            "/api/v1/numbering/configs",
            json={"type": "consignment", "starting_number": 9000, "prefix": "LR"},
            headers=auth(ADMIN_TOKEN),
        )

        assert response.status_code == 200
        assert response.json()["current_number"] == 9000

    def test_save_config_requires_admin(self, api):
        response = api.post(
            "/api/v1/numbering/configs",
            json={"type": "invoice", "starting_number": 1, "prefix": ""},
            headers=auth(CLERK_TOKEN),
        )

        assert response.status_code == 403
        assert response.json()["type"] == "access_denied"

    @pytest.mark.parametrize(
        "payload",
        [
            {"type": "invoice", "starting_number": 0, "prefix": "INV"},
            {"type": "receipt", "starting_number": 10, "prefix": ""},
            {"type": "invoice", "prefix": "INV"},
        ],
    )
    def test_save_config_rejects_bad_payload(self, api, payload):
        response = api.post("/api/v1/numbering/configs", json=payload, headers=auth(ADMIN_TOKEN))

        assert response.status_code == 422

    def test_update_current_advances_by_one(self, api, memory_app):
        response = api.post(
            "/api/v1/numbering/update-current",
            json={"type": "invoice", "current_number": 1002},
            headers=auth(CLERK_TOKEN),
        )

        assert response.status_code == 200
        assert response.json()["current_number"] == 1002
        assert memory_app.configs[DocumentType.INVOICE].current_number == 1002

    @pytest.mark.parametrize("current_number", [5, 1001, 1005])
    def test_update_current_rejects_other_values(self, api, memory_app, current_number):
        response = api.post(
            "/api/v1/numbering/update-current",
            json={"type": "invoice", "current_number": current_number},
            headers=auth(CLERK_TOKEN),
        )

        assert response.status_code == 400
        assert response.json()["type"] == "validation_error"
        assert memory_app.configs[DocumentType.INVOICE].current_number == 1001

    def test_check_duplicate(self, api, memory_app):
        memory_app.used_numbers.add((DocumentType.INVOICE, 1001))

        taken = api.post(
            "/api/v1/numbering/check-duplicate", json={"type": "invoice", "number": 1001}, headers=auth(CLERK_TOKEN)
        )
        free = api.post(
            "/api/v1/numbering/check-duplicate", json={"type": "invoice", "number": 1002}, headers=auth(CLERK_TOKEN)
        )

        assert taken.json() == {"is_duplicate": True}
        assert free.json() == {"is_duplicate": False}

    def test_allocate_next(self, api):
        first = api.post("/api/v1/numbering/next/invoice", headers=auth(CLERK_TOKEN))
        second = api.post("/api/v1/numbering/next/invoice", headers=auth(CLERK_TOKEN))

        assert first.json() == {"number": 1001, "current_number": 1002}
        assert second.json() == {"number": 1002, "current_number": 1003}

    def test_allocate_unknown_type(self, api):
        response = api.post("/api/v1/numbering/next/receipt", headers=auth(CLERK_TOKEN))

        assert response.status_code == 422


class TestAllocatorAgainstApi:
    """End-to-end: the client allocator talking to the FastAPI routes."""

    @pytest.fixture
    def allocator(self, fastapi_app, client_config):
        client_config.api_base_url = "http://lorrybook.test/api/v1"
        client_config.api_token = CLERK_TOKEN
        http = httpx.AsyncClient(transport=httpx.ASGITransport(app=fastapi_app))
        return NumberingAllocator(client_config, http)

    @pytest.mark.asyncio
    async def test_allocation_advances_server_counter(self, allocator, memory_app):
        assert await allocator.get_next_number("invoice") == 1001
        assert await allocator.get_next_number("invoice") == 1002

        assert memory_app.configs[DocumentType.INVOICE].current_number == 1003
        assert allocator.format_number("invoice", 1002) == "INV1002"

    @pytest.mark.asyncio
    async def test_manual_number_validation(self, allocator, memory_app):
        memory_app.used_numbers.add((DocumentType.CONSIGNMENT, 5100))

        assert (await allocator.validate_manual_number("consignment", 5100)).valid is False
        assert (await allocator.validate_manual_number("consignment", 5101)).valid is True

    @pytest.mark.asyncio
    async def test_save_requires_admin(self, allocator):
        with pytest.raises(SaveError, match="Admin privileges required") as exc_info:
            await allocator.save_config("invoice", 2000, "INV")

        assert exc_info.value.status_code == 403
