from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from lorrybook.config import Config
from lorrybook.core.core import Core
from lorrybook.core.modules.numbering.models import DocumentType, NumberingConfig
from lorrybook.core.modules.session.models import AuthToken
from lorrybook.core.modules.user.models import UserView
from lorrybook.errors import AuthenticationError


class App:
    """Facade for all application operations, validates permissions before delegating to Core."""

    def __init__(self, config: Config) -> None:
        self._core = Core(config)

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        async with self._core.lifespan():
            yield

    async def is_auth_token_valid(self, auth_token: AuthToken) -> bool:
        return await self._core.services.session.is_auth_token_valid(auth_token)

    async def login(self, username: str, password: str) -> AuthToken:
        """Authenticate user and create session."""
        if not self._core.services.user.verify_password(username, password):
            raise AuthenticationError("Invalid username or password")
        user = self._core.services.user.get_user_by_username(username)
        return await self._core.services.session.create_session(user.id)

    async def logout(self, auth_token: AuthToken) -> None:
        await self._core.services.access.ensure_authenticated(auth_token)
        await self._core.services.session.invalidate_session(auth_token)

    async def get_current_user(self, auth_token: AuthToken) -> UserView:
        current_user = await self._core.services.access.ensure_authenticated(auth_token)
        return UserView.from_domain(current_user)

    async def get_numbering_configs(self, auth_token: AuthToken) -> list[NumberingConfig]:
        """Get configurations of every document type."""
        await self._core.services.access.ensure_authenticated(auth_token)
        return self._core.services.numbering.get_all_configs()

    async def save_numbering_config(
        self, auth_token: AuthToken, document_type: DocumentType, starting_number: int, prefix: str
    ) -> NumberingConfig:
        """Create or replace a configuration (admin only)."""
        await self._core.services.access.ensure_admin(auth_token)
        return await self._core.services.numbering.save_config(document_type, starting_number, prefix)

    async def update_current_number(
        self, auth_token: AuthToken, document_type: DocumentType, current_number: int
    ) -> NumberingConfig:
        await self._core.services.access.ensure_authenticated(auth_token)
        return await self._core.services.numbering.update_current_number(document_type, current_number)

    async def check_duplicate_number(self, auth_token: AuthToken, document_type: DocumentType, number: int) -> bool:
        await self._core.services.access.ensure_authenticated(auth_token)
        return await self._core.services.numbering.check_duplicate(document_type, number)

    async def allocate_next_number(
        self, auth_token: AuthToken, document_type: DocumentType
    ) -> tuple[int, NumberingConfig]:
        """Atomically allocate the next number of a type."""
        await self._core.services.access.ensure_authenticated(auth_token)
        return await self._core.services.numbering.allocate_next(document_type)
