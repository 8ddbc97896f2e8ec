from typing import Any
from uuid import UUID

import bcrypt
import structlog
from pymongo.asynchronous.database import AsyncDatabase

from lorrybook.core.core import Service
from lorrybook.core.modules.user.models import ADMIN_USERNAME, User
from lorrybook.core.modules.user.validators import validate_password
from lorrybook.errors import NotFoundError, ValidationError

logger = structlog.get_logger(__name__)


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


class UserService(Service):
    """Manages operator accounts with in-memory cache."""

    def __init__(self, database: AsyncDatabase[dict[str, Any]]) -> None:
        super().__init__(database)
        self._collection = database.get_collection("users")
        self._users: dict[UUID, User] = {}

    def get_user(self, user_id: UUID) -> User:
        if user_id not in self._users:
            raise NotFoundError(f"User '{user_id}' not found")
        return self._users[user_id]

    def get_user_by_username(self, username: str) -> User:
        user = next((u for u in self._users.values() if u.username == username), None)
        if user is None:
            raise NotFoundError(f"User '{username}' not found")
        return user

    def has_user(self, user_id: UUID) -> bool:
        return user_id in self._users

    def has_username(self, username: str) -> bool:
        return any(user.username == username for user in self._users.values())

    async def create_user(self, username: str, password: str) -> User:
        """Create user with hashed password."""
        if self.has_username(username):
            raise ValidationError(f"User '{username}' already exists")

        validate_password(password)
        user = User(username=username, password_hash=hash_password(password))
        res = await self._collection.insert_one(user.to_mongo())
        return await self.update_user_cache(res.inserted_id)

    def verify_password(self, username: str, password: str) -> bool:
        """Verify password against stored hash; unknown users never match."""
        user = next((u for u in self._users.values() if u.username == username), None)
        if user is None:
            return False
        return bcrypt.checkpw(password.encode("utf-8"), user.password_hash.encode("utf-8"))

    async def ensure_admin_user_exists(self) -> None:
        if not self.has_username(ADMIN_USERNAME):
            await self.create_user(ADMIN_USERNAME, self.core.config.admin_password)
            logger.info("admin_user_created")

    async def update_all_users_cache(self) -> None:
        users = await User.list_cursor(self._collection.find())
        self._users = {user.id: user for user in users}

    async def update_user_cache(self, user_id: UUID) -> User:
        user = await self._collection.find_one({"_id": user_id})
        if user is None:
            raise NotFoundError(f"User '{user_id}' not found")
        self._users[user_id] = User.model_validate(user)
        return self._users[user_id]

    async def on_start(self) -> None:
        """Initialize indexes, cache, and admin user."""
        await self._collection.create_index([("username", 1)], unique=True)
        await self.update_all_users_cache()
        await self.ensure_admin_user_exists()
        logger.debug("user_service_started", user_count=len(self._users))
