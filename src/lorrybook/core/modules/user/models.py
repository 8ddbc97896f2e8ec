from pydantic import BaseModel, Field

from lorrybook.core.db import MongoModel

ADMIN_USERNAME = "admin"


class User(MongoModel):
    """Operator account allowed to use the numbering API."""

    username: str
    password_hash: str  # bcrypt hash

    @property
    def is_admin(self) -> bool:
        return self.username == ADMIN_USERNAME


class UserView(BaseModel):
    """User account information (API representation)."""

    username: str = Field(..., description="Username")
    is_admin: bool = Field(..., description="Whether the user may change numbering settings")

    @classmethod
    def from_domain(cls, user: User) -> "UserView":
        return cls(username=user.username, is_admin=user.is_admin)
