from lorrybook.core.core import Service
from lorrybook.core.modules.session.models import AuthToken
from lorrybook.core.modules.user.models import User
from lorrybook.errors import AccessDeniedError


class AccessService(Service):
    async def ensure_authenticated(self, auth_token: AuthToken) -> User:
        return await self.core.services.session.get_authenticated_user(auth_token)

    async def ensure_admin(self, auth_token: AuthToken) -> User:
        """Ensure the authenticated user is admin, raise AccessDeniedError if not."""
        user = await self.core.services.session.get_authenticated_user(auth_token)
        if not user.is_admin:
            raise AccessDeniedError("Admin privileges required to change numbering settings")
        return user
