from collections.abc import Callable
from typing import Annotated

from fastapi import Depends, HTTPException, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from app.core.config import Settings, get_settings
from app.users.models import Role, User, UserDirectory

bearer_scheme = HTTPBearer(auto_error=False)


async def resolve_user_from_token(
    token: str | None,
    *,
    settings: Settings,
    users: UserDirectory | None,
) -> User | None:
    """Map a bearer token to an active user, or ``None`` when it is unknown.

    Tokens are issued elsewhere; this side only knows the token to user id
    table from settings and the user directory.
    """

    if not token:
        return None
    user_id = settings.auth_tokens.get(token)
    if user_id is None or users is None:
        return None
    user = await users.get_user(user_id)
    if user is None or not user.is_active:
        return None
    return user


async def get_current_user(
    request: Request,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Security(bearer_scheme)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> User:
    if credentials is None:
        raise HTTPException(status_code=401, detail="Not authenticated")

    users = getattr(request.app.state, "user_directory", None)
    if users is None:
        raise HTTPException(status_code=503, detail="User directory is not configured")

    user = await resolve_user_from_token(credentials.credentials, settings=settings, users=users)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid authentication credentials")
    return user


def role_required(role: Role) -> Callable[[User], User]:
    """Dependency factory ensuring the current user has the requested role."""

    async def dependency(user: Annotated[User, Depends(get_current_user)]) -> User:
        if not user.has_role(role):
            raise HTTPException(status_code=403, detail="Insufficient permissions")
        return user

    return dependency


require_admin = role_required(Role.ADMIN)

CurrentUser = Annotated[User, Depends(get_current_user)]
AdminUser = Annotated[User, Depends(require_admin)]
