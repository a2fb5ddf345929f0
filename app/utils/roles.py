from enum import Enum
from typing import Annotated, List, Optional

from fastapi import Cookie, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.database import get_db
from app.core.logger import logger
from app.core.jwt import verify_token
from app.models import User

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)

TOKEN_COOKIE_NAME = "token"


class Role(str, Enum):
    ADMIN = "ADMIN"
    STUDENT = "STUDENT"
    MARKER = "MARKER"


async def get_current_user(
        bearer_token: Optional[str] = Depends(oauth2_scheme),
        cookie_token: Optional[str] = Cookie(None, alias=TOKEN_COOKIE_NAME),
        db: AsyncSession = Depends(get_db),
) -> dict:
    """
    Зависимость для получения текущего пользователя из JWT-токена.

    Токен берется сначала из заголовка Authorization, затем из cookie сессии.
    Пользователь перечитывается из базы, поэтому токен удаленной учетной
    записи перестает действовать.

    Returns:
        dict: id, email, name и role аутентифицированного пользователя

    Raises:
        HTTPException: 401, если токена нет, он неверен или истек, либо пользователь удален
    """
    token = bearer_token or cookie_token
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    user_data = verify_token(token)
    if not user_data:
        logger.warning("[АУТЕНТИФИКАЦИЯ] Неверный или истекший токен")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    result = await db.execute(select(User).where(User.id == user_data["id"]))
    user = result.scalar_one_or_none()
    if not user:
        logger.warning(f"[АУТЕНТИФИКАЦИЯ] Владелец токена больше не существует: {user_data.get('sub')}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="User not found",
            headers={"WWW-Authenticate": "Bearer"},
        )

    return {"id": user.id, "email": user.email, "name": user.name, "role": Role(user.role)}


def require_roles(allowed_roles: List[Role]):
    """
    Фабрика зависимостей для проверки, что текущий пользователь имеет одну из разрешённых ролей.

    Args:
        allowed_roles (List[Role]): Роли, которым разрешен доступ к эндпоинту.

    Returns:
        Callable: Зависимость, возвращающая текущего пользователя или 403.
    """
    async def role_checker(current_user: dict = Depends(get_current_user)):
        if current_user["role"] not in allowed_roles:
            logger.warning(
                f"[АВТОРИЗАЦИЯ] Запрет доступа для пользователя '{current_user['email']}' | "
                f"Роль: {current_user['role'].value} | Требуется: {', '.join(r.value for r in allowed_roles)}"
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient permissions"
            )

        return current_user

    return role_checker


CurrentUser = Annotated[dict, Depends(get_current_user)]
AdminUser = Annotated[dict, Depends(require_roles([Role.ADMIN]))]
StudentUser = Annotated[dict, Depends(require_roles([Role.STUDENT]))]
MarkerUser = Annotated[dict, Depends(require_roles([Role.MARKER]))]
StaffUser = Annotated[dict, Depends(require_roles([Role.MARKER, Role.ADMIN]))]
