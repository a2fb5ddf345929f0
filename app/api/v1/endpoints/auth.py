from fastapi import APIRouter, HTTPException, Depends, Response, status
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import SQLAlchemyError

from app.core.config import settings
from app.core.database import get_db
from app.core.exceptions import PortalError
from app.core.logger import logger
from app.services.auth import AuthService
from app.api.v1.schemas.auth import RegisterRequest, LoginRequest, TokenResponse, UserResponse
from app.utils.roles import CurrentUser, TOKEN_COOKIE_NAME

router = APIRouter(prefix="/auth", tags=["Auth"])


def _set_token_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=TOKEN_COOKIE_NAME,
        value=token,
        httponly=True,
        secure=settings.ENVIRONMENT == "production",
        samesite="strict",
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
        data: RegisterRequest,
        response: Response,
        db: AsyncSession = Depends(get_db)
):
    """
    Регистрация пользователя с последующим входом.

    Студенты регистрируются свободно, для ADMIN и MARKER нужен секретный ключ
    соответствующей роли.

    Raises:
        HTTPException: 400 - Email уже зарегистрирован
                       401 - Неверный секретный ключ
    """
    try:
        user = await AuthService.register_user(
            data.name, data.email, data.password, data.role, data.secret_key, db
        )
    except PortalError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail) from e
    except SQLAlchemyError as e:
        logger.error(f"[РЕГИСТРАЦИЯ] Ошибка регистрации для {data.email}: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Registration failed"
        ) from e

    token = AuthService.create_token(user)
    _set_token_cookie(response, token)
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))


@router.post("/login", response_model=TokenResponse)
async def login(
        credentials: LoginRequest,
        response: Response,
        db: AsyncSession = Depends(get_db)
):
    """
    Аутентификация по email и паролю с выдачей JWT.

    Токен возвращается в теле ответа и устанавливается в httpOnly cookie.

    Raises:
        HTTPException: 401 - Неверные учетные данные
    """
    try:
        user = await AuthService.authenticate_user(credentials.email, credentials.password, db)
    except PortalError as e:
        raise HTTPException(status_code=e.status_code, detail=e.detail) from e

    token = AuthService.create_token(user)
    _set_token_cookie(response, token)
    return TokenResponse(access_token=token, user=UserResponse.model_validate(user))


@router.post("/logout", status_code=status.HTTP_200_OK)
async def logout(response: Response):
    response.delete_cookie(TOKEN_COOKIE_NAME)
    return {"detail": "Logged out"}


@router.get("/me", response_model=UserResponse)
async def me(current_user: CurrentUser):
    return UserResponse(**current_user)
