from typing import Optional
from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.exc import IntegrityError

from app.core.config import settings
from app.core.exceptions import EmailAlreadyRegistered, InvalidCredentials, InvalidSecretKey
from app.core.jwt import create_access_token
from app.core.logger import logger
from app.models import User
from app.utils.clock import utcnow
from app.utils.roles import Role
from app.utils.security import hash_password, verify_password


class AuthService:
    @staticmethod
    def verify_secret_key(secret_key: Optional[str], role: Role) -> bool:
        """
        Проверка секретного ключа регистрации для роли.

        Студенты регистрируются свободно, администраторы и проверяющие должны
        предъявить ключ, настроенный для их роли.

        Args:
            secret_key: Ключ из запроса на регистрацию
            role: Запрашиваемая роль

        Returns:
            bool: True, если ключ подходит для роли
        """
        if role == Role.STUDENT:
            return True

        valid_key = settings.ADMIN_KEY if role == Role.ADMIN else settings.MARKER_KEY

        if secret_key == valid_key:
            logger.info(f"[ПРОВЕРКА КЛЮЧА] Ключ принят для роли {role.value}")
            return True

        logger.warning(f"[ПРОВЕРКА КЛЮЧА] Неверный ключ для роли {role.value}")
        return False

    @staticmethod
    async def register_user(
            name: str,
            email: str,
            password: str,
            role: Role,
            secret_key: Optional[str],
            db: AsyncSession
    ) -> User:
        """
        Регистрация нового пользователя.

        Args:
            name: Отображаемое имя
            email: Уникальный email для входа
            password: Пароль в открытом виде, хранится как bcrypt-хэш
            role: ADMIN, STUDENT или MARKER
            secret_key: Ключ регистрации для привилегированных ролей
            db: Асинхронная сессия SQLAlchemy

        Returns:
            User: Созданный пользователь

        Raises:
            InvalidSecretKey: Привилегированная роль запрошена без верного ключа
            EmailAlreadyRegistered: Email уже занят
        """
        if not AuthService.verify_secret_key(secret_key, role):
            raise InvalidSecretKey()

        email = email.lower()
        result = await db.execute(select(User.id).where(User.email == email))
        if result.first():
            logger.warning(f"[РЕГИСТРАЦИЯ] Email уже зарегистрирован: {email}")
            raise EmailAlreadyRegistered()

        user = User(
            name=name,
            email=email,
            password=hash_password(password),
            role=role.value,
            created_at=utcnow(),
        )
        db.add(user)
        try:
            await db.commit()
        except IntegrityError as e:
            await db.rollback()
            logger.warning(f"[РЕГИСТРАЦИЯ] Параллельная регистрация для {email}")
            raise EmailAlreadyRegistered() from e

        logger.info(f"[РЕГИСТРАЦИЯ] Пользователь {email} зарегистрирован с ролью {role.value}")
        return user

    @staticmethod
    async def authenticate_user(email: str, password: str, db: AsyncSession) -> User:
        """
        Поиск пользователя по email и проверка пароля.

        Raises:
            InvalidCredentials: Неизвестный email или неверный пароль
        """
        email = email.lower()
        result = await db.execute(select(User).where(User.email == email))
        user = result.scalar_one_or_none()

        if not user or not verify_password(password, user.password):
            logger.warning(f"[АУТЕНТИФИКАЦИЯ] Неудачный вход для {email}")
            raise InvalidCredentials()

        logger.info(f"[АУТЕНТИФИКАЦИЯ] Успешный вход: {email}, роль: {user.role}")
        return user

    @staticmethod
    def create_token(user: User) -> str:
        return create_access_token(
            data={"sub": user.email, "id": user.id, "role": user.role, "name": user.name},
            expires_delta=timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES)
        )
