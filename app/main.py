from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from app.core.config import settings
from app.core.logger import logger
from contextlib import asynccontextmanager
from app.core.database import engine, Base
from app.api.v1.api import api_router
from app import models  # noqa: F401  регистрирует таблицы в Base.metadata


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info(f"Starting {settings.PROJECT_NAME} in {settings.ENVIRONMENT} environment")
    logger.debug(f"Database URL: {settings.DATABASE_URL}")
    logger.debug(f"Secret Key: {'*' * len(settings.SECRET_KEY)} (hidden)")

    try:
        async with engine.begin() as conn:
            await conn.run_sync(Base.metadata.create_all)
        logger.success("База данных успешно инициализирована!")
    except Exception as e:
        logger.critical(f"Ошибка инициализации базы данных: {e}")
        raise

    yield

    logger.info(f"Shutting down {settings.PROJECT_NAME}")
    await engine.dispose()
    logger.debug("Database engine disposed")

app = FastAPI(title=settings.PROJECT_NAME, version="1.0.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router, prefix=settings.API_V1_STR)
