from fastapi import APIRouter
from app.api.v1.endpoints import admin, auth, exam, mark, student

api_router = APIRouter()
api_router.include_router(auth.router)
api_router.include_router(exam.router)
api_router.include_router(student.router)
api_router.include_router(mark.router)
api_router.include_router(admin.router)
