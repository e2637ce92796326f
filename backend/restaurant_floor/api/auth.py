"""Авторизация: логин+пароль → JWT, проверка роли на маршрутах."""
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer, OAuth2PasswordRequestForm
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_floor.core.database import get_db
from restaurant_floor.core.logging_config import get_logger
from restaurant_floor.core.permissions import (
    Operation,
    allowed_operations,
    allowed_roles,
)
from restaurant_floor.models import Worker, WorkerRole
from restaurant_floor.services.auth_service import authenticate, create_access_token, decode_token
from restaurant_floor.services.lookups import get_worker

router = APIRouter(prefix="/auth", tags=["auth"])
security = HTTPBearer(auto_error=False)
logger = get_logger(__name__)


class UserInfo(BaseModel):
    id: int
    name: str
    role: str
    login: str


class LoginResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: UserInfo


class MeResponse(UserInfo):
    operations: List[str]


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> Optional[UserInfo]:
    if credentials is None or credentials.scheme.lower() != "bearer":
        return None
    payload = decode_token(credentials.credentials)
    if not payload or "sub" not in payload:
        logger.warning("Токен не прошёл проверку (неверный или истёк)")
        return None
    return UserInfo(
        id=int(payload["sub"]),
        name=payload.get("name", ""),
        role=payload.get("role", ""),
        login=payload.get("login", ""),
    )


def require_roles(roles: List[WorkerRole]):
    async def _check(current_user: Optional[UserInfo] = Depends(get_current_user)) -> UserInfo:
        if not current_user:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Требуется авторизация",
                headers={"WWW-Authenticate": "Bearer"},
            )
        try:
            role = WorkerRole(current_user.role)
        except ValueError:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Неизвестная роль")
        if role not in roles:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Недостаточно прав")
        return current_user
    return _check


def require_operation(operation: Operation):
    """Зависимость маршрута: роль из токена должна допускать операцию."""
    return require_roles(allowed_roles(operation))


RequireAnyAuth = require_roles(list(WorkerRole))


async def current_worker(
    current_user: UserInfo = Depends(RequireAnyAuth),
    db: AsyncSession = Depends(get_db),
) -> Worker:
    """Сотрудник из БД по токену. Роль дальше проверяет сервис уже по записи, а не по токену."""
    return await get_worker(db, current_user.id)


@router.post("/login", response_model=LoginResponse)
async def login(
    form: OAuth2PasswordRequestForm = Depends(),
    db: AsyncSession = Depends(get_db),
):
    worker = await authenticate(db, form.username, form.password)
    if worker is None:
        logger.warning("Неудачный вход: %s", form.username)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Неверный логин или пароль",
        )
    token = create_access_token(worker.id, worker.role.value, worker.fullname, worker.login or "")
    return LoginResponse(
        access_token=token,
        user=UserInfo(id=worker.id, name=worker.fullname, role=worker.role.value, login=worker.login or ""),
    )


@router.get("/me", response_model=MeResponse)
async def me(current_user: UserInfo = Depends(RequireAnyAuth)):
    """Текущий пользователь и операции, доступные его роли."""
    return MeResponse(**current_user.model_dump(), operations=allowed_operations(current_user.role))


