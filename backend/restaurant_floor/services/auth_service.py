"""Пароли сотрудников (bcrypt) и JWT для входа в систему зала."""
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
import jwt
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from restaurant_floor.config import settings
from restaurant_floor.models import Worker


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))


def create_access_token(worker_id: int, role: str, fullname: str, login: str) -> str:
    now = datetime.utcnow()
    payload = {
        # PyJWT требует строковый sub
        "sub": str(worker_id),
        "role": role,
        "name": fullname,
        "login": login,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_expire_minutes),
    }
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    try:
        return jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError:
        return None


async def authenticate(db: AsyncSession, login: str, password: str) -> Optional[Worker]:
    """Активный сотрудник с таким логином (без учёта регистра) и верным паролем, иначе None."""
    login = (login or "").strip().lower()
    if not login:
        return None
    worker = await db.scalar(
        select(Worker).where(func.lower(Worker.login) == login, Worker.is_active == True)
    )
    if worker is None or not worker.password_hash:
        return None
    if not verify_password(password, worker.password_hash):
        return None
    return worker
