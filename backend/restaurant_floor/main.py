from contextlib import asynccontextmanager
from dataclasses import asdict

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import select

from restaurant_floor.config import settings
from restaurant_floor.core.database import engine, Base, async_session_maker
from restaurant_floor.core.logging_config import setup_logging, get_logger
from restaurant_floor.exceptions.order_exceptions import FloorError
from restaurant_floor.exceptions.printer_exceptions import PrintDispatchFailedError, PrinterError
from restaurant_floor.models import Worker, WorkerRole
from restaurant_floor.api.auth import router as auth_router
from restaurant_floor.api.dishes import router as dishes_router
from restaurant_floor.api.orders import router as orders_router
from restaurant_floor.api.receipts import router as receipts_router
from restaurant_floor.api.tables import router as tables_router
from restaurant_floor.services.auth_service import hash_password

setup_logging()
logger = get_logger(__name__)


async def ensure_superuser():
    """Создать администратора из настроек, если такого логина ещё нет."""
    async with async_session_maker() as session:
        r = await session.execute(select(Worker).where(Worker.login == settings.superuser_login))
        if r.scalar_one_or_none() is not None:
            return
        session.add(Worker(
            fullname=settings.superuser_name,
            role=WorkerRole.ADMIN,
            login=settings.superuser_login,
            password_hash=hash_password(settings.superuser_password),
            is_active=True,
        ))
        await session.commit()
        logger.info("Создан администратор: %s", settings.superuser_login)


@asynccontextmanager
async def lifespan(app: FastAPI):
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Таблицы БД проверены/созданы")
    try:
        await ensure_superuser()
    except Exception as e:
        logger.warning("Администратор: %s", e)
    yield
    await engine.dispose()


app = FastAPI(title="Зал ресторана", version="1.0.0", lifespan=lifespan)


@app.exception_handler(FloorError)
async def floor_error_handler(request: Request, exc: FloorError):
    logger.info("%s %s → %s: %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message, "error": exc.code})


@app.exception_handler(PrinterError)
async def printer_error_handler(request: Request, exc: PrinterError):
    content = {"detail": exc.message, "error": exc.code}
    if isinstance(exc, PrintDispatchFailedError):
        content["report"] = [asdict(r) for r in exc.report.results]
    return JSONResponse(status_code=exc.status_code, content=content)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Необработанная ошибка: %s", exc)
    detail = "Внутренняя ошибка сервера"
    err_str = str(exc).lower()
    if "duplicate key" in err_str or "unique constraint" in err_str:
        detail = "Конфликт данных (дубликат). Обновите страницу и повторите."
    elif "foreign key" in err_str:
        detail = "Ошибка связи с данными (например, сотрудник не найден). Выйдите и войдите снова."
    return JSONResponse(status_code=500, content={"detail": detail, "error": "internal_error"})

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


app.include_router(auth_router)
app.include_router(orders_router)
app.include_router(dishes_router)
app.include_router(tables_router)
app.include_router(receipts_router)


@app.get("/health")
def health():
    return {"status": "ok"}
