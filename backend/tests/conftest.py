"""Фикстуры для тестов API: sqlite-файл на тест, поддельные принтеры и шина событий."""
import os

# До импорта приложения: настройки читаются при импорте
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET", "test-secret")

from decimal import Decimal
from functools import lru_cache
from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, select
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine
from sqlalchemy.orm import Session
from sqlalchemy.pool import NullPool

from restaurant_floor.core.database import get_db
from restaurant_floor.core.printers import PrinterConfig, PrinterEndpoint
from restaurant_floor.models import Base, Dish, DishCategory, Order, Table, Worker, WorkerRole
from restaurant_floor.services.auth_service import create_access_token, hash_password
from restaurant_floor.services.events import EventBus, get_event_bus
from restaurant_floor.services.print_dispatch import PrintDispatcher, get_dispatcher
from restaurant_floor.services.printer_client import PrinterClient

PASSWORD = "secret"

FOOD_PRINTER = "10.0.0.1"
SHASHLIK_PRINTER = "10.0.0.2"
SALAD_PRINTER = "10.0.0.3"
DRINK_PRINTER = "10.0.0.4"
RECEIPT_PRINTER = "10.0.0.9"

# dessert и other намеренно без принтера
PRINTERS = PrinterConfig(
    stations={
        "food": PrinterEndpoint(FOOD_PRINTER),
        "shashlik": PrinterEndpoint(SHASHLIK_PRINTER),
        "salad": PrinterEndpoint(SALAD_PRINTER),
        "drink": PrinterEndpoint(DRINK_PRINTER),
    },
    receipt=PrinterEndpoint(RECEIPT_PRINTER),
)


@lru_cache(maxsize=None)
def password_hash() -> str:
    return hash_password(PASSWORD)


async def no_sleep(_delay):
    return None


class FakeDevice:
    """Подмена escpos Network: пишет текст в память."""

    def __init__(self, farm, host, port, timeout=None):
        self.farm = farm
        self.host = host
        self.port = port
        self.timeout = timeout
        self.output = []
        self.opened = False
        self.closed = False

    def open(self):
        if self.farm.failures.get(self.host, 0) > 0:
            self.farm.failures[self.host] -= 1
            raise OSError(f"connection refused: {self.host}")
        self.opened = True

    def set(self, **kwargs):
        pass

    def text(self, txt):
        if self.host in self.farm.broken_write:
            raise OSError("broken pipe")
        if self.host in self.farm.broken_driver:
            raise RuntimeError("codepage table is corrupted")
        self.output.append(txt)

    def cut(self):
        self.output.append("<cut>")

    def close(self):
        self.closed = True


class FakePrinterFarm:
    def __init__(self):
        self.devices = []
        # host → сколько подключений ещё упадёт
        self.failures = {}
        self.broken_write = set()
        # хосты, где драйвер падает не сетевой ошибкой
        self.broken_driver = set()

    def __call__(self, host, port, timeout=None):
        device = FakeDevice(self, host, port, timeout)
        self.devices.append(device)
        return device

    def printed(self, host):
        return ["".join(d.output) for d in self.devices if d.host == host and d.output]

    def unreachable(self, host):
        self.failures[host] = float("inf")


class RecordingBus(EventBus):
    def __init__(self):
        super().__init__()
        self.events = []
        self.subscribe(self._record)

    async def _record(self, event, payload):
        self.events.append((event, payload))

    def names(self):
        return [e for e, _ in self.events]


class FloorDB:
    """Синхронный доступ к той же sqlite-базе: сидирование и проверки после запросов."""

    def __init__(self, path):
        self.engine = create_engine(f"sqlite:///{path}")
        Base.metadata.create_all(self.engine)

    def add(self, *objs):
        with Session(self.engine, expire_on_commit=False) as s:
            s.add_all(objs)
            s.commit()
        return objs

    def scalar(self, stmt):
        with Session(self.engine) as s:
            return s.scalar(stmt)

    def stock(self, dish_id):
        return self.scalar(select(Dish.quantity).where(Dish.id == dish_id))

    def table(self, table_id):
        with Session(self.engine, expire_on_commit=False) as s:
            return s.get(Table, table_id)

    def order(self, order_id):
        with Session(self.engine, expire_on_commit=False) as s:
            return s.get(Order, order_id)

    def order_count(self):
        with Session(self.engine) as s:
            return len(s.scalars(select(Order.id)).all())


@pytest.fixture
def db(tmp_path):
    floor_db = FloorDB(tmp_path / "floor.db")
    yield floor_db
    floor_db.engine.dispose()


@pytest.fixture
def floor(db):
    """Сотрудники, меню и два свободных стола."""
    admin = Worker(fullname="Admin", role=WorkerRole.ADMIN, login="admin", password_hash=password_hash())
    waiter = Worker(fullname="Aziz", role=WorkerRole.WAITER, login="aziz", password_hash=password_hash())
    waiter2 = Worker(fullname="Bobur", role=WorkerRole.WAITER, login="bobur", password_hash=password_hash())
    chef = Worker(fullname="Chef", role=WorkerRole.CHEF, login="chef", password_hash=password_hash())
    fired = Worker(fullname="Fired", role=WorkerRole.WAITER, login="fired",
                   password_hash=password_hash(), is_active=False)
    db.add(admin, waiter, waiter2, chef, fired)

    osh = Dish(name="Osh", price=Decimal("45000"), category=DishCategory.FOOD, quantity=10)
    shashlik = Dish(name="Shashlik Klassik", price=Decimal("20000"), category=DishCategory.FOOD, quantity=5)
    salad = Dish(name="Achichuk", price=Decimal("8000"), category=DishCategory.SALAD, quantity=10)
    cola = Dish(name="Cola", price=Decimal("12000"), category=DishCategory.DRINK, quantity=20)
    napoleon = Dish(name="Napoleon", price=Decimal("15000"), category=DishCategory.DESSERT, quantity=3)
    db.add(osh, shashlik, salad, cola, napoleon)

    table1 = Table(number=1)
    table2 = Table(number=2)
    db.add(table1, table2)
    return SimpleNamespace(
        admin=admin, waiter=waiter, waiter2=waiter2, chef=chef, fired=fired,
        osh=osh, shashlik=shashlik, salad=salad, cola=cola, napoleon=napoleon,
        table1=table1, table2=table2,
    )


@pytest.fixture
def farm():
    return FakePrinterFarm()


@pytest.fixture
def bus():
    return RecordingBus()


@pytest.fixture
def client(tmp_path, db, farm, bus):
    """Тестовый клиент приложения поверх sqlite-файла теста."""
    from restaurant_floor.main import app

    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'floor.db'}", poolclass=NullPool)
    session_maker = async_sessionmaker(engine, expire_on_commit=False)

    async def override_get_db():
        async with session_maker() as session:
            try:
                yield session
                await session.commit()
            except Exception:
                await session.rollback()
                raise

    def override_dispatcher():
        return PrintDispatcher(PRINTERS, PrinterClient(device_factory=farm, sleep=no_sleep))

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_dispatcher] = override_dispatcher
    app.dependency_overrides[get_event_bus] = lambda: bus
    yield TestClient(app)
    app.dependency_overrides.clear()


def auth_headers(worker) -> dict:
    token = create_access_token(worker.id, worker.role.value, worker.fullname, worker.login or "")
    return {"Authorization": f"Bearer {token}"}


def create_order(client, worker, table, *lines):
    """lines: (dish, quantity)."""
    body = {
        "table_id": table.id,
        "items": [{"dish_id": dish.id, "quantity": q} for dish, q in lines],
    }
    return client.post("/orders", json=body, headers=auth_headers(worker))
