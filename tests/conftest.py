"""测试夹具：为 pytest 提供数据库、缓存与客户端的共享配置。"""

import os
from typing import Callable, Generator, Optional

TEST_DB_PATH = os.path.join(os.path.dirname(__file__), "test.db")
TEST_DATABASE_URL = f"sqlite:///{TEST_DB_PATH}"

# 必须在导入应用之前设置，保证模块级引擎与缓存使用测试配置
os.environ.setdefault("DATABASE_URL", TEST_DATABASE_URL)
os.environ.setdefault("CACHE_BACKEND", "memory")
os.environ.setdefault("SEED_DEFAULT_DEPARTMENTS", "false")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from app.main import app
from app.packages.hierarchy.core.actor import set_current_actor
from app.packages.hierarchy.core.cache import InMemoryCacheBackend, department_cache
from app.packages.hierarchy.core.dependencies import get_db
from app.packages.hierarchy.db import session as db_session
from app.packages.hierarchy.db.init_db import init_db
from app.packages.hierarchy.models import Department, Employee
from app.packages.hierarchy.services.department_service import department_service


@pytest.fixture(scope="session", autouse=True)
def setup_test_database() -> Generator[None, None, None]:
    """创建隔离的 SQLite 测试数据库，并在会话结束后清理。"""
    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)

    engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
    TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

    db_session.engine = engine
    db_session.SessionLocal = TestingSessionLocal

    init_db()
    yield

    engine.dispose()
    if os.path.exists(TEST_DB_PATH):
        os.remove(TEST_DB_PATH)


@pytest.fixture(autouse=True)
def clean_state() -> Generator[None, None, None]:
    """每个用例前清空部门、员工与缓存，保证用例之间互不影响。"""
    cache_backend = InMemoryCacheBackend()
    department_cache.use_backend(cache_backend)
    set_current_actor(None)
    session = db_session.SessionLocal()
    try:
        session.query(Employee).delete()
        session.query(Department).delete()
        session.commit()
    finally:
        session.close()
    yield
    set_current_actor(None)


@pytest.fixture()
def db_session_fixture() -> Generator[Session, None, None]:
    """提供给测试用例使用的数据库会话。"""
    session = db_session.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture()
def make_department(db_session_fixture: Session) -> Callable[..., Department]:
    """通过引擎创建部门，名称默认取编码。"""

    def _make(code: str, parent: Optional[Department] = None, **kwargs) -> Department:
        kwargs.setdefault("name", f"{code} Department")
        return department_service.create(
            db_session_fixture,
            code=code,
            parent_id=parent.id if parent is not None else None,
            **kwargs,
        )

    return _make


@pytest.fixture()
def add_employee(db_session_fixture: Session) -> Callable[..., Employee]:
    def _add(department: Department, *, name: str = "Alice", is_active: bool = True) -> Employee:
        employee = Employee(name=name, department_id=department.id, is_active=is_active)
        db_session_fixture.add(employee)
        db_session_fixture.commit()
        return employee

    return _add


@pytest.fixture()
def client(db_session_fixture):
    """构建 FastAPI TestClient，并注入测试专用的数据库依赖。"""
    def override_get_db() -> Generator[Session, None, None]:
        session = db_session.SessionLocal()
        try:
            yield session
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()
