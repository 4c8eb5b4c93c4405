"""
Pytest 公共配置和 Fixtures

提供测试所需的公共资源：
- 内存数据库（支持 SAVEPOINT）
- 绑定 CoreModel.query 的 scoped_session
- 临时文件
"""

import os
import tempfile
from typing import Generator

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session, Session
from sqlalchemy.pool import StaticPool

from ycascade.config import reset_cascade_settings
from ycascade.middleware.current_user import clear_current_user_id
from ycascade.orm import Base, CoreModel, enable_sqlite_savepoints


# ==================== 基础 Fixtures ====================

@pytest.fixture(scope="session")
def temp_dir():
    """创建临时目录"""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield tmpdir


@pytest.fixture
def temp_file(temp_dir):
    """创建临时文件的工厂函数"""
    created_files = []

    def _create_file(filename: str, content: str = "") -> str:
        filepath = os.path.join(temp_dir, filename)
        if os.path.dirname(filepath):
            os.makedirs(os.path.dirname(filepath), exist_ok=True)
        with open(filepath, "w", encoding="utf-8") as f:
            f.write(content)
        created_files.append(filepath)
        return filepath

    yield _create_file

    for f in created_files:
        if os.path.exists(f):
            os.remove(f)


@pytest.fixture(autouse=True)
def reset_global_state():
    """每个测试后恢复全局配置与当前用户"""
    yield
    reset_cascade_settings()
    clear_current_user_id()


# ==================== 数据库 Fixtures ====================

@pytest.fixture(scope="function")
def memory_engine():
    """创建内存数据库引擎

    StaticPool + check_same_thread=False：所有操作共用一个连接；
    enable_sqlite_savepoints：让 begin_nested() 的 SAVEPOINT 生效。
    """
    engine = create_engine(
        "sqlite:///:memory:",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_savepoints(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(memory_engine) -> Generator[Session, None, None]:
    """创建所有表并返回绑定到 CoreModel.query 的 session（关闭 autoflush）"""
    Base.metadata.create_all(bind=memory_engine)
    SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=memory_engine)
    session_scope = scoped_session(SessionLocal)
    CoreModel.query = session_scope.query_property()
    session = session_scope()
    try:
        yield session
    finally:
        session_scope.remove()
        CoreModel.query = None
