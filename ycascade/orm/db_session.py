"""
数据库会话管理模块

公开 API:
- db_manager: 数据库管理器单例
- init_database(): 初始化数据库连接
- get_engine(): 获取数据库引擎
- get_db(): FastAPI 依赖
- db_session_scope(): 非 HTTP 场景的上下文管理器
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Generator

from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, scoped_session, Session
from sqlalchemy.pool import StaticPool

from ..log import get_logger

_logger = get_logger("ycascade.orm.session")

__all__ = [
    'DatabaseManager',
    'db_manager',
    'init_database',
    'get_engine',
    'get_db',
    'db_session_scope',
    'enable_sqlite_savepoints',
]


def enable_sqlite_savepoints(engine):
    """让 pysqlite 驱动正确支持 SAVEPOINT

    pysqlite 默认会延迟发出 BEGIN，导致 Session.begin_nested() 的 SAVEPOINT
    不在事务内。这里关闭驱动自身的事务处理，改由 SQLAlchemy 显式发出 BEGIN。
    """
    @event.listens_for(engine, "connect")
    def _disable_pysqlite_transaction(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _emit_begin(conn):
        conn.exec_driver_sql("BEGIN")

    return engine


class DatabaseManager:
    """数据库管理器（单例）

    使用示例:
        from ycascade.orm import db_manager

        db_manager.init(database_url="sqlite:///./app.db")
        session = db_manager.get_session()
    """
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return
        self._engine = None
        self._session_scope = None
        self._initialized = True

    @property
    def engine(self):
        """获取数据库引擎（只读）

        Raises:
            RuntimeError: 数据库未初始化时
        """
        if self._engine is None:
            raise RuntimeError("数据库未初始化，请先调用 init_database()")
        return self._engine

    @property
    def session_scope(self) -> scoped_session:
        if self._session_scope is None:
            raise RuntimeError("数据库未初始化，请先调用 init_database()")
        return self._session_scope

    @property
    def is_initialized(self) -> bool:
        return self._engine is not None and self._session_scope is not None

    def init(
        self,
        database_url: str = None,
        echo: bool = False,
        pool_size: int = 5,
        max_overflow: int = 10,
        pool_timeout: int = 30,
        pool_recycle: int = 3600,
        pool_pre_ping: bool = True,
        logger: logging.Logger = None,
        scopefunc: Callable = None,
        config: Any = None,
        auto_setup_query: bool = True,
    ):
        """初始化数据库连接

        Args:
            database_url: 数据库连接URL（如果提供 config 则忽略）
            echo: 是否输出SQL语句
            config: 数据库配置对象（DatabaseSettings），提供后自动提取配置
            scopefunc: scoped_session 作用域函数，默认按线程
            auto_setup_query: 是否自动设置 CoreModel.query 属性

        Returns:
            tuple: (engine, session_scope)
        """
        if config is not None:
            database_url = getattr(config, "url", database_url)
            echo = getattr(config, "echo", echo)
            pool_size = getattr(config, "pool_size", pool_size)
            max_overflow = getattr(config, "max_overflow", max_overflow)
            pool_timeout = getattr(config, "pool_timeout", pool_timeout)
            pool_recycle = getattr(config, "pool_recycle", pool_recycle)
            pool_pre_ping = getattr(config, "pool_pre_ping", pool_pre_ping)

        if not database_url:
            raise ValueError("database_url 是必需的，请通过参数或 config 提供")

        logger = logger or _logger
        logger.info(f"数据库配置URL: {database_url}")

        if database_url.startswith("sqlite"):
            db_path = database_url.split("///", 1)[-1]
            if db_path in ("", ":memory:"):
                # 内存数据库：单连接
                self._engine = create_engine(
                    database_url,
                    echo=echo,
                    connect_args={"check_same_thread": False},
                    poolclass=StaticPool,
                )
                logger.info("SQLite内存数据库引擎创建成功（StaticPool）")
            else:
                self._engine = create_engine(
                    database_url,
                    echo=echo,
                    connect_args={"check_same_thread": False, "timeout": pool_timeout},
                )
                logger.info("SQLite文件数据库引擎创建成功")
            enable_sqlite_savepoints(self._engine)
        else:
            self._engine = create_engine(
                database_url,
                echo=echo,
                pool_pre_ping=pool_pre_ping,
                pool_size=pool_size,
                max_overflow=max_overflow,
                pool_timeout=pool_timeout,
                pool_recycle=pool_recycle,
            )
            logger.info("数据库引擎创建成功")

        session_maker = sessionmaker(autocommit=False, autoflush=True, bind=self._engine)
        self._session_scope = scoped_session(session_maker, scopefunc=scopefunc)

        if auto_setup_query:
            from .core_model import CoreModel
            CoreModel.query = self._session_scope.query_property()
            logger.info("CoreModel.query 属性已自动设置")

        return self._engine, self._session_scope

    def get_session(self) -> Session:
        """获取当前作用域的 session（低级 API）"""
        return self.session_scope()

    def cleanup(self):
        """移除当前作用域的 session，归还连接（幂等）"""
        if self._session_scope is not None:
            self._session_scope.remove()

    def dispose(self):
        """释放引擎（主要用于测试）"""
        self.cleanup()
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._session_scope = None


db_manager = DatabaseManager()


def init_database(database_url: str = None, **kwargs):
    """初始化数据库连接，参数见 DatabaseManager.init()"""
    return db_manager.init(database_url=database_url, **kwargs)


def get_engine():
    return db_manager.engine


@contextmanager
def db_session_scope(auto_commit: bool = True) -> Generator[Session, None, None]:
    """非 HTTP 场景的 session 上下文管理器

    使用示例:
        with db_session_scope() as session:
            order = Order(code="A001")
            order.save()
        # 自动提交并清理
    """
    session = db_manager.get_session()
    try:
        yield session
        if auto_commit:
            session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        db_manager.cleanup()


def get_db() -> Generator[Session, None, None]:
    """获取数据库 session（FastAPI 依赖注入）

    使用示例:
        @app.post("/orders")
        def create_order(db: Session = Depends(get_db)):
            ...
    """
    with db_session_scope() as session:
        yield session
