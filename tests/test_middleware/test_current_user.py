"""当前用户中间件测试

测试覆盖：
- ContextVar 操作：set_current_user_id, get_current_user_id, clear_current_user_id
- X-User-ID 请求头解析
- CurrentUserMiddleware 中间件与路径跳过
"""

import pytest
from fastapi import FastAPI, Request
from fastapi.testclient import TestClient

from ycascade.middleware import (
    CurrentUserMiddleware,
    clear_current_user_id,
    get_current_user_id,
    set_current_user_id,
)


def _create_app(**middleware_kwargs):
    app = FastAPI()
    app.add_middleware(CurrentUserMiddleware, **middleware_kwargs)

    @app.get("/whoami")
    def whoami():
        return {"user_id": get_current_user_id()}

    @app.get("/health")
    def health():
        return {"user_id": get_current_user_id()}

    return app


# ==================== ContextVar 操作测试 ====================

class TestContextVarOperations:
    """ContextVar 操作测试"""

    def test_set_and_get(self):
        set_current_user_id(123)
        assert get_current_user_id() == 123

        clear_current_user_id()
        assert get_current_user_id() is None

    def test_string_user_id(self):
        set_current_user_id("user_abc")
        assert get_current_user_id() == "user_abc"


# ==================== 中间件测试 ====================

class TestCurrentUserMiddleware:
    """CurrentUserMiddleware 测试"""

    def test_numeric_header_becomes_int(self):
        client = TestClient(_create_app())

        response = client.get("/whoami", headers={"X-User-ID": "42"})

        assert response.json() == {"user_id": 42}

    def test_non_numeric_header_kept_as_string(self):
        client = TestClient(_create_app())

        response = client.get("/whoami", headers={"X-User-ID": "u-7"})

        assert response.json() == {"user_id": "u-7"}

    def test_anonymous_request(self):
        client = TestClient(_create_app())

        assert client.get("/whoami").json() == {"user_id": None}

    def test_default_skip_paths(self):
        """/health 等默认路径不解析用户"""
        client = TestClient(_create_app())

        response = client.get("/health", headers={"X-User-ID": "42"})

        assert response.json() == {"user_id": None}

    def test_custom_skip_paths(self):
        client = TestClient(_create_app(skip_paths=["/whoami"]))

        response = client.get("/whoami", headers={"X-User-ID": "42"})

        assert response.json() == {"user_id": None}

    def test_custom_resolver(self):
        def resolve(request: Request):
            return request.query_params["uid"]

        client = TestClient(_create_app(user_id_resolver=resolve))

        assert client.get("/whoami?uid=abc").json() == {"user_id": "abc"}

    def test_resolver_error_treated_as_anonymous(self, caplog):
        """解析失败按匿名请求处理并记录警告"""
        def resolve(request: Request):
            return request.query_params["uid"]

        client = TestClient(_create_app(user_id_resolver=resolve))

        with caplog.at_level("WARNING", logger="ycascade.middleware.current_user"):
            response = client.get("/whoami")

        assert response.status_code == 200
        assert response.json() == {"user_id": None}
        assert "解析当前用户失败" in caplog.text

    def test_context_restored_after_request(self):
        client = TestClient(_create_app())

        client.get("/whoami", headers={"X-User-ID": "42"})

        assert get_current_user_id() is None
