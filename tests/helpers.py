"""测试共享的常量与辅助函数"""

import time
from typing import Any, Optional
from unittest.mock import AsyncMock, MagicMock

import jwt

APP_ID = "3c845f47-c56a-4ca9-a1cb-12dbebd72c3b"  # 36 chars
APP_SECRET = "s" * 28
BASE_URL = "https://api.watsonwork.ibm.com"
TOKEN_URL = f"{BASE_URL}/oauth/token"
GRAPHQL_URL = f"{BASE_URL}/graphql"


def make_jwt(ttl: Optional[float] = 3600, **claims: Any) -> str:
    """生成测试用 JWT，exp = now + ttl；ttl=None 时不带 exp"""
    payload = {"sub": APP_ID, **claims}
    if ttl is not None:
        payload["exp"] = int(time.time() + ttl)
    return jwt.encode(payload, "watsonwork-test-signing-key-0123456789", algorithm="HS256")


def create_mock_client() -> MagicMock:
    """模拟 RequestDispatcher，所有请求方法均为 AsyncMock"""
    client = MagicMock()
    client.dispatch = AsyncMock()
    client.dispatch_raw = AsyncMock()
    client.send_graphql = AsyncMock()
    client.close = AsyncMock()
    return client
