"""
tests.conftest
~~~~~~~~~~~~~~

共享 pytest fixtures —— 构造小型目录与带固定种子的 ``GameSession``，
使发牌、抽卡等随机流程在测试中可复现。
"""
from __future__ import annotations

import os
import random
from unittest.mock import AsyncMock, MagicMock

import pytest

# ── 在所有测试导入前设置环境变量 ─────────────────────────────────────
os.environ.setdefault("ENVIRONMENT", "test")

from fastapi import WebSocket  # noqa: E402
from starlette.websockets import WebSocketState  # noqa: E402

from app.core.catalog import CharacterCatalog, RoleCatalog  # noqa: E402
from app.schemas.room import CharacterCard  # noqa: E402
from app.services.game_session import GameSession  # noqa: E402


@pytest.fixture()
def character_catalog() -> CharacterCatalog:
    """六张人物卡，足够三次成功抽取。"""
    return CharacterCatalog(
        characters=[
            CharacterCard(name=f"人物{i}", skill=f"技能{i}") for i in range(1, 7)
        ],
    )


@pytest.fixture()
def role_catalog() -> RoleCatalog:
    return RoleCatalog(
        tables={
            "normal": {
                5: ["乘务员", "乘务员", "乘务员", "劫匪", "劫匪"],
                "3": ["乘务员", "劫匪"],
            },
            "inner": {
                6: ["乘务员", "乘务员", "乘务员", "内鬼", "劫匪", "劫匪"],
            },
        },
    )


@pytest.fixture()
def session(character_catalog: CharacterCatalog, role_catalog: RoleCatalog) -> GameSession:
    return GameSession(
        characters=character_catalog,
        roles=role_catalog,
        rng=random.Random(20240501),
    )


def _make_fake_websocket(open_: bool = True) -> MagicMock:
    ws = MagicMock(spec=WebSocket)
    state = WebSocketState.CONNECTED if open_ else WebSocketState.DISCONNECTED
    ws.client_state = state
    ws.application_state = state
    ws.send_text = AsyncMock()
    ws.accept = AsyncMock()
    return ws


@pytest.fixture()
def fake_websocket():
    """工厂 fixture：返回 mock 的 ``WebSocket``，``send_text`` 为 AsyncMock。"""
    return _make_fake_websocket
