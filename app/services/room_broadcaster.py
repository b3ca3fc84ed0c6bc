"""
app.services.room_broadcaster
~~~~~~~~~~~~~~~~~~~~~~~~~~~~~

WebSocket 连接广播器 —— 维护房间的在线连接集合，提供单播与广播能力。
"""
from __future__ import annotations

import asyncio

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from app.core.logging import get_logger
from app.schemas.messages import OutboundMessage
from app.services.game_session import CommandResult, Target

logger = get_logger(__name__)


def _is_open(websocket: WebSocket) -> bool:
    return (
        websocket.client_state == WebSocketState.CONNECTED
        and websocket.application_state == WebSocketState.CONNECTED
    )


class RoomBroadcaster:
    """WebSocket 连接广播器。

    Attributes:
        active_connections: 当前在线的所有 WebSocket 连接。
    """

    def __init__(self) -> None:
        self.active_connections: set[WebSocket] = set()

    async def connect(self, websocket: WebSocket) -> None:
        """接受新连接并加入在线集合。"""
        await websocket.accept()
        self.active_connections.add(websocket)

    def disconnect(self, websocket: WebSocket) -> None:
        """从在线集合移除断开的连接。"""
        self.active_connections.discard(websocket)

    async def send(self, websocket: WebSocket, message: OutboundMessage) -> None:
        """单播给指定连接；连接已关闭或发送失败时丢弃，并移除该连接。"""
        if not _is_open(websocket):
            logger.debug("单播目标已关闭，丢弃 %s", message.type)
            return
        try:
            await websocket.send_text(message.to_json())
        except Exception as e:
            logger.warning("单播失败，移除断开的连接: %s", e)
            self.active_connections.discard(websocket)

    async def broadcast(self, message: OutboundMessage) -> None:
        """向所有处于打开状态的连接广播消息。"""
        payload = message.to_json()
        targets = [ws for ws in list(self.active_connections) if _is_open(ws)]
        results = await asyncio.gather(
            *(ws.send_text(payload) for ws in targets), return_exceptions=True,
        )
        for ws, result in zip(targets, results):
            if isinstance(result, Exception):
                logger.warning("广播失败，移除断开的连接: %s", result)
                self.active_connections.discard(ws)

    async def deliver(self, requester: WebSocket, result: CommandResult) -> None:
        """按顺序投递一次操作产生的全部出站消息。"""
        for delivery in result.deliveries:
            if delivery.target is Target.ALL:
                await self.broadcast(delivery.message)
            else:
                await self.send(requester, delivery.message)

    @property
    def online_count(self) -> int:
        """当前在线连接数。"""
        return len(self.active_connections)
