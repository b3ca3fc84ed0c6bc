"""
app.api.game_ws
~~~~~~~~~~~~~~~

WebSocket 实时交互接口 —— 单房间模式。

提供 ``/ws`` 端点。连接建立后立即推送一次房间快照（``roomStatus``），
此后每帧一个 JSON 对象，按 ``type`` 字段分发给 ``GameSession``，
产生的出站消息按顺序单播给请求者或广播给全部在线连接。

单帧处理出错只记录日志，不会断开连接，也不会回复客户端。
"""
from __future__ import annotations

import uuid

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from app.core.logging import conn_id_ctx_var, get_logger
from app.schemas.messages import MalformedMessage, UnknownMessageType, parse_inbound
from app.services.game_room import GameRoom

logger = get_logger(__name__)

router: APIRouter = APIRouter()


async def handle_frame(room: GameRoom, websocket: WebSocket, raw: str) -> None:
    """处理一帧入站消息。解析失败与未知类型都静默忽略。"""
    try:
        command = parse_inbound(raw)
    except UnknownMessageType as e:
        logger.debug("忽略未知消息类型: %s", e)
        return
    except (MalformedMessage, ValidationError) as e:
        logger.warning("忽略格式错误的消息: %s", e)
        return

    result = room.session.dispatch(command)
    if not result.applied:
        logger.info("请求未生效 | type=%s | outcome=%s", command.type, result.outcome.value)
    await room.broadcaster.deliver(websocket, result)


@router.websocket("/ws")
async def websocket_game_endpoint(websocket: WebSocket) -> None:
    """WebSocket 游戏端点。主持人与玩家共用同一端点，身份由消息内容区分。"""
    token = conn_id_ctx_var.set(f"ws-{uuid.uuid4().hex[:8]}")
    room: GameRoom = websocket.app.state.game_room
    try:
        await room.broadcaster.connect(websocket)
        logger.info("客户端已连接 | 在线: %d", room.online_count)
        await room.broadcaster.send(websocket, room.session.status_message())

        while True:
            message = await websocket.receive()
            if message["type"] == "websocket.disconnect":
                raise WebSocketDisconnect(message.get("code", 1000))
            raw = message.get("text")
            if raw is None:
                raw = (message.get("bytes") or b"").decode("utf-8", errors="replace")
            try:
                await handle_frame(room, websocket, raw)
            except WebSocketDisconnect:
                raise
            except Exception as e:
                logger.error("处理消息异常: %s", e, exc_info=True)
    except WebSocketDisconnect:
        pass  # 正常断开
    finally:
        room.broadcaster.disconnect(websocket)
        logger.info("客户端已断开 | 在线: %d", room.online_count)
        conn_id_ctx_var.reset(token)
