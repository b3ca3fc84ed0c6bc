"""
app.api.room_endpoints
~~~~~~~~~~~~~~~~~~~~~~

房间 REST 接口 —— 供主持面板轮询房间状态。

端点:
  - ``GET /room`` → 当前房间快照与在线连接数
"""
from __future__ import annotations

from fastapi import APIRouter, Depends
from pydantic import Field

from app.api.deps import get_game_room
from app.schemas.api_response import ApiResponse
from app.schemas.room import Player, RoomState, WireModel
from app.services.game_room import GameRoom

router: APIRouter = APIRouter()


class RoomStatusData(WireModel):
    """房间状态响应数据。"""

    room: RoomState = Field(..., description="房间快照")
    players: list[Player] = Field(..., description="玩家列表（与 room.players 相同）")
    environment_cards: list[str] = Field(..., description="环境牌（与 room.environmentCards 相同）")
    online_count: int = Field(..., description="当前在线连接数")


@router.get(
    "/room",
    summary="获取房间状态",
    response_model=ApiResponse[RoomStatusData],
)
async def room_status(room: GameRoom = Depends(get_game_room)) -> ApiResponse[RoomStatusData]:
    """返回当前房间快照。房间未创建时 ``room.created`` 为 ``false``。"""
    snapshot = room.session.snapshot()
    return ApiResponse.ok(
        data=RoomStatusData(
            room=snapshot,
            players=snapshot.players,
            environment_cards=snapshot.environment_cards,
            online_count=room.online_count,
        ),
    )
