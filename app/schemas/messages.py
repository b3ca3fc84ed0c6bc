"""
app.schemas.messages
~~~~~~~~~~~~~~~~~~~~

WebSocket 消息协议 —— 以 ``type`` 字段为标签的入站 / 出站消息模型。

入站消息通过 ``parse_inbound()`` 解析为带判别字段的联合类型，
分发处使用 ``match`` 做穷举匹配；出站消息统一以 camelCase JSON 发送。
"""
from __future__ import annotations

import json
from typing import Annotated, Any, Literal, Union

from pydantic import Field, TypeAdapter

from app.schemas.room import CharacterCard, GameMode, Player, RoomState, WireModel


# ── 入站消息 ──────────────────────────────────────────────────────────

class CreateRoom(WireModel):
    type: Literal["createRoom"] = "createRoom"
    mode: GameMode
    total_players: int


class JoinRoom(WireModel):
    type: Literal["joinRoom"] = "joinRoom"
    nickname: str = Field(..., min_length=1)


class StartGame(WireModel):
    type: Literal["startGame"] = "startGame"


class RequestCharacters(WireModel):
    type: Literal["requestCharacters"] = "requestCharacters"


class ConfirmCharacter(WireModel):
    """确认人物。``character`` 可以是人物名字符串，也可以是完整人物卡。"""

    type: Literal["confirmCharacter"] = "confirmCharacter"
    order: int
    character: CharacterCard | str
    skill: str | None = None


class RequestRoomStatus(WireModel):
    type: Literal["requestRoomStatus"] = "requestRoomStatus"


class StartDealing(WireModel):
    type: Literal["startDealing"] = "startDealing"


InboundMessage = Annotated[
    Union[
        CreateRoom,
        JoinRoom,
        StartGame,
        RequestCharacters,
        ConfirmCharacter,
        RequestRoomStatus,
        StartDealing,
    ],
    Field(discriminator="type"),
]

_inbound_adapter: TypeAdapter[InboundMessage] = TypeAdapter(InboundMessage)

INBOUND_TYPES: frozenset[str] = frozenset({
    "createRoom",
    "joinRoom",
    "startGame",
    "requestCharacters",
    "confirmCharacter",
    "requestRoomStatus",
    "startDealing",
})


class MalformedMessage(ValueError):
    """帧不是带字符串 ``type`` 字段的 JSON 对象。"""


class UnknownMessageType(ValueError):
    """``type`` 不在已知入站类型之内。"""


def parse_inbound(raw: str) -> InboundMessage:
    """把一帧文本解析为入站消息。

    Raises:
        MalformedMessage: 非 JSON、非对象或缺少 ``type``。
        UnknownMessageType: ``type`` 未知。
        pydantic.ValidationError: 字段校验失败。
    """
    try:
        payload: Any = json.loads(raw)
    except json.JSONDecodeError as e:
        raise MalformedMessage(f"无法解析 JSON: {e}") from e
    if not isinstance(payload, dict) or not isinstance(payload.get("type"), str):
        raise MalformedMessage("消息必须是包含字符串 type 字段的 JSON 对象")
    if payload["type"] not in INBOUND_TYPES:
        raise UnknownMessageType(payload["type"])
    return _inbound_adapter.validate_python(payload)


# ── 出站消息 ──────────────────────────────────────────────────────────

class OutboundMessage(WireModel):
    """出站消息基类。"""

    type: str

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)


class RoomStatusMessage(OutboundMessage):
    """连接建立时推送的房间快照。"""

    type: Literal["roomStatus"] = "roomStatus"
    room: RoomState


class RoomStatusReply(OutboundMessage):
    """``requestRoomStatus`` 的回复，顶层重复携带玩家与环境牌，供主持面板使用。"""

    type: Literal["roomStatus"] = "roomStatus"
    room: RoomState
    players: list[Player]
    environment_cards: list[str]


class RoomCreated(OutboundMessage):
    type: Literal["roomCreated"] = "roomCreated"
    room: RoomState


class PlayerJoinedAck(OutboundMessage):
    """单播给加入者本人，告知其座位号。"""

    type: Literal["playerJoined"] = "playerJoined"
    player_id: int


class PlayerJoined(OutboundMessage):
    """广播给所有人；加入者应忽略其中的 ``player``，以单播为准。"""

    type: Literal["playerJoined"] = "playerJoined"
    player: Player
    room: RoomState


class ErrorMessage(OutboundMessage):
    type: Literal["error"] = "error"
    message: str


class AssignCharacters(OutboundMessage):
    type: Literal["assignCharacters"] = "assignCharacters"
    characters: list[CharacterCard]


class PlayerConfirmed(OutboundMessage):
    type: Literal["playerConfirmed"] = "playerConfirmed"
    players: list[Player]


class StartGameSignal(OutboundMessage):
    type: Literal["startGame"] = "startGame"


class GameStarted(OutboundMessage):
    type: Literal["gameStarted"] = "gameStarted"
    players: list[Player]
    environment_cards: list[str]


class StartDealingSignal(OutboundMessage):
    """通知主持端跳转到发牌视图。"""

    type: Literal["startDealing"] = "startDealing"
