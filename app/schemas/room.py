"""
app.schemas.room
~~~~~~~~~~~~~~~~

房间状态数据模型 —— 人物卡、玩家、房间快照。

Python 侧字段使用 snake_case，序列化到线上时统一使用 camelCase
（``model_dump(by_alias=True)``），与前端协议保持一致。
"""
from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

GameMode = Literal["normal", "inner"]


class WireModel(BaseModel):
    """所有线上模型的基类：camelCase 别名，允许按字段名构造。"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CharacterCard(WireModel):
    """人物卡，来自固定目录，不可变。"""

    model_config = ConfigDict(frozen=True)

    name: str = Field(..., min_length=1, description="人物名称")
    skill: str = Field(..., description="人物技能描述")


class Player(WireModel):
    """房间内的一名玩家。

    ``order`` 目前与 ``id`` 数值相同，但作为确认人物时的查找键单独保存。
    """

    id: int = Field(..., ge=1, description="加入序号（从 1 开始）")
    nickname: str = Field(..., description="昵称，房间内唯一，区分大小写")
    order: int = Field(..., ge=1, description="座位号，确认人物时的查找键")
    character: CharacterCard | None = Field(default=None, description="已确认的人物")
    skill: str | None = Field(default=None, description="已确认的技能")
    confirmed: bool = Field(default=False, description="是否已锁定人物")
    role: str | None = Field(default=None, description="发牌阶段分配的秘密身份")
    hand_cards: int | None = Field(default=None, description="初始手牌数")


class RoomState(WireModel):
    """当前对局的唯一权威状态。

    由 ``GameSession`` 独占持有，其它组件只能通过 ``GameSession`` 读写。
    """

    created: bool = False
    mode: GameMode = "normal"
    total_players: int = 0
    joined_players: int = 0
    confirmed_players: int = 0
    players: list[Player] = Field(default_factory=list)
    available_characters: list[CharacterCard] = Field(default_factory=list)
    environment_cards: list[str] = Field(default_factory=list)

    @property
    def is_full(self) -> bool:
        """已加入人数是否达到目标人数。"""
        return self.joined_players >= self.total_players

    def find_player(self, order: int) -> Player | None:
        """按座位号线性查找玩家。"""
        for player in self.players:
            if player.order == order:
                return player
        return None

    def has_nickname(self, nickname: str) -> bool:
        """昵称是否已被占用（精确匹配）。"""
        return any(player.nickname == nickname for player in self.players)

    def confirmed_roster(self) -> list[Player]:
        """所有已确认人物的玩家，保持座位顺序。"""
        return [player for player in self.players if player.confirmed]
