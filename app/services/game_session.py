"""
app.services.game_session
~~~~~~~~~~~~~~~~~~~~~~~~~

对局协调器 —— 房间状态机与各类随机分配流程。

``GameSession`` 独占持有唯一的 ``RoomState``，每种入站消息对应一个方法。
所有方法都是同步的、一次执行完毕，返回 ``CommandResult``：

- ``outcome``  —— 执行结果（成功或被静默拒绝的原因），供日志与测试观察；
- ``messages`` —— 按顺序发送的出站消息，每条标明单播给请求者还是广播。

协议层面被拒绝的请求大多是静默的（不回复），只有昵称重复与人物卡不足
会单播 ``error``。
"""
from __future__ import annotations

import random
from dataclasses import dataclass, field
from enum import Enum

from app.core.catalog import CharacterCatalog, RoleCatalog
from app.core.logging import get_logger
from app.schemas.messages import (
    AssignCharacters,
    ConfirmCharacter,
    CreateRoom,
    ErrorMessage,
    GameStarted,
    InboundMessage,
    JoinRoom,
    OutboundMessage,
    PlayerConfirmed,
    PlayerJoined,
    PlayerJoinedAck,
    RequestCharacters,
    RequestRoomStatus,
    RoomCreated,
    RoomStatusMessage,
    RoomStatusReply,
    StartDealing,
    StartDealingSignal,
    StartGame,
    StartGameSignal,
)
from app.schemas.room import CharacterCard, GameMode, Player, RoomState
from app.services.environment import compose_environment_cards
from app.services.shuffle import fisher_yates

logger = get_logger(__name__)

HAND_CARDS: int = 5
UNKNOWN_ROLE: str = "未知身份"
PASSENGER_ROLE: str = "乘客"

NICKNAME_TAKEN_MSG: str = "昵称已被使用"
NOT_ENOUGH_CHARACTERS_MSG: str = "人物卡不足，请联系主持人"


class Outcome(str, Enum):
    APPLIED = "applied"
    ROOM_NOT_CREATED = "room_not_created"
    ROOM_FULL = "room_full"
    NICKNAME_TAKEN = "nickname_taken"
    NOT_ENOUGH_CHARACTERS = "not_enough_characters"
    UNKNOWN_PLAYER = "unknown_player"


class Target(str, Enum):
    REQUESTER = "requester"
    ALL = "all"


@dataclass(frozen=True)
class Delivery:
    target: Target
    message: OutboundMessage


@dataclass
class CommandResult:
    outcome: Outcome
    deliveries: list[Delivery] = field(default_factory=list)

    @property
    def applied(self) -> bool:
        return self.outcome is Outcome.APPLIED

    def unicast(self, message: OutboundMessage) -> CommandResult:
        self.deliveries.append(Delivery(Target.REQUESTER, message))
        return self

    def broadcast(self, message: OutboundMessage) -> CommandResult:
        self.deliveries.append(Delivery(Target.ALL, message))
        return self


class GameSession:
    """单房间对局协调器。

    Attributes:
        characters: 人物卡目录（只读）。
        roles: 身份表目录（只读）。
        room: 当前房间状态。
    """

    def __init__(
        self,
        characters: CharacterCatalog,
        roles: RoleCatalog,
        rng: random.Random | None = None,
    ) -> None:
        self.characters = characters
        self.roles = roles
        self.rng = rng or random.Random()
        self.room = RoomState()

    # ── 分发 ──────────────────────────────────────────────────────────

    def dispatch(self, command: InboundMessage) -> CommandResult:
        """按消息类型分发到对应操作。"""
        match command:
            case CreateRoom(mode=mode, total_players=total_players):
                return self.create_room(mode, total_players)
            case JoinRoom(nickname=nickname):
                return self.join_room(nickname)
            case StartGame():
                return self.start_game()
            case RequestCharacters():
                return self.request_characters()
            case ConfirmCharacter(order=order, character=character, skill=skill):
                return self.confirm_character(order, character, skill)
            case RequestRoomStatus():
                return self.request_room_status()
            case StartDealing():
                return self.start_dealing()
        raise TypeError(f"未处理的消息类型: {type(command).__name__}")

    def snapshot(self) -> RoomState:
        """当前房间状态的深拷贝，出站消息只携带快照。"""
        return self.room.model_copy(deep=True)

    def status_message(self) -> RoomStatusMessage:
        """新连接建立时推送的快照消息。"""
        return RoomStatusMessage(room=self.snapshot())

    # ── 操作 ──────────────────────────────────────────────────────────

    def create_room(self, mode: GameMode, total_players: int) -> CommandResult:
        """无条件重置房间；进行中的对局直接被覆盖。"""
        if self.room.created:
            logger.info(
                "覆盖进行中的房间 | 原 mode=%s | 原人数=%d/%d",
                self.room.mode, self.room.joined_players, self.room.total_players,
            )
        self.room = RoomState(
            created=True,
            mode=mode,
            total_players=total_players,
            available_characters=list(self.characters.characters),
        )
        logger.info("房间已创建 | mode=%s | 目标人数=%d", mode, total_players)
        return CommandResult(Outcome.APPLIED).broadcast(RoomCreated(room=self.snapshot()))

    def join_room(self, nickname: str) -> CommandResult:
        if not self.room.created:
            return CommandResult(Outcome.ROOM_NOT_CREATED)
        if self.room.is_full:
            return CommandResult(Outcome.ROOM_FULL)
        if self.room.has_nickname(nickname):
            return CommandResult(Outcome.NICKNAME_TAKEN).unicast(
                ErrorMessage(message=NICKNAME_TAKEN_MSG),
            )

        seat = len(self.room.players) + 1
        player = Player(id=seat, nickname=nickname, order=seat)
        self.room.players.append(player)
        self.room.joined_players += 1
        logger.info(
            "玩家加入 | %s | 座位 %d | %d/%d",
            nickname, seat, self.room.joined_players, self.room.total_players,
        )
        return (
            CommandResult(Outcome.APPLIED)
            .unicast(PlayerJoinedAck(player_id=player.id))
            .broadcast(PlayerJoined(player=player.model_copy(deep=True), room=self.snapshot()))
        )

    def start_game(self) -> CommandResult:
        return CommandResult(Outcome.APPLIED).broadcast(StartGameSignal())

    def request_characters(self) -> CommandResult:
        """从剩余池中无放回抽取两张不同人物卡，只单播给请求者。"""
        pool = self.room.available_characters
        if len(pool) < 2:
            return CommandResult(Outcome.NOT_ENOUGH_CHARACTERS).unicast(
                ErrorMessage(message=NOT_ENOUGH_CHARACTERS_MSG),
            )

        drawn = fisher_yates(pool, self.rng)[:2]
        self.room.available_characters = [card for card in pool if card not in drawn]
        logger.debug(
            "抽取人物卡 | %s | 剩余 %d",
            ", ".join(card.name for card in drawn), len(self.room.available_characters),
        )
        return CommandResult(Outcome.APPLIED).unicast(AssignCharacters(characters=drawn))

    def confirm_character(
        self, order: int, character: CharacterCard | str, skill: str | None = None,
    ) -> CommandResult:
        """锁定玩家的人物选择。

        同一玩家再次确认时更新其选择并重新广播，但不重复计数。
        """
        player = self.room.find_player(order)
        if player is None:
            return CommandResult(Outcome.UNKNOWN_PLAYER)

        if isinstance(character, str):
            card = CharacterCard(name=character, skill=skill or "")
        else:
            card = character
        player.character = card
        player.skill = skill if skill is not None else card.skill
        if not player.confirmed:
            player.confirmed = True
            self.room.confirmed_players += 1
        logger.info(
            "玩家确认人物 | 座位 %d | %s | 已确认 %d/%d",
            order, card.name, self.room.confirmed_players, self.room.joined_players,
        )
        roster = [p.model_copy(deep=True) for p in self.room.confirmed_roster()]
        return CommandResult(Outcome.APPLIED).broadcast(PlayerConfirmed(players=roster))

    def request_room_status(self) -> CommandResult:
        room = self.snapshot()
        return CommandResult(Outcome.APPLIED).unicast(
            RoomStatusReply(
                room=room,
                players=room.players,
                environment_cards=room.environment_cards,
            ),
        )

    def start_dealing(self) -> CommandResult:
        """分配秘密身份并生成环境牌。再次调用会重新发牌。"""
        self._assign_roles()
        self.room.environment_cards = compose_environment_cards(
            self.room.mode, self.room.total_players, self.rng,
        )
        logger.info(
            "发牌完成 | mode=%s | 人数=%d | 环境牌 %d 张",
            self.room.mode, len(self.room.players), len(self.room.environment_cards),
        )
        room = self.snapshot()
        return (
            CommandResult(Outcome.APPLIED)
            .broadcast(GameStarted(players=room.players, environment_cards=room.environment_cards))
            .broadcast(StartDealingSignal())
        )

    def _assign_roles(self) -> None:
        roles = self.roles.lookup(self.room.mode, self.room.total_players)
        if not roles:
            logger.warning(
                "未配置身份表，全部分配为%s | mode=%s | 人数=%d",
                PASSENGER_ROLE, self.room.mode, self.room.total_players,
            )
            for player in self.room.players:
                player.role = PASSENGER_ROLE
                player.hand_cards = HAND_CARDS
            return

        shuffled = fisher_yates(roles, self.rng)
        if len(shuffled) < len(self.room.players):
            logger.warning(
                "身份数量少于玩家数量 | 身份 %d | 玩家 %d",
                len(shuffled), len(self.room.players),
            )
        for i, player in enumerate(self.room.players):
            player.role = shuffled[i] if i < len(shuffled) else UNKNOWN_ROLE
            player.hand_cards = HAND_CARDS
