"""
tests.test_game_session
~~~~~~~~~~~~~~~~~~~~~~~

GameSession 对局协调器单元测试：建房、入座、抽人物、确认、发牌。
"""
from __future__ import annotations

import random
from collections import Counter

import pytest

from app.core.catalog import RoleCatalog
from app.schemas.messages import (
    AssignCharacters,
    CreateRoom,
    ErrorMessage,
    GameStarted,
    JoinRoom,
    PlayerConfirmed,
    PlayerJoined,
    PlayerJoinedAck,
    RequestCharacters,
    RoomCreated,
    RoomStatusReply,
    StartDealing,
    StartDealingSignal,
    StartGameSignal,
)
from app.schemas.room import CharacterCard
from app.services.environment import BIG_CARDS, NO_EFFECT_CARD, SMALL_CARD
from app.services.game_session import (
    HAND_CARDS,
    NICKNAME_TAKEN_MSG,
    NOT_ENOUGH_CHARACTERS_MSG,
    PASSENGER_ROLE,
    UNKNOWN_ROLE,
    GameSession,
    Outcome,
    Target,
)


def _join_all(session: GameSession, *nicknames: str) -> None:
    for nickname in nicknames:
        assert session.join_room(nickname).applied


def _composition(cards: list[str]) -> tuple[int, int, int]:
    counts = Counter(cards)
    big = sum(counts[name] for name in BIG_CARDS)
    return big, counts[SMALL_CARD], counts[NO_EFFECT_CARD]


# ── 建房 ──────────────────────────────────────────────────────────────

class TestCreateRoom:

    def test_resets_and_broadcasts(self, session: GameSession) -> None:
        result = session.create_room("normal", 5)

        assert result.applied
        assert session.room.created is True
        assert session.room.total_players == 5
        assert session.room.joined_players == 0
        assert len(session.room.available_characters) == len(session.characters)
        [delivery] = result.deliveries
        assert delivery.target is Target.ALL
        assert isinstance(delivery.message, RoomCreated)
        assert delivery.message.room.created is True

    def test_overwrites_live_session(self, session: GameSession) -> None:
        session.create_room("normal", 5)
        _join_all(session, "A", "B")
        session.request_characters()
        session.confirm_character(1, "人物1", "技能1")
        session.start_dealing()

        session.create_room("inner", 6)

        room = session.room
        assert room.mode == "inner"
        assert room.total_players == 6
        assert room.players == []
        assert room.joined_players == 0
        assert room.confirmed_players == 0
        assert room.environment_cards == []
        assert len(room.available_characters) == len(session.characters)

    def test_zero_seats_is_full_at_once(self, session: GameSession) -> None:
        result = session.create_room("normal", 0)

        assert result.applied
        assert session.room.created is True
        assert session.join_room("A").outcome is Outcome.ROOM_FULL

    def test_broadcast_is_snapshot(self, session: GameSession) -> None:
        """出站消息中的房间是快照，后续修改不应影响已生成的消息。"""
        result = session.create_room("normal", 5)
        session.join_room("A")

        assert result.deliveries[0].message.room.players == []


# ── 入座 ──────────────────────────────────────────────────────────────

class TestJoinRoom:

    def test_before_create_is_silent(self, session: GameSession) -> None:
        result = session.join_room("A")

        assert result.outcome is Outcome.ROOM_NOT_CREATED
        assert result.deliveries == []
        assert session.room.players == []

    def test_unicast_then_broadcast(self, session: GameSession) -> None:
        session.create_room("normal", 5)
        result = session.join_room("A")

        ack, broadcast = result.deliveries
        assert ack.target is Target.REQUESTER
        assert isinstance(ack.message, PlayerJoinedAck)
        assert ack.message.player_id == 1
        assert broadcast.target is Target.ALL
        assert isinstance(broadcast.message, PlayerJoined)
        assert broadcast.message.player.nickname == "A"
        assert broadcast.message.room.joined_players == 1

    def test_ids_follow_join_order(self, session: GameSession) -> None:
        session.create_room("normal", 5)
        _join_all(session, "A", "B", "C")

        assert [(p.id, p.order, p.nickname) for p in session.room.players] == [
            (1, 1, "A"), (2, 2, "B"), (3, 3, "C"),
        ]
        assert all(p.character is None and not p.confirmed for p in session.room.players)

    @pytest.mark.parametrize("attempts", [3, 5, 8])
    def test_admission_caps_at_total(self, session: GameSession, attempts: int) -> None:
        session.create_room("normal", 5)
        outcomes = [session.join_room(f"P{i}").outcome for i in range(attempts)]

        assert outcomes.count(Outcome.APPLIED) == min(attempts, 5)
        assert session.room.joined_players == min(attempts, 5)
        assert session.room.joined_players == len(session.room.players)

    def test_full_room_is_silent(self, session: GameSession) -> None:
        session.create_room("normal", 2)
        _join_all(session, "A", "B")

        result = session.join_room("C")

        assert result.outcome is Outcome.ROOM_FULL
        assert result.deliveries == []
        assert session.room.joined_players == 2

    def test_duplicate_nickname(self, session: GameSession) -> None:
        session.create_room("normal", 5)
        session.join_room("Alice")

        result = session.join_room("Alice")

        assert result.outcome is Outcome.NICKNAME_TAKEN
        [delivery] = result.deliveries
        assert delivery.target is Target.REQUESTER
        assert delivery.message == ErrorMessage(message=NICKNAME_TAKEN_MSG)
        assert len(session.room.players) == 1

    def test_nickname_case_sensitive(self, session: GameSession) -> None:
        session.create_room("normal", 5)
        session.join_room("alice")

        assert session.join_room("Alice").applied
        assert len(session.room.players) == 2


# ── 开始游戏 ──────────────────────────────────────────────────────────

def test_start_game_broadcasts_without_mutation(session: GameSession) -> None:
    session.create_room("normal", 5)
    before = session.snapshot()

    result = session.start_game()

    [delivery] = result.deliveries
    assert delivery.target is Target.ALL
    assert isinstance(delivery.message, StartGameSignal)
    assert session.room == before


# ── 抽取人物 ──────────────────────────────────────────────────────────

class TestRequestCharacters:

    def test_draws_two_distinct_from_pool(self, session: GameSession) -> None:
        session.create_room("normal", 5)
        prior = list(session.room.available_characters)

        result = session.request_characters()

        [delivery] = result.deliveries
        assert delivery.target is Target.REQUESTER
        assert isinstance(delivery.message, AssignCharacters)
        first, second = delivery.message.characters
        assert first != second
        assert first in prior and second in prior
        assert len(session.room.available_characters) == len(prior) - 2
        assert first not in session.room.available_characters
        assert second not in session.room.available_characters

    def test_no_card_offered_twice(self, session: GameSession) -> None:
        session.create_room("normal", 5)
        offered: list[CharacterCard] = []
        while len(session.room.available_characters) >= 2:
            result = session.request_characters()
            offered.extend(result.deliveries[0].message.characters)

        assert len(offered) == len(set(offered)) == len(session.characters)

    def test_exhausted_pool(self, session: GameSession) -> None:
        session.create_room("normal", 5)
        for _ in range(3):
            assert session.request_characters().applied
        assert session.room.available_characters == []

        result = session.request_characters()

        assert result.outcome is Outcome.NOT_ENOUGH_CHARACTERS
        [delivery] = result.deliveries
        assert delivery.target is Target.REQUESTER
        assert delivery.message == ErrorMessage(message=NOT_ENOUGH_CHARACTERS_MSG)

    def test_single_card_left_is_untouched(self, session: GameSession) -> None:
        session.create_room("normal", 5)
        session.room.available_characters = [CharacterCard(name="独苗", skill="无")]

        result = session.request_characters()

        assert not result.applied
        assert session.room.available_characters == [CharacterCard(name="独苗", skill="无")]

    def test_does_not_broadcast(self, session: GameSession) -> None:
        session.create_room("normal", 5)

        result = session.request_characters()

        assert all(d.target is Target.REQUESTER for d in result.deliveries)


# ── 确认人物 ──────────────────────────────────────────────────────────

class TestConfirmCharacter:

    def test_confirms_and_broadcasts_confirmed_only(self, session: GameSession) -> None:
        session.create_room("normal", 5)
        _join_all(session, "A", "B", "C")

        result = session.confirm_character(2, "人物3", "技能3")

        assert result.applied
        player = session.room.players[1]
        assert player.confirmed is True
        assert player.character == CharacterCard(name="人物3", skill="技能3")
        assert player.skill == "技能3"
        assert session.room.confirmed_players == 1
        [delivery] = result.deliveries
        assert delivery.target is Target.ALL
        assert isinstance(delivery.message, PlayerConfirmed)
        assert [p.nickname for p in delivery.message.players] == ["B"]

    def test_accepts_card_object(self, session: GameSession) -> None:
        session.create_room("normal", 5)
        _join_all(session, "A")

        session.confirm_character(1, CharacterCard(name="人物2", skill="技能2"))

        assert session.room.players[0].skill == "技能2"

    def test_unknown_order_is_silent(self, session: GameSession) -> None:
        session.create_room("normal", 5)
        _join_all(session, "A")

        result = session.confirm_character(9, "人物1", "技能1")

        assert result.outcome is Outcome.UNKNOWN_PLAYER
        assert result.deliveries == []
        assert session.room.confirmed_players == 0

    def test_counts_each_distinct_order_once(self, session: GameSession) -> None:
        session.create_room("normal", 5)
        _join_all(session, "A", "B", "C")

        session.confirm_character(1, "人物1", "技能1")
        session.confirm_character(3, "人物2", "技能2")

        assert session.room.confirmed_players == 2

    def test_reconfirmation_updates_without_recount(self, session: GameSession) -> None:
        session.create_room("normal", 5)
        _join_all(session, "A", "B")

        session.confirm_character(1, "人物1", "技能1")
        result = session.confirm_character(1, "人物4", "技能4")

        assert result.applied
        assert session.room.confirmed_players == 1
        assert session.room.players[0].character.name == "人物4"
        assert session.room.confirmed_players == len(session.room.confirmed_roster())


# ── 房间状态 ──────────────────────────────────────────────────────────

def test_room_status_echoes_players_and_cards(session: GameSession) -> None:
    session.create_room("normal", 5)
    _join_all(session, "A", "B")
    session.start_dealing()

    result = session.request_room_status()

    [delivery] = result.deliveries
    assert delivery.target is Target.REQUESTER
    message = delivery.message
    assert isinstance(message, RoomStatusReply)
    assert message.players == message.room.players
    assert message.environment_cards == message.room.environment_cards
    assert len(message.environment_cards) == 8


# ── 发牌 ──────────────────────────────────────────────────────────────

class TestStartDealing:

    def test_normal_five_scenario(self, session: GameSession) -> None:
        session.create_room("normal", 5)
        _join_all(session, "A", "B", "C", "D", "E")

        result = session.start_dealing()

        assert len(session.room.environment_cards) == 8
        assert _composition(session.room.environment_cards) == (1, 3, 4)
        assert all(p.role is not None for p in session.room.players)
        assert all(p.hand_cards == HAND_CARDS == 5 for p in session.room.players)
        assert Counter(p.role for p in session.room.players) == Counter(
            session.roles.lookup("normal", 5),
        )
        started, signal = result.deliveries
        assert started.target is Target.ALL and isinstance(started.message, GameStarted)
        assert signal.target is Target.ALL and isinstance(signal.message, StartDealingSignal)
        assert started.message.environment_cards == session.room.environment_cards

    @pytest.mark.parametrize(("mode", "total"), [("inner", 5), ("normal", 6), ("inner", 6), ("normal", 3)])
    def test_other_configurations(self, session: GameSession, mode: str, total: int) -> None:
        session.create_room(mode, total)
        _join_all(session, *[f"P{i}" for i in range(total)])

        session.start_dealing()

        cards = session.room.environment_cards
        assert len(cards) == 8
        assert _composition(cards) == (2, 2, 4)
        big = [c for c in cards if c in BIG_CARDS]
        assert len(set(big)) == 2

    def test_missing_table_gives_passenger_to_all(self, session: GameSession) -> None:
        session.create_room("inner", 4)
        _join_all(session, "A", "B", "C", "D")

        session.start_dealing()

        assert [p.role for p in session.room.players] == [PASSENGER_ROLE] * 4
        assert all(p.hand_cards == HAND_CARDS for p in session.room.players)

    def test_empty_table_gives_passenger_to_all(self, character_catalog) -> None:
        session = GameSession(
            characters=character_catalog,
            roles=RoleCatalog(tables={"normal": {2: []}}),
            rng=random.Random(5),
        )
        session.create_room("normal", 2)
        _join_all(session, "A", "B")

        session.start_dealing()

        assert {p.role for p in session.room.players} == {PASSENGER_ROLE}

    def test_short_table_fills_unknown(self, character_catalog) -> None:
        session = GameSession(
            characters=character_catalog,
            roles=RoleCatalog(tables={"normal": {4: ["劫匪", "乘务员"]}}),
            rng=random.Random(5),
        )
        session.create_room("normal", 4)
        _join_all(session, "A", "B", "C", "D")

        session.start_dealing()

        roles = [p.role for p in session.room.players]
        assert sorted(roles[:2]) == ["乘务员", "劫匪"]
        assert roles[2:] == [UNKNOWN_ROLE, UNKNOWN_ROLE]

    def test_only_present_players_get_roles(self, session: GameSession) -> None:
        session.create_room("normal", 5)
        _join_all(session, "A", "B", "C")

        session.start_dealing()
        session.join_room("D")

        assert [p.role is not None for p in session.room.players] == [True, True, True, False]

    def test_redealing_reassigns(self, session: GameSession) -> None:
        session.create_room("normal", 5)
        _join_all(session, "A", "B", "C", "D", "E")

        deals = set()
        for _ in range(10):
            session.start_dealing()
            deals.add(tuple(session.room.environment_cards))
            assert len(session.room.environment_cards) == 8

        assert len(deals) > 1


# ── 分发 ──────────────────────────────────────────────────────────────

def test_dispatch_routes_by_type(session: GameSession) -> None:
    assert isinstance(session.dispatch(CreateRoom(mode="normal", total_players=5)).deliveries[0].message, RoomCreated)
    assert session.dispatch(JoinRoom(nickname="A")).applied
    assert isinstance(session.dispatch(RequestCharacters()).deliveries[0].message, AssignCharacters)
    result = session.dispatch(StartDealing())
    assert isinstance(result.deliveries[-1].message, StartDealingSignal)
