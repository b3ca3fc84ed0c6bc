"""
app.services.game_room
~~~~~~~~~~~~~~~~~~~~~~

游戏房间实体 —— 把对局协调器与连接广播器绑在一起。

进程内只有一个 ``GameRoom``，挂在 ``app.state.game_room`` 上。
"""
from __future__ import annotations

from app.core.catalog import CharacterCatalog, RoleCatalog
from app.services.game_session import GameSession
from app.services.room_broadcaster import RoomBroadcaster


class GameRoom:
    """一个完整的游戏房间。

    Attributes:
        session: 对局协调器（持有权威房间状态）。
        broadcaster: 在线连接广播器。
    """

    def __init__(self, session: GameSession) -> None:
        self.session = session
        self.broadcaster = RoomBroadcaster()

    @classmethod
    def from_catalogs(cls, characters: CharacterCatalog, roles: RoleCatalog) -> GameRoom:
        return cls(GameSession(characters=characters, roles=roles))

    @property
    def online_count(self) -> int:
        """当前在线连接数。"""
        return self.broadcaster.online_count
