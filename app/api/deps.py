from fastapi import Request

from app.services.game_room import GameRoom


def get_game_room(request: Request) -> GameRoom:
    return request.app.state.game_room
