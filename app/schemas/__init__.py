"""
app.schemas
~~~~~~~~~~~
Pydantic schemas: room state, WebSocket messages and the HTTP envelope.
"""
from app.schemas.api_response import ApiResponse
from app.schemas.room import CharacterCard, Player, RoomState

# Call model_rebuild to resolve forward references in generic Pydantic models.
ApiResponse.model_rebuild()

__all__ = ["ApiResponse", "CharacterCard", "Player", "RoomState"]
