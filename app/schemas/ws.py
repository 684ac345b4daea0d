from pydantic import BaseModel


class WSCloseCode:
    """WebSocket close codes (RFC 6455 + custom)."""

    # Standard RFC 6455 codes
    NORMAL = 1000
    GOING_AWAY = 1001
    POLICY_VIOLATION = 1008
    INTERNAL_ERROR = 1011

    # Custom application codes (4000-4999)
    GAME_NOT_FOUND = 4003


class ErrorPayload(BaseModel):
    """Payload for error responses."""

    error_code: str
    message: str
