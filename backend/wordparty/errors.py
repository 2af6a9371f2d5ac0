from __future__ import annotations


class GameError(Exception):
    """Base for every error reported back to the originating connection.

    ``code`` is the stable machine-readable identifier sent as ``error`` in the
    payload; ``message`` is shown to the player.
    """

    default_code = "error"
    default_message = "Something went wrong"

    def __init__(self, code: str | None = None, message: str | None = None) -> None:
        self.code = code or self.default_code
        self.message = message or self.default_message
        super().__init__(f"{self.code}: {self.message}")

    def to_payload(self) -> dict:
        return {"error": self.code, "message": self.message}


class ValidationError(GameError):
    default_code = "invalid_payload"
    default_message = "Invalid request"


class AuthorizationError(GameError):
    default_code = "only_host"
    default_message = "Only the host can do that"


class NotFoundError(GameError):
    default_code = "room_not_found"
    default_message = "Room not found"


class PreconditionError(GameError):
    default_code = "wrong_phase"
    default_message = "That action is not available right now"
