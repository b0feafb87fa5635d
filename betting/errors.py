from __future__ import annotations


class EngineError(ValueError):
    """Base class for rejected engine calls. State is never changed on error."""

    code = "ENGINE_ERROR"

    def __init__(self, msg: str) -> None:
        super().__init__(msg)
        self.msg = msg


class NotYourTurn(EngineError):
    code = "NOT_YOUR_TURN"


class InactivePlayer(EngineError):
    code = "INACTIVE_PLAYER"


class InvalidCheck(EngineError):
    code = "INVALID_CHECK"


class InsufficientStack(EngineError):
    code = "INSUFFICIENT_STACK"


class RaiseTooSmall(EngineError):
    code = "RAISE_TOO_SMALL"


class InvalidAction(EngineError):
    code = "INVALID_ACTION"


class InsufficientCards(EngineError):
    code = "INSUFFICIENT_CARDS"


class NotEnoughPlayers(EngineError):
    code = "NOT_ENOUGH_PLAYERS"
