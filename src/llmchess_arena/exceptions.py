"""Error taxonomy shared by the completion client, turn driver and game loop."""


class ArenaError(Exception):
    """Base class for arena errors."""


class AuthError(ArenaError):
    """No API key available for the completion gateway. Fatal for the game."""


class UpstreamError(ArenaError):
    """Completion call failed or returned a body without a usable message."""


class IllegalMoveRejected(ArenaError):
    """The rules adapter refused a move the extractor considered legal."""

    def __init__(self, move: str):
        super().__init__(f"Invalid move: {move}")
        self.move = move


class GameStateError(ArenaError):
    """Attempted transition out of a terminal game status."""
