"""
Error taxonomy for the narrative core.

Hard errors reject a single operation and leave the World Model untouched.
Generation failures never appear here: they are carried inside a
GenerationResult and recovered by the calling engine.
"""


class ThreadloomError(Exception):
    """Base class for every error raised by this package"""


class HardError(ThreadloomError):
    """An operation was rejected; the caller must retry with corrected input"""

    code = "hard_error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"


class InvalidComposition(HardError):
    """A web or tension was given an impossible set of members"""

    code = "invalid_composition"


class LoopNotActive(HardError):
    """A temporal operation needs armed loop mechanics"""

    code = "loop_not_active"


class AlreadyActive(HardError):
    """Loop mechanics can only be initialized once per session"""

    code = "already_active"


class NoSuchTension(HardError):
    """No open romantic tension contains the requested actors"""

    code = "no_such_tension"


class NoSuchWeb(HardError):
    """No relationship web has the requested id"""

    code = "no_such_web"


class TurnInProgress(ThreadloomError):
    """A second turn was submitted while one is still being processed"""
