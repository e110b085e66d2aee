"""Exceptions that are allowed to reach the operator.

Everything else (tool failures, turn errors, state write errors) is absorbed
inside the loop and reported as text or as an aborted turn.
"""

from __future__ import annotations


class RalphError(Exception):
    """Base class for ralph errors."""


class ConfigError(RalphError):
    """The config file exists but cannot be parsed or validated."""


class RegistryError(RalphError):
    """A tool was registered twice, or after the registry was frozen."""


class BridgeError(RalphError):
    """A required tool-provider server could not be started."""


class EngineUnreachableError(RalphError):
    """A turn aborted because the engine could not be contacted."""


class LoopFatalError(RalphError):
    """The engine could not be used for too many iterations in a row.

    Counted are iterations where no session could be opened and iterations
    whose turn aborted because the engine was unreachable.
    """

    def __init__(self, iteration: int, cause: BaseException) -> None:
        self.iteration = iteration
        self.cause = cause
        super().__init__(
            f"Giving up at iteration {iteration}: engine unavailable "
            f"({type(cause).__name__}: {cause})"
        )
