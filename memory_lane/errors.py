"""Exception hierarchy for Memory Lane.

Classification and sufficiency failures never surface as exceptions; the
router recovers them locally and reports them through ``Degraded`` results
(see ``memory_lane.result``). The errors here are the ones a caller has to
decide about.
"""


class MemoryLaneError(Exception):
    """Base class for all Memory Lane errors."""


class EmbeddingError(MemoryLaneError):
    """An embedding batch or query-vector fetch failed or returned bad vectors."""


class GenerationError(MemoryLaneError):
    """The generation call (chat reply or gift ideas) failed."""


class GatewayError(MemoryLaneError):
    """HTTP transport failure or non-2xx status from the gateway."""

    def __init__(self, message: str, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class MalformedInputError(MemoryLaneError):
    """Import payload or persisted state could not be parsed.

    Raised before any mutation, so the store is left unchanged.
    """
