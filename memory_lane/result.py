"""Tagged result type for calls that may fall back to a default.

``Ok`` means the call fully succeeded, ``Degraded`` means a fallback value
was used (``reason`` says why), ``Failed`` means there is no usable value.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Degraded(Generic[T]):
    value: T
    reason: str


@dataclass(frozen=True)
class Failed:
    reason: str


Result = Ok[T] | Degraded[T] | Failed
