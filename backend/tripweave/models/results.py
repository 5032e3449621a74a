"""Tagged oracle results.

Every oracle call and every post-validation step returns either ``Ok`` or
``Invalid``; call sites branch on the tag and run their fallback explicitly.
"""

from dataclasses import dataclass
from typing import Generic, TypeVar

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Oracle output that passed validation."""

    value: T


@dataclass(frozen=True)
class Invalid:
    """Oracle failure: timeout, exception, malformed payload or invariant violation."""

    reason: str


OracleResult = Ok[T] | Invalid
