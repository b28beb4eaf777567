from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class FailureKind(str, Enum):
    UNSUPPORTED = "unsupported"
    UNRESOLVED = "unresolved"
    NON_CONSTANT = "non_constant"
    IO = "io"
    SELECTION = "selection"


@dataclass(frozen=True)
class Success(Generic[T]):
    value: T
    ok: bool = True


@dataclass(frozen=True)
class Failure:
    kind: FailureKind
    message: str
    ok: bool = False


Result = Union[Success[T], Failure]


TOO_COMPLEX = "This function is too complex to inline safely."


def unsupported(message: str = TOO_COMPLEX) -> Failure:
    return Failure(FailureKind.UNSUPPORTED, message)


def non_constant(message: str = TOO_COMPLEX) -> Failure:
    return Failure(FailureKind.NON_CONSTANT, message)
