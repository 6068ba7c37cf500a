from __future__ import annotations

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from signed_session.utils.exceptions import SessionException

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Err:
    error: SessionException


Result = Union[Ok[T], Err]
