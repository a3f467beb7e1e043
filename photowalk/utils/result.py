"""Tagged results returned by the external-service gateways.

Gateways never raise for expected failures; the caller inspects the tag and
decides whether to substitute a default, map it to a status code, or ignore it.
"""
from dataclasses import dataclass
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class NotFound:
    message: str
    subject: str = ""


@dataclass(frozen=True)
class InvalidInput:
    message: str
    reason: str = ""


@dataclass(frozen=True)
class ServiceError:
    message: str
    reason: str = "error"
    detail: Any = None


Result = Union[Ok[T], NotFound, InvalidInput, ServiceError]
