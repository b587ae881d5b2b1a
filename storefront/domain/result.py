# storefront/domain/result.py
"""Jawne wyniki operacji serwisow.

Spodziewane porazki (brak stanu, odrzucony webhook, nieudane zamowienie)
wracaja do routera jako ``Err``, router mapuje je na kody HTTP.
"""
from dataclasses import dataclass
from typing import Generic, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err(Generic[E]):
    error: E

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err[E]]
