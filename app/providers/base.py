from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


class CatalogFetchError(Exception):
    """The upstream catalog could not be turned into a list of raw entries."""


class CatalogTimeoutError(CatalogFetchError):
    pass


@dataclass(frozen=True, slots=True)
class RawCatalogEntry:
    name: str


class CatalogSource(ABC):
    def __init__(self, name: str) -> None:
        self.name = name

    @abstractmethod
    async def fetch(self) -> list[RawCatalogEntry]:
        """Return every upstream entry or raise :class:`CatalogFetchError`."""
        ...
