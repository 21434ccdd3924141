"""Domain port definitions for adapters."""

from __future__ import annotations

from .persistence import ContactRepository
from .unit_of_work import (
    ContactRepositories,
    ContactUnitOfWork,
    RepositoryCollection,
    UnitOfWork,
)

__all__ = [
    "ContactRepositories",
    "ContactRepository",
    "ContactUnitOfWork",
    "RepositoryCollection",
    "UnitOfWork",
]
