"""Domain enums (pure, dependency-light)."""

from __future__ import annotations

from enum import StrEnum


class LinkPrecedence(StrEnum):
    """Role of a contact inside its group."""

    PRIMARY = "primary"
    SECONDARY = "secondary"
