"""Identity resolution core: load, merge, decide, assemble."""

from __future__ import annotations

from .assemble import assemble_group_view
from .contracts import ContactGroupView, IdentityQuery, MergeOutcome
from .decision import ensure_secondary, holds_pair, is_represented
from .engine import IdentityResolver, identify, resolve_identity
from .errors import (
    ConcurrencyConflictError,
    ContactLinkError,
    GroupIntegrityError,
    InvalidIdentityQueryError,
    RetriesExhaustedError,
    StoreUnavailableError,
)
from .loader import load_candidate_primaries
from .merge import merge_primaries, select_primary

__all__ = [
    "ConcurrencyConflictError",
    "ContactGroupView",
    "ContactLinkError",
    "GroupIntegrityError",
    "IdentityQuery",
    "IdentityResolver",
    "InvalidIdentityQueryError",
    "MergeOutcome",
    "RetriesExhaustedError",
    "StoreUnavailableError",
    "assemble_group_view",
    "ensure_secondary",
    "holds_pair",
    "identify",
    "is_represented",
    "load_candidate_primaries",
    "merge_primaries",
    "resolve_identity",
    "select_primary",
]
