"""Planner Vault.

Keeps the planner state encrypted at rest under a key derived from the
user's password.
"""
from .version import (
    __description__,
    __title__,
    __version__,
)
from .document import PlannerDocument, Todo, TrackedSession
from .vault.planner_vault import PlannerVault, UnlockOutcome, VaultState

__all__ = (
    "PlannerDocument",
    "Todo",
    "TrackedSession",
    "PlannerVault",
    "UnlockOutcome",
    "VaultState",
)
