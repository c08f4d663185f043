"""
Error taxonomy for the simulator.

Validation and state-conflict errors are raised before any state is touched.
Budget errors are expected during unattended season runs; the season loop logs
them and carries on.
"""
from __future__ import annotations


class EsportsSimError(Exception):
    """Base class for every error raised by the simulator core."""


# ---------- Validation ----------


class ValidationError(EsportsSimError, ValueError):
    """Invalid input (bad roster, bad config, bad amounts)."""


class InvalidRosterError(ValidationError):
    """A team cannot field exactly five active players."""


class InvalidConfigError(ValidationError):
    """Match or season configuration is out of range."""


# ---------- Budget ----------


class BudgetError(EsportsSimError):
    """Money-related refusal."""


class InsufficientBudgetError(BudgetError):
    """Team cannot afford the requested commitment."""

    def __init__(self, team_id: str, required: float, available: float) -> None:
        super().__init__(
            f"Team {team_id} cannot afford {required:,.0f} (available {available:,.0f})"
        )
        self.team_id = team_id
        self.required = required
        self.available = available


# ---------- State conflicts ----------


class StateConflictError(EsportsSimError):
    """Operation conflicts with current entity state."""


class EntityNotFoundError(StateConflictError, KeyError):
    """Referenced id does not exist in the store."""

    def __str__(self) -> str:
        return str(self.args[0]) if self.args else ""


class PlayerAlreadyContractedError(StateConflictError):
    """Player already has an active contract."""


class ContractNotFoundError(StateConflictError):
    """Player has no active contract."""


class ListingExistsError(StateConflictError):
    """Player is already on the transfer list."""


class ListingNotActiveError(StateConflictError):
    """Listing is missing, expired, withdrawn or already accepted."""


class OfferNotFoundError(StateConflictError):
    """Offer id does not belong to the listing or is no longer pending."""


class ScheduleConflictError(StateConflictError):
    """A team would play twice on the same day."""


class SeasonCompleteError(StateConflictError):
    """The season has run its full length; start the next one first."""


# ---------- Persistence ----------


class PersistenceError(EsportsSimError):
    """Save or load failed."""


class SaveNotFoundError(PersistenceError, FileNotFoundError):
    """Save file does not exist."""


class CorruptSaveError(PersistenceError):
    """Save file is not valid JSON or does not match the save schema."""
