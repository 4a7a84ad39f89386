"""Waiting list abilities per staff role."""

from enum import Enum

from waitlist.core.exceptions import AuthorizationError
from waitlist.models.account import Account, StaffRole
from waitlist.models.waiting_list import WaitingList


class Ability(str, Enum):
    VIEW = "view"
    UPDATE_ACCOUNTS = "update_accounts"
    REMOVE_ACCOUNTS = "remove_accounts"


ROLE_ABILITIES: dict[StaffRole, frozenset[Ability]] = {
    StaffRole.ADMIN: frozenset(Ability),
    StaffRole.TRAINING_MANAGER: frozenset(Ability),
    StaffRole.MENTOR: frozenset({Ability.VIEW}),
}


def can(actor: Account, ability: Ability, waiting_list: WaitingList | None = None) -> bool:
    """Whether the actor may exercise the ability on the waiting list."""
    if not actor.staff_role:
        return False
    try:
        role = StaffRole(actor.staff_role)
    except ValueError:
        return False
    return ability in ROLE_ABILITIES.get(role, frozenset())


def authorize(actor: Account, ability: Ability, waiting_list: WaitingList | None = None) -> None:
    if not can(actor, ability, waiting_list):
        raise AuthorizationError(
            f"Not allowed to {ability.value.replace('_', ' ')}",
            details={"ability": ability.value, "actor_id": actor.id},
        )
