"""Authorization rules for competitions, entries, statistics and impersonation.

Every function here is pure: it receives the actor's role and id plus the
minimal entity state, and returns an ``AccessDecision``. Loading entities and
turning denials into errors is the services' job.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from fitcomp.models.competition import CompetitionStatus, DataEntryMethod
from fitcomp.models.user import UserRole

FORBIDDEN = "forbidden"
INVALID_STATE = "invalid_state"


@dataclass(slots=True, frozen=True)
class AccessDecision:
    allowed: bool
    code: str | None = None
    rule: str | None = None
    message: str | None = None


ALLOW = AccessDecision(allowed=True)


def deny(rule: str, message: str, *, code: str = FORBIDDEN) -> AccessDecision:
    return AccessDecision(allowed=False, code=code, rule=rule, message=message)


class CompetitionScope(str, enum.Enum):
    """Which competitions an actor gets to see when listing."""

    all = "all"
    owned = "owned"
    active = "active"
    none = "none"


class StatsScope(str, enum.Enum):
    all = "all"
    owned_competitions = "owned_competitions"


def coerce_role(role: UserRole | str | None) -> UserRole | None:
    if role is None or isinstance(role, UserRole):
        return role
    try:
        return UserRole(str(role))
    except ValueError:
        return None


def _manages(actor_id: int, competition: Any) -> bool:
    return actor_id in (competition.created_by, competition.assigned_to)


# ── Competitions ──

def can_create_competition(role: UserRole) -> AccessDecision:
    if role is UserRole.administrator or role is UserRole.staff:
        return ALLOW
    if role is UserRole.member:
        return deny("member_create_competition", "Members cannot create competitions")
    raise ValueError(f"unknown role: {role!r}")


def can_update_competition(
    role: UserRole,
    actor_id: int,
    competition: Any,
    *,
    target_status: CompetitionStatus | None = None,
) -> AccessDecision:
    if role is UserRole.administrator:
        return ALLOW
    if role is UserRole.member:
        return deny(
            "member_update_competition",
            "Insufficient permissions: members cannot update competitions",
        )
    if role is UserRole.staff:
        if not _manages(actor_id, competition):
            return deny(
                "staff_not_owner",
                "Staff can only update competitions they created or are assigned to",
            )
        if target_status is CompetitionStatus.completed:
            return deny("staff_complete_competition", "Staff cannot mark competitions as completed")
        return ALLOW
    raise ValueError(f"unknown role: {role!r}")


def can_delete_competition(role: UserRole) -> AccessDecision:
    if role is UserRole.administrator:
        return ALLOW
    if role is UserRole.staff or role is UserRole.member:
        return deny("delete_requires_administrator", "Only administrators can delete competitions")
    raise ValueError(f"unknown role: {role!r}")


def competition_visibility(role: UserRole | str | None, actor_id: int | None) -> CompetitionScope:
    resolved = coerce_role(role)
    if resolved is None:
        # anonymous/public view; an unrecognised role string sees nothing
        if role is None and actor_id is None:
            return CompetitionScope.active
        return CompetitionScope.none
    if resolved is UserRole.administrator:
        return CompetitionScope.all
    if resolved is UserRole.staff:
        return CompetitionScope.owned if actor_id is not None else CompetitionScope.none
    if resolved is UserRole.member:
        return CompetitionScope.active
    raise ValueError(f"unknown role: {role!r}")


def is_visible(scope: CompetitionScope, actor_id: int | None, competition: Any) -> bool:
    """Single-row counterpart of the list filter for ``scope``."""
    if scope is CompetitionScope.all:
        return True
    if scope is CompetitionScope.owned:
        return actor_id is not None and _manages(actor_id, competition)
    if scope is CompetitionScope.active:
        return competition.status is CompetitionStatus.active
    return False


# ── Entries ──

def can_create_entry(
    role: UserRole,
    actor_id: int,
    competition: Any,
    subject_id: int,
) -> AccessDecision:
    if competition.status is not CompetitionStatus.active:
        return deny("competition_not_active", "Competition is not active", code=INVALID_STATE)

    if role is UserRole.administrator or role is UserRole.staff:
        return ALLOW
    if role is not UserRole.member:
        raise ValueError(f"unknown role: {role!r}")

    method = competition.data_entry_method
    if method is DataEntryMethod.staff_only:
        return deny(
            "member_staff_only_entry",
            "Members cannot enter data for staff-only competitions; only staff can enter data",
        )
    if method is DataEntryMethod.user_entry:
        if subject_id != actor_id:
            return deny("member_entry_for_other", "Members can only enter data for themselves")
        return ALLOW
    raise ValueError(f"unknown data entry method: {method!r}")


def can_update_entry(
    role: UserRole,
    actor_id: int,
    entry: Any,
    competition: Any,
) -> AccessDecision:
    if competition.status is not CompetitionStatus.active:
        return deny(
            "competition_not_active",
            "Cannot update entries for inactive or completed competitions",
            code=INVALID_STATE,
        )

    if role is UserRole.administrator:
        return ALLOW
    if role is UserRole.staff and competition.assigned_to == actor_id:
        return ALLOW
    if role not in (UserRole.staff, UserRole.member):
        raise ValueError(f"unknown role: {role!r}")

    if entry.user_id == actor_id:
        if competition.data_entry_method is DataEntryMethod.user_entry:
            return ALLOW
        return deny(
            "owner_staff_only_entry",
            "Users cannot edit entries for staff-only competitions",
        )
    return deny("entry_update_not_permitted", "Insufficient permissions to update this entry")


# ── Statistics ──

def user_stats_scope(role: UserRole, actor_id: int, subject_id: int) -> StatsScope | AccessDecision:
    """Return how far the actor may see the subject's entries, or a denial."""
    if role is UserRole.administrator:
        return StatsScope.all
    if actor_id == subject_id:
        return StatsScope.all
    if role is UserRole.staff:
        return StatsScope.owned_competitions
    if role is UserRole.member:
        return deny("member_stats_for_other", "Members can only view their own statistics")
    raise ValueError(f"unknown role: {role!r}")


def can_view_scoped_stats(visible_entries: int) -> AccessDecision:
    if visible_entries > 0:
        return ALLOW
    return deny(
        "staff_stats_outside_competitions",
        "Staff can only view statistics for users in their assigned competitions",
    )


# ── Users ──

SELF_EDITABLE_USER_FIELDS = frozenset({"email", "first_name", "last_name", "password"})


def can_create_user(role: UserRole) -> AccessDecision:
    if role is UserRole.administrator:
        return ALLOW
    if role is UserRole.staff or role is UserRole.member:
        return deny("create_user_requires_administrator", "Only administrators can create users")
    raise ValueError(f"unknown role: {role!r}")


def can_update_user(
    role: UserRole,
    actor_id: int,
    target_id: int,
    fields: set[str] | frozenset[str],
) -> AccessDecision:
    if role is UserRole.administrator:
        return ALLOW
    if role not in (UserRole.staff, UserRole.member):
        raise ValueError(f"unknown role: {role!r}")
    if actor_id != target_id:
        return deny("update_other_user", "Only administrators can update other users")
    restricted = sorted(set(fields) - SELF_EDITABLE_USER_FIELDS)
    if restricted:
        return deny(
            "self_update_restricted_field",
            f"Users cannot change their own {', '.join(restricted)}",
        )
    return ALLOW


# ── Impersonation ──

def can_impersonate(role: UserRole, *, actor_active: bool, target_active: bool) -> AccessDecision:
    if role is not UserRole.administrator:
        return deny("impersonate_requires_administrator", "Only administrators can impersonate users")
    if not actor_active:
        return deny("administrator_inactive", "Administrator account is not active", code=INVALID_STATE)
    if not target_active:
        return deny("target_inactive", "Target user account is not active", code=INVALID_STATE)
    return ALLOW
