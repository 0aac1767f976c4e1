"""Role and ownership rules.

Each check names every ``Role`` member; an unknown role is a programming
error and raises instead of silently falling into a default branch.
"""
from wecare.core.states import Role


def _unknown(role) -> AssertionError:
    return AssertionError(f"Unhandled role: {role!r}")


def may_create_donation(role: Role) -> bool:
    if role is Role.DONOR:
        return True
    if role is Role.RECEIVER or role is Role.ADMIN:
        return False
    raise _unknown(role)


def may_accept_donation(role: Role) -> bool:
    if role is Role.RECEIVER:
        return True
    if role is Role.DONOR or role is Role.ADMIN:
        return False
    raise _unknown(role)


def may_manage_donation(role: Role, caller_id: str, owner_id: str) -> bool:
    """Complete and delete: the owning donor or an admin."""
    if role is Role.ADMIN:
        return True
    if role is Role.DONOR:
        return caller_id == owner_id
    if role is Role.RECEIVER:
        return False
    raise _unknown(role)


def may_view_user_donations(role: Role, caller_id: str, user_id: str) -> bool:
    if role is Role.ADMIN:
        return True
    if role is Role.DONOR or role is Role.RECEIVER:
        return caller_id == user_id
    raise _unknown(role)


def may_run_match(role: Role, caller_id: str, user_id: str) -> bool:
    if role is Role.ADMIN:
        return True
    if role is Role.RECEIVER:
        return caller_id == user_id
    if role is Role.DONOR:
        return False
    raise _unknown(role)


def is_admin(role: Role) -> bool:
    if role is Role.ADMIN:
        return True
    if role is Role.DONOR or role is Role.RECEIVER:
        return False
    raise _unknown(role)
