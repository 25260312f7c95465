"""
Membership Service - Group membership checks for expenses.

Membership is by display name after trimming, not by user id, so a renamed
member stops matching the names stored on older expenses.
"""
from typing import Iterable, Optional

from ledger.groups.models import Group
from ledger.users.model import User
from ledger.utils.errors import AuthorizationError, ValidationError


class MembershipService:

    @staticmethod
    def require_member(group: Group, user: User) -> None:
        """The acting user must be in the group to touch its expenses."""
        if not group.has_member(user.name):
            raise AuthorizationError("not a group member")

    @staticmethod
    def name_error(group: Group, names: Iterable[str]) -> Optional[str]:
        """Message listing every name outside the group, or None."""
        offenders = group.non_members(names)
        if offenders:
            return "Names are not group members: " + ", ".join(offenders)
        return None

    @classmethod
    def check_names(cls, group: Group, names: Iterable[str]) -> None:
        """
        Every payer and participant name must belong to the group.

        All offenders are reported in one error instead of stopping at the
        first one.
        """
        error = cls.name_error(group, names)
        if error:
            raise ValidationError(error)
