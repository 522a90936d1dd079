"""Caller identities.

Identities arrive already validated from the identity collaborator (the
API gateway in front of the server).  The SDK never derives them itself;
they are passed explicitly into every operation that needs one.
"""

import enum

from pydantic import BaseModel


class UserType(str, enum.Enum):
    """Submitter population, used by ``base_conf.allowed_user_type``."""

    UNDERGRAD = "undergrad"
    POSTGRAD = "postgrad"


class AdminRole(str, enum.Enum):
    """Admins act on their own surveys; super admins act on all of them."""

    NORMAL = "normal"
    SUPER = "super"


class UserIdentity(BaseModel):
    """A survey respondent."""

    username: str
    user_type: UserType


class AdminIdentity(BaseModel):
    """A survey author."""

    id: int
    username: str
    role: AdminRole = AdminRole.NORMAL

    @property
    def is_super(self) -> bool:
        return self.role == AdminRole.SUPER

    def can_manage(self, owner_id: int) -> bool:
        """True if this admin owns the survey or is a super admin."""
        return self.is_super or self.id == owner_id
