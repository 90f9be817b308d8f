"""Caller identity as handed over by the identity provider.

Token issuance is not this context's concern; all that is consumed is the
account reference (``None`` for guests) and the caller's role.
"""

from dataclasses import dataclass, field
from enum import Enum

from storefront.errors import PermissionDenied


class Role(Enum):
    GUEST = "guest"
    CUSTOMER = "customer"
    MODERATOR = "moderator"
    ADMIN = "admin"
    DELIVERY = "delivery"


class Permission(Enum):
    MANAGE_ORDERS = "manage_orders"
    MANAGE_PRODUCT_INQUIRIES = "manage_product_inquiries"


OPERATOR_ROLES = frozenset({Role.MODERATOR, Role.ADMIN})


@dataclass(frozen=True)
class Caller:
    account_id: str | None = None
    role: Role = Role.GUEST
    permissions: frozenset = field(default_factory=frozenset)

    @classmethod
    def guest(cls):
        return cls()

    @classmethod
    def customer(cls, account_id):
        return cls(account_id=str(account_id), role=Role.CUSTOMER)

    @classmethod
    def staff(cls, account_id, role, permissions=()):
        return cls(
            account_id=str(account_id),
            role=Role(role),
            permissions=frozenset(Permission(p) for p in permissions),
        )

    @classmethod
    def from_claims(cls, account_id=None, role=None, permissions=None):
        """Build a caller from loosely typed claims; unknown permissions are ignored."""
        if isinstance(permissions, str):
            permissions = permissions.split(",")
        known = {p.value for p in Permission}
        granted = frozenset(Permission(p.strip()) for p in permissions or () if p and p.strip() in known)
        return cls(
            account_id=str(account_id) if account_id else None,
            role=Role(role or Role.GUEST.value),
            permissions=granted,
        )

    def claims(self) -> dict:
        """Flatten into the actor fields carried by commands."""
        return {
            "actor_id": self.account_id,
            "actor_role": self.role.value,
            "actor_permissions": ",".join(sorted(p.value for p in self.permissions)),
        }

    @property
    def is_authenticated(self) -> bool:
        return self.account_id is not None and self.role != Role.GUEST

    @property
    def is_operator(self) -> bool:
        return self.role in OPERATOR_ROLES

    def can(self, permission: Permission) -> bool:
        """Admins hold every permission; moderators only those granted to them."""
        if self.role == Role.ADMIN:
            return True
        return self.role == Role.MODERATOR and permission in self.permissions

    def require_operator(self, permission: Permission):
        if not self.can(permission):
            raise PermissionDenied(f"Role '{self.role.value}' cannot {permission.value.replace('_', ' ')}")

    def require_role(self, *roles: Role):
        if self.role not in roles:
            allowed = ", ".join(r.value for r in roles)
            raise PermissionDenied(f"Role '{self.role.value}' is not one of: {allowed}")


@dataclass(frozen=True)
class Owner:
    """Who a cart belongs to: a guest session or an account, never both."""

    account_id: str | None = None
    session_key: str | None = None

    def __post_init__(self):
        if (self.account_id is None) == (self.session_key is None):
            raise ValueError("Owner needs exactly one of account_id or session_key")

    @classmethod
    def account(cls, account_id):
        return cls(account_id=str(account_id))

    @classmethod
    def guest(cls, session_key):
        return cls(session_key=str(session_key))

    @property
    def is_guest(self) -> bool:
        return self.account_id is None
