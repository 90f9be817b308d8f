"""Caller identity for HTTP requests.

Token issuance belongs to the identity provider in front of this service;
it forwards the caller as headers, which are trusted here.
"""

from fastapi import Header

from storefront.access import Caller
from storefront.errors import PermissionDenied


def current_caller(
    x_account_id: str | None = Header(default=None),
    x_role: str | None = Header(default=None),
    x_permissions: str | None = Header(default=None),
) -> Caller:
    if not x_account_id:
        return Caller.guest()
    try:
        return Caller.from_claims(account_id=x_account_id, role=x_role or "customer", permissions=x_permissions)
    except ValueError:
        raise PermissionDenied(f"Unknown role: {x_role}") from None
