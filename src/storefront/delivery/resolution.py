"""Delivery resolution: from a scanned or typed identifier to exactly one order.

Resolution strategy, in order:

1. A full-length id is looked up directly.
2. A tracking-code-length id is matched against the stored tracking code.
3. Anything else, and any miss above, falls back to a paged scan for ids
   ending with the identifier.

Matching ignores case. The outcome is a tagged ``Resolution``: ``Found``,
``NotFound`` or ``Ambiguous``. Scanning a QR code and typing the code by
hand go through the same function.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from storefront.access import Caller
from storefront.delivery.tracking import normalize_identifier
from storefront.errors import AmbiguousIdentifier, OrderNotFound
from storefront.order.order import Order
from storefront.settings import TRACKING_CODE_LENGTH

logger = structlog.get_logger(__name__)

FULL_ID_LENGTH = 36
SCAN_PAGE_SIZE = 100


@dataclass(frozen=True)
class Found:
    order: Order
    assigned_to_caller: bool = False
    warning: str | None = None


@dataclass(frozen=True)
class NotFound:
    identifier: str


@dataclass(frozen=True)
class Ambiguous:
    identifier: str
    match_count: int


Resolution = Found | NotFound | Ambiguous


def _repo():
    return current_domain.repository_for(Order)


def _direct(identifier):
    try:
        return [_repo().get(identifier.lower())]
    except ObjectNotFoundError:
        return []


def _by_tracking_code(identifier):
    return _repo()._dao.query.filter(tracking_code=identifier.upper()).all().items


def _scan(identifier):
    """Walk every order page by page, collecting ids that end with ``identifier``."""
    suffix = identifier.upper()
    matches, offset = [], 0
    while True:
        page = _repo()._dao.query.order_by("created_at").offset(offset).limit(SCAN_PAGE_SIZE).all().items
        matches.extend(order for order in page if str(order.id).upper().endswith(suffix))
        if len(page) < SCAN_PAGE_SIZE:
            return matches
        offset += SCAN_PAGE_SIZE


def _candidates(identifier):
    if len(identifier) == FULL_ID_LENGTH:
        found = _direct(identifier)
        if found:
            return found
    elif len(identifier) == TRACKING_CODE_LENGTH:
        found = _by_tracking_code(identifier)
        if found:
            return found
    return _scan(identifier)


def lookup_order(raw_identifier, caller: Caller | None = None) -> Resolution:
    """Resolve an identifier to a tagged result.

    When ``caller`` is given, a found order also reports whether it is
    assigned to that caller, with a warning if it is not.
    """
    identifier = normalize_identifier(raw_identifier)
    if not identifier:
        return NotFound(identifier=identifier)

    matches = _candidates(identifier)
    if not matches:
        logger.info("Delivery resolution", identifier=identifier, outcome="not_found")
        return NotFound(identifier=identifier)
    if len(matches) > 1:
        logger.warning("Ambiguous delivery identifier", identifier=identifier, match_count=len(matches))
        return Ambiguous(identifier=identifier, match_count=len(matches))

    order = matches[0]
    assigned = caller is not None and order.is_assigned_to(caller)
    warning = None
    if caller is not None and not assigned:
        warning = (
            "Order is assigned to another delivery agent"
            if order.delivery_agent_id
            else "Order is not assigned to a delivery agent yet"
        )
    logger.info("Delivery resolution", identifier=identifier, outcome="found", order_id=str(order.id))
    return Found(order=order, assigned_to_caller=assigned, warning=warning)


def require_found(resolution: Resolution) -> Found:
    """Unwrap a resolution, raising ``OrderNotFound`` or ``AmbiguousIdentifier``."""
    if isinstance(resolution, NotFound):
        raise OrderNotFound(resolution.identifier)
    if isinstance(resolution, Ambiguous):
        raise AmbiguousIdentifier(resolution.identifier, resolution.match_count)
    return resolution


def resolve_order(raw_identifier) -> Order:
    return require_found(lookup_order(raw_identifier)).order
