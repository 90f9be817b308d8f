"""Storefront bounded context: carts, checkout and the order lifecycle.

Handles guest and account shopping carts, the checkout path that snapshots
catalogue prices into orders, the status lifecycle shared by orders, order
requests and product inquiries, and the delivery hand-off that resolves
scanned tracking codes back to orders.
"""

import structlog
from protean.domain import Domain

storefront = Domain(name="storefront")

logger = structlog.get_logger(__name__)
