"""Error taxonomy for the storefront context.

Every error carries a ``messages`` dict of ``{field: [message, ...]}`` so the
API layer can report a specific reason (missing field, invalid phone,
insufficient stock) instead of a generic failure.
"""

from protean.exceptions import ObjectNotFoundError, ProteanException, ValidationError


class OutOfStock(ValidationError):
    """Requested quantity exceeds the stock available right now."""

    def __init__(self, product_id, requested, available, product_name=None):
        self.product_id = str(product_id)
        self.requested = requested
        self.available = available
        label = product_name or self.product_id
        super().__init__(
            {"stock": [f"Insufficient stock for {label}: requested {requested}, available {available}"]}
        )


class InvalidTransition(ValidationError):
    """Target status is unknown or not reachable from the stored status."""

    def __init__(self, current, target, kind="order"):
        self.current = current
        self.target = target
        super().__init__({"status": [f"Cannot transition {kind} from {current} to {target}"]})


class _MessageError(ProteanException):
    def __init__(self, messages):
        self.messages = messages
        super().__init__(messages)


class ProductNotFound(ObjectNotFoundError):
    def __init__(self, product_id):
        self.product_id = str(product_id)
        self.messages = {"product_id": [f"Product {product_id} not found"]}
        super().__init__(self.messages)


class OrderNotFound(ObjectNotFoundError):
    def __init__(self, identifier):
        self.identifier = identifier
        self.messages = {"identifier": [f"No order matches {identifier!r}"]}
        super().__init__(self.messages)


class AmbiguousIdentifier(_MessageError):
    """A partial identifier matched more than one record."""

    def __init__(self, identifier, match_count):
        self.identifier = identifier
        self.match_count = match_count
        super().__init__({"identifier": [f"{identifier!r} matches {match_count} orders; enter more characters"]})


class MergeConflict(_MessageError):
    """The server rejected a guest-cart merge batch; the guest cart is kept."""

    def __init__(self, account_id, reason):
        self.account_id = str(account_id)
        self.reason = reason
        super().__init__({"cart": [f"Guest cart merge failed: {reason}"]})


class PermissionDenied(_MessageError):
    def __init__(self, reason):
        super().__init__({"permission": [reason]})
