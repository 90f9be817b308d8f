"""Order aggregate.

An order is immutable once placed except for its status, its delivery
assignment and notes, its payment status and the customer's contact
consent. Line prices are captured at placement and never re-read from the
catalogue afterwards.

Status changes go through ``transition_to``, which asks the order lifecycle
whether the caller may make the move. Delivery agents drive the delivery
sub-state through ``update_delivery_status``; the order status follows it:

    picked_up / on_the_way  ->  processing
    delivered               ->  (processing ->) completed, cash marked paid
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import (
    Boolean,
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from storefront.access import Caller, Permission, Role
from storefront.delivery.tracking import tracking_code_for
from storefront.domain import storefront
from storefront.errors import InvalidTransition, PermissionDenied
from storefront.lifecycle.machine import ORDER_DELIVERY_FLOW, ORDER_LIFECYCLE, check_delivery_step
from storefront.order.events import (
    ContactConsentChanged,
    DeliveryAgentAssigned,
    DeliveryStatusUpdated,
    OrderPaid,
    OrderPlaced,
    OrderStatusChanged,
)


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    NEW = "new"
    CONTACTED = "contacted"
    PROCESSING = "processing"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class PaymentMethod(Enum):
    CASH = "cash"
    CARD = "card"


class PaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"


class DeliveryStatus(Enum):
    PENDING = "pending"
    PICKED_UP = "picked_up"
    ON_THE_WAY = "on_the_way"
    DELIVERED = "delivered"
    FAILED = "failed"


class OrderSource(Enum):
    CART = "cart"
    DIRECT = "direct"
    BUY_NOW = "buy_now"


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@storefront.value_object(part_of="Order")
class DeliveryInfo:
    """Where and to whom the order is handed over, as given at checkout."""

    full_name = String(max_length=200)
    phone = String(max_length=30)
    city = String(required=True, max_length=100)
    address = String(required=True, max_length=500)
    postal_code = String(max_length=20)
    country = String(max_length=100)


@storefront.value_object(part_of="Order")
class CardDetails:
    """Card fields accepted at checkout. Nothing is charged; the full number is never kept."""

    holder_name = String(max_length=200)
    last4 = String(required=True, max_length=4)
    expiry = String(max_length=7)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@storefront.entity(part_of="Order")
class OrderItem:
    product_id = Identifier(required=True)
    product_name = String(required=True, max_length=255)
    quantity = Integer(required=True, min_value=1)
    list_price = Float(required=True, min_value=0.0)
    discount_percent = Float(default=0.0)
    unit_price = Float(required=True, min_value=0.0)
    line_total = Float(required=True, min_value=0.0)


@storefront.entity(part_of="Order")
class StatusChange:
    """One entry of an order's append-only change history."""

    action = String(required=True, max_length=30)
    from_status = String(max_length=30)
    to_status = String(max_length=30)
    actor_id = Identifier()
    actor_role = String(required=True, max_length=20)
    note = Text()
    changed_at = DateTime(required=True)


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@storefront.aggregate
class Order:
    customer_id = Identifier()  # None for guest orders
    items = HasMany(OrderItem)
    history = HasMany(StatusChange)
    delivery = ValueObject(DeliveryInfo)
    total_amount = Float(required=True, min_value=0.0)
    status = String(choices=OrderStatus, default=OrderStatus.NEW.value)
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.CASH.value)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    card = ValueObject(CardDetails)
    contact_consent = Boolean(default=False)
    source = String(choices=OrderSource, default=OrderSource.DIRECT.value)
    tracking_code = String(max_length=36)
    idempotency_key = String(max_length=100)
    request_fingerprint = String(max_length=64)  # guest submissions only
    delivery_agent_id = Identifier()
    delivery_status = String(choices=DeliveryStatus)
    delivery_notes = Text()
    assigned_at = DateTime()
    paid_at = DateTime()
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_matches_lines(self):
        if not self.items:
            return
        expected = round(sum(item.line_total for item in self.items), 2)
        if round(self.total_amount or 0.0, 2) != expected:
            raise ValidationError({"total_amount": [f"Total must equal the sum of line totals ({expected})"]})

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def create(
        cls,
        lines,
        delivery,
        payment_method,
        source,
        customer_id=None,
        card=None,
        contact_consent=False,
        idempotency_key=None,
        request_fingerprint=None,
        placed_by=None,
        order_id=None,
    ):
        """Build a new order in status ``new`` from already priced lines.

        Args:
            lines: Dicts with product_id, product_name, quantity, list_price,
                discount_percent, unit_price and line_total.
            delivery: Dict of DeliveryInfo fields.
            payment_method: ``cash`` or ``card``.
            source: Where the order came from (cart, direct, buy_now).
            card: Optional dict of CardDetails fields.
            placed_by: The Caller placing the order, recorded in history.
        """
        if not lines:
            raise ValidationError({"items": ["An order must have at least one line"]})

        now = datetime.now(UTC)
        items = [OrderItem(**line) for line in lines]
        kwargs = dict(
            customer_id=customer_id,
            items=items,
            delivery=DeliveryInfo(**delivery),
            total_amount=round(sum(item.line_total for item in items), 2),
            payment_method=payment_method,
            card=CardDetails(**card) if card else None,
            contact_consent=bool(contact_consent),
            source=source,
            idempotency_key=idempotency_key,
            request_fingerprint=request_fingerprint,
            created_at=now,
            updated_at=now,
        )
        if order_id:
            kwargs["id"] = order_id
        order = cls(**kwargs)
        order.tracking_code = tracking_code_for(order.id)

        placed_by = placed_by or Caller.guest()
        order.add_history(
            StatusChange(
                action="placed",
                to_status=OrderStatus.NEW.value,
                actor_id=placed_by.account_id,
                actor_role=placed_by.role.value,
                changed_at=now,
            )
        )
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                customer_id=str(customer_id) if customer_id else None,
                tracking_code=order.tracking_code,
                source=source,
                payment_method=payment_method,
                item_count=sum(item.quantity for item in items),
                total_amount=order.total_amount,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Access
    # -------------------------------------------------------------------
    def is_assigned_to(self, caller: Caller) -> bool:
        return bool(self.delivery_agent_id) and str(self.delivery_agent_id) == str(caller.account_id)

    def visible_to(self, caller: Caller) -> bool:
        """Customers see their own orders; staff see every order."""
        if caller.role in (Role.MODERATOR, Role.ADMIN, Role.DELIVERY):
            return True
        return caller.is_authenticated and bool(self.customer_id) and str(self.customer_id) == caller.account_id

    def _require_assigned(self, caller: Caller):
        if not self.delivery_agent_id:
            raise PermissionDenied("Order is not assigned to a delivery agent")
        if not self.is_assigned_to(caller):
            raise PermissionDenied("Order is assigned to another delivery agent")

    # -------------------------------------------------------------------
    # Status lifecycle
    # -------------------------------------------------------------------
    def _record(self, action, caller: Caller, from_status=None, to_status=None, note=None, at=None):
        self.add_history(
            StatusChange(
                action=action,
                from_status=from_status,
                to_status=to_status,
                actor_id=caller.account_id,
                actor_role=caller.role.value,
                note=note,
                changed_at=at or datetime.now(UTC),
            )
        )

    def _apply_status(self, target, caller: Caller, note=None):
        now = datetime.now(UTC)
        previous = self.status
        self.status = target
        self.updated_at = now
        self._record("status", caller, from_status=previous, to_status=target, note=note, at=now)
        self.raise_(
            OrderStatusChanged(
                order_id=str(self.id),
                from_status=previous,
                to_status=target,
                actor_id=caller.account_id,
                actor_role=caller.role.value,
                note=note,
                changed_at=now,
            )
        )

    def transition_to(self, target, caller: Caller, note=None):
        """Move the order to ``target`` if the lifecycle allows ``caller`` to."""
        ORDER_LIFECYCLE.check(self.status, target, caller)
        if caller.role == Role.DELIVERY:
            self._require_assigned(caller)
        self._apply_status(target, caller, note=note)

    # -------------------------------------------------------------------
    # Delivery assignment
    # -------------------------------------------------------------------
    def assign_delivery_agent(self, agent_id, caller: Caller, note=None):
        caller.require_operator(Permission.MANAGE_ORDERS)
        if ORDER_LIFECYCLE.is_terminal(self.status):
            raise ValidationError({"status": [f"Cannot assign delivery on a {self.status} order"]})

        now = datetime.now(UTC)
        self.delivery_agent_id = agent_id
        self.delivery_status = DeliveryStatus.PENDING.value
        self.assigned_at = now
        self.updated_at = now
        self._record("assigned", caller, note=note or f"Assigned to {agent_id}", at=now)
        self.raise_(
            DeliveryAgentAssigned(
                order_id=str(self.id),
                agent_id=str(agent_id),
                assigned_by=caller.account_id,
                assigned_at=now,
            )
        )

    def _statuses_for_delivery(self, delivery_status):
        """Order statuses the order passes through when delivery reaches ``delivery_status``."""
        early = (OrderStatus.NEW.value, OrderStatus.CONTACTED.value)
        if delivery_status in (DeliveryStatus.PICKED_UP.value, DeliveryStatus.ON_THE_WAY.value):
            return [OrderStatus.PROCESSING.value] if self.status in early else []
        if delivery_status == DeliveryStatus.DELIVERED.value:
            if self.status in early:
                return [OrderStatus.PROCESSING.value, OrderStatus.COMPLETED.value]
            return [OrderStatus.COMPLETED.value]
        return []

    def update_delivery_status(self, delivery_status, caller: Caller, notes=None):
        """Advance the delivery sub-state. Only the assigned agent may do this.

        Every resulting order status change is validated before anything is
        modified, so a refused update leaves the order untouched.
        """
        caller.require_role(Role.DELIVERY)
        self._require_assigned(caller)
        if ORDER_LIFECYCLE.is_terminal(self.status):
            raise InvalidTransition(self.status, delivery_status, kind="order")

        current = self.delivery_status or DeliveryStatus.PENDING.value
        check_delivery_step(ORDER_DELIVERY_FLOW, current, delivery_status)

        plan = self._statuses_for_delivery(delivery_status)
        state = self.status
        for target in plan:
            ORDER_LIFECYCLE.check(state, target, caller)
            state = target

        now = datetime.now(UTC)
        self.delivery_status = delivery_status
        if notes is not None:
            self.delivery_notes = notes
        self.updated_at = now
        self._record("delivery", caller, from_status=current, to_status=delivery_status, note=notes, at=now)
        self.raise_(
            DeliveryStatusUpdated(
                order_id=str(self.id),
                agent_id=caller.account_id,
                previous_status=current,
                new_status=delivery_status,
                notes=notes,
            )
        )

        for target in plan:
            self._apply_status(target, caller, note=f"Delivery {delivery_status}")

        if delivery_status == DeliveryStatus.DELIVERED.value and self.payment_method == PaymentMethod.CASH.value:
            self.mark_paid()

    def mark_paid(self):
        if self.payment_status == PaymentStatus.PAID.value:
            return
        now = datetime.now(UTC)
        self.payment_status = PaymentStatus.PAID.value
        self.paid_at = now
        self.raise_(
            OrderPaid(
                order_id=str(self.id),
                amount=self.total_amount,
                payment_method=self.payment_method,
                paid_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Contact consent
    # -------------------------------------------------------------------
    def set_contact_consent(self, consent, caller: Caller):
        owns = bool(self.customer_id) and str(self.customer_id) == caller.account_id
        if not owns and not caller.can(Permission.MANAGE_ORDERS):
            raise PermissionDenied("Only the customer or an operator can change contact consent")

        self.contact_consent = bool(consent)
        self.updated_at = datetime.now(UTC)
        self.raise_(
            ContactConsentChanged(
                order_id=str(self.id),
                contact_consent=self.contact_consent,
                changed_by=caller.account_id,
            )
        )
