"""Order read paths for customers, operator dashboards and delivery agents."""

from protean.exceptions import ValidationError
from protean.utils.globals import current_domain

from storefront.access import Caller, Permission, Role
from storefront.errors import OrderNotFound, PermissionDenied
from storefront.lifecycle.machine import ORDER_LIFECYCLE
from storefront.order.order import Order


def _query():
    return current_domain.repository_for(Order)._dao.query


def get_order(order_id, caller: Caller) -> Order:
    """Fetch one order, enforcing that customers only read their own."""
    orders = _query().filter(id=str(order_id)).all().items
    if not orders:
        raise OrderNotFound(order_id)
    order = orders[0]
    if not order.visible_to(caller):
        raise PermissionDenied("You can only view your own orders")
    return order


def orders_for_customer(caller: Caller, limit=100):
    if not caller.is_authenticated:
        raise PermissionDenied("Sign in to see your orders")
    return _query().filter(customer_id=caller.account_id).order_by("-created_at").limit(limit).all().items


def orders_by_status(caller: Caller, status=None, limit=100):
    """Operator dashboard listing, newest first."""
    caller.require_operator(Permission.MANAGE_ORDERS)
    query = _query()
    if status:
        if status not in ORDER_LIFECYCLE.states:
            raise ValidationError({"status": [f"Unknown order status: {status}"]})
        query = query.filter(status=status)
    return query.order_by("-created_at").limit(limit).all().items


def orders_for_agent(caller: Caller, limit=100):
    caller.require_role(Role.DELIVERY)
    return _query().filter(delivery_agent_id=caller.account_id).order_by("-assigned_at").limit(limit).all().items
