"""Delivery assignment and delivery progress: commands and handler."""

import structlog
from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.lifecycle.dispatch import caller_of
from storefront.order.order import Order

logger = structlog.get_logger(__name__)


@storefront.command(part_of="Order")
class AssignDeliveryAgent:
    order_id = Identifier(required=True)
    agent_id = Identifier(required=True)
    note = Text()
    actor_id = Identifier()
    actor_role = String(required=True, max_length=20)
    actor_permissions = String(max_length=200)


@storefront.command(part_of="Order")
class UpdateDeliveryStatus:
    """Sent by the assigned delivery agent as the hand-off progresses."""

    order_id = Identifier(required=True)
    delivery_status = String(required=True, max_length=20)
    notes = Text()
    actor_id = Identifier()
    actor_role = String(required=True, max_length=20)
    actor_permissions = String(max_length=200)


@storefront.command_handler(part_of=Order)
class OrderDeliveryHandler:
    @handle(AssignDeliveryAgent)
    def assign_delivery_agent(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.assign_delivery_agent(command.agent_id, caller_of(command), note=command.note)
        repo.add(order)

        logger.info("Delivery agent assigned", order_id=str(order.id), agent_id=str(command.agent_id))
        return str(order.id)

    @handle(UpdateDeliveryStatus)
    def update_delivery_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.update_delivery_status(command.delivery_status, caller_of(command), notes=command.notes)
        repo.add(order)

        logger.info(
            "Delivery status updated",
            order_id=str(order.id),
            delivery_status=order.delivery_status,
            order_status=order.status,
            payment_status=order.payment_status,
        )
        return order.delivery_status
