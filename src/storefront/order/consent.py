"""Contact consent: command and handler."""

from protean import handle
from protean.fields import Boolean, Identifier, String
from protean.utils.globals import current_domain

from storefront.domain import storefront
from storefront.lifecycle.dispatch import caller_of
from storefront.order.order import Order


@storefront.command(part_of="Order")
class SetContactConsent:
    order_id = Identifier(required=True)
    contact_consent = Boolean(default=False)
    actor_id = Identifier()
    actor_role = String(required=True, max_length=20)
    actor_permissions = String(max_length=200)


@storefront.command_handler(part_of=Order)
class ContactConsentHandler:
    @handle(SetContactConsent)
    def set_contact_consent(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.set_contact_consent(command.contact_consent, caller_of(command))
        repo.add(order)
        return order.contact_consent
