"""Serialized command dispatch for one record.

Each status command re-reads its record, validates against what is stored
and writes. Holding the record's lock around the whole unit of work makes
concurrent requests on the same record land one after the other, so the
last one to arrive decides the final state and is validated against the
state the previous one left.
"""

from protean.utils.globals import current_domain

from storefront.access import Caller
from storefront.locks import record_locks


def process_serialized(record_id, command):
    with record_locks.hold(record_id):
        return current_domain.process(command, asynchronous=False)


def caller_of(command) -> Caller:
    """Rebuild the acting caller from a command's actor fields."""
    return Caller.from_claims(
        account_id=command.actor_id,
        role=command.actor_role,
        permissions=command.actor_permissions,
    )
