"""Status lifecycles for orders, order requests and product inquiries.

Each lifecycle is a table of transitions and the roles allowed to trigger
them. Role checks live here and nowhere else: an aggregate asks its
lifecycle once per transition request and applies the change only if the
lifecycle accepts it.

Terminal states accept no transitions at all.
"""

from dataclasses import dataclass

from storefront.access import Caller, Permission, Role
from storefront.errors import InvalidTransition, PermissionDenied

MODERATOR, ADMIN, DELIVERY = Role.MODERATOR, Role.ADMIN, Role.DELIVERY


@dataclass(frozen=True)
class Transition:
    sources: frozenset
    target: str
    roles: frozenset


def _t(sources, target, *roles):
    return Transition(sources=frozenset(sources), target=target, roles=frozenset(roles))


class Lifecycle:
    def __init__(self, kind, states, terminal, transitions, permission=None):
        self.kind = kind
        self.states = tuple(states)
        self.terminal = frozenset(terminal)
        self.transitions = tuple(transitions)
        self.permission = permission

    def is_terminal(self, state) -> bool:
        return state in self.terminal

    def _find(self, current, target):
        return next((t for t in self.transitions if t.target == target and current in t.sources), None)

    def allowed_targets(self, current, caller: Caller):
        """Targets ``caller`` could move a record in ``current`` to."""
        if self.is_terminal(current):
            return []
        return [
            t.target
            for t in self.transitions
            if current in t.sources and caller.role in t.roles and self._holds_permission(caller)
        ]

    def _holds_permission(self, caller: Caller) -> bool:
        if caller.role != Role.MODERATOR or self.permission is None:
            return True
        return caller.can(self.permission)

    def check(self, current, target, caller: Caller):
        """Raise unless ``caller`` may move a record from ``current`` to ``target``."""
        if target not in self.states or self.is_terminal(current):
            raise InvalidTransition(current, target, kind=self.kind)

        transition = self._find(current, target)
        if transition is None:
            raise InvalidTransition(current, target, kind=self.kind)

        if caller.role not in transition.roles:
            raise PermissionDenied(f"Role '{caller.role.value}' cannot move a {self.kind} to '{target}'")
        if not self._holds_permission(caller):
            raise PermissionDenied(f"Moderator lacks the '{self.permission.value}' permission")
        return transition


ORDER_LIFECYCLE = Lifecycle(
    kind="order",
    states=("new", "contacted", "processing", "completed", "cancelled"),
    terminal=("completed", "cancelled"),
    transitions=(
        _t({"new"}, "contacted", MODERATOR, ADMIN),
        _t({"new", "contacted"}, "processing", MODERATOR, ADMIN, DELIVERY),
        _t({"processing"}, "completed", DELIVERY, MODERATOR, ADMIN),
        _t({"new", "contacted", "processing"}, "cancelled", MODERATOR, ADMIN),
    ),
    permission=Permission.MANAGE_ORDERS,
)

ORDER_REQUEST_LIFECYCLE = Lifecycle(
    kind="order request",
    states=("new", "contacted", "completed", "cancelled"),
    terminal=("completed", "cancelled"),
    transitions=(
        _t({"new"}, "contacted", MODERATOR, ADMIN),
        _t({"new", "contacted"}, "completed", MODERATOR, ADMIN),
        _t({"new", "contacted"}, "cancelled", MODERATOR, ADMIN),
    ),
    permission=Permission.MANAGE_ORDERS,
)

PRODUCT_INQUIRY_LIFECYCLE = Lifecycle(
    kind="product inquiry",
    states=("new", "in_progress", "converted", "closed"),
    terminal=("converted", "closed"),
    transitions=(
        _t({"new"}, "in_progress", MODERATOR, ADMIN),
        _t({"new", "in_progress"}, "converted", MODERATOR, ADMIN, DELIVERY),
        _t({"new", "in_progress"}, "closed", MODERATOR, ADMIN),
    ),
    permission=Permission.MANAGE_PRODUCT_INQUIRIES,
)


# Delivery sub-states, driven by the assigned agent
ORDER_DELIVERY_FLOW = {
    "pending": {"picked_up", "on_the_way", "failed"},
    "picked_up": {"on_the_way", "failed"},
    "on_the_way": {"delivered", "failed"},
    "delivered": set(),
    "failed": set(),
}

INQUIRY_DELIVERY_FLOW = {
    "none": set(),
    "pending": {"on_the_way", "delivered", "cancelled"},
    "on_the_way": {"delivered", "cancelled"},
    "delivered": set(),
    "cancelled": set(),
}


def check_delivery_step(flow, current, target, kind="delivery"):
    if target not in flow or target not in flow.get(current, set()):
        raise InvalidTransition(current, target, kind=kind)
