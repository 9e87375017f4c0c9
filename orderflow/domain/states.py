"""Explicit status machines for budgets, orders, production orders and commissions."""

from typing import Dict, FrozenSet, Iterable, Mapping


class InvalidTransition(ValueError):
    def __init__(self, machine: str, current: str, target: str):
        self.machine = machine
        self.current = current
        self.target = target
        super().__init__(f"{machine}: cannot move from '{current}' to '{target}'")


class StateMachine:
    """A named transition table.

    States with no outgoing transitions are terminal. Moving to the current
    state is not a transition and is rejected like any other illegal move.
    """

    def __init__(self, name: str, transitions: Mapping[str, Iterable[str]], initial: str):
        self.name = name
        self.initial = initial
        self._transitions: Dict[str, FrozenSet[str]] = {
            state: frozenset(targets) for state, targets in transitions.items()
        }
        unknown = {t for targets in self._transitions.values() for t in targets} - set(self._transitions)
        if unknown or initial not in self._transitions:
            raise ValueError(f"{name}: undeclared states {sorted(unknown) or [initial]}")

    @property
    def states(self) -> FrozenSet[str]:
        return frozenset(self._transitions)

    def allowed_from(self, state: str) -> FrozenSet[str]:
        return self._transitions.get(state, frozenset())

    def is_terminal(self, state: str) -> bool:
        return state in self._transitions and not self._transitions[state]

    def can_transition(self, current: str, target: str) -> bool:
        return target in self.allowed_from(current)

    def assert_transition(self, current: str, target: str) -> str:
        if not self.can_transition(current, target):
            raise InvalidTransition(self.name, current, target)
        return target


BUDGET = StateMachine("budget", {
    "draft": {"sent", "rejected"},
    "sent": {"approved", "rejected", "converted"},
    "approved": {"converted", "rejected"},
    "rejected": set(),
    "converted": set(),
}, initial="draft")

BUDGET_CONVERTIBLE = frozenset({"sent", "approved"})

# Forward path an order follows; `cancelled` hangs off every non-terminal step.
ORDER_SEQUENCE = ("pending", "confirmed", "production", "ready", "shipped", "delivered", "completed")

ORDER = StateMachine("order", {
    "pending": {"confirmed", "cancelled"},
    "confirmed": {"production", "cancelled"},
    "production": {"ready", "shipped", "cancelled"},
    "ready": {"shipped", "cancelled"},
    "shipped": {"delivered", "cancelled"},
    "delivered": {"completed", "cancelled"},
    "completed": set(),
    "cancelled": set(),
}, initial="pending")

PRODUCTION_ORDER = StateMachine("production_order", {
    "pending": {"accepted", "rejected"},
    "accepted": {"production"},
    "production": {"quality_check", "ready"},
    "quality_check": {"ready"},
    "ready": {"shipped"},
    "shipped": {"delivered"},
    "delivered": {"completed"},
    "completed": set(),
    "rejected": set(),
}, initial="pending")

COMMISSION = StateMachine("commission", {
    "pending": {"confirmed", "cancelled", "deducted"},
    "confirmed": {"paid", "cancelled"},
    "paid": set(),
    "cancelled": set(),
    "deducted": set(),
}, initial="pending")

PRODUCER_PAYMENT = StateMachine("producer_payment", {
    "pending": {"approved", "rejected"},
    "approved": {"paid"},
    "paid": set(),
    "rejected": set(),
}, initial="pending")

PAYMENT_STATUSES = frozenset({"pending", "confirmed", "failed"})
PURCHASE_STATUSES = ("to_buy", "purchased", "in_store")


def order_rank(status: str) -> int:
    """Position of `status` on the forward order path, -1 for off-path states."""
    try:
        return ORDER_SEQUENCE.index(status)
    except ValueError:
        return -1
