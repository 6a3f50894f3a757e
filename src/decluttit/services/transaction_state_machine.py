"""Transaction state machine: validates escrow lifecycle transitions.

Happy path::

    PENDING -> ESCROWED -> SHIPPED -> RECEIVED -> RELEASED

DISPUTED is reachable from every non-terminal state and resolves to
RELEASED or REFUNDED. CANCELLED is reachable from PENDING only.
"""

from dataclasses import dataclass
from typing import Optional

from decluttit.domain.enums import (
    TransactionActor,
    TransactionStatus,
    TransactionTransition,
)
from decluttit.domain.errors import InvalidStateTransitionError, UnauthorizedError

S = TransactionStatus
A = TransactionActor
T = TransactionTransition


@dataclass(frozen=True)
class TransitionRule:
    """Allowed source states, target state and permitted actors of a transition."""

    from_statuses: frozenset[TransactionStatus]
    to_status: TransactionStatus
    actors: frozenset[TransactionActor]
    # Transaction timestamp columns stamped with "now" when applied
    timestamps: tuple[str, ...] = ()


TERMINAL_STATES: frozenset[TransactionStatus] = frozenset({
    S.RELEASED,
    S.REFUNDED,
    S.CANCELLED,
})

# A listing with a transaction in any of these states is spoken for
OPEN_STATES: frozenset[TransactionStatus] = frozenset(S) - TERMINAL_STATES

# States a dispute can be opened from
DISPUTABLE_STATES: frozenset[TransactionStatus] = frozenset({
    S.PENDING,
    S.ESCROWED,
    S.SHIPPED,
    S.RECEIVED,
})

TRANSITION_RULES: dict[TransactionTransition, TransitionRule] = {
    T.ESCROW: TransitionRule(
        frozenset({S.PENDING}), S.ESCROWED, frozenset({A.PAYMENT_PROVIDER}), ("paid_at",),
    ),
    T.SHIP: TransitionRule(
        frozenset({S.ESCROWED}), S.SHIPPED, frozenset({A.SELLER}), ("shipped_at",),
    ),
    T.CONFIRM_RECEIPT: TransitionRule(
        frozenset({S.SHIPPED}), S.RECEIVED, frozenset({A.BUYER}), ("received_at",),
    ),
    T.RELEASE: TransitionRule(
        frozenset({S.RECEIVED}), S.RELEASED, frozenset({A.BUYER}),
        ("released_at", "completed_at"),
    ),
    T.CANCEL: TransitionRule(
        frozenset({S.PENDING}), S.CANCELLED, frozenset({A.BUYER, A.SELLER}), ("cancelled_at",),
    ),
    T.DISPUTE: TransitionRule(
        DISPUTABLE_STATES, S.DISPUTED, frozenset({A.BUYER, A.SELLER}),
    ),
    T.RESOLVE_RELEASE: TransitionRule(
        frozenset({S.DISPUTED}), S.RELEASED, frozenset({A.ARBITRATOR}),
        ("released_at", "completed_at"),
    ),
    T.RESOLVE_REFUND: TransitionRule(
        frozenset({S.DISPUTED}), S.REFUNDED, frozenset({A.ARBITRATOR}), ("refunded_at",),
    ),
}

# Transitions a party may request through advance_transaction. Escrow is
# driven by the payment collaborator, disputes by DisputeService.
PARTY_TRANSITIONS: frozenset[TransactionTransition] = frozenset({
    T.SHIP,
    T.CONFIRM_RECEIPT,
    T.RELEASE,
    T.CANCEL,
})


class TransactionStateMachine:
    """Validates transaction state transitions and actor permissions."""

    def rule_for(self, transition: TransactionTransition) -> TransitionRule:
        return TRANSITION_RULES[transition]

    def check_actor(
        self,
        transition: TransactionTransition,
        actor: TransactionActor,
    ) -> None:
        """Raise UnauthorizedError if *actor* may not perform *transition*."""
        rule = TRANSITION_RULES[transition]
        if actor not in rule.actors:
            allowed = ", ".join(sorted(a.value for a in rule.actors))
            raise UnauthorizedError(
                f"Only {allowed} may {transition.value} a transaction (actor: {actor.value})"
            )

    def check_state(
        self,
        current_status: TransactionStatus,
        transition: TransactionTransition,
    ) -> TransactionStatus:
        """Return the target status, or raise InvalidStateTransitionError."""
        rule = TRANSITION_RULES[transition]
        if current_status not in rule.from_statuses:
            raise InvalidStateTransitionError(
                current_status, rule.from_statuses, transition.value,
            )
        return rule.to_status

    def validate_transition(
        self,
        current_status: TransactionStatus,
        transition: TransactionTransition,
        actor: TransactionActor,
    ) -> TransactionStatus:
        """Validate actor then state. Return the target status."""
        self.check_actor(transition, actor)
        return self.check_state(current_status, transition)

    def get_allowed_transitions(
        self,
        current_status: TransactionStatus,
        actor: TransactionActor,
    ) -> list[TransactionTransition]:
        """Return transitions *actor* can apply from *current_status*."""
        return [
            transition
            for transition, rule in TRANSITION_RULES.items()
            if current_status in rule.from_statuses and actor in rule.actors
        ]

    @staticmethod
    def is_terminal(status: TransactionStatus) -> bool:
        return status in TERMINAL_STATES


def actor_for(transaction, user_id: Optional[str]) -> Optional[TransactionActor]:
    """Return the party role *user_id* plays in *transaction*, if any."""
    if user_id is None:
        return None
    if transaction.buyer_id == user_id:
        return A.BUYER
    if transaction.seller_id == user_id:
        return A.SELLER
    return None
