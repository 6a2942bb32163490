"""
Lifecycle transition table

Single source of truth for which operation may move an application from
which status, and to which statuses it may lead. The engine picks the
concrete target (e.g. auto-reject vs. revert) and then asks this table
whether the move is legal; anything not listed is refused.
"""
from enum import Enum

from ..core.errors import InvalidState
from ..schemas.enums import ApplicationStatus as S


class Operation(str, Enum):
    SUBMIT = "submit"
    START_SCRUTINY = "start_scrutiny"
    FORWARD_TO_DTDO = "forward_to_dtdo"
    SEND_BACK = "send_back"
    ACCEPT = "accept"
    SCHEDULE_INSPECTION = "schedule_inspection"
    REJECT = "reject"
    REVERT = "revert"
    COMPLETE_INSPECTION = "complete_inspection"
    APPROVE_INSPECTION = "approve_inspection"
    REJECT_INSPECTION = "reject_inspection"
    RAISE_OBJECTIONS = "raise_objections"
    APPROVE_BYPASS = "approve_bypass"
    RECORD_PAYMENT = "record_payment"
    RESUBMIT_CORRECTION = "resubmit_correction"
    APPROVE_CANCELLATION = "approve_cancellation"
    CORRECT = "correct"
    REVOKE = "revoke"
    # lineage cascades applied to a parent registration
    SUPERSEDE = "supersede"
    CANCEL_PARENT = "cancel_parent"


DTDO_REVIEW_STAGE = (
    S.FORWARDED_TO_DTDO,
    S.DTDO_REVIEW,
    S.INSPECTION_SCHEDULED,
    S.INSPECTION_COMPLETED,
    S.INSPECTION_UNDER_REVIEW,
)

PAYMENT_PENDING_STAGE = (
    S.SUBMITTED,
    S.UNDER_SCRUTINY,
    S.LEGACY_RC_REVIEW,
    S.FORWARDED_TO_DTDO,
    S.DTDO_REVIEW,
    S.INSPECTION_SCHEDULED,
    S.INSPECTION_COMPLETED,
    S.INSPECTION_UNDER_REVIEW,
)


def _rows(sources, targets) -> dict[S, frozenset[S]]:
    return {source: frozenset(targets) for source in sources}


_TABLE: dict[Operation, dict[S, frozenset[S]]] = {
    Operation.SUBMIT: _rows([S.DRAFT], [S.SUBMITTED, S.LEGACY_RC_REVIEW]),
    Operation.START_SCRUTINY: _rows([S.SUBMITTED], [S.UNDER_SCRUTINY]),
    Operation.FORWARD_TO_DTDO: _rows(
        [S.UNDER_SCRUTINY, S.LEGACY_RC_REVIEW], [S.FORWARDED_TO_DTDO]
    ),
    Operation.SEND_BACK: _rows(
        [S.UNDER_SCRUTINY, S.LEGACY_RC_REVIEW], [S.REVERTED_TO_APPLICANT, S.REJECTED]
    ),
    Operation.ACCEPT: _rows(
        [S.FORWARDED_TO_DTDO, S.DTDO_REVIEW],
        [S.DTDO_REVIEW, S.INSPECTION_SCHEDULED, S.APPROVED, S.CERTIFICATE_CANCELLED],
    ),
    Operation.SCHEDULE_INSPECTION: _rows([S.DTDO_REVIEW], [S.INSPECTION_SCHEDULED]),
    Operation.REJECT: _rows(DTDO_REVIEW_STAGE + (S.VERIFIED_FOR_PAYMENT,), [S.REJECTED]),
    Operation.REVERT: _rows(DTDO_REVIEW_STAGE, [S.REVERTED_BY_DTDO, S.REJECTED]),
    Operation.COMPLETE_INSPECTION: _rows(
        [S.INSPECTION_SCHEDULED, S.INSPECTION_COMPLETED], [S.INSPECTION_UNDER_REVIEW]
    ),
    Operation.APPROVE_INSPECTION: _rows(
        [S.INSPECTION_UNDER_REVIEW], [S.VERIFIED_FOR_PAYMENT, S.APPROVED]
    ),
    Operation.REJECT_INSPECTION: _rows([S.INSPECTION_UNDER_REVIEW], [S.REJECTED]),
    Operation.RAISE_OBJECTIONS: _rows([S.INSPECTION_UNDER_REVIEW], [S.OBJECTION_RAISED]),
    Operation.APPROVE_BYPASS: _rows(
        [S.SUBMITTED, S.UNDER_SCRUTINY, S.LEGACY_RC_REVIEW, S.FORWARDED_TO_DTDO, S.DTDO_REVIEW],
        [S.APPROVED, S.CERTIFICATE_CANCELLED],
    ),
    Operation.RESUBMIT_CORRECTION: _rows(
        [
            S.SENT_BACK_FOR_CORRECTIONS,
            S.REVERTED_TO_APPLICANT,
            S.REVERTED_BY_DTDO,
            S.OBJECTION_RAISED,
        ],
        [S.UNDER_SCRUTINY, S.DTDO_REVIEW, S.LEGACY_RC_REVIEW],
    ),
    Operation.APPROVE_CANCELLATION: _rows(
        PAYMENT_PENDING_STAGE + (S.VERIFIED_FOR_PAYMENT,), [S.CERTIFICATE_CANCELLED]
    ),
    Operation.CORRECT: _rows([S.APPROVED], [S.APPROVED]),
    Operation.REVOKE: _rows([S.APPROVED], [S.REVOKED]),
    Operation.SUPERSEDE: _rows([S.APPROVED], [S.SUPERSEDED]),
    Operation.CANCEL_PARENT: _rows([S.APPROVED], [S.CERTIFICATE_CANCELLED]),
}

# Payment may arrive upfront (recorded, status unchanged) or after verification
_TABLE[Operation.RECORD_PAYMENT] = {
    **{source: frozenset([source]) for source in PAYMENT_PENDING_STAGE},
    S.VERIFIED_FOR_PAYMENT: frozenset([S.APPROVED]),
}

TRANSITIONS: dict[tuple[S, Operation], frozenset[S]] = {
    (source, operation): targets
    for operation, rows in _TABLE.items()
    for source, targets in rows.items()
}


def allowed_sources(operation: Operation) -> frozenset[S]:
    """Statuses from which the operation may be attempted"""
    return frozenset(_TABLE.get(operation, {}).keys())


def can_apply(current: S, operation: Operation) -> bool:
    return (current, operation) in TRANSITIONS


def check_transition(current: S, operation: Operation, target: S) -> S:
    """
    Validate a concrete move against the table

    Raises InvalidState if the operation is not allowed from the current
    status or cannot lead to the requested target.
    """
    targets = TRANSITIONS.get((current, operation))
    if targets is None:
        raise InvalidState(
            f"Operation '{operation.value}' is not allowed while the application is '{current.value}'"
        )
    if target not in targets:
        raise InvalidState(
            f"Operation '{operation.value}' cannot move an application from "
            f"'{current.value}' to '{target.value}'"
        )
    return target
