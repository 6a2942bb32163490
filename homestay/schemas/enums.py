from enum import Enum


class ApplicationStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    UNDER_SCRUTINY = "under_scrutiny"
    LEGACY_RC_REVIEW = "legacy_rc_review"
    FORWARDED_TO_DTDO = "forwarded_to_dtdo"
    DTDO_REVIEW = "dtdo_review"
    INSPECTION_SCHEDULED = "inspection_scheduled"
    INSPECTION_COMPLETED = "inspection_completed"
    INSPECTION_UNDER_REVIEW = "inspection_under_review"
    VERIFIED_FOR_PAYMENT = "verified_for_payment"
    SENT_BACK_FOR_CORRECTIONS = "sent_back_for_corrections"
    REVERTED_TO_APPLICANT = "reverted_to_applicant"
    REVERTED_BY_DTDO = "reverted_by_dtdo"
    OBJECTION_RAISED = "objection_raised"
    APPROVED = "approved"
    REJECTED = "rejected"
    SUPERSEDED = "superseded"
    REVOKED = "revoked"
    CERTIFICATE_CANCELLED = "certificate_cancelled"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATUSES


TERMINAL_STATUSES = frozenset({
    ApplicationStatus.APPROVED,
    ApplicationStatus.REJECTED,
    ApplicationStatus.SUPERSEDED,
    ApplicationStatus.REVOKED,
    ApplicationStatus.CERTIFICATE_CANCELLED,
})

CORRECTION_STATUSES = frozenset({
    ApplicationStatus.SENT_BACK_FOR_CORRECTIONS,
    ApplicationStatus.REVERTED_TO_APPLICANT,
    ApplicationStatus.REVERTED_BY_DTDO,
    ApplicationStatus.OBJECTION_RAISED,
})


class ApplicationKind(str, Enum):
    NEW_REGISTRATION = "new_registration"
    ADD_ROOMS = "add_rooms"
    DELETE_ROOMS = "delete_rooms"
    CANCEL_CERTIFICATE = "cancel_certificate"
    CHANGE_CATEGORY = "change_category"
    RENEWAL = "renewal"
    LEGACY_RC = "legacy_rc"

    @property
    def is_service_request(self) -> bool:
        return self in SERVICE_KINDS


SERVICE_KINDS = frozenset({
    ApplicationKind.ADD_ROOMS,
    ApplicationKind.DELETE_ROOMS,
    ApplicationKind.CANCEL_CERTIFICATE,
    ApplicationKind.CHANGE_CATEGORY,
    ApplicationKind.RENEWAL,
})

# Kinds whose approved record can act as the parent of a service request
PARENT_KINDS = frozenset(ApplicationKind) - {ApplicationKind.CANCEL_CERTIFICATE}


class Category(str, Enum):
    SILVER = "silver"
    GOLD = "gold"
    DIAMOND = "diamond"


CATEGORY_ORDER = (Category.SILVER, Category.GOLD, Category.DIAMOND)


class LocationType(str, Enum):
    MC = "mc"    # municipal corporation
    TCP = "tcp"  # town & country planning area
    GP = "gp"    # gram panchayat


class OwnerGender(str, Enum):
    MALE = "male"
    FEMALE = "female"
    OTHER = "other"


class DocumentVerificationStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    NEEDS_CORRECTION = "needs_correction"
    REJECTED = "rejected"


class InspectionOrderStatus(str, Enum):
    SCHEDULED = "scheduled"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class SiteInspectionOutcome(str, Enum):
    OBJECTION = "objection"
    RECOMMENDED = "recommended"
    COMPLETED = "completed"


class PaymentStatus(str, Enum):
    PENDING = "pending"
    PAID = "paid"
