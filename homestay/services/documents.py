from typing import Iterable, NamedTuple, Optional, Protocol

from ..core.errors import GuardFailed
from ..schemas.enums import DocumentVerificationStatus


class DocumentPolicy(NamedTuple):
    """Upload policy per document type"""

    allowed_mimes: set[str]
    max_size_mb: int


PDF_OR_IMAGE = {"application/pdf", "image/jpeg", "image/png"}
IMAGE = {"image/jpeg", "image/png"}

DOCUMENT_POLICIES = {
    "revenue_papers": DocumentPolicy(allowed_mimes=PDF_OR_IMAGE, max_size_mb=5),
    "affidavit_section_29": DocumentPolicy(allowed_mimes=PDF_OR_IMAGE, max_size_mb=5),
    "undertaking_form_c": DocumentPolicy(allowed_mimes=PDF_OR_IMAGE, max_size_mb=5),
    "commercial_electricity_bill": DocumentPolicy(allowed_mimes=PDF_OR_IMAGE, max_size_mb=5),
    "commercial_water_bill": DocumentPolicy(allowed_mimes=PDF_OR_IMAGE, max_size_mb=5),
    "legacy_certificate": DocumentPolicy(allowed_mimes=PDF_OR_IMAGE, max_size_mb=5),
    "property_photo": DocumentPolicy(allowed_mimes=IMAGE, max_size_mb=10),
}


class UploadLimits(NamedTuple):
    max_document_size_mb: int = 5
    max_photo_size_mb: int = 10
    max_total_upload_mb: int = 100


class DocumentLike(Protocol):
    document_type: str
    file_name: str
    file_size: int
    mime_type: str


MB = 1024 * 1024


def get_policy(document_type: str, limits: UploadLimits = UploadLimits()) -> DocumentPolicy:
    """Get policy for document type; deployment limits cap the per-type size"""
    policy = DOCUMENT_POLICIES.get(
        document_type,
        DocumentPolicy(allowed_mimes=PDF_OR_IMAGE, max_size_mb=limits.max_document_size_mb),
    )
    cap = limits.max_photo_size_mb if document_type == "property_photo" else limits.max_document_size_mb
    return policy._replace(max_size_mb=min(policy.max_size_mb, cap))


def validate_documents(docs: Iterable[DocumentLike], limits: UploadLimits = UploadLimits()) -> Optional[str]:
    """
    Check uploaded document metadata against the byte-size and MIME policy

    Returns a human-readable error, or None when every document passes.
    """
    total = 0
    for doc in docs:
        policy = get_policy(doc.document_type, limits)
        if doc.mime_type not in policy.allowed_mimes:
            return f"{doc.file_name}: file type {doc.mime_type} is not accepted for {doc.document_type}"
        if doc.file_size <= 0:
            return f"{doc.file_name} is empty"
        if doc.file_size > policy.max_size_mb * MB:
            return f"{doc.file_name} exceeds the {policy.max_size_mb} MB limit for {doc.document_type}"
        total += doc.file_size

    if total > limits.max_total_upload_mb * MB:
        return f"Total upload size exceeds {limits.max_total_upload_mb} MB"
    return None


def check_documents_reviewed(documents: list, required_types: Iterable[str]) -> None:
    """
    Gate forwarding to the DTDO on completed document scrutiny

    Every required type must be present and no document may still be pending.
    """
    if not documents:
        raise GuardFailed("No documents are attached to this application")

    present = {doc.document_type for doc in documents}
    missing = [doc_type for doc_type in required_types if doc_type not in present]
    if missing:
        raise GuardFailed(f"Required documents missing: {', '.join(missing)}")

    pending = [
        doc.file_name
        for doc in documents
        if (doc.verification_status or DocumentVerificationStatus.PENDING.value)
        == DocumentVerificationStatus.PENDING.value
    ]
    if pending:
        raise GuardFailed(
            f"Complete document scrutiny before forwarding; {len(pending)} document(s) still pending"
        )
