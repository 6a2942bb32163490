"""
Workflow configuration snapshot

Deployment defaults come from Settings; admins override individual keys at
runtime through system_settings rows. The engine receives one frozen
snapshot per request and never reads process-wide settings itself.
"""
import logging
from dataclasses import dataclass, field, fields, replace
from typing import Any, Callable, Mapping, Optional

from sqlalchemy.orm import Session

from ..core.config import Settings, get_settings
from ..core.errors import ValidationFailed
from ..db.models import SystemSetting
from ..schemas.compliance import RateBand
from ..schemas.enums import ApplicationKind, Category
from .compliance import DEFAULT_RATE_BANDS
from .documents import UploadLimits

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkflowConfig:
    max_rooms: int = 6
    max_beds: int = 12
    max_beds_per_room: int = 6
    min_room_rate: float = 100.0
    category_lock_to_recommended: bool = False
    inspection_optional_kinds: frozenset[ApplicationKind] = frozenset()
    correction_resubmit_target: str = "da"
    legacy_forward_enabled: bool = False
    early_inspection_window_days: int = 7
    early_inspection_reason_min_length: int = 15
    correction_reason_min_length: int = 10
    certificate_validity_years: int = 1
    required_document_types: tuple[str, ...] = ()
    upload_limits: UploadLimits = UploadLimits()
    rate_bands: Mapping[Category, RateBand] = field(default_factory=lambda: dict(DEFAULT_RATE_BANDS))

    @classmethod
    def from_settings(cls, settings: Optional[Settings] = None) -> "WorkflowConfig":
        settings = settings or get_settings()
        return cls(
            max_rooms=settings.MAX_ROOMS_ALLOWED,
            max_beds=settings.MAX_BEDS_ALLOWED,
            max_beds_per_room=settings.MAX_BEDS_PER_ROOM,
            min_room_rate=settings.MIN_ROOM_RATE,
            category_lock_to_recommended=settings.CATEGORY_LOCK_TO_RECOMMENDED,
            inspection_optional_kinds=_parse_kinds(settings.INSPECTION_OPTIONAL_KINDS),
            correction_resubmit_target=_parse_target(settings.CORRECTION_RESUBMIT_TARGET),
            legacy_forward_enabled=settings.LEGACY_FORWARD_ENABLED,
            early_inspection_window_days=settings.EARLY_INSPECTION_WINDOW_DAYS,
            early_inspection_reason_min_length=settings.EARLY_INSPECTION_REASON_MIN_LENGTH,
            correction_reason_min_length=settings.CORRECTION_REASON_MIN_LENGTH,
            certificate_validity_years=settings.CERTIFICATE_VALIDITY_YEARS,
            required_document_types=tuple(settings.REQUIRED_DOCUMENT_TYPES),
            upload_limits=UploadLimits(
                max_document_size_mb=settings.MAX_DOCUMENT_SIZE_MB,
                max_photo_size_mb=settings.MAX_PHOTO_SIZE_MB,
                max_total_upload_mb=settings.MAX_TOTAL_UPLOAD_MB,
            ),
        )

    def bypass_allowed(self, kind: ApplicationKind) -> bool:
        """Legacy RC onboarding is always inspection-optional"""
        return kind == ApplicationKind.LEGACY_RC or kind in self.inspection_optional_kinds

    def as_dict(self) -> dict[str, Any]:
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data["inspection_optional_kinds"] = sorted(k.value for k in self.inspection_optional_kinds)
        data["required_document_types"] = list(self.required_document_types)
        data["upload_limits"] = self.upload_limits._asdict()
        data["rate_bands"] = {
            category.value: band.model_dump() for category, band in self.rate_bands.items()
        }
        return data


def _parse_kinds(value: Any) -> frozenset[ApplicationKind]:
    if not isinstance(value, (list, tuple, set, frozenset)):
        raise ValidationFailed("inspection_optional_kinds must be a list of application kinds")
    try:
        return frozenset(ApplicationKind(item) for item in value)
    except ValueError as e:
        raise ValidationFailed(f"Unknown application kind: {e}")


def _parse_target(value: Any) -> str:
    if value not in ("da", "dtdo"):
        raise ValidationFailed("correction_resubmit_target must be 'da' or 'dtdo'")
    return value


def _parse_bool(value: Any) -> bool:
    if not isinstance(value, bool):
        raise ValidationFailed("Expected a boolean value")
    return value


def _parse_positive_int(value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ValidationFailed("Expected a positive integer")
    return value


def _parse_rate_bands(value: Any) -> dict[Category, RateBand]:
    if not isinstance(value, dict):
        raise ValidationFailed("room_rate_bands must map category to {min, max}")
    bands = dict(DEFAULT_RATE_BANDS)
    try:
        for key, band in value.items():
            bands[Category(key)] = RateBand.model_validate(band)
    except ValueError as e:
        raise ValidationFailed(f"Invalid rate band: {e}")
    return bands


# system_settings key -> (WorkflowConfig field, parser)
SETTING_KEYS: dict[str, tuple[str, Callable[[Any], Any]]] = {
    "category_lock_to_recommended": ("category_lock_to_recommended", _parse_bool),
    "inspection_optional_kinds": ("inspection_optional_kinds", _parse_kinds),
    "correction_resubmit_target": ("correction_resubmit_target", _parse_target),
    "legacy_forward_enabled": ("legacy_forward_enabled", _parse_bool),
    "certificate_validity_years": ("certificate_validity_years", _parse_positive_int),
    "early_inspection_window_days": ("early_inspection_window_days", _parse_positive_int),
    "room_rate_bands": ("rate_bands", _parse_rate_bands),
}


def load_workflow_config(db: Session, settings: Optional[Settings] = None) -> WorkflowConfig:
    """Build the effective snapshot: Settings defaults + system_settings overrides"""
    base = WorkflowConfig.from_settings(settings)
    overrides: dict[str, Any] = {}

    for row in db.query(SystemSetting).filter(SystemSetting.setting_key.in_(list(SETTING_KEYS))).all():
        field_name, parser = SETTING_KEYS[row.setting_key]
        try:
            overrides[field_name] = parser(row.setting_value)
        except ValidationFailed as e:
            logger.warning(
                "Ignoring invalid workflow setting",
                extra={"setting_key": row.setting_key, "error": e.message},
            )

    if not overrides:
        return base
    return replace(base, **overrides)


def update_workflow_setting(db: Session, key: str, value: Any, actor_id: str) -> SystemSetting:
    """Validate and upsert a single override (commit handled by caller)"""
    if key not in SETTING_KEYS:
        raise ValidationFailed(f"Unknown workflow setting: {key}")
    _, parser = SETTING_KEYS[key]
    parser(value)

    row = db.query(SystemSetting).filter_by(setting_key=key).first()
    if row is None:
        row = SystemSetting(setting_key=key, setting_value=value, updated_by=actor_id)
        db.add(row)
    else:
        row.setting_value = value
        row.updated_by = actor_id

    logger.info("Workflow setting updated", extra={"setting_key": key, "actor_id": actor_id})
    return row
