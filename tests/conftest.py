"""
Pytest configuration and fixtures for the lifecycle test suite
"""
import os

# Settings are read at import time
os.environ["ENVIRONMENT"] = "test"
os.environ["DATABASE_URL"] = "sqlite:///:memory:"
os.environ["JWT_SECRET"] = "test-secret-key-for-testing-only"
os.environ["LOG_LEVEL"] = "WARNING"

import itertools
import uuid
import pytest
from datetime import datetime
from typing import Generator
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker, Session
from sqlalchemy.pool import StaticPool
from fastapi.testclient import TestClient

from homestay.core.auth import AuthContext, DA_ROLE, OWNER_ROLE, SYSTEM_ROLE
from homestay.core.database import get_db
from homestay.db.models import (
    Application,
    ApplicationDocument,
    Base,
    InspectionOrder,
    User,
)
from homestay.main import app
from homestay.services.drafts import DraftService
from homestay.services.lifecycle import LifecycleService
from homestay.services.notifications import NotificationDispatcher, get_notification_dispatcher
from homestay.services.settings import WorkflowConfig
from homestay.utils.dev_token import generate_dev_token

FIXED_NOW = datetime(2026, 3, 10, 9, 0, 0)

REQUIRED_DOCUMENTS = (
    "revenue_papers",
    "affidavit_section_29",
    "undertaking_form_c",
    "property_photo",
)


# ============================================================================
# DATABASE FIXTURES
# ============================================================================

@pytest.fixture(scope="function")
def session_factory() -> Generator[sessionmaker, None, None]:
    """
    In-memory SQLite database shared by every session of one test

    Each test gets a fresh database with all tables created.
    """
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )

    # Enable foreign key support for SQLite
    @event.listens_for(engine, "connect")
    def set_sqlite_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    Base.metadata.create_all(bind=engine)

    try:
        yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture(scope="function")
def test_db(session_factory: sessionmaker) -> Generator[Session, None, None]:
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture(scope="function")
def client(test_db: Session, session_factory: sessionmaker) -> Generator[TestClient, None, None]:
    """
    Create FastAPI test client with dependency overrides

    Overrides:
    - Database session (uses test_db)
    - Notification dispatcher (writes into the test database)
    """
    def override_get_db():
        try:
            yield test_db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_dispatcher] = lambda: NotificationDispatcher(
        session_factory=session_factory
    )

    with TestClient(app) as test_client:
        yield test_client

    app.dependency_overrides.clear()


# ============================================================================
# ENGINE FIXTURES
# ============================================================================

@pytest.fixture
def config() -> WorkflowConfig:
    return WorkflowConfig(required_document_types=REQUIRED_DOCUMENTS)


@pytest.fixture
def lifecycle(test_db: Session, config: WorkflowConfig) -> LifecycleService:
    """Lifecycle engine with a frozen clock"""
    return LifecycleService(test_db, config, clock=lambda: FIXED_NOW)


@pytest.fixture
def drafts(test_db: Session, config: WorkflowConfig) -> DraftService:
    return DraftService(test_db, config, clock=lambda: FIXED_NOW)


# ============================================================================
# ACTORS
# ============================================================================

@pytest.fixture
def owner() -> AuthContext:
    return AuthContext(user_id="owner_001", role=OWNER_ROLE)


@pytest.fixture
def da() -> AuthContext:
    return AuthContext(user_id="da_shimla", role=DA_ROLE, district="Shimla")


@pytest.fixture
def dtdo() -> AuthContext:
    return AuthContext(user_id="dtdo_shimla", role="district_tourism_officer", district="Shimla")


@pytest.fixture
def system_actor() -> AuthContext:
    return AuthContext(user_id="payment_gateway", role=SYSTEM_ROLE)


# ============================================================================
# DATABASE FACTORY FIXTURES
# ============================================================================

@pytest.fixture
def create_user(test_db: Session):
    """
    Factory fixture for creating User records

    Usage:
        user = create_user(id="da_shimla", role="dealing_assistant", district="Shimla")
    """
    def _create_user(**kwargs) -> User:
        defaults = {
            "id": f"user_{uuid.uuid4().hex[:8]}",
            "role": OWNER_ROLE,
            "full_name": "Test User",
            "mobile": "9816000000",
            "district": None,
        }
        defaults.update(kwargs)

        user = User(**defaults)
        test_db.add(user)
        test_db.commit()
        test_db.refresh(user)
        return user

    return _create_user


@pytest.fixture
def create_application(test_db: Session):
    """
    Factory fixture for creating Application records in any status

    Defaults describe a compliant silver homestay in Shimla with two
    double rooms at ₹2,000 a night.

    Usage:
        application = create_application(status="under_scrutiny", revert_count=1)
    """
    sequence = itertools.count(1)

    def _create_application(**kwargs) -> Application:
        defaults = {
            "id": f"app_{uuid.uuid4().hex[:12]}",
            "application_number": f"HP-HS-2026-SHI-{next(sequence):06d}",
            "user_id": "owner_001",
            "application_kind": "new_registration",
            "category": "silver",
            "status": "draft",
            "current_stage": "draft",
            "property_name": "Pine View Homestay",
            "owner_name": "Asha Devi",
            "owner_gender": "female",
            "owner_mobile": "9816000000",
            "address": "Ward 3, Mashobra",
            "district": "Shimla",
            "tehsil": "Shimla Rural",
            "pincode": "171007",
            "location_type": "gp",
            "certificate_validity_years": 1,
            "double_bed_rooms": 2,
            "double_bed_beds": 2,
            "double_bed_room_rate": 2000.0,
            "attached_washrooms": 2,
        }
        defaults.update(kwargs)

        application = Application(**defaults)
        test_db.add(application)
        test_db.commit()
        test_db.refresh(application)
        return application

    return _create_application


@pytest.fixture
def create_document(test_db: Session):
    """Factory fixture for creating ApplicationDocument records"""
    def _create_document(application_id: str, **kwargs) -> ApplicationDocument:
        defaults = {
            "id": f"doc_{uuid.uuid4().hex[:12]}",
            "application_id": application_id,
            "document_type": "revenue_papers",
            "file_name": "jamabandi.pdf",
            "file_path": "uploads/jamabandi.pdf",
            "file_size": 2048,
            "mime_type": "application/pdf",
            "verification_status": "pending",
        }
        defaults.update(kwargs)

        document = ApplicationDocument(**defaults)
        test_db.add(document)
        test_db.commit()
        test_db.refresh(document)
        return document

    return _create_document


@pytest.fixture
def attach_required_documents(create_document):
    """Attach one document of every required type in the given verdict"""
    def _attach(application_id: str, verification_status: str = "verified") -> list[ApplicationDocument]:
        return [
            create_document(
                application_id,
                document_type=doc_type,
                file_name=f"{doc_type}.{'jpg' if doc_type == 'property_photo' else 'pdf'}",
                mime_type="image/jpeg" if doc_type == "property_photo" else "application/pdf",
                verification_status=verification_status,
            )
            for doc_type in REQUIRED_DOCUMENTS
        ]

    return _attach


@pytest.fixture
def create_inspection_order(test_db: Session):
    """Factory fixture for creating InspectionOrder records"""
    def _create_order(application_id: str, **kwargs) -> InspectionOrder:
        defaults = {
            "id": f"insp_{uuid.uuid4().hex[:12]}",
            "application_id": application_id,
            "scheduled_by": "dtdo_shimla",
            "scheduled_date": datetime(2026, 3, 1, 10, 0, 0),
            "assigned_to": "da_shimla",
            "assigned_date": datetime(2026, 3, 1, 10, 0, 0),
            "inspection_date": datetime(2026, 3, 8, 11, 0, 0),
            "inspection_address": "Ward 3, Mashobra",
            "status": "scheduled",
        }
        defaults.update(kwargs)

        order = InspectionOrder(**defaults)
        test_db.add(order)
        test_db.commit()
        test_db.refresh(order)
        return order

    return _create_order


# ============================================================================
# AUTHENTICATION FIXTURES
# ============================================================================

@pytest.fixture
def auth_headers():
    """
    Mint bearer headers for any role

    Usage:
        headers = auth_headers(role="dealing_assistant", user_id="da_shimla", district="Shimla")
    """
    def _headers(role: str = OWNER_ROLE, user_id: str = "owner_001", district: str = None) -> dict[str, str]:
        token = generate_dev_token(user_id=user_id, role=role, district=district)
        return {"Authorization": f"Bearer {token}"}

    return _headers


# ============================================================================
# CONFIGURATION
# ============================================================================

def pytest_configure(config):
    """Register custom markers"""
    config.addinivalue_line("markers", "unit: marks tests as unit tests")
    config.addinivalue_line("markers", "integration: marks tests as integration tests")
