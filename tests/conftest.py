"""
Test configuration for the MediMantra backend.
"""
import smtplib

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool

from medimantra.auth.dependencies import get_mailer, get_storage
from medimantra.auth.schemas import DoctorRegistration, PatientRegistration
from medimantra.auth.service import register_doctor, register_patient
from medimantra.config import Settings
from medimantra.core.bootstrap import bootstrap_admin_if_needed
from medimantra.core.security import TokenService
from medimantra.database import Database, get_db
from medimantra.main import create_app

CLIENT_URL = "http://client.test"
PASSWORD = "s3cure-passw0rd"


class FakeMailer:
    """Records outgoing mail instead of talking to an SMTP server."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.attempts = 0
        self.sent = []

    def is_configured(self) -> bool:
        return True

    def send(self, to, subject, text, html=None):
        self.attempts += 1
        if self.fail:
            raise smtplib.SMTPException("SMTP server unavailable")
        self.sent.append({"to": to, "subject": subject, "text": text, "html": html})

    def last_verification_token(self) -> str:
        text = self.sent[-1]["text"]
        return text.split("/verify-email/", 1)[1].split()[0]

    def last_reset_token(self) -> str:
        text = self.sent[-1]["text"]
        return text.split("/reset-password/", 1)[1].split()[0]


class FakeStorage:
    """Returns predictable URLs instead of uploading to Cloudinary."""

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.uploads = []

    def upload_profile_image(self, file):
        if self.fail:
            return None
        self.uploads.append(("profile_images", file.read()))
        return "https://cdn.test/profile_images/avatar.png"

    def upload_document(self, file):
        if self.fail:
            return None
        self.uploads.append(("verification_documents", file.read()))
        return f"https://cdn.test/verification_documents/{len(self.uploads)}.pdf"


@pytest.fixture
def settings():
    return Settings(
        _env_file=None,
        database_url="sqlite://",
        jwt_secret="test-access-secret",
        jwt_refresh_secret="test-refresh-secret",
        client_url=CLIENT_URL,
        environment="development",
        bootstrap_admin_email=None,
        bootstrap_admin_password=None,
    )


@pytest.fixture
def token_service(settings):
    return TokenService(settings)


@pytest.fixture(scope="function")
def database():
    """
    Create a fresh in-memory database for each test.
    """
    database = Database("sqlite://", poolclass=StaticPool)
    database.create_all()
    yield database
    database.drop_all()
    database.dispose()


@pytest.fixture(scope="function")
def db(database):
    session = database.SessionLocal()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def mailer():
    return FakeMailer()


@pytest.fixture
def storage():
    return FakeStorage()


@pytest.fixture(scope="function")
def app(settings, database, db, mailer, storage):
    """
    Create the application with the test database session and fake
    mail/storage collaborators.
    """
    app = create_app(settings, database)

    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_mailer] = lambda: mailer
    app.dependency_overrides[get_storage] = lambda: storage
    yield app
    app.dependency_overrides = {}


@pytest.fixture(scope="function")
def client(app):
    with TestClient(app) as client:
        yield client


def _doctor_form(**overrides):
    data = {
        "first_name": "Meera",
        "last_name": "Iyer",
        "email": "meera.iyer@example.com",
        "password": PASSWORD,
        "phone": "+91 98765 43210",
        "gender": "female",
        "city": "Chennai",
        "registration_number": "TN-12345",
        "qualifications": "MBBS, MD",
        "specialties": "Cardiology, Internal Medicine",
        "languages": ["English", "Tamil"],
        "hospital_affiliations": "Apollo Hospital",
        "experience": "15 years",
        "consultation_fee": "800",
        "about": "Consultant cardiologist",
    }
    data.update(overrides)
    return data


def _patient_form(**overrides):
    data = {
        "first_name": "Rahul",
        "last_name": "Sharma",
        "email": "rahul.sharma@example.com",
        "password": PASSWORD,
        "blood_group": "O+",
        "emergency_contact": "+91 91234 56789",
    }
    data.update(overrides)
    return data


@pytest.fixture
def doctor_form():
    """Factory for doctor registration form data."""
    return _doctor_form


@pytest.fixture
def patient_form():
    """Factory for patient registration form data."""
    return _patient_form


@pytest.fixture
def register_doctor_account(db, token_service, settings, mailer):
    """Register a doctor through the service layer, sending mail synchronously."""
    def _register(**overrides):
        registration = DoctorRegistration(**_doctor_form(**overrides))
        return register_doctor(db, registration, token_service, settings, mailer)
    return _register


@pytest.fixture
def register_patient_account(db, token_service, settings, mailer):
    """Register a patient through the service layer, sending mail synchronously."""
    def _register(**overrides):
        registration = PatientRegistration(**_patient_form(**overrides))
        return register_patient(db, registration, token_service, settings, mailer)
    return _register


@pytest.fixture
def admin_token(db, settings, token_service):
    """Bootstrap the admin account and return an access token for it."""
    admin_settings = settings.model_copy(update={
        "bootstrap_admin_email": "admin@medimantra.com",
        "bootstrap_admin_password": PASSWORD,
    })
    admin = bootstrap_admin_if_needed(db, admin_settings)
    return token_service.create_access_token(admin.id)


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_header():
    """Build an Authorization header for a Bearer token."""
    return bearer
