"""Test configuration and fixtures."""

import os
from datetime import timedelta
from unittest.mock import MagicMock

import pytest

# Set test environment before the package reads its settings
os.environ['ENVIRONMENT'] = 'test'
os.environ['DATABASE_URL'] = 'sqlite://'
os.environ['SECURITY_BCRYPT_ROUNDS'] = '4'
os.environ['SECURITY_SECRET_KEY'] = 'test-secret-key'
os.environ['TENDERPORTAL_SETTINGS_FILE'] = os.path.join(os.path.dirname(__file__), 'no-settings.yaml')

from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from tenderportal.db import Base, build_engine  # noqa: E402
from tenderportal.models import Tender, TenderApplication, User  # noqa: E402
from tenderportal.schemas import Actor  # noqa: E402
from tenderportal.security import get_password_hash  # noqa: E402
from tenderportal.storage import SpacesClient  # noqa: E402
from tenderportal.utils.dates import utcnow  # noqa: E402

DEFAULT_PASSWORD = 'Secret123'


@pytest.fixture
def engine():
    """In-memory SQLite database shared by every session of one test."""
    engine = build_engine('sqlite://', poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db_session(session_factory):
    """Database session for service tests."""
    session = session_factory()
    yield session
    session.rollback()
    session.close()


@pytest.fixture
def make_user(db_session):
    """Create and commit a user. Password defaults to ``Secret123``."""
    counter = {'n': 0}

    def _make_user(**overrides):
        counter['n'] += 1
        password = overrides.pop('password', DEFAULT_PASSWORD)
        values = {
            'email': f"user{counter['n']}@example.com",
            'name': f"User {counter['n']}",
            'role': 'bidder',
            'is_active': True,
            'password': get_password_hash(password) if password else None,
        }
        values.update(overrides)
        user = User(**values)
        db_session.add(user)
        db_session.commit()
        return user

    return _make_user


@pytest.fixture
def make_tender(db_session):
    """Create and commit a tender, open by default."""
    counter = {'n': 0}

    def _make_tender(**overrides):
        counter['n'] += 1
        values = {
            'title': f"Supply of office equipment {counter['n']}",
            'ref_number': f"OPM/2024/{counter['n']:03d}",
            'status': 'open',
            'closing_date': utcnow() + timedelta(days=30),
        }
        values.update(overrides)
        tender = Tender(**values)
        db_session.add(tender)
        db_session.commit()
        return tender

    return _make_tender


@pytest.fixture
def make_application(db_session):
    """Create and commit an application directly, bypassing the service rules."""

    def _make_application(user, tender, **overrides):
        values = {
            'user_id': user.id,
            'tender_id': tender.id,
            'application_status': 'pending',
        }
        values.update(overrides)
        application = TenderApplication(**values)
        db_session.add(application)
        db_session.commit()
        return application

    return _make_application


@pytest.fixture
def as_actor():
    """Actor for a stored user."""

    def _as_actor(user) -> Actor:
        return Actor(id=user.id, role=user.role, email=user.email)

    return _as_actor


@pytest.fixture
def mock_boto_client():
    """boto3 S3 client double."""
    client = MagicMock()
    client.generate_presigned_url.return_value = 'https://spaces.test/presigned'
    return client


@pytest.fixture
def storage(mock_boto_client):
    """Spaces client backed by the boto3 double."""
    return SpacesClient(
        endpoint='https://spaces.test',
        access_key='test-access',
        secret_key='test-secret',
        bucket_name='test-bucket',
        cdn_url='https://cdn.test/',
        region='us-east-1',
        client=mock_boto_client,
    )


@pytest.fixture
def client(session_factory, storage):
    """FastAPI test client wired to the test database and storage double."""
    from fastapi.testclient import TestClient

    from tenderportal.api.dependencies import get_storage
    from tenderportal.api.main import app
    from tenderportal.db import get_db

    def override_get_db():
        session = session_factory()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_storage] = lambda: storage

    yield TestClient(app)

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers():
    """Bearer headers for a user."""
    from tenderportal.api.dependencies import issue_token

    def _auth_headers(user):
        return {'Authorization': f'Bearer {issue_token(user)}'}

    return _auth_headers
