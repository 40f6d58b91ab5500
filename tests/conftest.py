import secrets

import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.core import passwords
from app.core.security import HmacTokenSigner, RsaTokenSigner
from app.database import get_db
from app.models.base import Base
# Import all model classes to ensure they're registered with SQLAlchemy
from app.models.tenant import Tenant
from app.models.user import User
from app.models.post import Post
from app.models.engagement import PostLike, PostView  # noqa: F401
from app.models.role import PostStatus, UserRole, UserStatus
from app.config import settings
from app.dependencies import get_token_signer
# Import FastAPI app AFTER model imports
from app.main import app

# Test database (SQLite in-memory for speed)
# Use StaticPool to ensure all connections share the same in-memory database
SQLALCHEMY_TEST_DATABASE_URL = "sqlite:///:memory:"
engine = create_engine(
    SQLALCHEMY_TEST_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

HMAC_SIGNER = HmacTokenSigner()
SUPER_ADMIN_KEY = "test-super-admin-key"
TEST_PASSWORD = "Password1"


@pytest.fixture(autouse=True)
def fast_bcrypt(monkeypatch):
    """Cost factor 12 is too slow for a test suite"""
    monkeypatch.setattr(passwords, "BCRYPT_ROUNDS", 4)


@pytest.fixture(scope="function")
def db_session():
    """Create fresh database for each test"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(scope="function")
def client(db_session):
    """FastAPI test client with test database and HMAC signing"""

    def override_get_db():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_token_signer] = lambda: HMAC_SIGNER
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def super_admin_headers(monkeypatch):
    """Headers carrying a configured super-admin key"""
    monkeypatch.setattr(settings, "SUPER_ADMIN_API_KEY", SUPER_ADMIN_KEY)
    return {"x-super-admin-key": SUPER_ADMIN_KEY}


def generate_rsa_keypair() -> tuple[str, str]:
    """Fresh RSA keypair as (private PEM, public PEM)"""
    key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    ).decode("utf-8")
    public_pem = key.public_key().public_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PublicFormat.SubjectPublicKeyInfo,
    ).decode("utf-8")
    return private_pem, public_pem


@pytest.fixture(scope="session")
def rsa_keypair():
    return generate_rsa_keypair()


@pytest.fixture
def rsa_signer(rsa_keypair):
    private_pem, public_pem = rsa_keypair
    return RsaTokenSigner(private_key=private_pem, public_key=public_pem, key_id="test-key-1")


def create_tenant(db, name: str = "acme", **overrides) -> Tenant:
    """Insert a tenant with its own signing secret"""
    values = {
        "name": name,
        "domain": f"{name}.example.com",
        "jwt_secret": secrets.token_hex(64),
        "jwt_expiry": "7d",
    }
    values.update(overrides)
    tenant = Tenant(**values)
    db.add(tenant)
    db.commit()
    db.refresh(tenant)
    return tenant


def create_user(
    db,
    tenant: Tenant,
    email: str = "user@example.com",
    role: UserRole = UserRole.USER,
    password: str | None = TEST_PASSWORD,
    **overrides,
) -> User:
    """Insert a user of a tenant"""
    values = {
        "tenant_id": tenant.id,
        "email": email,
        "name": email.split("@")[0],
        "password_hash": passwords.hash_password(password) if password else None,
        "role": role,
        "status": UserStatus.ACTIVE,
    }
    values.update(overrides)
    user = User(**values)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def create_post(
    db,
    tenant: Tenant,
    slug: str = "hello-world",
    author_id: str = "author-1",
    **overrides,
) -> Post:
    """Insert a post of a tenant"""
    values = {
        "tenant_id": tenant.id,
        "author_id": author_id,
        "title": slug.replace("-", " ").title(),
        "slug": slug,
        "content": "Body",
        "status": PostStatus.PUBLIC,
    }
    values.update(overrides)
    post = Post(**values)
    db.add(post)
    db.commit()
    db.refresh(post)
    return post


def create_test_token(tenant: Tenant, user: User, signer=HMAC_SIGNER) -> str:
    """Token for a user, signed the way the app signs it"""
    return signer.issue(tenant, user.id, user.role.value, user.email)


def tenant_headers(tenant: Tenant) -> dict:
    return {"x-tenant-name": tenant.name}


def bearer_headers(tenant: Tenant, user: User, signer=HMAC_SIGNER) -> dict:
    """Tenant plus Authorization headers for a user"""
    return {
        **tenant_headers(tenant),
        "Authorization": f"Bearer {create_test_token(tenant, user, signer)}",
    }


@pytest.fixture
def tenant(db_session):
    return create_tenant(db_session)


@pytest.fixture
def other_tenant(db_session):
    return create_tenant(db_session, name="globex")


@pytest.fixture
def admin_user(db_session, tenant):
    return create_user(db_session, tenant, email="admin@example.com", role=UserRole.ADMIN)


@pytest.fixture
def regular_user(db_session, tenant):
    return create_user(db_session, tenant, email="reader@example.com")


@pytest.fixture
def admin_headers(tenant, admin_user):
    return bearer_headers(tenant, admin_user)


@pytest.fixture
def user_headers(tenant, regular_user):
    return bearer_headers(tenant, regular_user)
