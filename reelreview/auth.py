"""
Identity Resolution
===================

Maps whichever session identity a request carries onto an application user.

Identity sources, checked in order:
1. First-party access token (credential login) - `sub` is the user id
2. External identity provider token - `sub` is the provider subject,
   matched against `users.external_identity_id`
3. Dev-mode cookie `dev_user_uid` (only when DEV_MODE is on) - value is a
   dev user's provider subject

Roles:
- submitter: Uploads videos, sees own submissions only
- reviewer: Sees all submissions, changes status, writes annotations
- admin: Reviewer rights plus user management and manual archive
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Optional, List

import jwt
from passlib.context import CryptContext
from sqlalchemy.orm import Session

from .config import get_settings
from .db.models import User, UserRole, Submission
from .errors import NotProvisionedError

logger = logging.getLogger(__name__)

DEV_COOKIE_NAME = "dev_user_uid"
DEV_COOKIE_MAX_AGE = 60 * 60 * 24 * 7  # 7 days


# =============================================================================
# PASSWORD HASHING
# =============================================================================

# bcrypt truncates passwords at 72 bytes; enforce to avoid 500s.
MAX_PASSWORD_BYTES = 72

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def is_password_too_long(password: str) -> bool:
    """Return True if password exceeds bcrypt 72-byte limit."""
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash"""
    if is_password_too_long(plain_password):
        logger.warning("Auth failed: password exceeds bcrypt 72-byte limit")
        return False
    try:
        return pwd_context.verify(plain_password, hashed_password)
    except ValueError as e:
        logger.warning(f"Auth failed: invalid password format ({e})")
        return False


def hash_password(password: str) -> str:
    """Hash a password"""
    if is_password_too_long(password):
        raise ValueError("Password exceeds bcrypt 72-byte limit")
    return pwd_context.hash(password)


# =============================================================================
# JWT TOKEN HANDLING
# =============================================================================

def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a first-party JWT access token"""
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.utcnow() + (expires_delta or timedelta(minutes=settings.jwt_access_token_expire_minutes))
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def create_refresh_token(data: dict) -> str:
    """Create a first-party JWT refresh token"""
    settings = get_settings()
    to_encode = data.copy()
    expire = datetime.utcnow() + timedelta(days=settings.jwt_refresh_token_expire_days)
    to_encode.update({"exp": expire, "type": "refresh"})
    return jwt.encode(to_encode, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str) -> Optional[dict]:
    """Decode and validate a first-party JWT token"""
    settings = get_settings()
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except jwt.PyJWTError as e:
        logger.debug(f"Not a first-party token: {e}")
        return None


def decode_provider_token(token: str) -> Optional[dict]:
    """
    Verify a token issued by the external identity provider.

    Provider tokens are HS256-signed with the provider's shared secret and
    carry the `authenticated` audience. Returns None when the provider is
    not configured or the token does not verify.
    """
    settings = get_settings()
    if not settings.provider_jwt_secret:
        return None
    try:
        return jwt.decode(
            token,
            settings.provider_jwt_secret,
            algorithms=["HS256"],
            audience=settings.provider_jwt_audience,
        )
    except jwt.PyJWTError as e:
        logger.warning(f"Invalid provider token: {e}")
        return None


# =============================================================================
# AUTH CONTEXT
# =============================================================================

@dataclass
class AuthContext:
    """Authorization context for a request"""
    user_id: str
    email: str
    role: UserRole
    external_identity_id: Optional[str] = None
    source: str = "token"  # token | provider | dev

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.ADMIN

    @property
    def is_reviewer(self) -> bool:
        """Reviewer rights (admins included)"""
        return self.role in (UserRole.REVIEWER, UserRole.ADMIN)

    @property
    def is_submitter(self) -> bool:
        return self.role == UserRole.SUBMITTER

    def can_view_submission(self, submission: Submission) -> bool:
        if self.is_reviewer:
            return True
        return submission.submitter_id == self.user_id

    def can_modify_submission(self, submission: Submission) -> bool:
        return self.is_admin or submission.submitter_id == self.user_id

    @classmethod
    def from_user(cls, user: User, source: str = "token") -> "AuthContext":
        return cls(
            user_id=user.id,
            email=user.email,
            role=user.role,
            external_identity_id=user.external_identity_id,
            source=source,
        )


# =============================================================================
# DEV USERS
# =============================================================================

DEV_USERS: List[dict] = [
    {"external_identity_id": "dev-admin-uid", "email": "admin@example.com", "role": UserRole.ADMIN},
    {"external_identity_id": "dev-reviewer-uid", "email": "reviewer@example.com", "role": UserRole.REVIEWER},
    {"external_identity_id": "dev-submitter-uid", "email": "submitter@example.com", "role": UserRole.SUBMITTER},
]


def find_dev_user(email: str) -> Optional[dict]:
    email = (email or "").strip().lower()
    for entry in DEV_USERS:
        if entry["email"] == email:
            return entry
    return None


def seed_dev_users(db: Session) -> int:
    """Create the dev users if missing. Returns the number created."""
    created = 0
    for entry in DEV_USERS:
        existing = db.query(User).filter(
            User.external_identity_id == entry["external_identity_id"]
        ).first()
        if existing:
            continue
        if db.query(User).filter(User.email == entry["email"]).first():
            logger.warning(f"Dev user email {entry['email']} taken by another account, skipping")
            continue
        db.add(User(
            external_identity_id=entry["external_identity_id"],
            email=entry["email"],
            role=entry["role"],
        ))
        created += 1
    if created:
        db.commit()
        logger.info(f"Seeded {created} dev users")
    return created


# =============================================================================
# AUTH SERVICE
# =============================================================================

class AuthService:
    """Resolves identities and authenticates credentials against the users table"""

    def __init__(self, db: Session):
        self.db = db

    def _context_for(self, user: Optional[User], source: str) -> Optional[AuthContext]:
        if not user or not user.is_active:
            return None
        return AuthContext.from_user(user, source=source)

    def record_login(self, user: User) -> None:
        """Stamp `last_login` on an explicit sign-in (credentials or dev login)."""
        user.last_login = datetime.utcnow()
        self.db.commit()

    def user_for_external_identity(self, external_id: str, email: Optional[str] = None) -> Optional[User]:
        """
        Find the user for a provider subject.

        A user pre-created by an admin with only an email is linked to the
        provider subject on first sign-in.
        """
        user = self.db.query(User).filter(User.external_identity_id == external_id).first()
        if user or not email:
            return user

        user = self.db.query(User).filter(
            User.email == email.strip().lower(),
            User.external_identity_id.is_(None),
        ).first()
        if user:
            user.external_identity_id = external_id
            self.db.commit()
            logger.info(f"Linked provider identity to user {user.id}")
        return user

    def resolve(self, bearer_token: Optional[str], dev_cookie: Optional[str] = None) -> Optional[AuthContext]:
        """
        Resolve the request identity to an AuthContext.

        Returns None when no identity is present or the user is inactive.
        Raises NotProvisionedError when an identity verifies but has no
        user record.
        """
        if bearer_token:
            payload = decode_token(bearer_token)
            if payload and payload.get("type") == "access" and payload.get("sub"):
                user = self.db.query(User).filter(User.id == payload["sub"]).first()
                if not user:
                    logger.warning(f"Auth failed: user {payload['sub']} not found")
                    return None
                return self._context_for(user, "token")

            provider_payload = decode_provider_token(bearer_token)
            if provider_payload and provider_payload.get("sub"):
                external_id = provider_payload["sub"]
                user = self.user_for_external_identity(external_id, provider_payload.get("email"))
                if not user:
                    logger.warning(f"Auth failed: provider identity {external_id} not provisioned")
                    raise NotProvisionedError("User not provisioned. Contact an administrator.")
                return self._context_for(user, "provider")

        if dev_cookie and get_settings().dev_mode:
            user = self.db.query(User).filter(User.external_identity_id == dev_cookie).first()
            if not user:
                raise NotProvisionedError("Dev user not provisioned")
            return self._context_for(user, "dev")

        return None

    def authenticate(self, email: str, password: str) -> Optional[AuthContext]:
        """Authenticate a user by email and password."""
        user = self.db.query(User).filter(
            User.email == (email or "").strip().lower(),
            User.is_active == True,  # noqa: E712
        ).first()
        if not user:
            logger.warning("Auth failed: unknown email")
            return None

        if not user.password_hash:
            logger.warning(f"Auth failed: user {user.id} has no password set")
            return None

        if not verify_password(password, user.password_hash):
            logger.warning(f"Auth failed: invalid password for user {user.id}")
            return None

        self.record_login(user)
        return self._context_for(user, "token")

    def issue_tokens(self, auth: AuthContext) -> dict:
        claims = {"sub": auth.user_id, "email": auth.email, "role": auth.role.value}
        settings = get_settings()
        return {
            "access_token": create_access_token(claims),
            "refresh_token": create_refresh_token({"sub": auth.user_id}),
            "token_type": "bearer",
            "expires_in": settings.jwt_access_token_expire_minutes * 60,
        }

    def change_password(self, user_id: str, current_password: str, new_password: str) -> bool:
        """Returns False when the current password does not match."""
        user = self.db.query(User).filter(User.id == user_id).first()
        if not user or not user.password_hash:
            return False
        if not verify_password(current_password, user.password_hash):
            return False
        user.password_hash = hash_password(new_password)
        self.db.commit()
        return True


def get_auth_service(db: Session) -> AuthService:
    """Get AuthService instance for a database session"""
    return AuthService(db)
