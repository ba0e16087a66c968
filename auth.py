"""
Auth gate

One shared admin secret unlocks the console. The secret is kept as a
passlib hash; the HTTP layer gets a signed bearer token on login, which is
only honoured while the gate is logged in.
"""

import logging
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from jose import JWTError, jwt
from passlib.context import CryptContext

import config
from database import PersistenceGateway
from errors import IncorrectPassword, NotAuthenticated, TransportError, Unavailable, ValidationError
from forms import SubmissionForm
from schemas import Admin

logger = logging.getLogger(__name__)

# Use pbkdf2_sha256 to avoid external bcrypt dependency issues
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def seed_password_hash() -> str:
    return config.ADMIN_PASSWORD_HASH or hash_password(config.ADMIN_PASSWORD)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None):
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode.update({"exp": expire})
    return jwt.encode(to_encode, config.SECRET_KEY, algorithm=config.ALGORITHM)


class SessionState(str, Enum):
    LOGGED_OUT = "logged_out"
    LOGGED_IN = "logged_in"


class AuthGate:
    def __init__(self, gateway: PersistenceGateway, password_hash: Optional[str] = None):
        self.gateway = gateway
        self._password_hash = password_hash or seed_password_hash()
        self.state = SessionState.LOGGED_OUT
        self.form = SubmissionForm("password")
        # set when the stored admin record could not be read; the seed must not unlock
        self.locked = False

    def load(self):
        try:
            doc = self.gateway.get_admin()
        except TransportError:
            self.locked = True
            self.state = SessionState.LOGGED_OUT
            logger.error("Could not load the admin secret, console stays locked")
            raise
        self.locked = False
        if doc:
            self._password_hash = Admin.model_validate(doc).password_hash
            logger.info("Loaded stored admin secret")

    def _require_unlocked(self):
        if not self.locked:
            return
        try:
            self.load()
        except TransportError as e:
            raise Unavailable("Admin credentials could not be loaded. Please try again.") from e

    @property
    def is_logged_in(self) -> bool:
        return self.state is SessionState.LOGGED_IN

    def verify(self, password: str) -> bool:
        return bool(password) and verify_password(password, self._password_hash)

    def login(self, password: str) -> str:
        self._require_unlocked()
        if not self.verify(password):
            logger.warning("Rejected admin login")
            raise IncorrectPassword("Incorrect password")
        self.state = SessionState.LOGGED_IN
        logger.info("Admin logged in")
        return create_access_token({"sub": "admin", "role": "admin"})

    def logout(self):
        self.state = SessionState.LOGGED_OUT
        logger.info("Admin logged out")

    def authorize(self, token: str) -> dict:
        try:
            payload = jwt.decode(token, config.SECRET_KEY, algorithms=[config.ALGORITHM])
        except JWTError:
            raise NotAuthenticated("Invalid token")
        if payload.get("role") != "admin" or not self.is_logged_in:
            raise NotAuthenticated("Not authenticated")
        return {"sub": payload.get("sub"), "role": payload.get("role")}

    def change_password(self, current: str, new: str, confirm: str) -> bool:
        """
        Rotate the shared secret.

        The stored hash is replaced only after the gateway accepted the new
        record; the current session stays logged in.
        """
        if not self.is_logged_in:
            raise NotAuthenticated("Log in to change the password")

        def rotate():
            if not self.verify(current):
                raise ValidationError("Current password is not correct.")
            if not new or len(new) < config.MIN_PASSWORD_LENGTH:
                raise ValidationError(
                    f"New password must be at least {config.MIN_PASSWORD_LENGTH} characters long.")
            if new != confirm:
                raise ValidationError("New passwords do not match.")
            new_hash = hash_password(new)
            self.gateway.save_admin(Admin(password_hash=new_hash).to_document())
            self._password_hash = new_hash
            logger.info("Admin password changed")
            return True

        return self.form.submit(rotate)
