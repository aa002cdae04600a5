import logging

from passlib.context import CryptContext
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from config import DEFAULT_USERNAME, DEFAULT_PASSWORD
from errors import StoreError
from models import User

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def get_user_by_username(db: Session, username: str):
    try:
        return db.query(User).filter(User.username == username).first()
    except SQLAlchemyError as exc:
        logger.exception("Credential lookup failed")
        raise StoreError() from exc


def ensure_default_user(db: Session, username: str = DEFAULT_USERNAME,
                        password: str = DEFAULT_PASSWORD) -> bool:
    """Provision the admin credential on first run.

    Does nothing when any credential already exists. Returns True when a user
    was created.
    """
    try:
        if db.query(User).count() > 0:
            logger.info("Existing credential found, skipping default user")
            return False

        db.add(User(username=username, password_hash=hash_password(password)))
        db.commit()
    except SQLAlchemyError as exc:
        db.rollback()
        logger.exception("Could not provision default user")
        raise StoreError() from exc

    logger.warning("Created default user %r with the default password; change it before exposing the server", username)
    return True
