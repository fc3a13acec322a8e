"""Credential store: persistence of user records."""

from typing import Any

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.config import get_settings
from app.errors import ConflictError
from app.models.user import User
from app.services.password import PasswordHasher


class UserStore:
    """Reads and writes user records.

    A ``password`` key passed to :meth:`create` or :meth:`find_by_id_and_update`
    is hashed before it reaches the database; no other field triggers hashing.
    """

    def __init__(self, hasher: PasswordHasher) -> None:
        self.hasher = hasher

    def find_one(self, db: Session, username: str | None = None, email: str | None = None) -> User | None:
        """Find a user matching the username OR the email (both compared lowercased)."""
        conditions = []
        if username:
            conditions.append(User.username == username.strip().lower())
        if email:
            conditions.append(User.email == email.strip().lower())
        if not conditions:
            return None
        # Username and email may match different users; the oldest account wins
        return db.query(User).filter(or_(*conditions)).order_by(User.id).first()

    def find_by_id(self, db: Session, user_id: int) -> User | None:
        return db.get(User, user_id)

    def create(self, db: Session, **fields: Any) -> User:
        """Insert a user. Raises ConflictError if username or email is taken."""
        user = User(**self._prepare(fields))
        db.add(user)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise ConflictError("User already exists") from e
        db.refresh(user)
        return user

    def find_by_id_and_update(self, db: Session, user_id: int, patch: dict[str, Any]) -> User | None:
        """Apply a patch to a user and return the updated record, or None if no such user."""
        user = db.get(User, user_id)
        if user is None:
            return None
        for key, value in self._prepare(patch).items():
            setattr(user, key, value)
        try:
            db.commit()
        except IntegrityError as e:
            db.rollback()
            raise ConflictError("Username or email already in use") from e
        db.refresh(user)
        return user

    def verify_password(self, user: User, plaintext: str) -> bool:
        return self.hasher.verify(plaintext, user.password_hash)

    def _prepare(self, fields: dict[str, Any]) -> dict[str, Any]:
        prepared = dict(fields)
        if "password" in prepared:
            prepared["password_hash"] = self.hasher.hash(prepared.pop("password"))
        for key in ("username", "email"):
            if prepared.get(key):
                prepared[key] = prepared[key].strip().lower()
        return prepared


_user_store: UserStore | None = None


def get_user_store() -> UserStore:
    """Get singleton user store instance."""
    global _user_store
    if _user_store is None:
        _user_store = UserStore(PasswordHasher(get_settings().BCRYPT_ROUNDS))
    return _user_store
