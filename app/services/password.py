"""Password hashing with bcrypt."""

import bcrypt

from app.errors import BadRequestError, InternalError

# bcrypt only ever reads this many bytes of input
MAX_PASSWORD_BYTES = 72


def check_password_length(plaintext: str) -> None:
    """Raise BadRequestError if the password is longer than bcrypt accepts."""
    if len(plaintext.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise BadRequestError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


class PasswordHasher:
    """One-way salted password hashing. Cost is set by the bcrypt work factor."""

    def __init__(self, rounds: int = 10) -> None:
        self.rounds = rounds

    def hash(self, plaintext: str) -> str:
        """Hash a plaintext password. Raises InternalError if bcrypt rejects the input."""
        try:
            hashed = bcrypt.hashpw(plaintext.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds))
        except ValueError as e:
            raise InternalError("Unable to secure password") from e
        return hashed.decode("utf-8")

    def verify(self, plaintext: str, password_hash: str) -> bool:
        """Check a plaintext password against a stored hash."""
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            return False
