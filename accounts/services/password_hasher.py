"""Password hashing backed by bcrypt."""

import bcrypt

# bcrypt only reads the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72


def password_fits(plaintext: str) -> bool:
    return len(plaintext.encode("utf-8")) <= MAX_PASSWORD_BYTES


class BcryptPasswordHasher:
    """Salted bcrypt hashes. Verification never raises for bad input."""

    def __init__(self, rounds: int = 12):
        self.rounds = rounds

    def hash(self, plaintext: str) -> str:
        if not password_fits(plaintext):
            raise ValueError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")
        return bcrypt.hashpw(
            plaintext.encode("utf-8"), bcrypt.gensalt(rounds=self.rounds)
        ).decode("utf-8")

    def verify(self, plaintext: str, password_hash: str) -> bool:
        if not plaintext or not password_hash:
            return False
        try:
            return bcrypt.checkpw(plaintext.encode("utf-8"), password_hash.encode("utf-8"))
        except ValueError:
            # malformed hash, or input bcrypt refuses to read
            return False
