"""
User management models and data structures.
"""
from typing import Dict, Any
from pathlib import Path
import json
import bcrypt


class UserData:
    """Per-user JSON record holding credentials."""

    def __init__(self, uid: str, user_data_dir: Path):
        self.uid = uid
        self.user_data_dir = user_data_dir
        self._user_file = user_data_dir / f"{uid}.json"

    def load(self) -> Dict[str, Any]:
        """Load the user record, empty if missing or unreadable.

        Shape:
        {
          "password_hash": "<bcrypt hash>"   # optional
        }
        """
        try:
            data = json.loads(self._user_file.read_text(encoding="utf-8"))
        except (FileNotFoundError, json.JSONDecodeError):
            data = {}
        if not isinstance(data, dict):
            data = {}
        return data

    def save(self, data: Dict[str, Any]) -> None:
        """Save user data to file."""
        self._user_file.write_text(
            json.dumps(data, ensure_ascii=False, indent=2), encoding="utf-8"
        )

    def set_password(self, password: str, bcrypt_rounds: int = None) -> None:
        """Set password for the user.

        Args:
            password: The password to set
            bcrypt_rounds: Optional bcrypt rounds (for testing). Default uses bcrypt default.
        """
        if not password:
            raise ValueError("Password cannot be empty")

        if bcrypt_rounds is not None:
            salt = bcrypt.gensalt(rounds=bcrypt_rounds)
        else:
            salt = bcrypt.gensalt()
        password_hash = bcrypt.hashpw(password.encode('utf-8'), salt)

        data = self.load()
        data["password_hash"] = password_hash.decode('utf-8')
        self.save(data)

    def check_password(self, password: str) -> bool:
        """Check if the provided password matches the stored hash."""
        password_hash = self.load().get("password_hash")
        if not password_hash or not password:
            return False

        try:
            return bcrypt.checkpw(password.encode('utf-8'), password_hash.encode('utf-8'))
        except ValueError:
            # Corrupt or non-bcrypt hash on disk
            return False

    def has_password(self) -> bool:
        """Check if the user has a password set."""
        return bool(self.load().get("password_hash"))
