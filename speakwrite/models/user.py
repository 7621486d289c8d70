"""User account models."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional, Dict, Any


@dataclass
class User:
    """A registered account."""
    id: int
    email: str
    password_hash: str
    name: Optional[str] = None
    created_at: datetime = field(default_factory=datetime.now)

    def public_dict(self) -> Dict[str, Any]:
        """Fields safe to return to clients."""
        return {"id": self.id, "email": self.email, "name": self.name}

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "email": self.email,
            "password_hash": self.password_hash,
            "name": self.name,
            "created_at": self.created_at.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=data["id"],
            email=data["email"],
            password_hash=data["password_hash"],
            name=data.get("name"),
            created_at=datetime.fromisoformat(data["created_at"]),
        )


@dataclass
class TokenPayload:
    """Claims carried by a verified bearer token."""
    user_id: int
    issued_at: int
    expires_at: int
    expired: bool = False
