from dataclasses import dataclass
from typing import Optional


@dataclass
class User:
    """Authenticated caller as seen by the expense core."""
    id: str
    name: str
    email: Optional[str] = None

    @classmethod
    def from_document(cls, user_dict):
        return cls(
            id=str(user_dict["_id"]),
            name=(user_dict.get("name") or "").strip(),
            email=user_dict.get("email"),
        )
