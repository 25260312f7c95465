"""Group schemas.

Groups are owned by the membership collaborator; the expense core only reads
them. Membership is by display name, compared after trimming.
"""
from dataclasses import dataclass, field
from typing import Iterable, List


@dataclass
class Group:
    id: str
    name: str
    members: List[str] = field(default_factory=list)

    def member_names(self) -> set:
        return {m.strip() for m in self.members if isinstance(m, str)}

    def has_member(self, name: str) -> bool:
        return isinstance(name, str) and name.strip() in self.member_names()

    def non_members(self, names: Iterable[str]) -> List[str]:
        """Names not in the group, in first-seen order, without repeats."""
        members = self.member_names()
        offenders = []
        for name in names:
            cleaned = name.strip()
            if cleaned not in members and cleaned not in offenders:
                offenders.append(cleaned)
        return offenders
