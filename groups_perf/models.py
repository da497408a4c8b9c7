"""In-memory records exchanged with the Groups and Members APIs."""

from typing import Any, Dict, Optional


USER = "user"
GROUP = "group"
MEMBERSHIP_TYPES = (USER, GROUP)

SUCCESS = "success"
FAILED = "failed"


class Member:
    """A member to add to a group: an id plus ``user`` or ``group``."""

    def __init__(self, member_id: str, membership_type: str = USER):
        if membership_type not in MEMBERSHIP_TYPES:
            raise ValueError(f"membership_type must be 'user' or 'group', got {membership_type!r}")
        self.member_id = str(member_id)
        self.membership_type = membership_type

    def to_dict(self) -> Dict[str, str]:
        return {"memberId": self.member_id, "membershipType": self.membership_type}

    def __eq__(self, other):
        if not isinstance(other, Member):
            return NotImplemented
        return (self.member_id, self.membership_type) == (other.member_id, other.membership_type)

    def __hash__(self):
        return hash((self.member_id, self.membership_type))

    def __repr__(self):
        return f"Member({self.member_id!r}, {self.membership_type!r})"


class Group:
    """A group as returned by ``POST /groups``.

    Attributes:
        id:            Server-assigned id.
        name:          Group name.
        description:   Free-text description.
        private_group: ``privateGroup`` flag.
        self_register: ``selfRegister`` flag.
        old_id:        ``oldId``; the bulk-add endpoint rejects groups without one.
    """

    def __init__(
        self,
        id: str,
        name: str = "",
        description: str = "",
        private_group: bool = False,
        self_register: bool = False,
        old_id: Optional[str] = None,
    ):
        self.id = id
        self.name = name
        self.description = description
        self.private_group = private_group
        self.self_register = self_register
        self.old_id = old_id

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Group":
        return cls(
            id=data["id"],
            name=data.get("name", ""),
            description=data.get("description", ""),
            private_group=bool(data.get("privateGroup", False)),
            self_register=bool(data.get("selfRegister", False)),
            old_id=data.get("oldId"),
        )


class ChunkResult:
    """Outcome for a single member in a bulk-add response.

    Keys beyond ``memberId``, ``membershipType`` and ``status`` are kept in
    ``extra`` so failure reports show whatever the server said.
    """

    def __init__(self, member_id: str, membership_type: str, status: str, extra: Optional[Dict[str, Any]] = None):
        self.member_id = member_id
        self.membership_type = membership_type
        self.status = status
        self.extra = dict(extra or {})

    @property
    def failed(self) -> bool:
        return self.status == FAILED

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ChunkResult":
        extra = {k: v for k, v in data.items() if k not in ("memberId", "membershipType", "status")}
        return cls(
            member_id=str(data.get("memberId", "")),
            membership_type=data.get("membershipType", ""),
            status=data.get("status", ""),
            extra=extra,
        )

    def __str__(self):
        detail = f" ({self.extra['message']})" if "message" in self.extra else ""
        return f"{self.member_id}:{self.status}{detail}"

    def __repr__(self):
        return f"ChunkResult({self.member_id!r}, {self.membership_type!r}, {self.status!r})"


class ChunkTiming:
    """Timing of one bulk-add call: which slice of the member list, and how long."""

    def __init__(self, index: int, start: int, size: int, elapsed_ms: float):
        self.index = index
        self.start = start
        self.size = size
        self.elapsed_ms = elapsed_ms

    @property
    def end(self) -> int:
        return self.start + self.size

    def to_dict(self) -> Dict[str, Any]:
        return {
            "index": self.index,
            "start": self.start,
            "size": self.size,
            "elapsed_ms": round(self.elapsed_ms, 1),
        }
