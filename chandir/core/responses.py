"""Response envelope and result value types shared by services and routes.

Every HTTP response body has the shape ``{success, status, code, message, data}``
where ``status`` is ``1`` on success and ``0`` on failure.
"""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class OperationStatus(str, Enum):
    """Outcome of a single weight mutation."""

    SUCCESS = "success"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class WeightChange:
    """Before/after snapshot returned by every WeightEngine mutation."""

    channel_id: str
    status: OperationStatus
    before: int
    after: int
    reason: str = ""

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["status"] = self.status.value
        return data


@dataclass
class BatchResult:
    """Per-item breakdown of a batch operation.

    Partial failure is a normal outcome: one bad id never aborts the others.
    """

    success: List[Dict[str, Any]] = field(default_factory=list)
    failed: List[Dict[str, Any]] = field(default_factory=list)
    skipped: List[Dict[str, Any]] = field(default_factory=list)

    def add_success(self, item: Dict[str, Any]) -> None:
        self.success.append(item)

    def add_failure(self, subject: str, error: str) -> None:
        self.failed.append({"id": subject, "error": error})

    def add_skipped(self, subject: str, reason: str) -> None:
        self.skipped.append({"id": subject, "reason": reason})

    @property
    def has_changes(self) -> bool:
        return bool(self.success)

    def to_dict(self) -> Dict[str, Any]:
        return {"success": self.success, "failed": self.failed, "skipped": self.skipped}


def success_envelope(data: Any = None, message: str = "ok") -> Dict[str, Any]:
    return {"success": True, "status": 1, "code": "ok", "message": message, "data": data}


def failure_envelope(code: str, message: str, data: Optional[Any] = None) -> Dict[str, Any]:
    return {"success": False, "status": 0, "code": code, "message": message, "data": data}
