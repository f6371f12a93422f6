from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional


@dataclass
class StatusChange:
    """One node whose stored status changed."""
    level: str
    node_id: int
    previous: Optional[str]
    current: str
    reason: str = ""
    timestamp: datetime = field(default_factory=datetime.now)
    
    def to_dict(self) -> dict:
        return {
            "level": self.level,
            "node_id": self.node_id,
            "previous": self.previous,
            "current": self.current,
            "reason": self.reason,
            "timestamp": self.timestamp.isoformat()
        }


@dataclass
class StatusUpdateResult:
    """Outcome of a facade write."""
    success: bool = False
    affected_rows: int = 0
    message: str = ""
    changes: list[StatusChange] = field(default_factory=list)
    profile_id: Optional[int] = None
    account_id: Optional[int] = None
    
    def __bool__(self) -> bool:
        return self.success
    
    @property
    def changed_node_ids(self) -> list[int]:
        return [c.node_id for c in self.changes]
    
    def to_dict(self) -> dict:
        return {
            "success": self.success,
            "affected_rows": self.affected_rows,
            "message": self.message,
            "changes": [c.to_dict() for c in self.changes]
        }
