from dataclasses import dataclass
from datetime import datetime
from typing import Optional, Any

from eventhub.domain.states import AvailabilityStatus, ValidationStage

@dataclass(frozen=True)
class AvailabilityResult:
    is_available: bool
    status: AvailabilityStatus
    message: str
    opens_at: Optional[datetime] = None
    closes_at: Optional[datetime] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "is_available": self.is_available,
            "status": str(self.status),
            "message": self.message,
            "opens_at": self.opens_at.isoformat() if self.opens_at else None,
            "closes_at": self.closes_at.isoformat() if self.closes_at else None,
        }

@dataclass(frozen=True)
class AccessDecision:
    """Outcome of the evaluation access pipeline. Rejections are values, never exceptions."""
    allowed: bool
    stage: ValidationStage
    reason: str
    message: str
    evaluation: Optional[Any] = None
    availability: Optional[AvailabilityResult] = None

    @classmethod
    def deny(cls, stage: ValidationStage, reason: str, message: str, availability: Optional[AvailabilityResult] = None) -> "AccessDecision":
        return cls(allowed=False, stage=stage, reason=reason, message=message, availability=availability)

    @classmethod
    def allow(cls, evaluation: Any, availability: AvailabilityResult) -> "AccessDecision":
        return cls(
            allowed=True,
            stage=ValidationStage.COMPLETE,
            reason=str(availability.status),
            message=availability.message,
            evaluation=evaluation,
            availability=availability,
        )

    def to_error(self) -> dict[str, Any]:
        return {
            "stage": str(self.stage),
            "reason": self.reason,
            "message": self.message,
            "availability": self.availability.to_dict() if self.availability else None,
        }
