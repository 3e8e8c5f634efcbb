"""
Learning Type Definitions.

Learning records are append-only facts. Models, adaptation strategies
and behavior patterns are derived from them.
"""

import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


def now_ms() -> int:
    return int(time.time() * 1000)


def _clamp(value: float, low: float = 0.0, high: float = 1.0) -> float:
    return max(low, min(high, float(value)))


class LearningType(Enum):
    """Processor a learning record is routed to."""
    SUPERVISED = "supervised"
    UNSUPERVISED = "unsupervised"
    REINFORCEMENT = "reinforcement"
    PERSONALIZATION = "personalization"
    BEHAVIORAL = "behavioral"
    ADAPTIVE = "adaptive"
    CUSTOM = "custom"

    @classmethod
    def parse(cls, value: str) -> "LearningType":
        """Map an open type string onto the enum, CUSTOM if unknown."""
        try:
            return cls(value)
        except ValueError:
            return cls.CUSTOM


class Priority(Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Outcome(Enum):
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    MODIFIED = "modified"
    IGNORED = "ignored"


@dataclass
class LearningConfig:
    """Tunables for the learning engine."""
    min_history_for_recommendations: int = 10
    feedback_nudge: float = 0.1             # effectiveness step per feedback
    behavior_confidence_step: float = 0.01
    behavior_initial_confidence: float = 0.5
    prediction_threshold: float = 0.5       # minimum context similarity
    max_predictions: int = 5
    reinforcement_rate: float = 0.1
    default_accuracy: float = 0.5
    default_effectiveness: float = 0.5


@dataclass
class UserFeedback:
    """A user's verdict on something the engine produced."""
    rating: float
    helpful: bool
    comment: Optional[str] = None
    action_taken: Optional[str] = None
    time_spent: Optional[float] = None
    outcome: Optional[str] = None

    def __post_init__(self):
        self.rating = _clamp(self.rating, 1.0, 5.0)
        if self.outcome is not None:
            self.outcome = Outcome(self.outcome).value

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rating": self.rating,
            "helpful": self.helpful,
            "comment": self.comment,
            "actionTaken": self.action_taken,
            "timeSpent": self.time_spent,
            "outcome": self.outcome,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "UserFeedback":
        return cls(
            rating=data.get("rating", 3),
            helpful=bool(data.get("helpful", False)),
            comment=data.get("comment"),
            action_taken=data.get("actionTaken", data.get("action_taken")),
            time_spent=data.get("timeSpent", data.get("time_spent")),
            outcome=data.get("outcome"),
        )


@dataclass
class LearningContext:
    """Who was doing what when a learning record was produced."""
    user_id: Optional[str] = None
    workspace_id: Optional[str] = None
    project_type: Optional[str] = None
    current_task: Optional[str] = None
    user_experience: Optional[str] = None
    preferences: Dict[str, Any] = field(default_factory=dict)
    environment_info: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "userId": self.user_id,
            "workspaceId": self.workspace_id,
            "projectType": self.project_type,
            "currentTask": self.current_task,
            "userExperience": self.user_experience,
            "preferences": self.preferences,
            "environmentInfo": self.environment_info,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LearningContext":
        return cls(
            user_id=data.get("userId", data.get("user_id")),
            workspace_id=data.get("workspaceId", data.get("workspace_id")),
            project_type=data.get("projectType", data.get("project_type")),
            current_task=data.get("currentTask", data.get("current_task")),
            user_experience=data.get("userExperience", data.get("user_experience")),
            preferences=dict(data.get("preferences") or {}),
            environment_info=dict(data.get("environmentInfo", data.get("environment_info")) or {}),
        )


@dataclass
class LearningData:
    """One learning event."""
    type: str
    input: Any = None
    expected_output: Any = None
    feedback: Optional[UserFeedback] = None
    context: Optional[LearningContext] = None
    timestamp: Optional[int] = None
    priority: Optional[str] = None
    session_id: Optional[str] = None

    def __post_init__(self):
        if not isinstance(self.type, str) or not self.type:
            raise ValueError("Learning record type must be a non-empty string")
        if self.priority is not None:
            self.priority = Priority(self.priority).value

    @property
    def learning_type(self) -> LearningType:
        return LearningType.parse(self.type)

    @property
    def user_id(self) -> Optional[str]:
        return self.context.user_id if self.context else None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "type": self.type,
            "input": self.input,
            "expectedOutput": self.expected_output,
            "feedback": self.feedback.to_dict() if self.feedback else None,
            "context": self.context.to_dict() if self.context else None,
            "timestamp": self.timestamp,
            "priority": self.priority,
            "sessionId": self.session_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LearningData":
        feedback = data.get("feedback")
        context = data.get("context")
        return cls(
            type=data["type"],
            input=data.get("input"),
            expected_output=data.get("expectedOutput", data.get("expected_output")),
            feedback=UserFeedback.from_dict(feedback) if isinstance(feedback, dict) else feedback,
            context=LearningContext.from_dict(context) if isinstance(context, dict) else context,
            timestamp=data.get("timestamp"),
            priority=data.get("priority"),
            session_id=data.get("sessionId", data.get("session_id")),
        )


@dataclass
class LearningModel:
    """A trainable model record; version grows by one per retrain."""
    id: str
    type: str
    version: int = 1
    accuracy: Optional[float] = None
    confidence: Optional[float] = None
    training_data: List[LearningData] = field(default_factory=list)
    parameters: Dict[str, Any] = field(default_factory=dict)
    created_at: int = field(default_factory=now_ms)
    updated_at: int = field(default_factory=now_ms)
    feedback_samples: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type,
            "version": self.version,
            "accuracy": self.accuracy,
            "confidence": self.confidence,
            "trainingData": [d.to_dict() for d in self.training_data],
            "parameters": self.parameters,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "feedbackSamples": self.feedback_samples,
        }


@dataclass
class AdaptationStrategy:
    """Per-user, per-domain strategy parameters and how well they work."""
    id: str
    user_id: str
    domain: str
    strategy: Dict[str, Any] = field(default_factory=dict)
    effectiveness: float = 0.5
    last_updated: int = field(default_factory=now_ms)

    def __post_init__(self):
        self.effectiveness = _clamp(self.effectiveness)

    def nudge(self, delta: float) -> None:
        self.effectiveness = _clamp(self.effectiveness + delta)
        self.last_updated = now_ms()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "domain": self.domain,
            "strategy": self.strategy,
            "effectiveness": self.effectiveness,
            "lastUpdated": self.last_updated,
        }


@dataclass
class UserBehaviorPattern:
    """A recurring action of one user."""
    id: str
    user_id: str
    pattern: str
    frequency: int = 1
    context: Dict[str, Any] = field(default_factory=dict)
    confidence: float = 0.5
    discovered: int = field(default_factory=now_ms)
    last_seen: int = field(default_factory=now_ms)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "userId": self.user_id,
            "pattern": self.pattern,
            "frequency": self.frequency,
            "context": self.context,
            "confidence": self.confidence,
            "discovered": self.discovered,
            "lastSeen": self.last_seen,
        }
