"""
Learning for Atom Nexus.

Records feedback and behavior as append-only learning facts and keeps
what is learned from them:
1. Per-user adaptation strategies and their effectiveness
2. Per-user behavior patterns and next-action predictions
3. Trainable model records
4. Per-user preferences
"""

from .types import (
    AdaptationStrategy,
    LearningConfig,
    LearningContext,
    LearningData,
    LearningModel,
    LearningType,
    Outcome,
    Priority,
    UserBehaviorPattern,
    UserFeedback,
)
from .learner import LearningEngine

__all__ = [
    # Types
    "AdaptationStrategy",
    "LearningConfig",
    "LearningContext",
    "LearningData",
    "LearningModel",
    "LearningType",
    "Outcome",
    "Priority",
    "UserBehaviorPattern",
    "UserFeedback",
    # Core classes
    "LearningEngine",
]
