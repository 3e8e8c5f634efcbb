"""
Learning Engine - Learn from Feedback and Behavior.

Every learning record is appended to an immutable history and routed
to one processor by its type:
- supervised: per-task feedback statistics
- unsupervised: feature frequencies over the record's input
- reinforcement: per-action value estimates
- personalization: per-user preference maps
- behavioral: per-user recurring actions
- adaptive: per-user, per-domain adaptation strategies
- custom: any other type string; history only

The derived tables feed back into recognition and reasoning through
confidence_weight().
"""

import copy
import hashlib
import logging
import re
import secrets
import threading
import uuid
from collections import Counter, defaultdict
from dataclasses import replace
from typing import Any, Dict, List, Optional, Tuple, Union

import numpy as np

from ..errors import NotFoundError
from .types import (
    AdaptationStrategy,
    LearningConfig,
    LearningContext,
    LearningData,
    LearningModel,
    LearningType,
    Priority,
    UserBehaviorPattern,
    UserFeedback,
    now_ms,
)

logger = logging.getLogger(__name__)

ANONYMOUS_USER = "anonymous"
GENERAL_TASK = "general"

_TOKENS = re.compile(r"\w+")


class LearningEngine:
    """
    Record learning events and maintain what is learned from them.

    All public operations are serialized by one re-entrant lock, so a
    feedback record and its strategy nudge are never observed apart.

    Example:
        learner = LearningEngine()

        # Feedback on a suggestion
        learner.learn_from_feedback(
            UserFeedback(rating=5, helpful=True),
            LearningContext(user_id="u1", current_task="completion"),
        )

        # Behavior tracking and prediction
        learner.learn_user_behavior("u1", "open_file", {"fileType": "py"})
        learner.predict_user_action("u1", {"fileType": "py"})

        # Models
        model = learner.create_learning_model("classifier")
        learner.update_learning_model(model.id, [record, ...])
    """

    def __init__(self, config: LearningConfig = None):
        """
        Initialize learning engine.

        Args:
            config: Learning tunables; defaults when omitted
        """
        self.config = config or LearningConfig()
        self._lock = threading.RLock()

        # Append-only history
        self.history: List[LearningData] = []

        # Derived tables
        self.models: Dict[str, LearningModel] = {}
        self.strategies: Dict[Tuple[str, str], AdaptationStrategy] = {}
        self.behavior_patterns: Dict[str, Dict[str, UserBehaviorPattern]] = defaultdict(dict)
        self.preferences: Dict[str, Dict[str, Any]] = {}
        self.task_stats: Dict[str, Dict[str, float]] = defaultdict(
            lambda: {"records": 0, "feedback": 0, "helpful": 0, "ratingTotal": 0.0}
        )
        self.feature_counts: Counter = Counter()
        self.action_values: Dict[str, float] = {}

        self._model_counter = 0
        self._processors = {
            LearningType.SUPERVISED: self._process_supervised,
            LearningType.UNSUPERVISED: self._process_unsupervised,
            LearningType.REINFORCEMENT: self._process_reinforcement,
            LearningType.PERSONALIZATION: self._process_personalization,
            LearningType.BEHAVIORAL: self._process_behavioral,
            LearningType.ADAPTIVE: self._process_adaptive,
            LearningType.CUSTOM: self._process_custom,
        }

    # =========================================================================
    # Recording
    # =========================================================================

    def learn(self, data: Union[LearningData, Dict[str, Any]]) -> LearningData:
        """
        Record a learning event and update the derived tables.

        Args:
            data: LearningData or a dict with its fields

        Returns:
            The stored record, with timestamp and session id filled in
        """
        if isinstance(data, dict):
            data = LearningData.from_dict(data)

        record = replace(
            data,
            timestamp=data.timestamp or now_ms(),
            session_id=data.session_id or self._session_id(),
        )

        with self._lock:
            self.history.append(record)
            self._processors[record.learning_type](record)

        logger.debug(f"Learned {record.type} record in {record.session_id}")
        return copy.deepcopy(record)

    def learn_from_feedback(
        self,
        feedback: Union[UserFeedback, Dict[str, Any]],
        context: Union[LearningContext, Dict[str, Any], None] = None,
    ) -> LearningData:
        """
        Record feedback and nudge the matching adaptation strategy.

        Negative or unhelpful feedback is recorded at high priority.

        Args:
            feedback: The user's feedback
            context: Who gave it and on which task

        Returns:
            The stored supervised record
        """
        if isinstance(feedback, dict):
            feedback = UserFeedback.from_dict(feedback)
        if isinstance(context, dict):
            context = LearningContext.from_dict(context)
        context = context or LearningContext()

        data = LearningData(
            type=LearningType.SUPERVISED.value,
            input=feedback.to_dict(),
            feedback=feedback,
            context=context,
            priority=self._feedback_priority(feedback).value,
        )

        with self._lock:
            record = self.learn(data)
            strategy = self._strategy(
                context.user_id or ANONYMOUS_USER,
                context.current_task or GENERAL_TASK,
            )
            nudge = self.config.feedback_nudge
            strategy.nudge(nudge if feedback.helpful else -nudge)

        logger.debug(
            f"Feedback {feedback.rating:g}/5 moved {strategy.user_id}/{strategy.domain} "
            f"to {strategy.effectiveness:.2f}"
        )
        return record

    def _feedback_priority(self, feedback: UserFeedback) -> Priority:
        if feedback.rating <= 2 or not feedback.helpful:
            return Priority.HIGH
        if feedback.rating == 3:
            return Priority.MEDIUM
        return Priority.LOW

    # =========================================================================
    # Processors
    # =========================================================================

    def _process_supervised(self, record: LearningData) -> None:
        task = (record.context.current_task if record.context else None) or GENERAL_TASK
        stats = self.task_stats[task]
        stats["records"] += 1
        if record.feedback:
            stats["feedback"] += 1
            stats["helpful"] += int(record.feedback.helpful)
            stats["ratingTotal"] += record.feedback.rating

    def _process_unsupervised(self, record: LearningData) -> None:
        self.feature_counts.update(self._features(record.input))

    def _features(self, value: Any) -> List[str]:
        if isinstance(value, dict):
            return [str(k) for k in value]
        if isinstance(value, str):
            return [t.lower() for t in _TOKENS.findall(value)]
        if isinstance(value, (list, tuple)):
            return [str(v) for v in value]
        return []

    def _process_reinforcement(self, record: LearningData) -> None:
        payload = record.input if isinstance(record.input, dict) else {}
        action = payload.get("action") if isinstance(record.input, dict) else record.input
        action = str(action) if action not in (None, "") else "default"

        if record.feedback:
            reward = (record.feedback.rating - 3.0) / 2.0
        else:
            reward = float(payload.get("reward", 0.0))

        value = self.action_values.get(action, 0.0)
        self.action_values[action] = value + self.config.reinforcement_rate * (reward - value)

    def _process_personalization(self, record: LearningData) -> None:
        if record.user_id and isinstance(record.input, dict):
            self._merge_preferences(record.user_id, record.input)

    def _process_behavioral(self, record: LearningData) -> None:
        payload = record.input if isinstance(record.input, dict) else {}
        action = payload.get("action")
        if record.user_id is not None and action is not None:
            context = payload.get("context")
            self._record_behavior(
                record.user_id, str(action), context if isinstance(context, dict) else {}
            )

    def _process_adaptive(self, record: LearningData) -> None:
        payload = record.input if isinstance(record.input, dict) else {}
        domain = payload.get("domain")
        if record.user_id and domain:
            self._adapt(record.user_id, str(domain), payload)

    def _process_custom(self, record: LearningData) -> None:
        # History only; no derived table
        logger.debug(f"No processor for learning type {record.type!r}")

    # =========================================================================
    # Adaptation
    # =========================================================================

    def adapt_to_user(self, user_id: str, domain: str, data: Any = None) -> AdaptationStrategy:
        """
        Fetch or create the user's strategy for a domain and refresh it.

        Recommendations come from the user's history once it holds
        enough records; until then they stay empty.

        Args:
            user_id: User to adapt to
            domain: Domain of the strategy (e.g. "completion")
            data: Strategy parameters to merge in

        Returns:
            The updated strategy
        """
        with self._lock:
            strategy = self._adapt(user_id, domain, data)
            return copy.deepcopy(strategy)

    def get_adaptation_strategy(self, user_id: str, domain: str) -> Optional[AdaptationStrategy]:
        with self._lock:
            strategy = self.strategies.get((user_id, domain))
            return copy.deepcopy(strategy) if strategy else None

    def confidence_weight(self, user_id: Optional[str], domain: str) -> float:
        """Multiplier for a user's confidence in a domain: 0.5 + effectiveness."""
        with self._lock:
            strategy = self.strategies.get((user_id or ANONYMOUS_USER, domain))
            if strategy is None:
                return 1.0
            return 0.5 + strategy.effectiveness

    def _strategy(self, user_id: str, domain: str) -> AdaptationStrategy:
        key = (user_id, domain)
        if key not in self.strategies:
            self.strategies[key] = AdaptationStrategy(
                id=self._generate_id("strategy"),
                user_id=user_id,
                domain=domain,
                effectiveness=self.config.default_effectiveness,
            )
            logger.debug(f"Created adaptation strategy for {user_id}/{domain}")
        return self.strategies[key]

    def _adapt(self, user_id: str, domain: str, data: Any) -> AdaptationStrategy:
        strategy = self._strategy(user_id, domain)
        if isinstance(data, dict):
            strategy.strategy.update({k: v for k, v in data.items() if k != "domain"})

        recommendations, confidence = self._recommendations(user_id)
        strategy.strategy["recommendations"] = recommendations
        strategy.effectiveness = max(0.0, min(1.0, (strategy.effectiveness + confidence) / 2))
        strategy.last_updated = now_ms()
        return strategy

    def _recommendations(self, user_id: str) -> Tuple[Dict[str, Any], float]:
        """Recommendations and their confidence from a user's history."""
        records = [r for r in self.history if r.user_id == user_id]
        if len(records) < self.config.min_history_for_recommendations:
            return {}, 0.5

        rated = [r for r in records if r.feedback]
        helpful = [r for r in rated if r.feedback.helpful]
        tasks = Counter(
            r.context.current_task for r in helpful if r.context.current_task
        )
        outcomes = Counter(r.feedback.outcome for r in rated if r.feedback.outcome)
        experience = next(
            (r.context.user_experience for r in reversed(records) if r.context.user_experience),
            None,
        )

        recommendations = {
            "historySize": len(records),
            "preferredTasks": [task for task, _ in tasks.most_common(3)],
            "preferredOutcome": outcomes.most_common(1)[0][0] if outcomes else None,
            "averageRating": float(np.mean([r.feedback.rating for r in rated])) if rated else None,
            "helpfulRate": len(helpful) / len(rated) if rated else None,
            "experienceLevel": experience,
        }
        confidence = recommendations["helpfulRate"] if rated else 0.5
        return recommendations, confidence

    # =========================================================================
    # Behavior
    # =========================================================================

    def learn_user_behavior(
        self,
        user_id: str,
        action: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> UserBehaviorPattern:
        """
        Record one user action.

        Args:
            user_id: Acting user
            action: Action name (e.g. "open_file")
            context: Circumstances of the action

        Returns:
            The behavior pattern after this occurrence
        """
        with self._lock:
            self.learn(self.behavior_record(user_id, action, context))
            return self.get_user_behavior_pattern(user_id, action)

    def behavior_record(
        self,
        user_id: str,
        action: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> LearningData:
        """Behavioral learning record for one user action. Empty ids are kept as given."""
        return LearningData(
            type=LearningType.BEHAVIORAL.value,
            input={"action": str(action), "context": dict(context or {})},
            context=LearningContext(user_id=str(user_id)),
        )

    def get_user_behavior_pattern(self, user_id: str, action: str) -> Optional[UserBehaviorPattern]:
        with self._lock:
            pattern = self.behavior_patterns.get(str(user_id), {}).get(str(action))
            return copy.deepcopy(pattern)

    def get_user_behavior_patterns(self, user_id: str) -> List[UserBehaviorPattern]:
        with self._lock:
            return copy.deepcopy(list(self.behavior_patterns.get(user_id, {}).values()))

    def predict_user_action(
        self,
        user_id: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """
        Predict likely next actions from context similarity.

        Similarity is the share of the queried context keys whose values
        match the pattern's last context.

        Returns:
            Up to max_predictions {action, confidence, similarity} dicts,
            most confident first
        """
        context = context or {}
        with self._lock:
            patterns = list(self.behavior_patterns.get(user_id, {}).values())

        predictions = []
        for pattern in patterns:
            similarity = self._context_similarity(pattern.context, context)
            if similarity > self.config.prediction_threshold:
                predictions.append({
                    "action": pattern.pattern,
                    "confidence": similarity * pattern.confidence,
                    "similarity": similarity,
                })

        predictions.sort(key=lambda p: p["confidence"], reverse=True)
        return predictions[:self.config.max_predictions]

    def _context_similarity(self, stored: Dict[str, Any], queried: Dict[str, Any]) -> float:
        if not queried:
            return 0.0
        matches = sum(1 for k, v in queried.items() if k in stored and stored[k] == v)
        return matches / len(queried)

    def _record_behavior(self, user_id: str, action: str, context: Dict[str, Any]) -> None:
        patterns = self.behavior_patterns[user_id]
        pattern = patterns.get(action)

        if pattern is None:
            patterns[action] = UserBehaviorPattern(
                id=self._generate_id("behavior"),
                user_id=user_id,
                pattern=action,
                context=dict(context),
                confidence=self.config.behavior_initial_confidence,
            )
            return

        pattern.frequency += 1
        pattern.confidence = min(1.0, pattern.confidence + self.config.behavior_confidence_step)
        pattern.context = dict(context)
        pattern.last_seen = now_ms()

    # =========================================================================
    # Models
    # =========================================================================

    def create_learning_model(
        self,
        model_type: str,
        parameters: Optional[Dict[str, Any]] = None,
    ) -> LearningModel:
        with self._lock:
            self._model_counter += 1
            model = LearningModel(
                id=f"model_{self._model_counter}",
                type=model_type,
                parameters=dict(parameters or {}),
            )
            self.models[model.id] = model
            logger.info(f"Created learning model {model.id} ({model_type})")
            return copy.deepcopy(model)

    def update_learning_model(
        self,
        model_id: str,
        training_data: List[Union[LearningData, Dict[str, Any]]],
    ) -> LearningModel:
        """
        Retrain a model on new records.

        Accuracy is the helpful share of the new feedback-bearing
        records, or the default when none carry feedback.

        Raises:
            NotFoundError: If no model has this id
        """
        batch = [LearningData.from_dict(d) if isinstance(d, dict) else d for d in training_data]

        with self._lock:
            model = self.models.get(model_id)
            if model is None:
                raise NotFoundError("Learning model", model_id)

            model.training_data.extend(batch)
            model.version += 1

            rated = [d for d in batch if d.feedback is not None]
            if rated:
                accuracy = sum(1 for d in rated if d.feedback.helpful) / len(rated)
            else:
                accuracy = self.config.default_accuracy
            model.accuracy = max(0.0, min(1.0, accuracy))
            model.confidence = min(0.9, model.accuracy + 0.1)
            model.feedback_samples = len(rated)
            model.updated_at = now_ms()

            logger.debug(f"Model {model_id} v{model.version}: accuracy {model.accuracy:.2f}")
            return copy.deepcopy(model)

    def get_learning_model(self, model_id: str) -> Optional[LearningModel]:
        with self._lock:
            model = self.models.get(model_id)
            return copy.deepcopy(model) if model else None

    def list_learning_models(self) -> List[LearningModel]:
        with self._lock:
            return copy.deepcopy(list(self.models.values()))

    # =========================================================================
    # Personalization
    # =========================================================================

    def personalize(self, user_id: str, preferences: Dict[str, Any]) -> Dict[str, Any]:
        """Shallow-merge preferences into the user's map."""
        with self._lock:
            return copy.deepcopy(self._merge_preferences(user_id, preferences))

    def get_personalization(self, user_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            prefs = self.preferences.get(user_id)
            return copy.deepcopy(prefs) if prefs is not None else None

    def _merge_preferences(self, user_id: str, preferences: Dict[str, Any]) -> Dict[str, Any]:
        merged = self.preferences.setdefault(user_id, {})
        merged.update(preferences)
        merged["lastUpdated"] = now_ms()
        return merged

    # =========================================================================
    # Stats
    # =========================================================================

    def get_learning_stats(self) -> Dict[str, Any]:
        with self._lock:
            return {
                "totalLearningRecords": len(self.history),
                "modelAccuracy": {
                    model_id: model.accuracy for model_id, model in self.models.items()
                },
                "userAdaptations": len(self.strategies),
                "behaviorPatterns": sum(len(p) for p in self.behavior_patterns.values()),
            }

    # =========================================================================
    # Utilities
    # =========================================================================

    def _session_id(self) -> str:
        return f"session_{now_ms()}_{secrets.token_hex(8)}"

    def _generate_id(self, prefix: str) -> str:
        """Generate unique ID."""
        unique = f"{prefix}_{now_ms()}_{uuid.uuid4().hex[:8]}"
        return hashlib.md5(unique.encode()).hexdigest()[:16]
