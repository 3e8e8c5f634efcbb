"""
Cognitive Engine - Unified Integration Layer.

Ties together:
- The atom store (seed knowledge)
- Pattern recognition (derive signals)
- Reasoning (combine signals and prior atoms into conclusions)
- Learning (persist outcomes and feedback, adapt future confidence)

Learning through this layer also leaves a trace in the store:
LearningRecord atoms for every record, SuccessPattern atoms for helpful
feedback and PersonalizationNode atoms for personalization feedback.
"""

import logging
import threading
from typing import Any, Dict, List, Optional, Union

from .core import AtomStore, Atom, AtomPattern, AtomType, TruthValue
from .learning import (
    AdaptationStrategy,
    LearningConfig,
    LearningContext,
    LearningData,
    LearningEngine,
    LearningModel,
    LearningType,
    UserBehaviorPattern,
    UserFeedback,
)
from .patterns import ExtractionConfig, PatternEngine, PatternInput, PatternResult
from .reasoning import ReasoningConfig, ReasoningEngine, ReasoningQuery, ReasoningResult

logger = logging.getLogger(__name__)


class CognitiveEngine:
    """
    One engine over one atom store.

    Every public operation runs under a single re-entrant lock.

    Example:
        engine = CognitiveEngine()

        # Seed knowledge
        engine.add_atom({"type": "FunctionNode", "name": "getUserById"})

        # Reason over the store
        result = engine.reason({"type": "code-analysis"})

        # Feed back how it went
        engine.learn_from_feedback(
            {"rating": 5, "helpful": True},
            {"userId": "u1", "currentTask": "code-analysis"},
        )
    """

    def __init__(
        self,
        extraction_config: ExtractionConfig = None,
        reasoning_config: ReasoningConfig = None,
        learning_config: LearningConfig = None,
    ):
        """
        Initialize the engine.

        Args:
            extraction_config: Pattern detector tunables
            reasoning_config: Strategy confidence policy
            learning_config: Learning tunables
        """
        self._lock = threading.RLock()

        self.store = AtomStore()
        self.learner = LearningEngine(learning_config)
        self.patterns = PatternEngine(
            extraction_config,
            weight_provider=self.learner.confidence_weight,
        )
        self.reasoner = ReasoningEngine(
            self.store,
            self.patterns,
            reasoning_config,
            weight_provider=self.learner.confidence_weight,
        )

        logger.info("Cognitive engine initialized")

    # =========================================================================
    # Atoms
    # =========================================================================

    def add_atom(self, atom: Union[Atom, Dict[str, Any]]) -> str:
        with self._lock:
            return self.store.add(atom)

    def get_atom(self, atom_id: str) -> Optional[Atom]:
        with self._lock:
            return self.store.get(atom_id)

    def query_atoms(self, pattern: Union[AtomPattern, Dict[str, Any], None] = None) -> List[Atom]:
        with self._lock:
            return self.store.query(pattern)

    def remove_atom(self, atom_id: str) -> bool:
        with self._lock:
            return self.store.remove(atom_id)

    def update_atom(self, atom_id: str, updates: Dict[str, Any]) -> bool:
        with self._lock:
            return self.store.update(atom_id, updates)

    def get_atom_space_size(self) -> int:
        with self._lock:
            return self.store.size()

    def clear_atom_space(self) -> None:
        with self._lock:
            self.store.clear()

    def export_atom_space(self) -> str:
        with self._lock:
            return self.store.export_all()

    def import_atom_space(self, data: str) -> int:
        with self._lock:
            return self.store.import_all(data)

    # =========================================================================
    # Patterns and Reasoning
    # =========================================================================

    def recognize_patterns(
        self,
        pattern_input: Union[PatternInput, Dict[str, Any], Any],
    ) -> List[PatternResult]:
        with self._lock:
            return self.patterns.recognize_patterns(pattern_input)

    def reason(self, query: Union[ReasoningQuery, Dict[str, Any]]) -> ReasoningResult:
        with self._lock:
            return self.reasoner.reason(query)

    # =========================================================================
    # Learning
    # =========================================================================

    def learn(self, data: Union[LearningData, Dict[str, Any]]) -> LearningData:
        """
        Record a learning event and its trace atoms.

        Args:
            data: LearningData or a dict with its fields

        Returns:
            The stored record
        """
        with self._lock:
            record = self.learner.learn(data)
            self._record_atoms(record)
            return record

    def learn_from_feedback(
        self,
        feedback: Union[UserFeedback, Dict[str, Any]],
        context: Union[LearningContext, Dict[str, Any], None] = None,
    ) -> LearningData:
        with self._lock:
            record = self.learner.learn_from_feedback(feedback, context)
            self._record_atoms(record)
            return record

    def adapt_to_user(self, user_id: str, domain: str, data: Any = None) -> AdaptationStrategy:
        with self._lock:
            return self.learner.adapt_to_user(user_id, domain, data)

    def get_adaptation_strategy(self, user_id: str, domain: str) -> Optional[AdaptationStrategy]:
        with self._lock:
            return self.learner.get_adaptation_strategy(user_id, domain)

    def learn_user_behavior(
        self,
        user_id: str,
        action: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> UserBehaviorPattern:
        with self._lock:
            record = self.learner.learn(self.learner.behavior_record(user_id, action, context))
            self._record_atoms(record)
            return self.learner.get_user_behavior_pattern(user_id, action)

    def get_user_behavior_patterns(self, user_id: str) -> List[UserBehaviorPattern]:
        with self._lock:
            return self.learner.get_user_behavior_patterns(user_id)

    def predict_user_action(
        self,
        user_id: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        with self._lock:
            return self.learner.predict_user_action(user_id, context)

    def create_learning_model(
        self,
        model_type: str,
        parameters: Optional[Dict[str, Any]] = None,
    ) -> LearningModel:
        with self._lock:
            return self.learner.create_learning_model(model_type, parameters)

    def update_learning_model(
        self,
        model_id: str,
        training_data: List[Union[LearningData, Dict[str, Any]]],
    ) -> LearningModel:
        with self._lock:
            return self.learner.update_learning_model(model_id, training_data)

    def get_learning_model(self, model_id: str) -> Optional[LearningModel]:
        with self._lock:
            return self.learner.get_learning_model(model_id)

    def list_learning_models(self) -> List[LearningModel]:
        with self._lock:
            return self.learner.list_learning_models()

    def personalize(self, user_id: str, preferences: Dict[str, Any]) -> Dict[str, Any]:
        with self._lock:
            return self.learner.personalize(user_id, preferences)

    def get_personalization(self, user_id: str) -> Optional[Dict[str, Any]]:
        with self._lock:
            return self.learner.get_personalization(user_id)

    def get_learning_stats(self) -> Dict[str, Any]:
        with self._lock:
            return self.learner.get_learning_stats()

    def _record_atoms(self, record: LearningData) -> None:
        """Store the atoms that trace a learning record."""
        feedback = record.feedback.to_dict() if record.feedback else None
        context = record.context.to_dict() if record.context else None

        self.store.add(Atom(
            type=AtomType.LEARNING_RECORD.value,
            name=f"learning_{record.type}_{record.timestamp}",
            truth_value=TruthValue(strength=0.8, confidence=0.6),
            metadata={
                "learningType": record.type,
                "timestamp": record.timestamp,
                "sessionId": record.session_id,
                "feedback": feedback,
                "context": context,
            },
        ))

        if record.feedback and record.feedback.helpful:
            self.store.add(Atom(
                type=AtomType.SUCCESS_PATTERN.value,
                name=f"success_{record.type}_{record.timestamp}",
                truth_value=TruthValue(strength=record.feedback.rating / 5, confidence=0.8),
                metadata={
                    "reasoningType": record.type,
                    "context": context,
                    "feedback": feedback,
                },
            ))

        if record.learning_type is LearningType.PERSONALIZATION and record.feedback:
            self.store.add(Atom(
                type=AtomType.PERSONALIZATION_NODE.value,
                name=f"personalization_{record.timestamp}",
                truth_value=TruthValue(strength=0.7, confidence=0.6),
                metadata={
                    "userPreferences": record.input,
                    "feedback": feedback,
                    "timestamp": record.timestamp,
                },
            ))
