"""
Reasoning Engine - Strategy Registry and Hybrid Fold.

Each ReasoningType maps to one strategy callable. A query names its
strategy; hybrid queries run every general strategy and fold whatever
succeeded into one answer. Failures never escape reason(): they come
back as zero-confidence results flagged with metadata["error"].
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Union

import numpy as np

from ..core.models import Atom, AtomType, TruthValue
from ..core.store import AtomStore
from ..patterns import PatternEngine, PatternInput
from .code import CodeAnalyzer, CodeCompleter
from .strategies import abductive_reasoning, deductive_reasoning, inductive_reasoning
from .types import ReasoningConfig, ReasoningQuery, ReasoningResult, ReasoningType

logger = logging.getLogger(__name__)

Strategy = Callable[[List[Atom], ReasoningQuery], ReasoningResult]

# (user_id, domain) -> confidence multiplier
WeightProvider = Callable[[Optional[str], str], float]

HYBRID_STRATEGIES = (
    ReasoningType.DEDUCTIVE,
    ReasoningType.INDUCTIVE,
    ReasoningType.ABDUCTIVE,
    ReasoningType.PATTERN_MATCHING,
)


class ReasoningEngine:
    """
    Answer reasoning queries over atoms.

    Atoms come from the query; when it carries none, the engine reasons
    over the store's contents.

    Example:
        engine = ReasoningEngine(store, PatternEngine())

        result = engine.reason(ReasoningQuery(type="deductive", atoms=[rule]))
        result = engine.reason({"type": "code-analysis"})
        result = engine.reason(ReasoningQuery())            # hybrid
    """

    def __init__(
        self,
        store: AtomStore,
        pattern_engine: PatternEngine,
        config: ReasoningConfig = None,
        weight_provider: Optional[WeightProvider] = None,
    ):
        self.store = store
        self.pattern_engine = pattern_engine
        self.config = config or ReasoningConfig()
        self.weight_provider = weight_provider

        self.code_analyzer = CodeAnalyzer(pattern_engine, self.config)
        self.code_completer = CodeCompleter(pattern_engine, store, self.config)

        self.strategies: Dict[ReasoningType, Strategy] = {
            ReasoningType.DEDUCTIVE: lambda atoms, q: deductive_reasoning(atoms, q, self.config),
            ReasoningType.INDUCTIVE: lambda atoms, q: inductive_reasoning(atoms, q, self.config),
            ReasoningType.ABDUCTIVE: lambda atoms, q: abductive_reasoning(atoms, q, self.config),
            ReasoningType.CODE_ANALYSIS: self.code_analyzer.analyze,
            ReasoningType.CODE_COMPLETION: self.code_completer.complete,
            ReasoningType.PATTERN_MATCHING: self._pattern_matching,
        }

    def register(self, reasoning_type: ReasoningType, strategy: Strategy) -> None:
        """Install or replace the strategy for a reasoning type."""
        self.strategies[reasoning_type] = strategy

    # =========================================================================
    # Entry Point
    # =========================================================================

    def reason(self, query: Union[ReasoningQuery, Dict[str, Any]]) -> ReasoningResult:
        """
        Run the strategy a query asks for.

        Args:
            query: ReasoningQuery or a dict with its fields

        Returns:
            ReasoningResult; failures are reported inside the result
        """
        label = "unknown"
        try:
            if isinstance(query, dict):
                query = ReasoningQuery.from_dict(query)
            label = str(query.type) if query.type else ReasoningType.HYBRID.value
            reasoning_type = query.reasoning_type

            if reasoning_type is ReasoningType.UNKNOWN:
                return ReasoningResult.failure(
                    f"Unsupported reasoning type: {query.type}", label
                )

            atoms = self._knowledge(query)
            if reasoning_type is ReasoningType.HYBRID:
                result = self._hybrid(atoms, query)
            else:
                strategy = self.strategies.get(reasoning_type)
                if strategy is None:
                    return ReasoningResult.failure(
                        f"No strategy registered for reasoning type: {label}", label
                    )
                result = strategy(atoms, query)

            result.confidence = self._weighted(result.confidence, query, label)
            logger.debug(
                f"{label} reasoning over {len(atoms)} atoms: "
                f"{len(result.conclusion)} conclusions at {result.confidence:.2f}"
            )
            return result

        except Exception as e:
            logger.warning(f"Reasoning failed ({label}): {e}")
            return ReasoningResult.failure(f"Reasoning failed: {e}", label)

    def _knowledge(self, query: ReasoningQuery) -> List[Atom]:
        if query.atoms is not None:
            return list(query.atoms)
        return self.store.all()

    def _weighted(self, confidence: float, query: ReasoningQuery, label: str) -> float:
        if self.weight_provider is None:
            return confidence
        user_id = query.context.get("userId") or query.context.get("user_id")
        weighted = confidence * self.weight_provider(user_id, label)
        return max(0.0, min(1.0, weighted))

    # =========================================================================
    # Hybrid
    # =========================================================================

    def _hybrid(self, atoms: List[Atom], query: ReasoningQuery) -> ReasoningResult:
        """Fold every general strategy that produced a result."""
        results = []
        for reasoning_type in HYBRID_STRATEGIES:
            strategy = self.strategies.get(reasoning_type)
            if strategy is None:
                continue
            try:
                result = strategy(atoms, query)
            except Exception as e:
                logger.warning(f"Hybrid strategy {reasoning_type.value} failed: {e}")
                continue
            if result.failed:
                continue
            results.append((reasoning_type, result))

        if not results:
            return ReasoningResult(
                confidence=0.0,
                explanation="No reasoning engines produced results",
                metadata={"reasoningType": ReasoningType.HYBRID.value, "strategies": []},
            )

        conclusion: List[Atom] = []
        for _, result in results:
            conclusion.extend(result.conclusion)

        return ReasoningResult(
            conclusion=conclusion,
            confidence=float(np.mean([r.confidence for _, r in results])),
            explanation="; ".join(r.explanation for _, r in results if r.explanation),
            metadata={
                "reasoningType": ReasoningType.HYBRID.value,
                "strategies": [t.value for t, _ in results],
            },
        )

    # =========================================================================
    # Pattern Matching
    # =========================================================================

    def _pattern_matching(self, atoms: List[Atom], query: ReasoningQuery) -> ReasoningResult:
        """Recognized patterns over the atoms, as PatternNode conclusions."""
        patterns = self.pattern_engine.recognize_patterns(
            PatternInput(data=atoms, context=query.context)
        ) if atoms else []

        if not patterns:
            return ReasoningResult(
                confidence=0.0,
                explanation="No patterns recognized",
                metadata={"reasoningType": ReasoningType.PATTERN_MATCHING.value},
            )

        conclusion = [
            Atom(
                type=AtomType.PATTERN_NODE.value,
                name=pattern.label,
                truth_value=TruthValue(strength=pattern.confidence, confidence=pattern.confidence),
                metadata={
                    "derivedBy": ReasoningType.PATTERN_MATCHING.value,
                    "patternType": pattern.metadata.get("patternType"),
                    "instanceCount": len(pattern.instances),
                },
            )
            for pattern in patterns
        ]
        return ReasoningResult(
            conclusion=conclusion,
            confidence=float(np.mean([p.confidence for p in patterns])),
            explanation=f"Matched {len(patterns)} pattern(s): " + ", ".join(p.label for p in patterns),
            metadata={"reasoningType": ReasoningType.PATTERN_MATCHING.value},
        )
