"""
Pattern Analyzer - Rescoring, Filtering and Ranking.

Applies the same post-processing to every detector family:
scope and evidence adjustments, learned weighting, thresholding,
type filtering and ranking.
"""

import logging
from typing import List, Optional

from .types import PatternResult, RecognitionOptions, Scope

logger = logging.getLogger(__name__)

SCOPE_MULTIPLIERS = {
    Scope.GLOBAL.value: 1.2,
    Scope.LOCAL.value: 0.9,
}

MANY_INSTANCES = 5          # above this, evidence is strong
FEW_INSTANCES = 2           # below this, evidence is thin
MANY_INSTANCES_BOOST = 1.1
FEW_INSTANCES_PENALTY = 0.8


class PatternAnalyzer:
    """
    Rescore and rank raw pattern results.

    Example:
        analyzer = PatternAnalyzer()
        ranked = analyzer.process(raw_patterns, scope="global",
                                  options=RecognitionOptions(max_results=5))
    """

    def rescore(
        self,
        pattern: PatternResult,
        scope: Optional[str] = None,
        weight: float = 1.0,
    ) -> PatternResult:
        """Adjust a pattern's confidence in place and clamp it to [0, 1]."""
        confidence = pattern.confidence * SCOPE_MULTIPLIERS.get(scope, 1.0)

        instance_count = len(pattern.instances)
        if instance_count > MANY_INSTANCES:
            confidence *= MANY_INSTANCES_BOOST
        elif instance_count < FEW_INSTANCES:
            confidence *= FEW_INSTANCES_PENALTY

        confidence *= weight
        pattern.confidence = max(0.0, min(1.0, confidence))
        return pattern

    def filter(
        self,
        patterns: List[PatternResult],
        options: RecognitionOptions,
    ) -> List[PatternResult]:
        kept = patterns
        if not options.include_low_confidence:
            kept = [p for p in kept if p.confidence >= options.min_confidence]

        if options.pattern_types:
            wanted = set(options.pattern_types)
            kept = [p for p in kept if p.metadata.get("patternType") in wanted]

        return kept

    def rank(
        self,
        patterns: List[PatternResult],
        max_results: int,
    ) -> List[PatternResult]:
        ranked = sorted(patterns, key=lambda p: p.confidence, reverse=True)
        return ranked[:max(0, max_results)]

    def process(
        self,
        patterns: List[PatternResult],
        scope: Optional[str] = None,
        options: RecognitionOptions = None,
        weight: float = 1.0,
    ) -> List[PatternResult]:
        """Rescore, filter and rank in one pass."""
        options = options or RecognitionOptions()

        rescored = [self.rescore(p, scope, weight) for p in patterns]
        kept = self.filter(rescored, options)
        logger.debug(f"Kept {len(kept)} of {len(rescored)} patterns")

        return self.rank(kept, options.max_results)
