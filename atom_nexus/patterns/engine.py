"""
Pattern Engine - Unified Recognition Layer.

Routes an input to the right detector family by its shape, then hands
the raw results to the analyzer:

    str            -> code detectors
    list / tuple   -> structural detectors (including atom clusters)
    Atom           -> structural detectors over its outgoing set
    dict           -> behavioral detectors
    anything else  -> no patterns
"""

import logging
from typing import Any, Callable, Dict, List, Optional, Union

from ..core.models import Atom
from .analyzer import PatternAnalyzer
from .extractor import ExtractionConfig, PatternExtractor
from .types import PatternInput, PatternResult, RecognitionOptions

logger = logging.getLogger(__name__)

# (user_id, domain) -> confidence multiplier
WeightProvider = Callable[[Optional[str], str], float]

PATTERN_DOMAIN = "pattern_recognition"


class PatternEngine:
    """
    Recognize patterns in text, sequences and structured records.

    Example:
        engine = PatternEngine()

        engine.recognize_patterns(PatternInput(data=[1, 3, 5, 7, 9, 11], scope="local"))
        engine.recognize_patterns("class Foo {}")
    """

    def __init__(
        self,
        extraction_config: ExtractionConfig = None,
        weight_provider: Optional[WeightProvider] = None,
    ):
        self.extractor = PatternExtractor(extraction_config)
        self.analyzer = PatternAnalyzer()
        self.weight_provider = weight_provider

    def recognize_patterns(
        self,
        pattern_input: Union[PatternInput, Dict[str, Any], Any],
    ) -> List[PatternResult]:
        """
        Recognize patterns in an input.

        Args:
            pattern_input: PatternInput, a dict with PatternInput keys
                (data, context, scope, options), or raw data

        Returns:
            Ranked pattern results; empty for empty or unsupported input
        """
        pattern_input = self._coerce_input(pattern_input)
        context = pattern_input.context or {}

        raw = self.extract(pattern_input.data, context)
        weight = self._weight(context)

        return self.analyzer.process(
            raw,
            scope=pattern_input.scope,
            options=pattern_input.options,
            weight=weight,
        )

    def extract(self, data: Any, context: Dict[str, Any] = None) -> List[PatternResult]:
        """Dispatch raw detection by input shape."""
        context = context or {}

        if isinstance(data, str):
            return self.extractor.extract_code_patterns(data, context)
        if isinstance(data, (list, tuple)):
            return self.extractor.extract_structural_patterns(data, context)
        if isinstance(data, Atom):
            return self.extractor.extract_structural_patterns(data.outgoing, context)
        if isinstance(data, dict):
            atom = self.extractor.as_atom(data)
            if isinstance(atom, Atom):
                return self.extractor.extract_structural_patterns(atom.outgoing, context)
            return self.extractor.extract_behavioral_patterns(data, context)

        logger.debug(f"No detectors for input of type {type(data).__name__}")
        return []

    def _weight(self, context: Dict[str, Any]) -> float:
        if self.weight_provider is None:
            return 1.0
        user_id = context.get("userId") or context.get("user_id")
        return self.weight_provider(user_id, PATTERN_DOMAIN)

    def _coerce_input(self, value: Any) -> PatternInput:
        if isinstance(value, PatternInput):
            return value
        if isinstance(value, dict) and "data" in value and set(value) <= {
            "data", "context", "scope", "options",
        }:
            options = value.get("options")
            if not isinstance(options, RecognitionOptions):
                options = RecognitionOptions.from_dict(options)
            return PatternInput(
                data=value["data"],
                context=value.get("context") or {},
                scope=value.get("scope"),
                options=options,
            )
        return PatternInput(data=value)
