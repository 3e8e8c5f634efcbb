"""
Reasoning for Atom Nexus.

Strategies:
1. Deductive: forward chaining over implication links
2. Inductive: generalization over atoms that share a type
3. Abductive: hypotheses that explain observations
4. Code analysis and code completion over code atoms
5. Pattern matching, and a hybrid fold over the general strategies
"""

from .types import ReasoningConfig, ReasoningQuery, ReasoningResult, ReasoningType
from .strategies import abductive_reasoning, deductive_reasoning, inductive_reasoning
from .code import CodeAnalyzer, CodeCompleter
from .engine import HYBRID_STRATEGIES, ReasoningEngine

__all__ = [
    # Types
    "ReasoningConfig",
    "ReasoningQuery",
    "ReasoningResult",
    "ReasoningType",
    # Strategies
    "abductive_reasoning",
    "deductive_reasoning",
    "inductive_reasoning",
    "CodeAnalyzer",
    "CodeCompleter",
    # Core classes
    "HYBRID_STRATEGIES",
    "ReasoningEngine",
]
