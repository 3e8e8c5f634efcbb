"""
Shared fixtures for the Atom Nexus test suite.
"""

import pytest

from atom_nexus import CognitiveEngine
from atom_nexus.core import Atom, AtomStore, TruthValue
from atom_nexus.learning import LearningEngine
from atom_nexus.patterns import PatternEngine
from atom_nexus.reasoning import ReasoningEngine


@pytest.fixture
def store():
    return AtomStore()


@pytest.fixture
def pattern_engine():
    return PatternEngine()


@pytest.fixture
def reasoner(store, pattern_engine):
    return ReasoningEngine(store, pattern_engine)


@pytest.fixture
def learner():
    return LearningEngine()


@pytest.fixture
def engine():
    return CognitiveEngine()


@pytest.fixture
def rain_rule():
    """rain -> wet-ground, with an established premise."""
    return Atom(
        type="ImplicationLink",
        truth_value=TruthValue(strength=0.9, confidence=0.8),
        outgoing=[
            Atom(
                type="ConceptNode",
                name="rain",
                truth_value=TruthValue(strength=0.8, confidence=0.9),
            ),
            Atom(type="ConceptNode", name="wet-ground"),
        ],
    )


@pytest.fixture
def function_atoms():
    return [
        Atom(type="FunctionNode", name="getUserById"),
        Atom(type="FunctionNode", name="getUserByEmail"),
        Atom(type="FunctionNode", name="setUserName"),
    ]
