"""
Integration tests for the cognitive engine.

Tests the flow from seeded atoms through recognition and reasoning to
learning, and the trace atoms learning leaves in the store.
"""

import pytest

from atom_nexus import NotFoundError
from atom_nexus.core import AtomPattern
from atom_nexus.patterns import PatternInput
from atom_nexus.reasoning import ReasoningQuery


class TestAtomOperations:
    """Test the atom surface of the engine."""

    def test_crud(self, engine):
        atom_id = engine.add_atom({"type": "ConceptNode", "name": "rain"})

        assert engine.get_atom(atom_id).name == "rain"
        assert engine.update_atom(atom_id, {"name": "drizzle"})
        assert engine.query_atoms({"name": "drizzle"})[0].id == atom_id
        assert engine.get_atom_space_size() == 1
        assert engine.remove_atom(atom_id)
        assert engine.get_atom_space_size() == 0

    def test_export_clear_import(self, engine):
        engine.add_atom({"type": "ConceptNode", "name": "a"})
        engine.add_atom({"type": "ConceptNode", "name": "b"})
        blob = engine.export_atom_space()

        engine.clear_atom_space()
        assert engine.get_atom_space_size() == 0

        assert engine.import_atom_space(blob) == 2
        assert [a.name for a in engine.query_atoms()] == ["a", "b"]


class TestCognitiveFlow:
    """Test seeding, recognizing and reasoning together."""

    def test_function_nodes_yield_pattern(self, engine):
        for name in ["getUserById", "getUserByEmail", "setUserName"]:
            engine.add_atom({"type": "FunctionNode", "name": name})

        atoms = engine.query_atoms(AtomPattern(type="FunctionNode"))
        patterns = engine.recognize_patterns(PatternInput(data=atoms, scope="local"))

        assert patterns
        assert any(len(p.instances) >= 1 for p in patterns)

    def test_code_analysis_over_store(self, engine):
        engine.add_atom({"type": "FunctionNode", "name": "parse", "metadata": {"complexity": 3}})
        engine.add_atom({"type": "ClassNode", "name": "ParserFactory"})

        result = engine.reason({"type": "code-analysis"})

        assert result.metadata["qualityMetrics"]["functionCount"] == 1
        assert result.metadata["qualityMetrics"]["designPatterns"] == [
            {"class": "ParserFactory", "pattern": "factory"},
        ]

    def test_unknown_reasoning_type(self, engine):
        result = engine.reason(ReasoningQuery(type="telepathic"))

        assert result.confidence == 0.0
        assert result.explanation

    def test_feedback_weights_reasoning(self, engine, rain_rule):
        query = ReasoningQuery(type="deductive", atoms=[rain_rule], context={"userId": "u1"})
        baseline = engine.reason(query).confidence

        engine.learn_from_feedback(
            {"rating": 1, "helpful": False},
            {"userId": "u1", "currentTask": "deductive"},
        )

        assert engine.reason(query).confidence == pytest.approx(baseline * 0.9)

    def test_feedback_weights_patterns(self, engine):
        request = PatternInput(data=[1, 3, 5, 7], context={"userId": "u1"})
        baseline = engine.recognize_patterns(request)[0].confidence

        engine.learn_from_feedback(
            {"rating": 1, "helpful": False},
            {"userId": "u1", "currentTask": "pattern_recognition"},
        )

        assert engine.recognize_patterns(request)[0].confidence == pytest.approx(baseline * 0.9)


class TestLearningTrace:
    """Test the atoms learning leaves in the store."""

    def test_learning_record_atom(self, engine):
        engine.learn({"type": "unsupervised", "input": "x"})

        records = engine.query_atoms({"type": "LearningRecord"})
        assert len(records) == 1
        assert records[0].metadata["learningType"] == "unsupervised"
        assert records[0].name.startswith("learning_unsupervised_")

    def test_helpful_feedback_success_pattern(self, engine):
        engine.learn_from_feedback({"rating": 4, "helpful": True}, {"userId": "u1"})

        success = engine.query_atoms({"type": "SuccessPattern"})
        assert len(success) == 1
        assert success[0].truth_value.strength == pytest.approx(0.8)

    def test_unhelpful_feedback_has_no_success_pattern(self, engine):
        engine.learn_from_feedback({"rating": 2, "helpful": False})

        assert engine.query_atoms({"type": "SuccessPattern"}) == []
        assert len(engine.query_atoms({"type": "LearningRecord"})) == 1

    def test_behavior_leaves_learning_record(self, engine):
        pattern = engine.learn_user_behavior("u1", "open_file", {"ext": "py"})

        records = engine.query_atoms({"type": "LearningRecord"})
        assert pattern.frequency == 1
        assert len(records) == 1
        assert records[0].metadata["learningType"] == "behavioral"
        assert records[0].metadata["context"]["userId"] == "u1"
        assert engine.get_learning_stats()["totalLearningRecords"] == 1

    def test_behavior_with_empty_ids(self, engine):
        pattern = engine.learn_user_behavior("", "", None)

        assert pattern.pattern == ""
        assert len(engine.query_atoms({"type": "LearningRecord"})) == 1

    def test_personalization_node(self, engine):
        engine.learn({
            "type": "personalization",
            "input": {"theme": "dark"},
            "feedback": {"rating": 5, "helpful": True},
            "context": {"userId": "u1"},
        })

        nodes = engine.query_atoms({"type": "PersonalizationNode"})
        assert nodes[0].metadata["userPreferences"] == {"theme": "dark"}
        assert engine.get_personalization("u1")["theme"] == "dark"


class TestLearningSurface:
    """Test the learning operations exposed by the engine."""

    def test_models(self, engine):
        model = engine.create_learning_model("classifier")

        updated = engine.update_learning_model(model.id, [
            {"type": "supervised", "feedback": {"rating": 5, "helpful": True}},
        ])

        assert updated.version == 2
        assert engine.get_learning_model(model.id).accuracy == 1.0
        assert len(engine.list_learning_models()) == 1
        with pytest.raises(NotFoundError):
            engine.update_learning_model("model_404", [])

    def test_behavior_and_prediction(self, engine):
        engine.learn_user_behavior("u1", "open_file", {"ext": "py"})
        engine.learn_user_behavior("u1", "open_file", {"ext": "py"})

        assert engine.get_user_behavior_patterns("u1")[0].frequency == 2
        assert engine.predict_user_action("u1", {"ext": "py"})[0]["action"] == "open_file"

    def test_adaptation(self, engine):
        strategy = engine.adapt_to_user("u1", "completion", {"maxItems": 5})

        assert engine.get_adaptation_strategy("u1", "completion").id == strategy.id
        assert engine.personalize("u1", {"theme": "light"})["theme"] == "light"
        assert engine.get_learning_stats()["userAdaptations"] == 1
