"""
Unit tests for the learning engine.

Tests recording, feedback, adaptation, behavior tracking and prediction,
models, personalization and stats.
"""

import re

import pytest

from atom_nexus.errors import NotFoundError
from atom_nexus.learning import (
    LearningConfig,
    LearningContext,
    LearningData,
    LearningEngine,
    LearningType,
    UserFeedback,
)


def _feedback_record(helpful, rating=4):
    return LearningData(
        type="supervised",
        input={"suggestion": "x"},
        feedback=UserFeedback(rating=rating, helpful=helpful),
    )


class TestRecording:
    """Test learn()."""

    def test_stamps_record(self, learner):
        record = learner.learn(LearningData(type="unsupervised", input="hello world"))

        assert record.timestamp > 0
        assert re.match(r"^session_\d+_[0-9a-f]{16}$", record.session_id)

    def test_session_ids_are_unique(self, learner):
        ids = {learner.learn({"type": "unsupervised", "input": "x"}).session_id for _ in range(50)}

        assert len(ids) == 50

    def test_keeps_given_session_and_timestamp(self, learner):
        record = learner.learn(LearningData(
            type="unsupervised", input="x", timestamp=123, session_id="s1",
        ))

        assert record.timestamp == 123
        assert record.session_id == "s1"

    def test_history_is_append_only(self, learner):
        for _ in range(3):
            learner.learn({"type": "unsupervised", "input": "x"})

        assert learner.get_learning_stats()["totalLearningRecords"] == 3

    def test_unknown_type_recorded_as_custom(self, learner):
        record = learner.learn({"type": "telepathic", "input": "x"})

        assert record.type == "telepathic"
        assert record.learning_type is LearningType.CUSTOM
        assert learner.get_learning_stats()["totalLearningRecords"] == 1
        assert learner.feature_counts == {}

    @pytest.mark.parametrize("value", ["", None, 3])
    def test_missing_type_rejected(self, learner, value):
        with pytest.raises(ValueError):
            learner.learn({"type": value})

    def test_feedback_rating_clamped(self):
        assert UserFeedback(rating=9, helpful=True).rating == 5.0
        assert UserFeedback(rating=-1, helpful=True).rating == 1.0

    def test_unsupervised_feature_counts(self, learner):
        learner.learn({"type": "unsupervised", "input": "Open file, open tab"})
        learner.learn({"type": "unsupervised", "input": {"open": 1, "close": 2}})

        assert learner.feature_counts["open"] == 3
        assert learner.feature_counts["close"] == 1

    def test_reinforcement_value_estimate(self, learner):
        learner.learn({"type": "reinforcement", "input": {"action": "accept", "reward": 1.0}})
        learner.learn({"type": "reinforcement", "input": {"action": "accept", "reward": 1.0}})

        assert learner.action_values["accept"] == pytest.approx(0.19)

    def test_reinforcement_reward_from_rating(self, learner):
        learner.learn({
            "type": "reinforcement",
            "input": {"action": "reject"},
            "feedback": {"rating": 1, "helpful": False},
        })

        assert learner.action_values["reject"] == pytest.approx(-0.1)

    def test_personalization_processor(self, learner):
        learner.learn({
            "type": "personalization",
            "input": {"theme": "dark"},
            "context": {"userId": "u1"},
        })

        assert learner.get_personalization("u1")["theme"] == "dark"

    def test_behavioral_processor(self, learner):
        learner.learn({
            "type": "behavioral",
            "input": {"action": "open_file", "context": {"ext": "py"}},
            "context": {"userId": "u1"},
        })

        patterns = learner.get_user_behavior_patterns("u1")
        assert [p.pattern for p in patterns] == ["open_file"]

    def test_adaptive_processor(self, learner):
        learner.learn({
            "type": "adaptive",
            "input": {"domain": "completion", "style": "terse"},
            "context": {"userId": "u1"},
        })

        strategy = learner.get_adaptation_strategy("u1", "completion")
        assert strategy.strategy["style"] == "terse"
        assert "domain" not in strategy.strategy


class TestFeedback:
    """Test learn_from_feedback()."""

    @pytest.mark.parametrize("rating, helpful, priority", [
        (1, True, "high"),
        (2, True, "high"),
        (5, False, "high"),
        (3, True, "medium"),
        (4, True, "low"),
        (5, True, "low"),
    ])
    def test_priority(self, learner, rating, helpful, priority):
        record = learner.learn_from_feedback(UserFeedback(rating=rating, helpful=helpful))

        assert record.priority == priority
        assert record.type == "supervised"

    def test_nudges_strategy(self, learner):
        context = LearningContext(user_id="u1", current_task="completion")

        learner.learn_from_feedback(UserFeedback(rating=5, helpful=True), context)
        assert learner.get_adaptation_strategy("u1", "completion").effectiveness == pytest.approx(0.6)

        learner.learn_from_feedback(UserFeedback(rating=1, helpful=False), context)
        learner.learn_from_feedback(UserFeedback(rating=1, helpful=False), context)
        assert learner.get_adaptation_strategy("u1", "completion").effectiveness == pytest.approx(0.4)

    def test_anonymous_general_strategy(self, learner):
        learner.learn_from_feedback({"rating": 4, "helpful": True})

        assert learner.get_adaptation_strategy("anonymous", "general") is not None

    def test_effectiveness_clamped(self, learner):
        for _ in range(8):
            learner.learn_from_feedback({"rating": 5, "helpful": True}, {"userId": "u1"})

        assert learner.get_adaptation_strategy("u1", "general").effectiveness == 1.0

    def test_record_and_nudge_together(self, learner):
        learner.learn_from_feedback({"rating": 5, "helpful": True}, {"userId": "u1"})

        stats = learner.get_learning_stats()
        assert stats["totalLearningRecords"] == 1
        assert stats["userAdaptations"] == 1

    def test_confidence_weight(self, learner):
        assert learner.confidence_weight("u1", "deductive") == 1.0

        learner.learn_from_feedback(
            {"rating": 5, "helpful": True},
            {"userId": "u1", "currentTask": "deductive"},
        )

        assert learner.confidence_weight("u1", "deductive") == pytest.approx(1.1)


class TestAdaptation:
    """Test adapt_to_user()."""

    def test_short_history_has_no_recommendations(self, learner):
        strategy = learner.adapt_to_user("u1", "editor", {"fontSize": 14})

        assert strategy.strategy["recommendations"] == {}
        assert strategy.strategy["fontSize"] == 14
        assert strategy.effectiveness == pytest.approx(0.5)

    def test_recommendations_from_history(self, learner):
        context = {"userId": "u1", "currentTask": "completion", "userExperience": "expert"}
        for _ in range(10):
            learner.learn_from_feedback({"rating": 5, "helpful": True, "outcome": "accepted"}, context)

        strategy = learner.adapt_to_user("u1", "editor")
        recommendations = strategy.strategy["recommendations"]

        assert recommendations["historySize"] == 10
        assert recommendations["preferredTasks"] == ["completion"]
        assert recommendations["preferredOutcome"] == "accepted"
        assert recommendations["helpfulRate"] == pytest.approx(1.0)
        assert recommendations["experienceLevel"] == "expert"
        assert strategy.effectiveness == pytest.approx(0.75)

    def test_returns_copy(self, learner):
        strategy = learner.adapt_to_user("u1", "editor")
        strategy.effectiveness = 0.0

        assert learner.get_adaptation_strategy("u1", "editor").effectiveness == pytest.approx(0.5)

    def test_unknown_strategy(self, learner):
        assert learner.get_adaptation_strategy("nobody", "editor") is None


class TestBehavior:
    """Test behavior patterns and prediction."""

    def test_frequency_strictly_increases(self, learner):
        previous_frequency, previous_confidence = 0, 0.0
        for _ in range(5):
            pattern = learner.learn_user_behavior("u1", "open_file", {"ext": "py"})
            assert pattern.frequency > previous_frequency
            assert pattern.confidence >= previous_confidence
            previous_frequency, previous_confidence = pattern.frequency, pattern.confidence

        assert pattern.frequency == 5
        assert pattern.confidence == pytest.approx(0.54)

    def test_context_replaced(self, learner):
        learner.learn_user_behavior("u1", "open_file", {"ext": "py"})
        pattern = learner.learn_user_behavior("u1", "open_file", {"ext": "ts"})

        assert pattern.context == {"ext": "ts"}
        assert pattern.last_seen >= pattern.discovered

    def test_confidence_capped(self):
        learner = LearningEngine(LearningConfig(behavior_confidence_step=0.3))
        for _ in range(5):
            pattern = learner.learn_user_behavior("u1", "save", {})

        assert pattern.confidence == 1.0

    @pytest.mark.parametrize("user_id, action", [("", "open_file"), ("u1", ""), ("", "")])
    def test_empty_ids_are_recorded(self, learner, user_id, action):
        pattern = learner.learn_user_behavior(user_id, action, {})

        assert pattern.user_id == user_id
        assert pattern.pattern == action
        assert pattern.frequency == 1
        assert [p.pattern for p in learner.get_user_behavior_patterns(user_id)] == [action]
        assert learner.get_learning_stats()["behaviorPatterns"] == 1

    def test_behavior_record_without_user_is_history_only(self, learner):
        learner.learn({"type": "behavioral", "input": {"action": "open_file"}})

        assert learner.get_learning_stats()["behaviorPatterns"] == 0
        assert learner.get_learning_stats()["totalLearningRecords"] == 1

    def test_patterns_per_user(self, learner):
        learner.learn_user_behavior("u1", "open_file")
        learner.learn_user_behavior("u1", "save")
        learner.learn_user_behavior("u2", "save")

        assert {p.pattern for p in learner.get_user_behavior_patterns("u1")} == {"open_file", "save"}
        assert learner.get_learning_stats()["behaviorPatterns"] == 3

    def test_predict(self, learner):
        learner.learn_user_behavior("u1", "run_tests", {"file": "test_a.py", "lang": "py"})
        learner.learn_user_behavior("u1", "open_docs", {"lang": "md"})

        predictions = learner.predict_user_action("u1", {"lang": "py"})

        assert predictions == [{"action": "run_tests", "confidence": 0.5, "similarity": 1.0}]

    def test_predict_needs_more_than_half(self, learner):
        learner.learn_user_behavior("u1", "run_tests", {"lang": "py"})

        assert learner.predict_user_action("u1", {"lang": "py", "file": "x"}) == []
        assert learner.predict_user_action("u1", {}) == []
        assert learner.predict_user_action("nobody", {"lang": "py"}) == []

    def test_predict_top_five(self, learner):
        for i in range(8):
            for _ in range(i + 1):
                learner.learn_user_behavior("u1", f"action{i}", {"lang": "py"})

        predictions = learner.predict_user_action("u1", {"lang": "py"})

        assert len(predictions) == 5
        assert predictions[0]["action"] == "action7"
        confidences = [p["confidence"] for p in predictions]
        assert confidences == sorted(confidences, reverse=True)


class TestModels:
    """Test learning model lifecycle."""

    def test_create(self, learner):
        first = learner.create_learning_model("classifier", {"alpha": 0.1})
        second = learner.create_learning_model("ranker")

        assert first.id == "model_1"
        assert second.id == "model_2"
        assert first.version == 1
        assert first.parameters == {"alpha": 0.1}
        assert [m.id for m in learner.list_learning_models()] == ["model_1", "model_2"]

    def test_update_recomputes_accuracy(self, learner):
        model = learner.create_learning_model("classifier")

        updated = learner.update_learning_model(model.id, [
            _feedback_record(True), _feedback_record(True), _feedback_record(False),
        ])

        assert updated.version == 2
        assert updated.accuracy == pytest.approx(2 / 3)
        assert updated.confidence == pytest.approx(2 / 3 + 0.1)
        assert updated.feedback_samples == 3
        assert len(updated.training_data) == 3

    def test_update_without_feedback(self, learner):
        model = learner.create_learning_model("classifier")

        updated = learner.update_learning_model(model.id, [{"type": "unsupervised", "input": "x"}])

        assert updated.accuracy == pytest.approx(0.5)
        assert updated.confidence == pytest.approx(0.6)
        assert updated.feedback_samples == 0

    def test_version_monotonic_and_accuracy_bounded(self, learner):
        model = learner.create_learning_model("classifier")
        for i in range(5):
            updated = learner.update_learning_model(model.id, [_feedback_record(i % 2 == 0)])
            assert updated.version == i + 2
            assert 0.0 <= updated.accuracy <= 1.0
            assert updated.confidence <= 0.9

        assert len(learner.get_learning_model(model.id).training_data) == 5

    def test_update_unknown_model(self, learner):
        with pytest.raises(NotFoundError):
            learner.update_learning_model("model_404", [])

    def test_get_unknown_model(self, learner):
        assert learner.get_learning_model("model_404") is None

    def test_stats_model_accuracy(self, learner):
        model = learner.create_learning_model("classifier")
        learner.update_learning_model(model.id, [_feedback_record(True)])

        assert learner.get_learning_stats()["modelAccuracy"] == {model.id: 1.0}


class TestPersonalization:
    """Test preference maps."""

    def test_shallow_merge(self, learner):
        learner.personalize("u1", {"theme": "dark", "font": {"size": 12}})
        prefs = learner.personalize("u1", {"font": {"family": "mono"}})

        assert prefs["theme"] == "dark"
        assert prefs["font"] == {"family": "mono"}
        assert "lastUpdated" in prefs

    def test_unknown_user(self, learner):
        assert learner.get_personalization("nobody") is None

    def test_stats_keys(self, learner):
        assert set(learner.get_learning_stats()) == {
            "totalLearningRecords", "modelAccuracy", "userAdaptations", "behaviorPatterns",
        }
