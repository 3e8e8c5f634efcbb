"""
HTTP API tests.

Uses FastAPI's TestClient against a fresh engine per test.
"""

import json

import pytest
from fastapi.testclient import TestClient

from api.main import app, get_engine
from atom_nexus import CognitiveEngine


@pytest.fixture
def client():
    engine = CognitiveEngine()
    app.dependency_overrides[get_engine] = lambda: engine
    yield TestClient(app)
    app.dependency_overrides.clear()


class TestAtomRoutes:
    """Test atom endpoints."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy", "atoms": 0}

    def test_add_and_get(self, client):
        response = client.post("/v1/atoms", json={
            "type": "ConceptNode",
            "name": "rain",
            "truthValue": {"strength": 0.8, "confidence": 0.9},
        })
        atom_id = response.json()["id"]

        atom = client.get(f"/v1/atoms/{atom_id}").json()

        assert atom_id == "atom_1"
        assert atom["name"] == "rain"
        assert atom["truthValue"] == {"strength": 0.8, "confidence": 0.9}

    def test_get_unknown(self, client):
        assert client.get("/v1/atoms/atom_404").status_code == 404

    def test_query(self, client):
        client.post("/v1/atoms", json={"type": "ConceptNode", "name": "a"})
        client.post("/v1/atoms", json={"type": "PredicateNode", "name": "p"})

        response = client.post("/v1/atoms/query", json={"type": "ConceptNode"})

        assert response.json()["count"] == 1
        assert response.json()["atoms"][0]["name"] == "a"

    def test_update_unknown_field(self, client):
        atom_id = client.post("/v1/atoms", json={"type": "ConceptNode"}).json()["id"]

        response = client.patch(f"/v1/atoms/{atom_id}", json={"colour": "red"})

        assert response.status_code == 422

    def test_update_and_remove(self, client):
        atom_id = client.post("/v1/atoms", json={"type": "ConceptNode"}).json()["id"]

        updated = client.patch(f"/v1/atoms/{atom_id}", json={"name": "renamed"})
        assert updated.json()["name"] == "renamed"

        assert client.delete(f"/v1/atoms/{atom_id}").status_code == 200
        assert client.delete(f"/v1/atoms/{atom_id}").status_code == 404

    def test_export_import(self, client):
        client.post("/v1/atoms", json={"type": "ConceptNode", "name": "a"})
        blob = client.get("/v1/atomspace/export").json()["data"]

        client.post("/v1/atomspace/clear")
        assert client.get("/v1/atomspace/size").json() == {"size": 0}

        response = client.post("/v1/atomspace/import", json={"data": blob})
        assert response.json() == {"imported": 1}

    def test_bad_import(self, client):
        response = client.post("/v1/atomspace/import", json={"data": json.dumps({"not": "a list"})})

        assert response.status_code == 400


class TestReasoningRoutes:
    """Test pattern and reasoning endpoints."""

    def test_recognize(self, client):
        response = client.post("/v1/patterns/recognize", json={
            "data": [1, 3, 5, 7, 9, 11],
            "scope": "local",
        })
        patterns = response.json()["patterns"]

        assert patterns[0]["pattern"]["type"] == "arithmetic-sequence"
        assert patterns[0]["pattern"]["commonDifference"] == 2

    def test_reason(self, client):
        response = client.post("/v1/reason", json={
            "type": "deductive",
            "atoms": [{
                "type": "ImplicationLink",
                "truthValue": {"strength": 0.9, "confidence": 0.8},
                "outgoing": [
                    {"type": "ConceptNode", "name": "rain",
                     "truthValue": {"strength": 0.8, "confidence": 0.9}},
                    {"type": "ConceptNode", "name": "wet-ground"},
                ],
            }],
        })
        result = response.json()

        assert result["conclusion"][0]["name"] == "wet-ground"
        assert result["confidence"] == pytest.approx(0.76)

    def test_reason_unknown_type(self, client):
        result = client.post("/v1/reason", json={"type": "telepathic"}).json()

        assert result["confidence"] == 0.0
        assert result["metadata"]["error"] is True


class TestLearningRoutes:
    """Test learning endpoints."""

    def test_learn_and_stats(self, client):
        response = client.post("/v1/learning/learn", json={"type": "unsupervised", "input": "x"})

        assert response.json()["sessionId"].startswith("session_")
        assert client.get("/v1/learning/stats").json()["totalLearningRecords"] == 1

    def test_learn_rejects_unknown_type(self, client):
        response = client.post("/v1/learning/learn", json={"type": "telepathic"})

        assert response.status_code == 422

    def test_feedback(self, client):
        response = client.post("/v1/learning/feedback", json={
            "feedback": {"rating": 2, "helpful": False},
            "context": {"userId": "u1", "currentTask": "completion"},
        })

        assert response.json()["priority"] == "high"
        strategy = client.get("/v1/learning/strategies/u1/completion").json()
        assert strategy["effectiveness"] == pytest.approx(0.4)

    def test_unknown_strategy(self, client):
        assert client.get("/v1/learning/strategies/u1/none").status_code == 404

    def test_behavior_and_predict(self, client):
        client.post("/v1/learning/behavior", json={
            "userId": "u1", "action": "open_file", "context": {"ext": "py"},
        })

        patterns = client.get("/v1/learning/behavior/u1").json()["patterns"]
        predictions = client.post("/v1/learning/predict", json={
            "userId": "u1", "context": {"ext": "py"},
        }).json()["predictions"]

        assert patterns[0]["frequency"] == 1
        assert predictions[0]["action"] == "open_file"

    def test_behavior_with_empty_action(self, client):
        response = client.post("/v1/learning/behavior", json={"userId": "u1", "action": ""})

        assert response.status_code == 200
        assert response.json()["pattern"] == ""
        assert response.json()["frequency"] == 1

    def test_recognize_odd_usage_values(self, client):
        response = client.post("/v1/patterns/recognize", json={
            "data": {"usage": {"features": 5, "duration": "10", "tasks": 3}},
        })

        assert response.status_code == 200
        assert response.json()["patterns"][0]["pattern"]["efficiency"] == pytest.approx(0.3)

    def test_models(self, client):
        model = client.post("/v1/learning/models", json={"type": "classifier"}).json()

        trained = client.post(f"/v1/learning/models/{model['id']}/train", json={
            "trainingData": [{"type": "supervised", "feedback": {"rating": 5, "helpful": True}}],
        }).json()

        assert trained["version"] == 2
        assert trained["accuracy"] == 1.0
        assert len(client.get("/v1/learning/models").json()["models"]) == 1

    def test_unknown_model(self, client):
        assert client.get("/v1/learning/models/model_404").status_code == 404
        response = client.post("/v1/learning/models/model_404/train", json={"trainingData": []})
        assert response.status_code == 404

    def test_adapt_and_personalize(self, client):
        strategy = client.post("/v1/learning/adapt", json={
            "userId": "u1", "domain": "completion", "data": {"maxItems": 5},
        }).json()
        assert strategy["strategy"]["maxItems"] == 5

        client.put("/v1/learning/personalization/u1", json={"theme": "dark"})
        assert client.get("/v1/learning/personalization/u1").json()["theme"] == "dark"
        assert client.get("/v1/learning/personalization/u2").status_code == 404
