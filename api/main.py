"""
Atom Nexus API

HTTP API wrapper for the cognitive engine: atoms, pattern recognition,
reasoning and learning over one in-memory atom space.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Any, Dict, List, Optional

from fastapi import Depends, FastAPI, HTTPException, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ConfigDict, Field, field_validator

from atom_nexus import AtomSpaceImportError, CognitiveEngine, NotFoundError, __version__
from atom_nexus.core import AtomPattern, AttentionValue, TruthValue
from atom_nexus.learning import LearningType

# =============================================================================
# Configuration
# =============================================================================

LOG_LEVEL = os.environ.get("NEXUS_LOG_LEVEL", "INFO").upper()

# CORS origins from env, none by default
ALLOWED_ORIGINS = [
    origin for origin in os.environ.get("NEXUS_ALLOWED_ORIGINS", "").split(",") if origin
]

# Docs toggle
ENABLE_DOCS = os.environ.get("NEXUS_ENABLE_DOCS")

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

# =============================================================================
# Engine
# =============================================================================

_engine: Optional[CognitiveEngine] = None


def get_engine() -> CognitiveEngine:
    """Get or create the process-wide engine."""
    global _engine
    if _engine is None:
        _engine = CognitiveEngine()
    return _engine


# =============================================================================
# Lifespan
# =============================================================================

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown."""
    engine = get_engine()
    logger.info(f"Atom Nexus API {__version__} started")
    yield
    logger.info(f"Atom Nexus API stopping with {engine.get_atom_space_size()} atoms")


# =============================================================================
# FastAPI App
# =============================================================================

app = FastAPI(
    title="Atom Nexus API",
    description="Typed knowledge graph with pattern recognition, reasoning and learning.",
    version=__version__,
    lifespan=lifespan,
    docs_url="/docs" if ENABLE_DOCS else None,
    redoc_url=None,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=False,
    allow_methods=["GET", "POST", "PATCH", "PUT", "DELETE"],
    allow_headers=["Content-Type"],
)


@app.exception_handler(AtomSpaceImportError)
async def import_error_handler(request: Request, exc: AtomSpaceImportError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(NotFoundError)
async def not_found_handler(request: Request, exc: NotFoundError):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


# =============================================================================
# Request Models
# =============================================================================

class TruthValueModel(BaseModel):
    strength: float = Field(..., description="Degree of truth, clamped to 0.0-1.0")
    confidence: float = Field(..., description="Weight of evidence, clamped to 0.0-1.0")


class AttentionValueModel(BaseModel):
    sti: float = 0.0
    lti: float = 0.0
    vlti: float = 0.0


class AtomRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: str = Field(..., description="Atom type, e.g. ConceptNode or ImplicationLink", max_length=200)
    name: Optional[str] = Field(default=None, max_length=2000)
    id: Optional[str] = Field(default=None, description="Existing id to overwrite", max_length=200)
    truth_value: Optional[TruthValueModel] = Field(default=None, alias="truthValue")
    attention_value: Optional[AttentionValueModel] = Field(default=None, alias="attentionValue")
    outgoing: List[Dict[str, Any]] = Field(default_factory=list)
    incoming: List[Dict[str, Any]] = Field(default_factory=list)
    metadata: Dict[str, Any] = Field(default_factory=dict)

    def to_record(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, exclude_none=True)


class AtomQueryRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    type: Optional[str] = None
    name: Optional[str] = None
    truth_value_threshold: Optional[TruthValueModel] = Field(default=None, alias="truthValueThreshold")
    attention_threshold: Optional[AttentionValueModel] = Field(default=None, alias="attentionThreshold")

    def to_pattern(self) -> AtomPattern:
        return AtomPattern(
            type=self.type,
            name=self.name,
            truth_value_threshold=(
                TruthValue(**self.truth_value_threshold.model_dump())
                if self.truth_value_threshold else None
            ),
            attention_threshold=(
                AttentionValue(**self.attention_threshold.model_dump())
                if self.attention_threshold else None
            ),
        )


class ImportRequest(BaseModel):
    data: str = Field(..., description="JSON array produced by the export endpoint")


class ReasonRequest(BaseModel):
    type: Optional[str] = Field(default=None, description="Reasoning type; hybrid when omitted")
    atoms: Optional[List[Dict[str, Any]]] = Field(default=None, description="Atoms to reason over; the store when omitted")
    context: Dict[str, Any] = Field(default_factory=dict)
    parameters: Dict[str, Any] = Field(default_factory=dict)


class RecognizeRequest(BaseModel):
    data: Any = Field(..., description="Source text, a sequence, or a behavior record")
    context: Dict[str, Any] = Field(default_factory=dict)
    scope: Optional[str] = Field(default=None, description="local, global or project")
    options: Optional[Dict[str, Any]] = None


class FeedbackModel(BaseModel):
    rating: float = Field(..., description="1-5, clamped")
    helpful: bool
    comment: Optional[str] = Field(default=None, max_length=2000)
    actionTaken: Optional[str] = None
    timeSpent: Optional[float] = None
    outcome: Optional[str] = Field(default=None, description="accepted, rejected, modified or ignored")


class LearnRequest(BaseModel):
    type: str = Field(..., description="supervised, unsupervised, reinforcement, personalization, behavioral or adaptive")
    input: Any = None
    expectedOutput: Any = None
    feedback: Optional[FeedbackModel] = None
    context: Optional[Dict[str, Any]] = None
    priority: Optional[str] = None

    @field_validator("type")
    @classmethod
    def validate_type(cls, v):
        allowed = [t.value for t in LearningType]
        if v not in allowed:
            raise ValueError(f"type must be one of: {allowed}")
        return v


class FeedbackRequest(BaseModel):
    feedback: FeedbackModel
    context: Dict[str, Any] = Field(default_factory=dict, description="userId, currentTask, ...")


class AdaptRequest(BaseModel):
    userId: str = Field(..., max_length=200)
    domain: str = Field(..., max_length=200)
    data: Optional[Dict[str, Any]] = None


class BehaviorRequest(BaseModel):
    userId: str = Field(..., max_length=200)
    action: str = Field(..., max_length=200)
    context: Dict[str, Any] = Field(default_factory=dict)


class PredictRequest(BaseModel):
    userId: str = Field(..., max_length=200)
    context: Dict[str, Any] = Field(default_factory=dict)


class CreateModelRequest(BaseModel):
    type: str = Field(..., max_length=200)
    parameters: Dict[str, Any] = Field(default_factory=dict)


class TrainModelRequest(BaseModel):
    trainingData: List[LearnRequest]


# =============================================================================
# Public Endpoints
# =============================================================================

@app.get("/")
async def root():
    """API status and discovery."""
    return {
        "service": "Atom Nexus API",
        "status": "operational",
        "version": __version__,
        "capabilities": ["atomspace", "pattern_recognition", "reasoning", "learning"],
        "endpoints": {
            "atoms": "POST /v1/atoms",
            "query": "POST /v1/atoms/query",
            "reason": "POST /v1/reason",
            "patterns": "POST /v1/patterns/recognize",
            "learn": "POST /v1/learning/learn",
            "stats": "GET /v1/learning/stats",
        },
    }


@app.get("/health")
async def health(engine: CognitiveEngine = Depends(get_engine)):
    """Health check."""
    return {"status": "healthy", "atoms": engine.get_atom_space_size()}


# =============================================================================
# Atom Endpoints
# =============================================================================

@app.post("/v1/atoms")
async def add_atom(request: AtomRequest, engine: CognitiveEngine = Depends(get_engine)):
    """Add an atom, or overwrite the atom with the given id."""
    atom_id = engine.add_atom(request.to_record())
    return {"id": atom_id}


@app.post("/v1/atoms/query")
async def query_atoms(request: AtomQueryRequest, engine: CognitiveEngine = Depends(get_engine)):
    """Atoms matching every given field, in insertion order."""
    atoms = engine.query_atoms(request.to_pattern())
    return {"count": len(atoms), "atoms": [a.to_dict() for a in atoms]}


@app.get("/v1/atoms/{atom_id}")
async def get_atom(atom_id: str, engine: CognitiveEngine = Depends(get_engine)):
    atom = engine.get_atom(atom_id)
    if atom is None:
        raise HTTPException(status_code=404, detail=f"Atom not found: {atom_id}")
    return atom.to_dict()


@app.patch("/v1/atoms/{atom_id}")
async def update_atom(
    atom_id: str,
    updates: Dict[str, Any],
    engine: CognitiveEngine = Depends(get_engine),
):
    """Merge fields into an atom; its id never changes."""
    if not engine.update_atom(atom_id, updates):
        raise HTTPException(status_code=404, detail=f"Atom not found: {atom_id}")
    return engine.get_atom(atom_id).to_dict()


@app.delete("/v1/atoms/{atom_id}")
async def remove_atom(atom_id: str, engine: CognitiveEngine = Depends(get_engine)):
    if not engine.remove_atom(atom_id):
        raise HTTPException(status_code=404, detail=f"Atom not found: {atom_id}")
    return {"removed": atom_id}


@app.get("/v1/atomspace/size")
async def atom_space_size(engine: CognitiveEngine = Depends(get_engine)):
    return {"size": engine.get_atom_space_size()}


@app.post("/v1/atomspace/clear")
async def clear_atom_space(engine: CognitiveEngine = Depends(get_engine)):
    engine.clear_atom_space()
    return {"size": 0}


@app.get("/v1/atomspace/export")
async def export_atom_space(engine: CognitiveEngine = Depends(get_engine)):
    return {"data": engine.export_atom_space()}


@app.post("/v1/atomspace/import")
async def import_atom_space(request: ImportRequest, engine: CognitiveEngine = Depends(get_engine)):
    """Replace the atom space with an exported blob."""
    imported = engine.import_atom_space(request.data)
    return {"imported": imported}


# =============================================================================
# Pattern and Reasoning Endpoints
# =============================================================================

@app.post("/v1/patterns/recognize")
async def recognize_patterns(request: RecognizeRequest, engine: CognitiveEngine = Depends(get_engine)):
    patterns = engine.recognize_patterns(request.model_dump())
    return {"count": len(patterns), "patterns": [p.to_dict() for p in patterns]}


@app.post("/v1/reason")
async def reason(request: ReasonRequest, engine: CognitiveEngine = Depends(get_engine)):
    """
    Reason over atoms.

    Failures come back as zero-confidence results with metadata.error set.
    """
    result = engine.reason(request.model_dump())
    return result.to_dict()


# =============================================================================
# Learning Endpoints
# =============================================================================

@app.post("/v1/learning/learn")
async def learn(request: LearnRequest, engine: CognitiveEngine = Depends(get_engine)):
    record = engine.learn(request.model_dump(exclude_none=True))
    return record.to_dict()


@app.post("/v1/learning/feedback")
async def learn_from_feedback(request: FeedbackRequest, engine: CognitiveEngine = Depends(get_engine)):
    record = engine.learn_from_feedback(
        request.feedback.model_dump(exclude_none=True),
        request.context,
    )
    return record.to_dict()


@app.post("/v1/learning/adapt")
async def adapt_to_user(request: AdaptRequest, engine: CognitiveEngine = Depends(get_engine)):
    strategy = engine.adapt_to_user(request.userId, request.domain, request.data)
    return strategy.to_dict()


@app.get("/v1/learning/strategies/{user_id}/{domain}")
async def get_adaptation_strategy(
    user_id: str,
    domain: str,
    engine: CognitiveEngine = Depends(get_engine),
):
    strategy = engine.get_adaptation_strategy(user_id, domain)
    if strategy is None:
        raise HTTPException(status_code=404, detail=f"No strategy for {user_id}/{domain}")
    return strategy.to_dict()


@app.post("/v1/learning/behavior")
async def learn_user_behavior(request: BehaviorRequest, engine: CognitiveEngine = Depends(get_engine)):
    pattern = engine.learn_user_behavior(request.userId, request.action, request.context)
    return pattern.to_dict()


@app.get("/v1/learning/behavior/{user_id}")
async def get_user_behavior_patterns(user_id: str, engine: CognitiveEngine = Depends(get_engine)):
    patterns = engine.get_user_behavior_patterns(user_id)
    return {"userId": user_id, "patterns": [p.to_dict() for p in patterns]}


@app.post("/v1/learning/predict")
async def predict_user_action(request: PredictRequest, engine: CognitiveEngine = Depends(get_engine)):
    return {
        "userId": request.userId,
        "predictions": engine.predict_user_action(request.userId, request.context),
    }


@app.post("/v1/learning/models")
async def create_learning_model(request: CreateModelRequest, engine: CognitiveEngine = Depends(get_engine)):
    return engine.create_learning_model(request.type, request.parameters).to_dict()


@app.get("/v1/learning/models")
async def list_learning_models(engine: CognitiveEngine = Depends(get_engine)):
    return {"models": [m.to_dict() for m in engine.list_learning_models()]}


@app.get("/v1/learning/models/{model_id}")
async def get_learning_model(model_id: str, engine: CognitiveEngine = Depends(get_engine)):
    model = engine.get_learning_model(model_id)
    if model is None:
        raise NotFoundError("Learning model", model_id)
    return model.to_dict()


@app.post("/v1/learning/models/{model_id}/train")
async def update_learning_model(
    model_id: str,
    request: TrainModelRequest,
    engine: CognitiveEngine = Depends(get_engine),
):
    """Append training records; the model's version grows by one."""
    batch = [item.model_dump(exclude_none=True) for item in request.trainingData]
    return engine.update_learning_model(model_id, batch).to_dict()


@app.put("/v1/learning/personalization/{user_id}")
async def personalize(
    user_id: str,
    preferences: Dict[str, Any],
    engine: CognitiveEngine = Depends(get_engine),
):
    return engine.personalize(user_id, preferences)


@app.get("/v1/learning/personalization/{user_id}")
async def get_personalization(user_id: str, engine: CognitiveEngine = Depends(get_engine)):
    prefs = engine.get_personalization(user_id)
    if prefs is None:
        raise HTTPException(status_code=404, detail=f"No personalization for {user_id}")
    return prefs


@app.get("/v1/learning/stats")
async def learning_stats(engine: CognitiveEngine = Depends(get_engine)):
    return engine.get_learning_stats()


# =============================================================================
# Run with: uvicorn api.main:app --reload --port 8000
# =============================================================================

if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
