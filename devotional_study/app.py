"""FastAPI application: study generation and quiz session routes."""
from __future__ import annotations

import logging
import uuid

logging.basicConfig(level=logging.INFO, format="%(name)s | %(message)s")

from fastapi import FastAPI, HTTPException, Request

from devotional_study.answers import (
    BlanksAnswer,
    ChoiceAnswer,
    MatchingAnswer,
    OpenAnswer,
    OrderingAnswer,
    SelectionAnswer,
    TypedAnswer,
)
from devotional_study.config import Settings, load_settings, make_llm, save_settings
from devotional_study.errors import (
    AuthenticationFailed,
    MalformedResponse,
    ProviderError,
    QuizError,
    QuotaExceeded,
    SafetyRejected,
)
from devotional_study.generator import generate_study
from devotional_study.models import (
    BrokenVariant,
    FillInTheBlanks,
    Matching,
    MultipleChoice,
    MultipleSelection,
    Ordering,
    QuestionVariant,
    SessionComplete,
    StudyDocument,
    split_blanks,
)
from devotional_study.quiz_engine import QuizEngine

app = FastAPI(title="Devotional Study")

_log = logging.getLogger("devotional_study.app")

# Global state (initialized on startup)
_settings: Settings | None = None
_sessions: dict[str, dict] = {}  # session_id -> {"engine", "document"}
MAX_SESSIONS = 64


def get_settings() -> Settings:
    assert _settings is not None
    return _settings


def _get_llm():
    return make_llm(get_settings())


@app.on_event("startup")
async def startup():
    global _settings
    if _settings is not None:
        return  # Already initialized (e.g. by tests)
    _settings = load_settings()


def _get_session(session_id: str) -> dict:
    session = _sessions.get(session_id)
    if session is None:
        raise HTTPException(404, "Session not found")
    return session


# ── Rendering ─────────────────────────────────────────────────────────────

def _render_variant(engine: QuizEngine, variant: QuestionVariant) -> dict:
    data = {"type": variant.TAG, "question": variant.question}
    if isinstance(variant, (MultipleChoice, MultipleSelection)):
        data["options"] = list(variant.options)
        data["selection"] = engine.selection
    elif isinstance(variant, Matching):
        data["lefts"] = variant.lefts
        data["rights"] = engine.presented_rights
        data["pairings"] = engine.pairings
    elif isinstance(variant, Ordering):
        data["items"] = engine.presented_order
    elif isinstance(variant, FillInTheBlanks):
        data["segments"] = split_blanks(variant.text_with_blanks)
        data["blanks"] = engine.blanks
    else:
        data["text"] = engine.text
    return data


def _render(session_id: str, engine: QuizEngine) -> dict:
    result = {"session_id": session_id, "progress": engine.progress()}
    current = engine.current()
    if isinstance(current, SessionComplete):
        result.update(state="complete", score=current.score, total=current.total,
                      ratio=round(current.ratio, 4),
                      answers={str(i): a for i, a in sorted(engine.answers.items())})
    elif isinstance(current, BrokenVariant):
        result.update(state="broken", index=current.index, type=current.tag,
                      question=current.question, reason=current.reason)
    else:
        result.update(state="question", index=engine.current_index,
                      question=_render_variant(engine, current),
                      answered=engine.is_answered, ready=engine.is_ready())
        if engine.outcome is not None:
            result["outcome"] = {
                "correct": engine.outcome.correct,
                "explanation": engine.outcome.explanation,
                "marks": engine.outcome.marks,
                "answer_text": engine.answers.get(engine.current_index, ""),
            }
    return result


def _document_summary(doc: StudyDocument) -> dict:
    data = doc.to_dict()
    # The quiz itself is served one question at a time
    data["quiz"] = {"total": len(doc.quiz), "broken": doc.broken_indices()}
    return data


async def _json_object(request: Request) -> dict:
    try:
        body = await request.json()
    except ValueError:
        raise HTTPException(400, "Request body is not valid JSON")
    if not isinstance(body, dict):
        raise HTTPException(400, "Request body must be a JSON object")
    return body


def _parse_answer(variant: QuestionVariant, body: dict) -> TypedAnswer:
    try:
        if isinstance(variant, MultipleChoice):
            return ChoiceAnswer(int(body["index"]))
        if isinstance(variant, MultipleSelection):
            return SelectionAnswer(frozenset(int(i) for i in body["indices"]))
        if isinstance(variant, Matching):
            return MatchingAnswer({str(k): str(v) for k, v in dict(body["mapping"]).items()})
        if isinstance(variant, Ordering):
            return OrderingAnswer(tuple(str(i) for i in body["items"]))
        if isinstance(variant, FillInTheBlanks):
            return BlanksAnswer(tuple(str(b) for b in body["blanks"]))
        return OpenAnswer(str(body["text"]))
    except (KeyError, TypeError, ValueError) as e:
        raise HTTPException(400, f"Invalid answer for {variant.TAG}: {e}")


# ── API: Study generation ─────────────────────────────────────────────────

@app.post("/api/study")
async def api_study(request: Request):
    body = await _json_object(request)
    passage = str(body.get("passage", "")).strip()
    if not passage:
        raise HTTPException(400, "No passage provided")

    s = get_settings()
    try:
        count = int(body.get("question_count", s.question_count))
    except (TypeError, ValueError):
        raise HTTPException(400, "question_count must be an integer")
    if count < 1:
        raise HTTPException(400, "question_count must be at least 1")
    try:
        doc = await generate_study(
            _get_llm(), passage,
            question_count=count,
            language=s.language,
            temperature=s.temperature,
            max_attempts=s.max_attempts,
        )
    except MalformedResponse:
        raise HTTPException(502, "The study could not be read. Please try again, perhaps with a shorter passage.")
    except QuotaExceeded as e:
        raise HTTPException(429, f"Quota exceeded: {e}. Try another model in settings.")
    except AuthenticationFailed as e:
        raise HTTPException(401, f"Provider authentication failed: {e}")
    except SafetyRejected as e:
        raise HTTPException(422, f"The provider refused this request: {e}")
    except ProviderError as e:
        raise HTTPException(502, f"Provider error: {e}")

    session_id = uuid.uuid4().hex
    while len(_sessions) >= MAX_SESSIONS:
        _sessions.pop(next(iter(_sessions)))
    engine = QuizEngine.from_document(doc)
    _sessions[session_id] = {"engine": engine, "document": doc}
    _log.info("Session %s: %r with %d questions", session_id, doc.title, len(doc.quiz))

    result = _render(session_id, engine)
    result["document"] = _document_summary(doc)
    return result


# ── API: Quiz session ─────────────────────────────────────────────────────

@app.get("/api/session/{session_id}")
async def api_session_current(session_id: str):
    return _render(session_id, _get_session(session_id)["engine"])


@app.get("/api/session/{session_id}/document")
async def api_session_document(session_id: str):
    return _document_summary(_get_session(session_id)["document"])


@app.post("/api/session/{session_id}/answer")
async def api_session_answer(session_id: str, request: Request):
    engine: QuizEngine = _get_session(session_id)["engine"]
    body = await _json_object(request)
    current = engine.current()
    if isinstance(current, SessionComplete):
        raise HTTPException(409, "Session is complete")
    if isinstance(current, BrokenVariant):
        raise HTTPException(409, "This question could not be loaded; skip it")

    answer = None if engine.is_answered else _parse_answer(current, body)
    try:
        outcome = engine.submit(answer)
    except QuizError as e:
        raise HTTPException(400, str(e))

    result = _render(session_id, engine)
    result["correct"] = outcome.correct
    result["explanation"] = outcome.explanation
    return result


@app.post("/api/session/{session_id}/advance")
async def api_session_advance(session_id: str):
    engine: QuizEngine = _get_session(session_id)["engine"]
    engine.advance()
    return _render(session_id, engine)


@app.post("/api/session/{session_id}/skip")
async def api_session_skip(session_id: str):
    engine: QuizEngine = _get_session(session_id)["engine"]
    engine.skip()
    return _render(session_id, engine)


@app.post("/api/session/{session_id}/restart")
async def api_session_restart(session_id: str):
    engine: QuizEngine = _get_session(session_id)["engine"]
    engine.restart()
    return _render(session_id, engine)


@app.delete("/api/session/{session_id}")
async def api_session_delete(session_id: str):
    _get_session(session_id)
    del _sessions[session_id]
    return {"ok": True}


# ── API: Settings ─────────────────────────────────────────────────────────

@app.get("/api/settings")
async def api_get_settings():
    return get_settings().to_dict()


@app.put("/api/settings")
async def api_update_settings(request: Request):
    body = await _json_object(request)
    s = get_settings()
    known = {f.name for f in Settings.__dataclass_fields__.values()}
    for k, v in body.items():
        if k in known:
            setattr(s, k, v)
    save_settings(s)
    return s.to_dict()
