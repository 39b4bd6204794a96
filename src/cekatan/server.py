import logging
import time
from contextlib import asynccontextmanager
from dataclasses import replace
from datetime import datetime, timezone

from fastapi import Depends, FastAPI, HTTPException
from pydantic import BaseModel, Field, field_validator, model_validator

from cekatan.application.scheduling.records import ProgressRecordModel
from cekatan.application.session.admission import start_or_resume
from cekatan.application.session.expiry import close_schedule_window, expire_stale_sessions
from cekatan.application.session.state_machine import (
    complete_session,
    expire_by_timeout,
    record_tab_switch,
    submit_answer,
    tick,
)
from cekatan.consts import VERSION
from cekatan.domain.session.models import (
    AssessmentPolicy,
    ExamSession,
    Question,
    SessionStatus,
)
from cekatan.infrastructure.adapters.session_store import InMemorySessionRepository, SessionEntry

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("cekatan.server")

sessions = InMemorySessionRepository()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"cekatan server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info(f"cekatan server shutting down ({len(sessions.in_progress())} open sessions)")


app = FastAPI(
    title="cekatan server",
    description="Exam sessions and due-card batches over HTTP.",
    version=VERSION,
    lifespan=lifespan,
)


def get_sessions() -> InMemorySessionRepository:
    return sessions


def _utc(v: datetime | None) -> datetime | None:
    if v is not None and v.tzinfo is None:
        return v.replace(tzinfo=timezone.utc)
    return v


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


start_time = time.time()


@app.get("/health", response_model=HealthResponse)
async def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
async def get_version():
    return {"version": VERSION}


# ---------------------------------------------------------------------------
# Exam sessions
# ---------------------------------------------------------------------------


class QuestionIn(BaseModel):
    id: str
    options: list[str] = Field(min_length=1)
    correct_index: int = Field(ge=0)

    @model_validator(mode="after")
    def check_correct_index(self) -> "QuestionIn":
        if self.correct_index >= len(self.options):
            raise ValueError("correct_index is out of range")
        return self


class CreateSessionRequest(BaseModel):
    assessment_id: str
    candidate_id: str
    questions: list[QuestionIn]
    time_limit_minutes: int = Field(gt=0)
    pass_score: int = Field(ge=0, le=100)
    # Defaults to every question
    question_count: int | None = Field(default=None, ge=1)
    shuffle_questions: bool = False
    start_date: datetime | None = None
    end_date: datetime | None = None
    max_attempts: int | None = Field(default=None, ge=1)
    cooldown_minutes: int | None = Field(default=None, ge=1)
    required_access_code: str | None = None
    access_code: str | None = None

    @field_validator("start_date", "end_date")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        return _utc(v)

    def policy(self) -> AssessmentPolicy:
        return AssessmentPolicy(
            time_limit_minutes=self.time_limit_minutes,
            pass_score=self.pass_score,
            question_count=self.question_count or len(self.questions),
            shuffle_questions=self.shuffle_questions,
            start_date=self.start_date,
            end_date=self.end_date,
            max_attempts=self.max_attempts,
            cooldown_minutes=self.cooldown_minutes,
            access_code=self.required_access_code,
        )


class SessionResponse(BaseModel):
    id: str
    status: str
    question_order: list[str]
    answers: dict[str, int]
    time_remaining_seconds: int
    tab_switch_count: int
    score: int | None = None
    passed: bool | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None

    @classmethod
    def from_session(cls, session: ExamSession) -> "SessionResponse":
        return cls(
            id=session.id,
            status=session.status.value,
            question_order=session.question_order,
            answers=dict(session.answers),
            time_remaining_seconds=session.time_remaining_seconds,
            tab_switch_count=session.tab_switch_count,
            score=session.score,
            passed=session.passed,
            started_at=session.started_at,
            completed_at=session.completed_at,
        )


class AnswerRequest(BaseModel):
    question_id: str
    selected_index: int


class TickRequest(BaseModel):
    elapsed_seconds: int


class CompleteResponse(BaseModel):
    score: int
    passed: bool
    correct: int
    total: int
    session: SessionResponse


class SweepResponse(BaseModel):
    timed_out: int
    expired: int


def _sweep_one(entry: SessionEntry, now: datetime) -> SessionEntry:
    """Apply the deadline and schedule-window checks to one session."""
    policy = entry.policy
    changed = close_schedule_window([entry.session], policy.end_date, now)
    changed = changed or expire_stale_sessions(
        [entry.session], policy.time_limit_seconds, policy.pass_score, now
    )
    if changed:
        return replace(entry, session=changed[0])
    return entry


def _load(repo: InMemorySessionRepository, session_id: str) -> SessionEntry:
    entry = repo.get(session_id)
    if entry is None:
        raise HTTPException(status_code=404, detail=f"Session not found: {session_id}")
    swept = _sweep_one(entry, datetime.now(timezone.utc))
    if swept is not entry:
        repo.update(swept.session)
    return swept


@app.post("/sessions", response_model=SessionResponse)
async def create_or_resume_session(
    req: CreateSessionRequest, repo: InMemorySessionRepository = Depends(get_sessions)
):
    """
    Start an attempt, or return the candidate's open one for this assessment.
    """
    now = datetime.now(timezone.utc)
    policy = req.policy()
    existing = repo.open_session(req.assessment_id, req.candidate_id)
    if existing is not None:
        swept = _sweep_one(repo.get(existing.id), now)
        if swept.session is not existing:
            repo.update(swept.session)
            existing = None

    pool = [Question(q.id, tuple(q.options), q.correct_index) for q in req.questions]
    result = start_or_resume(
        policy,
        pool,
        past_attempts=repo.past_attempts(req.assessment_id, req.candidate_id),
        existing=existing,
        access_code=req.access_code,
        now=now,
    )
    if not result.ok:
        raise HTTPException(status_code=403, detail=result.error)

    session = result.data
    if repo.get(session.id) is None:
        repo.add(
            SessionEntry(
                session=session,
                policy=policy,
                assessment_id=req.assessment_id,
                candidate_id=req.candidate_id,
            )
        )
    return SessionResponse.from_session(session)


@app.get("/sessions/{session_id}", response_model=SessionResponse)
async def get_session(session_id: str, repo: InMemorySessionRepository = Depends(get_sessions)):
    return SessionResponse.from_session(_load(repo, session_id).session)


@app.post("/sessions/{session_id}/answers", response_model=SessionResponse)
async def answer_question(
    session_id: str,
    req: AnswerRequest,
    repo: InMemorySessionRepository = Depends(get_sessions),
):
    """Record an answer. Unknown questions and bad indices are ignored."""
    entry = _load(repo, session_id)
    session = submit_answer(entry.session, req.question_id, req.selected_index)
    return SessionResponse.from_session(repo.update(session).session)


@app.post("/sessions/{session_id}/tab-switch", response_model=SessionResponse)
async def tab_switch(session_id: str, repo: InMemorySessionRepository = Depends(get_sessions)):
    entry = _load(repo, session_id)
    return SessionResponse.from_session(repo.update(record_tab_switch(entry.session)).session)


@app.post("/sessions/{session_id}/tick", response_model=SessionResponse)
async def tick_session(
    session_id: str,
    req: TickRequest,
    repo: InMemorySessionRepository = Depends(get_sessions),
):
    entry = _load(repo, session_id)
    session = tick(entry.session, req.elapsed_seconds)
    return SessionResponse.from_session(repo.update(session).session)


@app.post("/sessions/{session_id}/complete", response_model=CompleteResponse)
async def complete(session_id: str, repo: InMemorySessionRepository = Depends(get_sessions)):
    entry = _load(repo, session_id)
    result = complete_session(entry.session, entry.policy.pass_score)
    repo.update(result.session)
    return CompleteResponse(
        score=result.score,
        passed=result.passed,
        correct=result.correct,
        total=result.total,
        session=SessionResponse.from_session(result.session),
    )


@app.post("/sessions/{session_id}/timeout", response_model=SessionResponse)
async def timeout(session_id: str, repo: InMemorySessionRepository = Depends(get_sessions)):
    entry = _load(repo, session_id)
    return SessionResponse.from_session(repo.update(expire_by_timeout(entry.session)).session)


@app.post("/sessions/sweep", response_model=SweepResponse)
async def sweep(repo: InMemorySessionRepository = Depends(get_sessions)):
    """Close every open session past its deadline or schedule window."""
    now = datetime.now(timezone.utc)
    timed_out = expired = 0
    for entry in repo.in_progress():
        swept = _sweep_one(entry, now)
        if swept is entry:
            continue
        repo.update(swept.session)
        if swept.session.status is SessionStatus.TIMED_OUT:
            timed_out += 1
        else:
            expired += 1
    return SweepResponse(timed_out=timed_out, expired=expired)


# ---------------------------------------------------------------------------
# Due batches
# ---------------------------------------------------------------------------


class DueBatchRequest(BaseModel):
    card_ids: list[str]
    progress: list[ProgressRecordModel] = Field(default_factory=list)
    batch_number: int = 0
    now: datetime | None = None

    @field_validator("now")
    @classmethod
    def assume_utc(cls, v: datetime | None) -> datetime | None:
        return _utc(v)


class DueBatchResponse(BaseModel):
    card_ids: list[str]
    total_due: int
    has_more_batches: bool
    is_new_cards_fallback: bool


@app.post("/due-batch", response_model=DueBatchResponse)
async def due_batch(req: DueBatchRequest):
    """Select one batch of due (and, first batch only, new) cards."""
    from cekatan.application.config import resolve_config
    from cekatan.application.scheduling.due_queue import select_due_batch

    try:
        config = resolve_config()
        batch = select_due_batch(
            req.card_ids,
            {p.card_id: p.to_record() for p in req.progress},
            req.now or datetime.now(timezone.utc),
            page_size=config.batch_size,
            new_card_cap=config.new_cards_fallback_limit,
            interleave_ratio=config.interleave_ratio,
            batch_number=req.batch_number,
        )
    except Exception as e:
        logger.error(f"Due batch failed: {e}", exc_info=True)
        raise HTTPException(status_code=500, detail=str(e)) from e

    return DueBatchResponse(
        card_ids=batch.card_ids,
        total_due=batch.total_due,
        has_more_batches=batch.has_more_batches,
        is_new_cards_fallback=batch.is_new_cards_fallback,
    )
