import logging
import threading
import time
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field
from starlette.concurrency import run_in_threadpool

from credo.application.state import AppState
from credo.consts import VERSION
from credo.domain.constants import MAX_QUALITY, MIN_QUALITY, RECENT_APPLICATIONS
from credo.domain.exceptions import BackupError, CredoError, NotFoundError, ValidationError
from credo.domain.models import ContentItem, Principle

# Setup logging
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("credo.server")

_state: AppState | None = None
# FastAPI runs sync handlers in a threadpool; every read-modify-write holds this.
_lock = threading.Lock()


def get_state() -> AppState:
    global _state
    if _state is None:
        from credo.application.config import resolve_config
        from credo.application.factory import build_app_state

        _state = build_app_state(resolve_config())
    return _state


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    logger.info(f"Credo Server v{VERSION} starting up...")
    yield
    # Shutdown
    logger.info("Credo Server shutting down...")


app = FastAPI(
    title="Credo Server",
    description="Local API for the Credo Mastery review app.",
    version=VERSION,
    lifespan=lifespan,
)

ERROR_STATUS = {NotFoundError: 404, ValidationError: 422, BackupError: 400}


@app.exception_handler(CredoError)
async def credo_error_handler(request: Request, exc: CredoError):
    status = next((code for cls, code in ERROR_STATUS.items() if isinstance(exc, cls)), 500)
    return JSONResponse(status_code=status, content={"detail": str(exc)})


# ---------------------------------------------------------------------------
# Models
# ---------------------------------------------------------------------------


class HealthResponse(BaseModel):
    status: str
    version: str
    uptime_seconds: float


class CardStateModel(BaseModel):
    ease_factor: float
    interval: int
    repetitions: int
    next_review: int
    last_review: int | None


class CredoModel(BaseModel):
    key: str
    type: str
    id: int
    display: str
    text: str | None = None
    category: str | None = None
    title: str | None = None
    truth: str | None = None
    rules: list[str] = []


class CardModel(BaseModel):
    credo: CredoModel
    state: CardStateModel
    mastered: bool


class GradeRequest(BaseModel):
    quality: int = Field(ge=MIN_QUALITY, le=MAX_QUALITY)


class GoalRequest(BaseModel):
    name: str
    target_date: str | None = None
    linked_credos: list[str] = []


class GoalUpdateRequest(BaseModel):
    name: str | None = None
    target_date: str | None = None
    linked_credos: list[str] | None = None


class ApplicationRequest(BaseModel):
    credo_type: str
    credo_id: int
    note: str


def _credo(item: ContentItem) -> CredoModel:
    if isinstance(item, Principle):
        return CredoModel(
            key=item.key, type=item.type, id=item.id, display=item.display,
            text=item.text, category=item.category,
        )
    return CredoModel(
        key=item.key, type=item.type, id=item.id, display=item.display,
        title=item.title, truth=item.truth, rules=list(item.rules),
    )


def _card(state: AppState, item: ContentItem) -> CardModel:
    from credo.application.scheduler import is_mastered

    card = state.card_state(item.type, item.id)
    return CardModel(
        credo=_credo(item),
        state=CardStateModel(**vars(card)),
        mastered=is_mastered(card),
    )


def _require(state: AppState, key: str) -> ContentItem:
    item = state.catalog.get(key)
    if item is None:
        raise HTTPException(status_code=404, detail=f"No credo {key} in the catalog")
    return item


# ---------------------------------------------------------------------------
# Meta
# ---------------------------------------------------------------------------

start_time = time.time()


@app.get("/health", response_model=HealthResponse)
def health_check():
    """
    Simple health check to verify server is reachable.
    """
    return HealthResponse(status="ok", version=VERSION, uptime_seconds=time.time() - start_time)


@app.get("/version")
def get_version():
    return {"version": VERSION}


# ---------------------------------------------------------------------------
# Review
# ---------------------------------------------------------------------------


@app.get("/due", response_model=list[CardModel])
def get_due(state: AppState = Depends(get_state)):
    with _lock:
        cards = state.get_due_cards()
        return [_card(state, c.item) for c in cards]


@app.get("/cards/{key}", response_model=CardModel)
def get_card(key: str, state: AppState = Depends(get_state)):
    with _lock:
        return _card(state, _require(state, key))


@app.post("/cards/{key}/grade", response_model=CardModel)
def grade_card(key: str, req: GradeRequest, state: AppState = Depends(get_state)):
    with _lock:
        item = _require(state, key)
        state.grade_card(item.type, item.id, req.quality)
        return _card(state, item)


@app.get("/stats")
def get_stats(state: AppState = Depends(get_state)):
    with _lock:
        report = state.progress()
        last_review = state.stats.last_review
    return {
        "streak": report.streak,
        "due_count": report.due_count,
        "mastered_count": report.mastered_count,
        "catalog_size": report.catalog_size,
        "total_reviews": report.total_reviews,
        "mastery_percent": report.mastery_percent,
        "last_review": last_review,
    }


@app.get("/library", response_model=list[CardModel])
def get_library(
    search: str = "",
    item_type: str | None = Query(None, alias="type"),
    state: AppState = Depends(get_state),
):
    try:
        items = state.catalog.search(search, item_type)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    with _lock:
        return [_card(state, item) for item in items]


# ---------------------------------------------------------------------------
# Goals
# ---------------------------------------------------------------------------


@app.get("/goals")
def list_goals(state: AppState = Depends(get_state)):
    with _lock:
        return [g.to_dict() for g in state.goals]


@app.post("/goals", status_code=201)
def create_goal(req: GoalRequest, state: AppState = Depends(get_state)):
    with _lock:
        goal = state.add_goal(req.name, req.target_date, req.linked_credos)
    return goal.to_dict()


@app.put("/goals/{goal_id}")
def update_goal(goal_id: str, req: GoalUpdateRequest, state: AppState = Depends(get_state)):
    # A null target_date clears it; other nulls mean "unchanged".
    updates: dict[str, Any] = {
        k: v
        for k, v in req.model_dump(exclude_unset=True).items()
        if v is not None or k == "target_date"
    }
    with _lock:
        goal = state.update_goal(goal_id, **updates)
    return goal.to_dict()


@app.delete("/goals/{goal_id}", status_code=204)
def delete_goal(goal_id: str, state: AppState = Depends(get_state)):
    with _lock:
        state.delete_goal(goal_id)


# ---------------------------------------------------------------------------
# Applications
# ---------------------------------------------------------------------------


@app.get("/applications")
def list_applications(limit: int = RECENT_APPLICATIONS, state: AppState = Depends(get_state)):
    with _lock:
        return [a.to_dict() for a in state.recent_applications(limit)]


@app.post("/applications", status_code=201)
def create_application(req: ApplicationRequest, state: AppState = Depends(get_state)):
    with _lock:
        application = state.add_application(req.credo_type, req.credo_id, req.note)
    return application.to_dict()


# ---------------------------------------------------------------------------
# Backups
# ---------------------------------------------------------------------------


@app.get("/export")
def export_backup(state: AppState = Depends(get_state)):
    from credo.application.backup import backup_filename, export_data

    with _lock:
        data = export_data(state.store)
    return JSONResponse(
        content=data,
        headers={"Content-Disposition": f'attachment; filename="{backup_filename()}"'},
    )


@app.post("/import")
async def import_backup(request: Request, state: AppState = Depends(get_state)):
    """
    Import a backup posted as the raw JSON body, then reload derived state.
    """
    from credo.application.backup import import_data

    raw = await request.body()

    def _import() -> int:
        with _lock:
            count = import_data(state.store, raw)
            state.reload()
        return count

    # Store writes and the lock must stay off the event loop.
    count = await run_in_threadpool(_import)
    logger.info(f"Imported {count} keys via API")
    return {"imported": count}
