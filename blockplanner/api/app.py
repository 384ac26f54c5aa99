"""FastAPI web application for blockplanner."""

from datetime import timedelta
from typing import List

from fastapi import Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from blockplanner.api.api_models import (
    BlockResponse,
    ConflictCheckRequest,
    ConflictReport,
    GenerateRecurringRequest,
    GenerateRecurringResponse,
    NotificationActionRequest,
    NotificationActionResponse,
    PreferencesUpdate,
    ReconcileResponse,
    RescheduleBlockRequest,
    ScheduleBlockRequest,
)
from blockplanner.auth.dependencies import get_current_user
from blockplanner.database.block_repository import BlockInstanceRepository
from blockplanner.database.block_type_repository import BlockTypeRepository
from blockplanner.database.database import get_db, get_session_factory
from blockplanner.database.errors import RepositoryError
from blockplanner.database.preferences_repository import UserPreferencesRepository
from blockplanner.engine.conflicts import find_conflicts
from blockplanner.engine.intervals import InvalidRangeError, assert_valid_range, parse_instant
from blockplanner.engine.meetings import pause_blocks_for_meetings
from blockplanner.engine.scheduling import BlockNotFoundError, BlockSchedulingService, BlockTypeNotFoundError
from blockplanner.models.block import BlockInstance, BlockType, BlockTypeCreate
from blockplanner.models.constants import DEFAULT_DUE_LIMIT, DEFAULT_LOOKAHEAD_MINUTES
from blockplanner.models.notification import NotificationQueueItem
from blockplanner.models.preferences import UserPreferences, default_preferences
from blockplanner.models.timeutil import utc_now
from blockplanner.models.user import User
from blockplanner.notifications.actions import NotificationActionHandler
from blockplanner.notifications.queue import NotificationQueueService
from blockplanner.recurrence.materialize import generate_recurring_blocks

app = FastAPI(
    title="blockplanner API",
    description="Time-block scheduling with conflict detection and reminders",
    version="0.1.0",
)


@app.exception_handler(InvalidRangeError)
async def invalid_range_handler(request: Request, exc: InvalidRangeError):
    return JSONResponse(status_code=422, content={"detail": str(exc)})


@app.exception_handler(BlockTypeNotFoundError)
@app.exception_handler(BlockNotFoundError)
async def not_found_handler(request: Request, exc: LookupError):
    return JSONResponse(status_code=status.HTTP_404_NOT_FOUND, content={"detail": str(exc)})


@app.exception_handler(RepositoryError)
async def repository_error_handler(request: Request, exc: RepositoryError):
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content={"detail": str(exc)})


def _conflict_response(service: BlockSchedulingService, user_id: str, start, end, mode, conflicts, exclude_block_id=None):
    suggestions = service.suggest_times(user_id, start, end, mode, exclude_block_id=exclude_block_id)
    report = ConflictReport(conflicts=conflicts, suggestions=suggestions)
    return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=report.model_dump(mode="json"))


@app.get("/health")
async def health():
    """Health check endpoint."""
    return {"status": "healthy", "version": "0.1.0"}


@app.post("/block-types", response_model=BlockType, status_code=status.HTTP_201_CREATED)
def create_block_type(
    request: BlockTypeCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create a block type."""
    return BlockTypeRepository(db).create(current_user.id, request)


@app.get("/block-types", response_model=List[BlockType])
def list_block_types(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return BlockTypeRepository(db).list_for_user(current_user.id)


@app.post("/blocks", response_model=BlockResponse, status_code=status.HTTP_201_CREATED)
def schedule_block(
    request: ScheduleBlockRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Schedule a block instance.

    Returns 409 with the conflicts and up to three free alternatives when the
    window conflicts and `allow_conflicts` is false.
    """
    service = BlockSchedulingService(db)
    result = service.schedule_block_instance(
        current_user.id,
        request.block_type_id,
        request.start,
        request.end,
        strict_conflict_check=request.conflict_mode,
        allow_conflicts=request.allow_conflicts,
        notes=request.notes,
    )
    if result.created is None:
        start = parse_instant(request.start)
        end = request.end
        if end is None:
            block_type = BlockTypeRepository(db).get(current_user.id, request.block_type_id)
            end = start + timedelta(minutes=block_type.default_duration_minutes)
        raise _conflict_response(service, current_user.id, start, end, request.conflict_mode, result.conflicts)
    return BlockResponse(block=result.created, conflicts=result.conflicts)


@app.get("/blocks", response_model=List[BlockInstance])
def list_blocks(
    start: str,
    end: str,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Blocks overlapping [start, end)."""
    assert_valid_range(start, end)
    return BlockInstanceRepository(db).list_in_range(current_user.id, parse_instant(start), parse_instant(end))


@app.patch("/blocks/{block_id}", response_model=BlockResponse)
def reschedule_block(
    block_id: str,
    request: RescheduleBlockRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Move a block instance to a new window."""
    if BlockInstanceRepository(db).get(current_user.id, block_id) is None:
        raise BlockNotFoundError(f"Block instance {block_id} not found")

    service = BlockSchedulingService(db)
    result = service.reschedule_block_instance(
        current_user.id,
        block_id,
        request.start,
        request.end,
        strict_conflict_check=request.conflict_mode,
        allow_conflicts=request.allow_conflicts,
    )
    if result.updated is None:
        raise _conflict_response(
            service, current_user.id, request.start, request.end, request.conflict_mode, result.conflicts, block_id
        )
    return BlockResponse(block=result.updated, conflicts=result.conflicts)


@app.post("/blocks/conflicts", response_model=ConflictReport)
def check_conflicts(
    request: ConflictCheckRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Report conflicts for a proposed window without creating anything."""
    assert_valid_range(request.start, request.end)
    conflicts = find_conflicts(
        db, current_user.id, request.start, request.end, request.mode, exclude_block_id=request.exclude_block_id
    )
    suggestions = []
    if conflicts:
        suggestions = BlockSchedulingService(db).suggest_times(
            current_user.id, request.start, request.end, request.mode, exclude_block_id=request.exclude_block_id
        )
    return ConflictReport(conflicts=conflicts, suggestions=suggestions)


@app.post("/blocks/generate-recurring", response_model=GenerateRecurringResponse)
def generate_recurring(
    request: GenerateRecurringRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Create upcoming instances of auto-created recurring block types."""
    result = generate_recurring_blocks(db, current_user.id, start_date=request.start_date)
    return GenerateRecurringResponse(created=result.created, skipped=result.skipped)


@app.post("/blocks/pause-for-meetings", response_model=List[BlockInstance])
def pause_for_meetings(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    """Pause running blocks that a meeting in progress overlaps."""
    return pause_blocks_for_meetings(db, current_user.id)


@app.get("/preferences", response_model=UserPreferences)
def get_preferences(current_user: User = Depends(get_current_user), db: Session = Depends(get_db)):
    return UserPreferencesRepository(db).get(current_user.id) or default_preferences(current_user.id)


@app.put("/preferences", response_model=UserPreferences)
def save_preferences(
    request: PreferencesUpdate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Replace the user's notification preferences."""
    try:
        preferences = UserPreferences(user_id=current_user.id, **request.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return UserPreferencesRepository(db).upsert(preferences)


@app.get("/notifications/due", response_model=List[NotificationQueueItem])
def list_due_notifications(
    limit: int = DEFAULT_DUE_LIMIT,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return NotificationQueueService(db).list_due_notifications(current_user.id, limit=limit)


@app.post("/notifications/reconcile", response_model=ReconcileResponse)
def reconcile_notifications(
    lookahead_minutes: int = DEFAULT_LOOKAHEAD_MINUTES,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Run one scheduling pass for the caller now instead of waiting for the runner."""
    now = utc_now()
    blocks = BlockInstanceRepository(db).list_starting_in(
        current_user.id, now, now + timedelta(minutes=lookahead_minutes)
    )
    meta = BlockTypeRepository(db).display_meta(current_user.id, [b.block_type_id for b in blocks])
    queued = NotificationQueueService(db).schedule_blocks(
        current_user.id, blocks, now=now, lookahead_minutes=lookahead_minutes, block_type_meta=meta
    )
    return ReconcileResponse(queued=len(queued), notifications=queued)


@app.post("/notifications/actions", response_model=NotificationActionResponse)
def notification_action(
    request: NotificationActionRequest,
    current_user: User = Depends(get_current_user),
    session_factory=Depends(get_session_factory),
):
    """Apply a notification action (start, snooze, skip)."""
    handler = NotificationActionHandler(current_user.id, session_factory)
    return NotificationActionResponse(applied=handler.handle(request.action_id, request.extra))


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
