# hn_digest/routers/digest.py
from fastapi import APIRouter, BackgroundTasks, Depends
from ..logging_setup import get_logger
from ..schema import ScheduleOut
from .deps import digest_runner, digest_scheduler, require_admin

logger = get_logger("hn_digest.routes.digest")

router = APIRouter(prefix="/digest", tags=["Digest"])

@router.get("/schedule", response_model=ScheduleOut)
def get_schedule(scheduler=Depends(digest_scheduler)):
    nxt = scheduler.next_fire_time()
    return ScheduleOut(
        time_of_day=scheduler.time_of_day,
        timezone=scheduler.timezone_name,
        status=scheduler.status.value,
        next_fire_time=nxt.isoformat() if nxt else None,
        active_triggers=scheduler.active_trigger_count(),
    )

@router.post("/run", summary="Run a digest cycle now")
def run_now(bg: BackgroundTasks, runner=Depends(digest_runner), _: None = Depends(require_admin)):
    """
    Queues one digest cycle and returns immediately; the scheduled run is unaffected.
    """
    logger.info("Manual digest run requested")
    bg.add_task(runner.run)
    return {"queued": True}
