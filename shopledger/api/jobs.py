import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session

from shopledger.api.deps import get_db, require_job_token
from shopledger.core.errors import NotificationError
from shopledger.services.reminders import send_weekly_reminders

router = APIRouter(prefix="/jobs")
logger = logging.getLogger(__name__)


@router.post("/weekly-reminders")
def weekly_reminders(db: Session = Depends(get_db), _=Depends(require_job_token)):
    """Triggered by an external scheduler (cron, a hosted job runner)."""
    try:
        result = send_weekly_reminders(db)
    except NotificationError as e:
        logger.error("Weekly reminders aborted: %s", e.message)
        return JSONResponse({"success": False, "error": e.message}, status_code=500)
    return {"success": True, "message": "Weekly reminders processed", "results": result.as_dict()}
