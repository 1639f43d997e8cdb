from fastapi import APIRouter, Depends, HTTPException

from app.deps import get_principal, get_workflow
from app.policy import Principal
from app.schemas import NotificationOut
from app.workflow import BookingWorkflow

router = APIRouter()


@router.get("", response_model=list[NotificationOut])
def list_notifications(
    principal: Principal = Depends(get_principal),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    return [NotificationOut.from_record(n) for n in workflow.notifications_for(principal)]


@router.post("/{notification_id}/read")
def mark_read(
    notification_id: str,
    principal: Principal = Depends(get_principal),
    workflow: BookingWorkflow = Depends(get_workflow),
):
    # Only the recipient can mark a notification read
    if not workflow.mark_read(principal, notification_id):
        raise HTTPException(status_code=404, detail="Notification not found.")
    return {"notification_id": notification_id, "read": True}
