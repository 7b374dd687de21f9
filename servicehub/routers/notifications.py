from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response, status

from servicehub.core.dependencies import get_current_profile
from servicehub.core.notifications import NotificationCenter, get_notification_center
from servicehub.models.schemas import Notification, UserProfile

router = APIRouter(prefix="/notifications", tags=["Notifications"])


@router.get("", response_model=List[Notification])
async def list_notifications(
    profile: UserProfile = Depends(get_current_profile),
    notifications: NotificationCenter = Depends(get_notification_center),
):
    return notifications.active(profile.id)


@router.delete("/{notification_id}", status_code=status.HTTP_204_NO_CONTENT)
async def dismiss_notification(
    notification_id: str,
    profile: UserProfile = Depends(get_current_profile),
    notifications: NotificationCenter = Depends(get_notification_center),
):
    if not notifications.dismiss(profile.id, notification_id):
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Notification not found")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
