from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from pickup.api.deps import get_current_profile
from pickup.db.session import get_db
from pickup.models import Profile
from pickup.schemas.notifications import DeviceOut, DeviceRegistration, DeviceRemoved
from pickup.services.notifications import (
    deactivate_profile_device,
    list_profile_devices,
    register_profile_device,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/devices", response_model=List[DeviceOut])
def list_devices(
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
):
    return list_profile_devices(db, profile.id)


@router.post("/devices/register", response_model=DeviceOut)
def register_device(
    payload: DeviceRegistration,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
):
    return register_profile_device(db, profile_id=profile.id, payload=payload)


@router.delete("/devices/{device_id}", response_model=DeviceRemoved)
def delete_device(
    device_id: str,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
) -> DeviceRemoved:
    removed = deactivate_profile_device(db, profile_id=profile.id, device_id=device_id)
    return DeviceRemoved(device_id=device_id, removed=removed)
