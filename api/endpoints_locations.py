"""Client location endpoints."""
import logging
from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session

import services
from auth import get_current_profile
from db import get_db
from models import Location, Profile
from schemas import LocationDetailOut, LocationIn, LocationOut
from storage import ObjectStorage, get_storage
from utils.audit import audit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/locations", tags=["locations"])


@router.get("", response_model=List[LocationOut])
def list_locations(
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile)
):
    """Staff see every location, users only their own; newest first."""
    query = db.query(Location)
    if not profile.is_staff:
        query = query.filter(Location.user_id == profile.id)
    locations = query.order_by(Location.created_at.desc(), Location.id.desc()).all()
    return [services.location_view(loc) for loc in locations]


@router.post("", response_model=LocationOut, status_code=status.HTTP_201_CREATED)
def create_location(
    data: LocationIn,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile)
):
    location = Location(user_id=profile.id, **data.model_dump())
    db.add(location)
    db.flush()
    audit(db, "location.create", "location", location.id, actor_id=profile.id)
    db.commit()
    db.refresh(location)
    return services.location_view(location)


@router.get("/{location_id}", response_model=LocationDetailOut)
def get_location(
    location_id: int,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
    store: ObjectStorage = Depends(get_storage)
):
    """Location with its address, maps link and demands (latest start date first)."""
    location = services.get_location_or_404(db, location_id, profile)
    return services.location_detail(db, location, store)


@router.delete("/{location_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_location(
    location_id: int,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
    store: ObjectStorage = Depends(get_storage)
):
    """Delete a location together with its demands, tasks and photos."""
    location = services.get_location_or_404(db, location_id, profile)
    removed = services.delete_location(db, location, store)
    audit(db, "location.delete", "location", location_id, actor_id=profile.id,
          payload={"demands": removed})
    db.commit()
    logger.info("location %s deleted by %s (%d demands)", location_id, profile.id, removed)
