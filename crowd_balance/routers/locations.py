# crowd_balance/routers/locations.py
"""Location management (panel) — list, add, update, soft delete."""

from fastapi import APIRouter, Depends, status
from sqlalchemy.orm import Session
from crowd_balance.database import get_db
from crowd_balance.schemas.location import (
    LocationCreate, LocationUpdate, LocationOut, LocationOverviewOut,
)
from crowd_balance.services import crowd_service

router = APIRouter()


@router.get("/locations", response_model=list[LocationOverviewOut],
            summary="Active locations with current and last-hour scores")
def list_locations(db: Session = Depends(get_db)):
    return crowd_service.list_location_overviews(db)


@router.post("/locations", response_model=LocationOut, status_code=status.HTTP_201_CREATED,
             summary="Add a location")
def add_location(body: LocationCreate, db: Session = Depends(get_db)):
    """Name must be unique (trimmed). Capacity must be a positive whole number."""
    return crowd_service.add_location(db, body.name, body.capacity)


@router.get("/locations/{location_id}", response_model=LocationOverviewOut)
def get_location(location_id: int, db: Session = Depends(get_db)):
    return crowd_service.get_location_overview(db, location_id)


@router.put("/locations/{location_id}", response_model=LocationOut, summary="Update location details")
def update_location(location_id: int, body: LocationUpdate, db: Session = Depends(get_db)):
    return crowd_service.update_location(
        db, location_id, name=body.name, capacity=body.capacity, is_active=body.is_active,
    )


@router.delete("/locations/{location_id}", summary="Soft-delete a location")
def delete_location(location_id: int, db: Session = Depends(get_db)):
    """Marks the location inactive. Its activity log is kept until it expires."""
    crowd_service.deactivate_location(db, location_id)
    return {"location_id": location_id, "is_active": False, "status": "deactivated"}
