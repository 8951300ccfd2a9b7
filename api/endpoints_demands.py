"""Demand endpoints: creation, detail, worker assignment, material costs."""
import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

import services
from auth import get_current_profile, require_staff
from db import get_db
from models import Demand, DemandWorker, MaterialCost, Profile
from schemas import AssignWorkersIn, DemandCreateIn, DemandOut, MaterialCostIn, MaterialCostOut
from storage import ObjectStorage, get_storage
from utils.audit import audit

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["demands"])


@router.post("/locations/{location_id}/demands", response_model=DemandOut,
             status_code=status.HTTP_201_CREATED)
def create_demand(
    location_id: int,
    data: DemandCreateIn,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
    store: ObjectStorage = Depends(get_storage)
):
    """Create a demand; it belongs to the location's owner."""
    location = services.get_location_or_404(db, location_id, profile)
    demand = Demand(
        title=data.title,
        start_date=data.start_date,
        location_id=location.id,
        user_id=location.user_id,
    )
    db.add(demand)
    db.flush()
    audit(db, "demand.create", "demand", demand.id, actor_id=profile.id)
    db.commit()
    db.refresh(demand)
    return services.demand_view(demand, store)


@router.get("/demands/{demand_id}", response_model=DemandOut)
def get_demand(
    demand_id: int,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
    store: ObjectStorage = Depends(get_storage)
):
    """Demand with location, tasks (signed photo URLs), materials and total time."""
    demand = services.get_demand_or_404(db, demand_id, profile)
    return services.demand_view(demand, store)


@router.delete("/demands/{demand_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_demand(
    demand_id: int,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile),
    store: ObjectStorage = Depends(get_storage)
):
    demand = services.get_demand_or_404(db, demand_id, profile)
    removed = services.delete_demand(db, demand, store)
    audit(db, "demand.delete", "demand", demand_id, actor_id=profile.id,
          payload={"tasks": removed})
    db.commit()


@router.put("/demands/{demand_id}/workers", response_model=List[int])
def assign_workers(
    demand_id: int,
    data: AssignWorkersIn,
    db: Session = Depends(get_db),
    staff: Profile = Depends(require_staff)
):
    """Replace the demand's assigned workers (staff only). Returns the new ids."""
    demand = services.get_demand_or_404(db, demand_id, staff)
    worker_ids = sorted(set(data.worker_ids))

    if worker_ids:
        found = {
            pid for (pid,) in db.query(Profile.id).filter(Profile.id.in_(worker_ids)).all()
        }
        missing = [wid for wid in worker_ids if wid not in found]
        if missing:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Workers not found: {missing}"
            )

    db.query(DemandWorker).filter(DemandWorker.demand_id == demand.id).delete()
    db.add_all(DemandWorker(demand_id=demand.id, worker_id=wid) for wid in worker_ids)
    audit(db, "demand.assign_workers", "demand", demand.id, actor_id=staff.id,
          payload={"worker_ids": worker_ids})
    db.commit()
    return demand.worker_ids


# --- Material costs ---

@router.post("/demands/{demand_id}/materials", response_model=MaterialCostOut,
             status_code=status.HTTP_201_CREATED)
def add_material_cost(
    demand_id: int,
    data: MaterialCostIn,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile)
):
    demand = services.get_demand_or_404(db, demand_id, profile)
    cost = MaterialCost(demand_id=demand.id, description=data.description, amount=data.amount)
    db.add(cost)
    db.flush()
    audit(db, "material.create", "material_cost", cost.id, actor_id=profile.id,
          payload={"amount": data.amount})
    db.commit()
    db.refresh(cost)
    return cost


@router.get("/demands/{demand_id}/materials", response_model=List[MaterialCostOut])
def list_material_costs(
    demand_id: int,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile)
):
    demand = services.get_demand_or_404(db, demand_id, profile)
    return demand.material_costs


@router.delete("/materials/{material_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_material_cost(
    material_id: int,
    db: Session = Depends(get_db),
    profile: Profile = Depends(get_current_profile)
):
    cost = db.query(MaterialCost).filter(MaterialCost.id == material_id).first()
    if not cost:
        raise HTTPException(status_code=404, detail="Material cost not found")
    # Raises 404 when the parent demand is out of scope
    services.get_demand_or_404(db, cost.demand_id, profile)

    db.delete(cost)
    audit(db, "material.delete", "material_cost", material_id, actor_id=profile.id)
    db.commit()
