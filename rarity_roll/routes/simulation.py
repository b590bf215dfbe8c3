from fastapi import APIRouter, Depends, HTTPException

from rarity_roll.schemas import SimulationRequest
from rarity_roll.services.roll_service import RollService, get_roll_service

router = APIRouter(prefix="/simulate", tags=["Simulation"])


@router.post("/")
def simulate_endpoint(req: SimulationRequest, service: RollService = Depends(get_roll_service)):
    if req.simulations > service.settings.max_simulations:
        raise HTTPException(400, "Simulation limit exceeded")

    result = service.simulate(req.pool, req.options, req.simulations, req.seed)

    warnings = []
    rarest = max(req.pool.entries, key=lambda e: e.rarity_score)
    if result["rarity_distribution"].get(rarest.name, 0) < 0.5:
        warnings.append(f"{rarest.name} wins less than 0.5% of rolls.")
    if result["no_result"]:
        warnings.append(f"{result['no_result']} rolls had no attempts.")

    return {**result, "warnings": warnings}
