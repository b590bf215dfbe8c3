from fastapi import APIRouter, Depends, HTTPException

from rarity_roll.schemas import BaseLuckRequest, MultiplierRequest
from rarity_roll.services.roll_service import RollService, get_roll_service

router = APIRouter(prefix="/multipliers", tags=["Multipliers"])


@router.get("/")
def multipliers_snapshot(service: RollService = Depends(get_roll_service)):
    return service.store.snapshot()


@router.put("/base-luck")
def put_base_luck(req: BaseLuckRequest, service: RollService = Depends(get_roll_service)):
    service.set_base_luck(req.value)
    return {"base_luck": service.store.base_luck}


@router.put("/events/{event}")
def put_event_multiplier(event: str, req: MultiplierRequest, service: RollService = Depends(get_roll_service)):
    service.set_event_multiplier(event, req.multiplier, req.duration_seconds)
    return {"event": event, "multiplier": req.multiplier, "duration_seconds": req.duration_seconds}


@router.delete("/events/{event}")
def delete_event_multiplier(event: str, service: RollService = Depends(get_roll_service)):
    if not service.store.clear_event_multiplier(event):
        raise HTTPException(404, "No multiplier set for this event")
    return {"event": event, "cleared": True}


@router.put("/players/{user_id}")
def put_player_luck(user_id: str, req: MultiplierRequest, service: RollService = Depends(get_roll_service)):
    service.set_player_luck(user_id, req.multiplier, req.duration_seconds)
    return {"user_id": user_id, "multiplier": req.multiplier, "duration_seconds": req.duration_seconds}


@router.delete("/players/{user_id}")
def delete_player_luck(user_id: str, service: RollService = Depends(get_roll_service)):
    if not service.store.clear_player_luck(user_id):
        raise HTTPException(404, "No luck multiplier set for this player")
    return {"user_id": user_id, "cleared": True}


@router.put("/players/{user_id}/boosts/{rarity}")
def put_weight_boost(user_id: str, rarity: str, req: MultiplierRequest,
                     service: RollService = Depends(get_roll_service)):
    service.set_player_weight_boost(user_id, rarity, req.multiplier, req.duration_seconds)
    return {
        "user_id": user_id,
        "rarity": rarity,
        "multiplier": req.multiplier,
        "duration_seconds": req.duration_seconds,
    }


@router.delete("/players/{user_id}/boosts/{rarity}")
def delete_weight_boost(user_id: str, rarity: str, service: RollService = Depends(get_roll_service)):
    if not service.store.clear_player_weight_boost(user_id, rarity):
        raise HTTPException(404, "No weight boost set for this player and rarity")
    return {"user_id": user_id, "rarity": rarity, "cleared": True}
