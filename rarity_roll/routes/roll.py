from fastapi import APIRouter, Depends

from rarity_roll.models.roll_models import RollResult
from rarity_roll.schemas import LuckRequest, RollRequest
from rarity_roll.services.roll_service import RollService, get_roll_service

router = APIRouter(tags=["Rolls"])


@router.post("/roll", response_model=RollResult)
def roll_endpoint(req: RollRequest, service: RollService = Depends(get_roll_service)):
    return service.roll(req.pool, req.options, req.seed)


@router.post("/roll/summary", response_model=dict)
def roll_summary_endpoint(req: RollRequest, service: RollService = Depends(get_roll_service)):
    summary = service.roll_summary(req.pool, req.options, req.seed)
    return {**summary.model_dump(), "text": summary.render()}


@router.post("/luck/effective", response_model=dict)
def effective_luck_endpoint(req: LuckRequest, service: RollService = Depends(get_roll_service)):
    details = service.luck_details(req.options)
    return {"effective_luck": details.effective_luck, "attempts": details.attempts}
