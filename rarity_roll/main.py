import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from rarity_roll.config import get_settings
from rarity_roll.errors import InvalidArgument, RollError
from rarity_roll.routes import multipliers, roll, simulation
from rarity_roll.services.roll_service import get_roll_service

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Run the default lane's expiry sweeper for the lifetime of the app."""
    store = get_roll_service().store
    store.start_sweeper(settings.sweep_interval_seconds)
    yield
    store.stop_sweeper()


app = FastAPI(
    title=settings.api_title,
    description="Best-of-N rarity rolls with luck multipliers, event pools and timed boosts.",
    version=settings.api_version,
    lifespan=lifespan,
)

app.include_router(roll.router)
app.include_router(multipliers.router)
app.include_router(simulation.router)


# ============================================================
# ERROR HANDLING
# ============================================================

@app.exception_handler(RollError)
async def roll_error_handler(request: Request, exc: RollError):
    status = 400 if isinstance(exc, InvalidArgument) else 422
    logger.info("%s on %s: %s", type(exc).__name__, request.url.path, exc)
    return JSONResponse(
        status_code=status,
        content={"error": type(exc).__name__, "detail": str(exc)},
    )


# ============================================================
# HEALTH CHECK
# ============================================================

@app.get("/health", tags=["Health"], response_model=dict)
def health_check():
    return {"status": "ok"}


# ============================================================
# METADATA ENDPOINTS
# ============================================================

@app.get(
    "/info",
    tags=["Metadata"],
    summary="API info + engine settings",
    response_model=dict
)
def info():
    return {
        "name": settings.api_title,
        "version": settings.api_version,
        "attempt_policy": settings.attempt_policy,
        "default_luck_cap": settings.default_luck_cap,
        "rolls_seeded": get_roll_service().seeder.rolls_seeded,
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
