from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Depends, Header

from ..config import ADMIN_TOKEN
from ..deps import get_clock, validate_admin_token
from ..jobs import run_daily_sweep
from ..schemas import SweepResponse

router = APIRouter()


@router.post("/expire-sessions", response_model=SweepResponse)
def trigger_expire_sessions(
    x_admin_token: str | None = Header(default=None, alias="X-Admin-Token"),
    clock=Depends(get_clock),
) -> dict[str, Any]:
    validate_admin_token(x_admin_token, ADMIN_TOKEN)
    return asdict(run_daily_sweep(clock))
