import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from .config import ALLOWED_ORIGINS, DEV_MODE, LOG_LEVEL
from .database import SessionLocal, init_schema
from .errors import MatchingError
from .routes import include_modular_routers

logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(title="Daily Match API")
include_modular_routers(app)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(MatchingError)
async def handle_matching_error(request: Request, exc: MatchingError) -> JSONResponse:
    logger.info("[API] %s %s rejected code=%s", request.method, request.url.path, exc.code)
    detail = exc.to_detail()
    if DEV_MODE and exc.context:
        detail["context"] = exc.context
    return JSONResponse(status_code=exc.status_code, content={"detail": detail})


def wait_for_db(max_attempts: int = 20, delay_seconds: float = 1.5) -> None:
    last_err: Exception | None = None
    for _ in range(max_attempts):
        try:
            with SessionLocal() as db:
                db.execute(text("SELECT 1"))
                db.commit()
            return
        except OperationalError as exc:
            last_err = exc
            time.sleep(delay_seconds)
    if last_err:
        raise last_err


@app.on_event("startup")
def on_startup() -> None:
    wait_for_db()
    init_schema()


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
