import logging
import sys
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException

from reviewflow.config import ALLOWED_ORIGINS, HOST, LOG_FILE, LOG_LEVEL, PORT
from reviewflow.db import SessionLocal, init_db
from reviewflow.errors import ReviewFlowError
from reviewflow.routes import ai, reviews, subscription
from reviewflow.services.prompts import ensure_default_templates


# ---------------- LOGGING ----------------

def setup_logging():
    handlers = [logging.StreamHandler(sys.stdout)]
    if LOG_FILE:
        handlers.append(logging.FileHandler(LOG_FILE))

    logging.basicConfig(
        level=LOG_LEVEL.upper(),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=handlers,
    )

    # Silence noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


setup_logging()
logger = logging.getLogger(__name__)


# ---------------- LIFESPAN ----------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()

    db = SessionLocal()
    try:
        ensure_default_templates(db)
    finally:
        db.close()

    logger.info("Database ready")
    yield


# ---------------- APP ----------------

app = FastAPI(title="ReviewFlow", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=ALLOWED_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(reviews.router)
app.include_router(ai.router)
app.include_router(subscription.router)


# ---------------- ERRORS ----------------

@app.exception_handler(ReviewFlowError)
async def handle_domain_error(request: Request, exc: ReviewFlowError):
    if exc.status_code >= 500:
        logger.error(f"Request failed | path={request.url.path} error={exc.message}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(RequestValidationError)
async def handle_validation_error(request: Request, exc: RequestValidationError):
    errors = [
        {
            "field": ".".join(str(part) for part in err["loc"] if part != "body"),
            "message": err["msg"],
        }
        for err in exc.errors()
    ]
    return JSONResponse(
        status_code=400,
        content={"success": False, "message": "Validation failed", "errors": errors},
    )


@app.exception_handler(HTTPException)
async def handle_http_error(request: Request, exc: HTTPException):
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def handle_unexpected_error(request: Request, exc: Exception):
    logger.exception(f"Unhandled error | path={request.url.path}")
    return JSONResponse(
        status_code=500,
        content={"success": False, "message": "Internal server error"},
    )


@app.get("/")
def root():
    return {"service": "reviewflow", "status": "ok"}


def run():
    uvicorn.run("reviewflow.main:app", host=HOST, port=PORT)


if __name__ == "__main__":
    run()
