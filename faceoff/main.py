import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from faceoff.api.endpoints import admin as admin_endpoints
from faceoff.api.endpoints import auth as auth_endpoints
from faceoff.api.endpoints import campaigns as campaign_endpoints
from faceoff.api.endpoints import sources as source_endpoints
from faceoff.api.endpoints import votes as vote_endpoints
from faceoff.core.database import SessionLocal, init_db
from faceoff.core.errors import FaceoffError, StorageError
from faceoff.core.logging_config import configure_logging
from faceoff.services import auth_service

configure_logging()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    db = SessionLocal()
    try:
        auth_service.ensure_bootstrap_admin(db)
    finally:
        db.close()
    logger.info("Faceoff API started")
    yield


app = FastAPI(title="Feature Faceoff API", lifespan=lifespan)


@app.exception_handler(FaceoffError)
async def faceoff_error_handler(request: Request, exc: FaceoffError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


@app.exception_handler(SQLAlchemyError)
async def storage_error_handler(request: Request, exc: SQLAlchemyError):
    logger.exception("Unhandled storage failure on %s %s", request.method, request.url.path)
    error = StorageError()
    return JSONResponse(status_code=error.status_code, content=error.to_dict())


app.include_router(auth_endpoints.router, prefix="/auth", tags=["Authentication"])
app.include_router(campaign_endpoints.router, prefix="/campaigns", tags=["Campaigns"])
app.include_router(vote_endpoints.router, prefix="/votes", tags=["Votes"])
app.include_router(source_endpoints.router, prefix="/sources", tags=["Vote sources"])
app.include_router(admin_endpoints.router, prefix="/admin", tags=["Admin"])


@app.get("/health")
async def health():
    return {"status": "ok"}


if __name__ == "__main__":
    uvicorn.run("faceoff.main:app", host="0.0.0.0", port=8000, reload=True)
