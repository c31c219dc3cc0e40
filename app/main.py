import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from app.api.endpoints import tournaments as tournament_endpoints
from app.api.endpoints import matches as match_endpoints
from app.core.config import settings
from app.core.database import Base, engine
from app import models  # registers every model with Base

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    Base.metadata.create_all(bind=engine)
    logger.info("Database tables ready")
    yield


app = FastAPI(title=settings.APP_TITLE, lifespan=lifespan)

app.include_router(tournament_endpoints.router, prefix="/tournaments", tags=["Tournaments"])
app.include_router(match_endpoints.router, prefix="/matches", tags=["Matches"])


@app.get("/")
async def read_root():
    return {"message": settings.APP_TITLE}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=True)
