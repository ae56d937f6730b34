"""FastAPI finals API."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

import config
from smkc.models.base import init_db
from web.api.auth_routes import router as auth_router
from web.api.finals_routes import finals_routers
from web.api.routes import router as api_router

logging.basicConfig(level=config.LOG_LEVEL)
logger = logging.getLogger("smkc.api")


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_db()
    logger.info("Database ready: %s", config.DATABASE_URL)
    yield


app = FastAPI(title="SMKC Finals API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(api_router)
app.include_router(auth_router)
for finals_router in finals_routers:
    app.include_router(finals_router)


@app.get("/api/health")
async def health():
    return {"status": "ok"}
