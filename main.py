from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from models import db, client, init_models
from api.api_router import api_router
from segmentation.orchestrator import build_orchestrator
from utils.log import setup_logging


@asynccontextmanager
async def lifespan(app: FastAPI):
    setup_logging()
    # bad window table / timezone / push settings stop the app here, not mid-run
    app.state.orchestrator = build_orchestrator()
    await init_models(db)
    yield
    aclose = getattr(app.state.orchestrator.dispatcher, "aclose", None)
    if aclose is not None:
        await aclose()
    client.close()

app = FastAPI(
    lifespan=lifespan,
    title="segment_notifications",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(api_router)

@app.get("/healthcheck", status_code=200)
async def healthcheck():
    return {"status": "ok"}
