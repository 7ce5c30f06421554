"""FastAPI application entry point."""
import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from comicrepacker.api.routes import router
from comicrepacker.config import CORS_ORIGINS, logger as config_logger
from comicrepacker.scan.workspace import get_workspace

logging.getLogger("uvicorn").setLevel(logging.INFO)


@asynccontextmanager
async def lifespan(app: FastAPI):
    workspace = get_workspace()
    workspace.start()
    config_logger.info("ComicRepacker API started")
    yield
    await workspace.stop()
    config_logger.info("ComicRepacker API shutting down")


app = FastAPI(
    title="ComicRepacker API",
    description="Scan a comic library for archives readers cannot open and repack them as CBZ.",
    version="1.0.0",
    lifespan=lifespan,
)
app.add_middleware(
    CORSMiddleware,
    allow_origins=CORS_ORIGINS if CORS_ORIGINS else ["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
app.include_router(router)


if __name__ == "__main__":
    import uvicorn
    from comicrepacker.config import HOST, PORT
    uvicorn.run("comicrepacker.main:app", host=HOST, port=PORT, reload=True)
