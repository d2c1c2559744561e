import argparse
import logging
import uvicorn
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from contextlib import asynccontextmanager

import sys
from pathlib import Path

# Add project root to path for package imports
base_dir = Path(__file__).parent
sys.path.insert(0, str(base_dir))

from db.database import init_db
from config import load_config, CONFIG_DIR
from errors import ConflictError, StorageError, ValidationError
from app_state import AppState
from routes import hifz, bookmarks, reading, settings, sync  # Import routers

logger = logging.getLogger(__name__)


# First-run init
@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup: config, logging, DB, then services and sync
    config = load_config()  # Ensures config exists
    logging.basicConfig(
        level=config["logging"]["level"],
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    init_db()
    state = AppState(config)
    await state.init()
    app.state.noor = state
    yield
    await state.teardown()


app = FastAPI(
    title="Noor",
    description="Offline-first Quran reading, bookmarks and hifz tracking with cloud sync",
    lifespan=lifespan,
)

# Include routers
app.include_router(hifz.router, prefix="/hifz", tags=["hifz"])
app.include_router(bookmarks.router, tags=["bookmarks"])  # /collections, /bookmarks
app.include_router(reading.router, prefix="/reading", tags=["reading"])
app.include_router(settings.router, prefix="/settings", tags=["settings"])
app.include_router(sync.router, prefix="/sync", tags=["sync"])


@app.exception_handler(ValidationError)
async def validation_error_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc)})


@app.exception_handler(ConflictError)
async def conflict_error_handler(request: Request, exc: ConflictError):
    return JSONResponse(status_code=409, content={"detail": "Record conflicts with existing data"})


@app.exception_handler(StorageError)
async def storage_error_handler(request: Request, exc: StorageError):
    logger.error("Storage error on %s: %s", request.url.path, exc)
    return JSONResponse(status_code=503, content={"detail": "Local storage unavailable"})


@app.get("/")
async def home():
    return {"app": "noor", "routes": ["/hifz", "/collections", "/bookmarks", "/reading", "/settings", "/sync"]}


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Noor sync service")
    parser.add_argument("--init", action="store_true", help="Initialize DB and config")
    parser.add_argument("--dev", action="store_true", help="Run in dev mode with reload")
    parser.add_argument("--port", type=int, default=8000, help="Port to listen on")
    args = parser.parse_args()
    if args.init:
        load_config()  # Ensures config is copied if missing
        init_db()
        print(f"DB initialized and config copied to {CONFIG_DIR}/")
        sys.exit(0)
    # Run server
    uvicorn.run("main:app", host="127.0.0.1", port=args.port, reload=args.dev, log_level="info")
