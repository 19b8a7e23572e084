import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from pingpong.database import init_db
from pingpong.routes import bracket, runtime, standings, tournaments

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

APP_NAME = "Ping Pong Bracket API"

app = FastAPI(title=APP_NAME)

_cors_origins = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
]
_extra = os.getenv("CORS_ORIGINS", "")
if _extra:
    _cors_origins.extend(o.strip() for o in _extra.split(",") if o.strip())

app.add_middleware(
    CORSMiddleware,
    allow_origins=_cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include routers
app.include_router(tournaments.router, prefix="/api", tags=["tournaments"])
app.include_router(bracket.router, prefix="/api", tags=["bracket"])

# Result reporting, undo and repair (all writes go through the progression engine)
app.include_router(runtime.router, prefix="/api", tags=["runtime"])

# Player standings and portfolios
app.include_router(standings.router, prefix="/api")


@app.on_event("startup")
def on_startup():
    init_db()

    route_count = 0
    for r in app.routes:
        methods = getattr(r, "methods", None)
        path = getattr(r, "path", None)
        if path:
            methods_str = ", ".join(sorted(methods)) if methods else "N/A"
            logger.debug("%-20s %s", methods_str, path)
            route_count += 1
    logger.info("Registered %d routes", route_count)


@app.get("/api/health")
def health_check():
    """Diagnostic endpoint to verify the service is up"""
    return {"app_name": APP_NAME, "status": "healthy"}


@app.get("/")
def root():
    return {"message": f"{APP_NAME} (no frontend build found)"}
