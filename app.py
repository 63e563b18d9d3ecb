# app.py
import logging
import os

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from core import config
from core.errors import register_error_handlers
from data.database import init_db
from routers import auth, realtime, tasks, uploads, users, work, worker
from services.notifications import hub

logging.basicConfig(
    level=config.LOG_LEVEL.upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Site Task Tracker",
    description="Task scheduling and work reporting for admins, supervisors and workers.",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=config.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
    allow_headers=["Authorization", "Content-Type"],
)

register_error_handlers(app)

# --- Init DB on startup ---
@app.on_event("startup")
def on_startup():
    init_db()
    logger.info("Started in %s mode", config.APP_ENV)

@app.on_event("shutdown")
async def on_shutdown():
    await hub.close()

# --- Routers (mounted under /api) ---
app.include_router(auth.router,    prefix="/api")
app.include_router(users.router,   prefix="/api")
app.include_router(tasks.router,   prefix="/api")
app.include_router(worker.router,  prefix="/api")
app.include_router(work.router,    prefix="/api")
app.include_router(uploads.router, prefix="/api")
app.include_router(realtime.router)

# uploaded files are referenced by relative URL from reports
os.makedirs(config.UPLOAD_DIR, exist_ok=True)
app.mount("/uploads", StaticFiles(directory=config.UPLOAD_DIR, check_dir=False), name="uploads")

# --- Simple roots / health ---
@app.get("/")
def read_root():
    return {"message": "Site Task Tracker API"}

@app.get("/api/health")
def health():
    return {"success": True, "status": "ok"}
