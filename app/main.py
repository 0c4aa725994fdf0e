from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from app.api.routes import query, stats
from app.config import settings
from app.services.report_scheduler import ReportScheduler
from app.services.stats_tracker import get_stats_tracker


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Startup
    tracker = get_stats_tracker()
    await tracker.load()
    scheduler = ReportScheduler(tracker)
    if settings.analytics_report_enabled:
        scheduler.start()
    app.state.report_scheduler = scheduler
    yield
    # Shutdown
    await scheduler.stop()


app = FastAPI(
    title="Iconograph",
    description="Illustrated surveys of historical depictions of biblical narratives",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes
app.include_router(query.router)
app.include_router(stats.router)


@app.get("/api/health")
async def health():
    return {"status": "ok", "service": "iconograph"}
