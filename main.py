from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from config.settings import settings

logging.basicConfig(
    level=settings.LOG_LEVEL,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
# quiet HTTP client debug logs
logging.getLogger("httpcore").setLevel(logging.WARNING)
logging.getLogger("httpx").setLevel(logging.WARNING)

logger = logging.getLogger(__name__)

# ✅ middlewares
from middlewares.timing import TimingMiddleware
from middlewares.error_handler import add_error_handlers

# ✅ routers
from routers import results, students, subjects

from database.db import Base, engine
import models.result_sheets, models.students, models.subjects  # noqa: F401  register tables
from services.rate_limiter import InMemoryRateLimiter

app = FastAPI(
    title=settings.APP_TITLE,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
)

# ✅ CORS (admin panel front end)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# ✅ latency header (X-Latency-Ms) + slow request log
app.add_middleware(TimingMiddleware)

# ✅ global error handlers (one JSON error format)
add_error_handlers(app)

# ✅ swappable rate limiter (shared store in multi-instance deployments)
app.state.rate_limiter = InMemoryRateLimiter(
    max_requests=settings.RATE_LIMIT_MAX_REQUESTS,
    window_seconds=settings.RATE_LIMIT_WINDOW_SECONDS,
)

# ✅ /v1 prefixed routers
app.include_router(results.router,  prefix="/v1")
app.include_router(students.router, prefix="/v1")
app.include_router(subjects.router, prefix="/v1")

# ✅ health check
@app.get("/health")
def health_check():
    return {"status": "ok", "message": "API is running"}

@app.on_event("startup")
def _create_tables():
    if settings.AUTO_CREATE_TABLES:
        Base.metadata.create_all(bind=engine)
        logger.info("database tables ready")

# ✅ root
@app.get("/")
def root():
    return {"message": f"{settings.APP_TITLE} - {settings.APP_DESCRIPTION}"}
