import logging
import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware
from starlette.staticfiles import StaticFiles

from config import settings
from errors import register_exception_handlers
from middleware import AccessLogMiddleware, SecurityHeadersMiddleware, BodySizeLimitMiddleware
from routes.auth import router as auth_router
from routes.posts import router as posts_router
from routes.users import router as users_router
from services.mongo import MongoDB
from services.storage import create_storage

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s %(levelname)s %(name)s: %(message)s"
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    app_settings = app.state.settings
    try:
        app_settings.validate()
    except ValueError as e:
        logger.error("Error: %s, refusing to start", e)
        raise

    db = MongoDB(app_settings.mongo_url, app_settings.db_name)
    try:
        await db.connect()
    except Exception as e:
        logger.error("Error: %s, did not connect", e)
        raise

    app.state.db = db
    logger.info("Connected to DB and listening on Port %s", app_settings.port)

    yield
    # Cleanup resources
    await db.close()


app = FastAPI(title="Social Posts API", lifespan=lifespan)
app.state.settings = settings
app.state.storage = create_storage(settings)

register_exception_handlers(app)

app.add_middleware(BodySizeLimitMiddleware, max_body_mb=settings.max_body_mb)
app.add_middleware(SecurityHeadersMiddleware)
app.add_middleware(AccessLogMiddleware)

# Configure CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials="*" not in settings.cors_origins,
    allow_methods=["*"],
    allow_headers=["*"],
)

# uploaded pictures
os.makedirs(settings.assets_dir, exist_ok=True)
app.mount("/assets", StaticFiles(directory=settings.assets_dir), name="assets")

# Include routers
app.include_router(auth_router, prefix="/auth", tags=["auth"])
app.include_router(posts_router, prefix="/posts", tags=["posts"])
app.include_router(users_router, prefix="/users", tags=["users"])


@app.get("/health")
async def health_check():
    return {"status": "healthy"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.port)
