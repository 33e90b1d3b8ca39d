import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from docstore.routes import documents
from docstore.routes.errors import add_error_handlers
from docstore.db.base import Base
from docstore.db.sessions import engine
from docstore.core.config import settings
from docstore.core.logging import configure_logging

# Import all models to ensure they're registered with Base
import docstore.models

configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

# Create tables
Base.metadata.create_all(bind=engine)

app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Upload, list, download and delete PDF documents",
    debug=settings.DEBUG,
)

# CORS configuration
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Register routers
app.include_router(documents.router)
add_error_handlers(app)

logger.info("%s v%s ready, storing uploads in %s", settings.APP_NAME, settings.APP_VERSION, settings.UPLOAD_DIR)


@app.get("/health")
def health():
    return {"status": "ok"}
