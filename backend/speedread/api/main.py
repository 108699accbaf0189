"""
SpeedRead FastAPI Application Main
"""
import logging
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from speedread.db.sqlite import initialise_db
from speedread.api.routes import books, content, progress, bookmarks, settings as settings_routes, reader
from speedread.core.config import settings

logging.basicConfig(
    level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

initialise_db()

app = FastAPI(
    title=f"{settings.APP_NAME} API",
    description="Chapter detection and RSVP speed reading API",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(books.router, prefix="/api/books", tags=["Books"])
app.include_router(content.router, prefix="/api/content", tags=["Content"])
app.include_router(progress.router, prefix="/api/progress", tags=["Reading Progress"])
app.include_router(bookmarks.router, prefix="/api/bookmarks", tags=["Bookmarks"])
app.include_router(settings_routes.router, prefix="/api/settings", tags=["Settings"])
app.include_router(reader.router, prefix="/api/reader", tags=["Reader"])
