# Routes package __init__.py - re-exports routers for main.py convenience
from .hifz import router as hifz_router
from .bookmarks import router as bookmarks_router
from .reading import router as reading_router
from .settings import router as settings_router
from .sync import router as sync_router

__all__ = ['hifz_router', 'bookmarks_router', 'reading_router', 'settings_router', 'sync_router']
