"""FastAPI dependencies resolving the handles built at startup."""
from fastapi import Request

from .aggregator import Aggregator
from .config import Settings
from .db import Store
from .files import FileStore
from .reconciler import Reconciler
from .screenshots import ScreenshotService


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> Store:
    return request.app.state.store


def get_files(request: Request) -> FileStore:
    return request.app.state.files


def get_reconciler(request: Request) -> Reconciler:
    return request.app.state.reconciler


def get_aggregator(request: Request) -> Aggregator:
    return request.app.state.aggregator


def get_screenshots(request: Request) -> ScreenshotService:
    return request.app.state.screenshots
