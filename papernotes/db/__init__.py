"""Database utilities and stores for papers and QA exchanges."""

from . import models
from .database import Base, get_engine, get_sessionmaker, init_db
from .repositories import PaperRepo, QaRepo
from .paper_store import PaperStore
from .qa_store import QaStore

__all__ = [
    "models",
    "Base",
    "get_engine",
    "get_sessionmaker",
    "init_db",
    "PaperRepo",
    "QaRepo",
    "PaperStore",
    "QaStore",
]
