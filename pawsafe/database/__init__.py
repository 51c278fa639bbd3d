"""
Database module for PawSafe
Local-first SQLite persistence for hazard reports
"""

from .connection import DatabaseConnection
from .models import Base, ReportRecord
from .store import EntityStore

__all__ = [
    "DatabaseConnection",
    "Base",
    "ReportRecord",
    "EntityStore",
]
