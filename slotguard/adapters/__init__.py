"""
Adapters layer - Storage backends for professionals and appointments.
"""

from .memory_store import InMemoryAppointmentStore, InMemoryProfessionalDirectory
from .sql_store import SqlAppointmentStore, SqlProfessionalDirectory, create_db_engine, init_db

__all__ = [
    "InMemoryAppointmentStore",
    "InMemoryProfessionalDirectory",
    "SqlAppointmentStore",
    "SqlProfessionalDirectory",
    "create_db_engine",
    "init_db",
]
