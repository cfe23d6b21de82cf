from .database import SQLitePrescriptionDB
from .prescription_store import PrescriptionStore

__all__ = [
    "PrescriptionStore",
    "SQLitePrescriptionDB",
]
