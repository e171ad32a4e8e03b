from .connection import create_resource, create_tables, table_definitions, USER_ID_INDEX, MODEL_ID_INDEX
from .records import RecordStore, Page, utc_now_iso

__all__ = [
    "create_resource",
    "create_tables",
    "table_definitions",
    "USER_ID_INDEX",
    "MODEL_ID_INDEX",
    "RecordStore",
    "Page",
    "utc_now_iso"
]
