"""DuckView - page through CSV and parquet files with DuckDB.

Files are registered as DuckDB views and read one page at a time, so even
very large files open instantly and never have to fit in memory.
"""

__version__ = "0.1.0"

from duckview.controller import ViewerController, ViewState
from duckview.core import ConnectionConfig, ConnectionManager, Settings, get_settings

__all__ = [
    "ConnectionConfig",
    "ConnectionManager",
    "Settings",
    "ViewState",
    "ViewerController",
    "__version__",
    "get_settings",
]
