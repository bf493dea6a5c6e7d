"""Project-level configuration and path helpers."""

from pathlib import Path
from typing import Union

PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DATA_DIR = PROJECT_ROOT / "03_data"
LOGS_DIR = PROJECT_ROOT / "04_logs"
DEFAULT_LEDGER_PATH = DATA_DIR / "ledger.db"
DEFAULT_LOG_PATH = LOGS_DIR / "app.log"

DEFAULT_BLOB_API_URL = "http://127.0.0.1:5001"
DEFAULT_GATEWAY_BASE = "https://ipfs.io/ipfs"

# Caller-side retry policy for historical queries
QUERY_RETRY_ATTEMPTS = 3
QUERY_RETRY_DELAY = 0.5

RESUBSCRIBE_DELAY = 1.0


PathLike = Union[str, Path]


def resolve_db_path(env_value: PathLike | None = None) -> PathLike:
    """Resolve LEDGER_DB_PATH to an absolute path."""
    if not env_value:
        return DEFAULT_LEDGER_PATH

    if str(env_value) == ":memory:":
        return ":memory:"

    candidate = Path(env_value)
    return candidate if candidate.is_absolute() else PROJECT_ROOT / candidate
