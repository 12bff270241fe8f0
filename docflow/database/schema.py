from pathlib import Path

from docflow.database.connection import Database
from docflow.logging.logger import Log

_SCHEMA_PATH = Path(__file__).parent / "schema.sql"


def load_schema(path: Path | None = None) -> str:
    return (path or _SCHEMA_PATH).read_text(encoding="utf-8")


def apply_schema(db: Database, path: Path | None = None) -> None:
    """Create the store and channel tables if they do not exist yet."""
    sql = load_schema(path)
    with db.connection() as conn:
        conn.execute(sql)
        conn.commit()
    Log.info("Database schema is up to date")
