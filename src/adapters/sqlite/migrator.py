import logging
import sqlite3
from contextlib import closing
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

DEFAULT_MIGRATIONS_DIR = Path(__file__).resolve().parents[3] / "migrations"
DOWN_MARKER = "-- Down"


@dataclass(frozen=True)
class Migration:
    filename: str
    up_sql: str


def load_migrations(migrations_dir: str | Path) -> list[Migration]:
    """Read every ``*.sql`` file in name order, keeping only the part above ``-- Down``."""
    migrations = []
    for path in sorted(Path(migrations_dir).glob("*.sql")):
        up_sql, _, _ = path.read_text().partition(DOWN_MARKER)
        migrations.append(Migration(path.name, up_sql))
    return migrations


class SQLiteMigrator:
    """Applies numbered schema files once each, tracked in ``_migrations``."""

    def __init__(self, db_path: str, migrations_dir: str | Path = DEFAULT_MIGRATIONS_DIR):
        self.db_path = db_path
        self.migrations_dir = Path(migrations_dir)

    def _connect(self) -> sqlite3.Connection:
        Path(self.db_path).parent.mkdir(parents=True, exist_ok=True)
        conn = sqlite3.connect(self.db_path)
        conn.execute("PRAGMA foreign_keys = ON;")
        conn.execute(
            "CREATE TABLE IF NOT EXISTS _migrations ("
            " filename TEXT PRIMARY KEY NOT NULL,"
            " applied_at DATETIME DEFAULT CURRENT_TIMESTAMP)"
        )
        return conn

    def pending(self) -> list[Migration]:
        with closing(self._connect()) as conn:
            applied = {row[0] for row in conn.execute("SELECT filename FROM _migrations")}
        return [m for m in load_migrations(self.migrations_dir) if m.filename not in applied]

    def run_migrations(self) -> list[str]:
        """Apply all pending migrations, returning the filenames applied."""
        todo = self.pending()
        with closing(self._connect()) as conn:
            for migration in todo:
                logger.info("Applying migration: %s", migration.filename)
                try:
                    conn.executescript(migration.up_sql)
                    conn.execute(
                        "INSERT INTO _migrations (filename) VALUES (?)", (migration.filename,)
                    )
                    conn.commit()
                except sqlite3.Error as e:
                    conn.rollback()
                    raise RuntimeError(f"Migration {migration.filename} failed: {e}") from e

        if todo:
            logger.info("Applied %d migration(s) to %s", len(todo), self.db_path)
        return [m.filename for m in todo]
