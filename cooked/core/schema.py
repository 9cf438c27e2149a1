"""SQLite schema management (code-first approach)."""

import logging

from cooked.core.db_client import get_connection


logger = logging.getLogger(__name__)


TABLE_SCHEMAS: dict[str, str] = {
    "users": """CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        updated TEXT NOT NULL DEFAULT (datetime('now')),
        display_name TEXT NOT NULL,
        avatar_url TEXT,
        push_token TEXT,
        settings TEXT
    )""",
    "groups": """CREATE TABLE IF NOT EXISTS groups (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        updated TEXT NOT NULL DEFAULT (datetime('now')),
        name TEXT NOT NULL
    )""",
    "group_members": """CREATE TABLE IF NOT EXISTS group_members (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        group_id INTEGER NOT NULL REFERENCES groups(id),
        user_id INTEGER NOT NULL REFERENCES users(id),
        UNIQUE(group_id, user_id)
    )""",
    "pacts": """CREATE TABLE IF NOT EXISTS pacts (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        updated TEXT NOT NULL DEFAULT (datetime('now')),
        group_id INTEGER NOT NULL REFERENCES groups(id),
        name TEXT NOT NULL,
        frequency TEXT NOT NULL CHECK (frequency IN ('daily', 'weekly', 'custom')),
        frequency_days TEXT,
        pact_type TEXT NOT NULL DEFAULT 'individual'
            CHECK (pact_type IN ('individual', 'group', 'relay')),
        start_date TEXT NOT NULL,
        end_date TEXT,
        status TEXT NOT NULL DEFAULT 'active' CHECK (status IN ('active', 'archived')),
        CHECK (end_date IS NULL OR end_date >= start_date)
    )""",
    "pact_participants": """CREATE TABLE IF NOT EXISTS pact_participants (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        pact_id INTEGER NOT NULL REFERENCES pacts(id),
        user_id INTEGER NOT NULL REFERENCES users(id),
        relay_days TEXT,
        UNIQUE(pact_id, user_id)
    )""",
    "check_ins": """CREATE TABLE IF NOT EXISTS check_ins (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        pact_id INTEGER NOT NULL REFERENCES pacts(id),
        user_id INTEGER NOT NULL REFERENCES users(id),
        status TEXT NOT NULL CHECK (status IN ('success', 'fold')),
        check_in_date TEXT NOT NULL,
        excuse TEXT,
        proof_url TEXT,
        is_late INTEGER NOT NULL DEFAULT 0,
        UNIQUE(pact_id, user_id, check_in_date)
    )""",
    "roast_threads": """CREATE TABLE IF NOT EXISTS roast_threads (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        check_in_id INTEGER NOT NULL REFERENCES check_ins(id),
        status TEXT NOT NULL DEFAULT 'open' CHECK (status IN ('open', 'closed'))
    )""",
    "weekly_recaps": """CREATE TABLE IF NOT EXISTS weekly_recaps (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        created TEXT NOT NULL DEFAULT (datetime('now')),
        updated TEXT NOT NULL DEFAULT (datetime('now')),
        group_id INTEGER NOT NULL REFERENCES groups(id),
        week_start TEXT NOT NULL,
        week_end TEXT NOT NULL,
        data TEXT NOT NULL,
        UNIQUE(group_id, week_start)
    )""",
}

INDEXES: list[str] = [
    "CREATE INDEX IF NOT EXISTS idx_group_members_group_id ON group_members (group_id)",
    "CREATE INDEX IF NOT EXISTS idx_pacts_group_id ON pacts (group_id)",
    "CREATE INDEX IF NOT EXISTS idx_pacts_status ON pacts (status)",
    "CREATE INDEX IF NOT EXISTS idx_pact_participants_pact_id ON pact_participants (pact_id)",
    "CREATE INDEX IF NOT EXISTS idx_check_ins_pact_date ON check_ins (pact_id, check_in_date)",
    "CREATE INDEX IF NOT EXISTS idx_roast_threads_check_in_id ON roast_threads (check_in_id)",
]


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes if they do not exist yet.

    Safe to call on every startup.
    """
    conn = await get_connection(db_path=db_path)

    for table_name, ddl in TABLE_SCHEMAS.items():
        await conn.execute(ddl)
        logger.debug("Ensured table exists", extra={"table": table_name})

    for index_sql in INDEXES:
        await conn.execute(index_sql)

    await conn.commit()
    logger.info("Database schema initialized", extra={"tables": len(TABLE_SCHEMAS)})
