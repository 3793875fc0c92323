"""Versioned SQL schema operations, keyed by schema version."""

SQLITE_MIGRATIONS: dict[int, list[str]] = {
    1: [
        "CREATE TABLE IF NOT EXISTS memori_schema_version ("
        "num INTEGER NOT NULL PRIMARY KEY)",
        "CREATE TABLE IF NOT EXISTS memori_entity ("
        "id INTEGER PRIMARY KEY AUTOINCREMENT, "
        "uuid TEXT NOT NULL UNIQUE, "
        "external_id VARCHAR(100) NOT NULL UNIQUE, "
        "date_created TEXT NOT NULL)",
        "CREATE TABLE IF NOT EXISTS memori_process ("
        "id INTEGER PRIMARY KEY AUTOINCREMENT, "
        "uuid TEXT NOT NULL UNIQUE, "
        "external_id VARCHAR(100) NOT NULL UNIQUE, "
        "date_created TEXT NOT NULL)",
        "CREATE TABLE IF NOT EXISTS memori_session ("
        "id INTEGER PRIMARY KEY AUTOINCREMENT, "
        "uuid TEXT NOT NULL UNIQUE, "
        "entity_id INTEGER REFERENCES memori_entity(id), "
        "process_id INTEGER REFERENCES memori_process(id), "
        "date_created TEXT NOT NULL)",
        "CREATE INDEX IF NOT EXISTS idx_memori_session_entity_id "
        "ON memori_session(entity_id)",
        "CREATE INDEX IF NOT EXISTS idx_memori_session_process_id "
        "ON memori_session(process_id)",
        "CREATE TABLE IF NOT EXISTS memori_conversation ("
        "id INTEGER PRIMARY KEY AUTOINCREMENT, "
        "uuid TEXT NOT NULL UNIQUE, "
        "session_id INTEGER NOT NULL REFERENCES memori_session(id), "
        "date_created TEXT NOT NULL, "
        "summary TEXT, "
        "date_updated TEXT)",
        "CREATE INDEX IF NOT EXISTS idx_memori_conversation_session_created "
        "ON memori_conversation(session_id, date_created)",
        "CREATE TABLE IF NOT EXISTS memori_conversation_message ("
        "id INTEGER PRIMARY KEY AUTOINCREMENT, "
        "uuid TEXT NOT NULL UNIQUE, "
        "conversation_id INTEGER NOT NULL REFERENCES memori_conversation(id), "
        "role TEXT NOT NULL, "
        "type TEXT NOT NULL DEFAULT '', "
        "content TEXT NOT NULL, "
        "date_created TEXT NOT NULL)",
        "CREATE INDEX IF NOT EXISTS idx_memori_conversation_message_conversation_id "
        "ON memori_conversation_message(conversation_id, id)",
        "CREATE TABLE IF NOT EXISTS memori_entity_fact ("
        "id INTEGER PRIMARY KEY AUTOINCREMENT, "
        "uuid TEXT NOT NULL UNIQUE, "
        "entity_id INTEGER NOT NULL REFERENCES memori_entity(id), "
        "content TEXT NOT NULL, "
        "content_embedding BLOB, "
        "num_times INTEGER NOT NULL DEFAULT 1, "
        "date_last_time TEXT NOT NULL, "
        "uniq CHAR(64) NOT NULL, "
        "date_created TEXT NOT NULL, "
        "date_updated TEXT, "
        "UNIQUE(entity_id, uniq))",
        "CREATE INDEX IF NOT EXISTS idx_memori_entity_fact_entity_id_freq "
        "ON memori_entity_fact(entity_id, num_times DESC, date_last_time DESC)",
    ],
}

POSTGRES_MIGRATIONS: dict[int, list[str]] = {
    1: [
        "CREATE TABLE IF NOT EXISTS memori_schema_version ("
        "num INTEGER NOT NULL PRIMARY KEY)",
        "CREATE TABLE IF NOT EXISTS memori_entity ("
        "id BIGSERIAL PRIMARY KEY, "
        "uuid VARCHAR(36) NOT NULL UNIQUE, "
        "external_id VARCHAR(100) NOT NULL UNIQUE, "
        "date_created TIMESTAMPTZ NOT NULL DEFAULT now())",
        "CREATE TABLE IF NOT EXISTS memori_process ("
        "id BIGSERIAL PRIMARY KEY, "
        "uuid VARCHAR(36) NOT NULL UNIQUE, "
        "external_id VARCHAR(100) NOT NULL UNIQUE, "
        "date_created TIMESTAMPTZ NOT NULL DEFAULT now())",
        "CREATE TABLE IF NOT EXISTS memori_session ("
        "id BIGSERIAL PRIMARY KEY, "
        "uuid VARCHAR(36) NOT NULL UNIQUE, "
        "entity_id BIGINT REFERENCES memori_entity(id), "
        "process_id BIGINT REFERENCES memori_process(id), "
        "date_created TIMESTAMPTZ NOT NULL DEFAULT now())",
        "CREATE INDEX IF NOT EXISTS idx_memori_session_entity_id "
        "ON memori_session(entity_id)",
        "CREATE INDEX IF NOT EXISTS idx_memori_session_process_id "
        "ON memori_session(process_id)",
        "CREATE TABLE IF NOT EXISTS memori_conversation ("
        "id BIGSERIAL PRIMARY KEY, "
        "uuid VARCHAR(36) NOT NULL UNIQUE, "
        "session_id BIGINT NOT NULL REFERENCES memori_session(id), "
        "date_created TIMESTAMPTZ NOT NULL DEFAULT now(), "
        "summary TEXT, "
        "date_updated TIMESTAMPTZ)",
        "CREATE INDEX IF NOT EXISTS idx_memori_conversation_session_created "
        "ON memori_conversation(session_id, date_created DESC)",
        "CREATE TABLE IF NOT EXISTS memori_conversation_message ("
        "id BIGSERIAL PRIMARY KEY, "
        "uuid VARCHAR(36) NOT NULL UNIQUE, "
        "conversation_id BIGINT NOT NULL REFERENCES memori_conversation(id), "
        "role TEXT NOT NULL, "
        "type TEXT NOT NULL DEFAULT '', "
        "content TEXT NOT NULL, "
        "date_created TIMESTAMPTZ NOT NULL DEFAULT now())",
        "CREATE INDEX IF NOT EXISTS idx_memori_conversation_message_conversation_id "
        "ON memori_conversation_message(conversation_id, id)",
        "CREATE TABLE IF NOT EXISTS memori_entity_fact ("
        "id BIGSERIAL PRIMARY KEY, "
        "uuid VARCHAR(36) NOT NULL UNIQUE, "
        "entity_id BIGINT NOT NULL REFERENCES memori_entity(id), "
        "content TEXT NOT NULL, "
        "content_embedding BYTEA, "
        "num_times BIGINT NOT NULL DEFAULT 1, "
        "date_last_time TIMESTAMPTZ NOT NULL, "
        "uniq CHAR(64) NOT NULL, "
        "date_created TIMESTAMPTZ NOT NULL DEFAULT now(), "
        "date_updated TIMESTAMPTZ, "
        "UNIQUE(entity_id, uniq))",
        "CREATE INDEX IF NOT EXISTS idx_memori_entity_fact_entity_id_freq "
        "ON memori_entity_fact(entity_id, num_times DESC, date_last_time DESC)",
    ],
}

MIGRATIONS_BY_DIALECT: dict[str, dict[int, list[str]]] = {
    "sqlite": SQLITE_MIGRATIONS,
    "postgres": POSTGRES_MIGRATIONS,
}


def latest_version(migrations: dict[int, list[str]]) -> int:
    return max(migrations, default=0)
