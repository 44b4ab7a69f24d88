import os
import sqlite3
from contextlib import contextmanager
from pathlib import Path

DB_PATH = Path(os.getenv("DB_PATH", Path(__file__).resolve().parents[1] / "data.sqlite3"))

def init_db():
    conn = sqlite3.connect(DB_PATH, check_same_thread=False)
    cur = conn.cursor()
    # Course catalog
    cur.execute("""
    CREATE TABLE IF NOT EXISTS materias(
        materia_id TEXT PRIMARY KEY,
        codigo TEXT NOT NULL UNIQUE,
        nombre TEXT NOT NULL,
        creditos REAL NOT NULL CHECK (creditos >= 0),
        semestre INTEGER NOT NULL CHECK (semestre >= 1),
        created_at TEXT NOT NULL
    )
    """)
    cur.execute("CREATE INDEX IF NOT EXISTS idx_materias_semestre ON materias(semestre)")
    # Weekly slots; position keeps declaration order
    cur.execute("""
    CREATE TABLE IF NOT EXISTS horarios(
        materia_id TEXT NOT NULL,
        position INTEGER NOT NULL,
        dia TEXT NOT NULL,
        inicio TEXT NOT NULL,
        fin TEXT NOT NULL,
        PRIMARY KEY(materia_id, position),
        FOREIGN KEY(materia_id) REFERENCES materias(materia_id) ON DELETE CASCADE
    )
    """)
    # Prerequisites; previa_id may point at a course that no longer exists
    cur.execute("""
    CREATE TABLE IF NOT EXISTS previas(
        materia_id TEXT NOT NULL,
        position INTEGER NOT NULL,
        tipo TEXT NOT NULL,
        previa_id TEXT NOT NULL,
        PRIMARY KEY(materia_id, position),
        FOREIGN KEY(materia_id) REFERENCES materias(materia_id) ON DELETE CASCADE
    )
    """)
    # Academic history, one row per (student, course)
    cur.execute("""
    CREATE TABLE IF NOT EXISTS historial(
        historial_id TEXT PRIMARY KEY,
        usuario_id TEXT NOT NULL,
        materia_id TEXT NOT NULL,
        estado TEXT NOT NULL,
        nota_examen REAL,
        fecha TEXT,
        created_at TEXT NOT NULL,
        updated_at TEXT NOT NULL,
        FOREIGN KEY(materia_id) REFERENCES materias(materia_id) ON DELETE CASCADE
    )
    """)
    cur.execute("CREATE UNIQUE INDEX IF NOT EXISTS idx_historial_usuario_materia ON historial(usuario_id, materia_id)")
    # Logs table (request/response payloads and domain events)
    cur.execute("""
    CREATE TABLE IF NOT EXISTS logs(
        log_id TEXT PRIMARY KEY,
        direction TEXT NOT NULL, -- 'in', 'out' or 'event'
        request_id TEXT,
        payload_json TEXT NOT NULL,
        created_at TEXT NOT NULL
    )
    """)
    conn.commit()
    conn.close()

@contextmanager
def get_conn():
    conn = sqlite3.connect(DB_PATH, check_same_thread=False)
    conn.execute("PRAGMA foreign_keys = ON")
    try:
        yield conn
        conn.commit()
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()
