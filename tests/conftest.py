import os
import tempfile
import uuid

# Point the import-time init_db() away from the repo's data.sqlite3
os.environ.setdefault("DB_PATH", os.path.join(tempfile.mkdtemp(), "import.sqlite3"))

import pytest

from app import db
from app.store import create_course


@pytest.fixture(autouse=True)
def tmp_db(tmp_path, monkeypatch):
    monkeypatch.setattr(db, "DB_PATH", tmp_path / "test.sqlite3")
    db.init_db()
    return db.DB_PATH


@pytest.fixture
def student_id():
    return str(uuid.uuid4())


@pytest.fixture
def make_course():
    def _make(codigo, semestre=1, creditos=6, horarios=(), previas=(), nombre=None):
        return create_course({
            "codigo": codigo,
            "nombre": nombre or f"Materia {codigo}",
            "creditos": creditos,
            "semestre": semestre,
            "horarios": [dict(zip(("dia", "inicio", "fin"), h)) for h in horarios],
            "previas": [{"tipo": tipo, "materia": target.id} for tipo, target in previas],
        })
    return _make
