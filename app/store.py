import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Dict, Iterable, List, Optional, Tuple

import pandas as pd

from .db import get_conn
from .errors import InvalidArgument, NotFound
from .model import (
    Course,
    HistoryEntry,
    Prerequisite,
    PrereqKind,
    ResolvedRef,
    ScheduleSlot,
    Status,
    UnresolvedRef,
)

COURSE_COLUMNS = "materia_id, codigo, nombre, creditos, semestre"
COURSE_FIELDS = ("codigo", "nombre", "creditos", "semestre")


def canonical_id(value) -> Optional[str]:
    """Lowercase hyphenated UUID string, or None when value is not a UUID."""
    if not isinstance(value, str):
        return None
    try:
        return str(uuid.UUID(value))
    except ValueError:
        return None


def is_valid_id(value) -> bool:
    return canonical_id(value) is not None


def require_id(value, what: str = "id") -> str:
    cid = canonical_id(value)
    if cid is None:
        raise InvalidArgument(f"Invalid {what}: {value!r}")
    return cid


def _placeholders(n: int) -> str:
    return ",".join("?" * n)


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def _hydrate(conn, df: pd.DataFrame) -> List[Course]:
    """Attach slots and prerequisites to course rows, keeping df order."""
    if df.empty:
        return []
    ids = df["materia_id"].tolist()
    ph = _placeholders(len(ids))

    slots = pd.read_sql_query(
        f"SELECT materia_id, dia, inicio, fin FROM horarios WHERE materia_id IN ({ph}) ORDER BY materia_id, position",
        conn, params=ids,
    )
    prereqs = pd.read_sql_query(
        f"""SELECT p.materia_id, p.tipo, p.previa_id, m.codigo, m.nombre, m.semestre
            FROM previas p LEFT JOIN materias m ON m.materia_id = p.previa_id
            WHERE p.materia_id IN ({ph}) ORDER BY p.materia_id, p.position""",
        conn, params=ids,
    )
    slots_by_course = {k: g for k, g in slots.groupby("materia_id", sort=False)}
    prereqs_by_course = {k: g for k, g in prereqs.groupby("materia_id", sort=False)}

    courses: List[Course] = []
    for row in df.itertuples(index=False):
        horarios = tuple(
            ScheduleSlot(s.dia, s.inicio, s.fin)
            for s in slots_by_course.get(row.materia_id, slots.iloc[0:0]).itertuples(index=False)
        )
        previas = []
        for p in prereqs_by_course.get(row.materia_id, prereqs.iloc[0:0]).itertuples(index=False):
            # target deleted after the prerequisite was declared
            if pd.isna(p.codigo):
                ref = UnresolvedRef(p.previa_id)
            else:
                ref = ResolvedRef(p.previa_id, p.codigo, p.nombre, int(p.semestre))
            previas.append(Prerequisite(p.tipo, ref))
        courses.append(Course(
            id=row.materia_id,
            codigo=row.codigo,
            nombre=row.nombre,
            creditos=float(row.creditos),
            semestre=int(row.semestre),
            previas=tuple(previas),
            horarios=horarios,
        ))
    return courses


def _parse_slots(items) -> List[ScheduleSlot]:
    # identical dia/inicio/fin entries collapse to one
    slots: List[ScheduleSlot] = []
    try:
        for h in items:
            slot = ScheduleSlot(h["dia"], h["inicio"], h["fin"])
            if slot not in slots:
                slots.append(slot)
    except ValueError as e:
        raise InvalidArgument(str(e)) from e
    return slots


def _parse_prereqs(items, course_id: Optional[str] = None) -> List[Tuple[str, str]]:
    prereqs: List[Tuple[str, str]] = []
    for p in items:
        try:
            tipo = PrereqKind(p["tipo"]).value
        except ValueError as e:
            raise InvalidArgument(str(e)) from e
        target = require_id(p["materia"], "prerequisite id")
        if target == course_id:
            raise InvalidArgument("A course cannot be its own prerequisite")
        if (tipo, target) not in prereqs:
            prereqs.append((tipo, target))
    return prereqs


def _ensure_exist(conn, ids: Iterable[str], what: str = "Course"):
    ids = sorted(set(ids))
    if not ids:
        return
    found = {r[0] for r in conn.execute(
        f"SELECT materia_id FROM materias WHERE materia_id IN ({_placeholders(len(ids))})", ids
    )}
    missing = [i for i in ids if i not in found]
    if missing:
        raise NotFound(f"{what}(s) not found: {', '.join(missing)}")


def _next_position(conn, table: str, course_id: str) -> int:
    row = conn.execute(f"SELECT COALESCE(MAX(position), -1) + 1 FROM {table} WHERE materia_id = ?", (course_id,))
    return row.fetchone()[0]


def _insert_slots(conn, course_id: str, slots: List[ScheduleSlot]):
    start = _next_position(conn, "horarios", course_id)
    conn.executemany(
        "INSERT INTO horarios(materia_id, position, dia, inicio, fin) VALUES(?,?,?,?,?)",
        [(course_id, start + i, s.dia.value, s.inicio, s.fin) for i, s in enumerate(slots)],
    )


def _insert_prereqs(conn, course_id: str, prereqs: List[Tuple[str, str]]):
    start = _next_position(conn, "previas", course_id)
    conn.executemany(
        "INSERT INTO previas(materia_id, position, tipo, previa_id) VALUES(?,?,?,?)",
        [(course_id, start + i, tipo, target) for i, (tipo, target) in enumerate(prereqs)],
    )


def fetch_courses_by_semester(semestre: Optional[int] = None) -> List[Course]:
    """All courses (or one semester's), ordered by semestre then codigo."""
    query = f"SELECT {COURSE_COLUMNS} FROM materias"
    params: list = []
    if semestre is not None:
        query += " WHERE semestre = ?"
        params.append(int(semestre))
    with get_conn() as conn:
        df = pd.read_sql_query(query, conn, params=params)
        df = df.sort_values(["semestre", "codigo"], kind="mergesort")
        return _hydrate(conn, df)


def fetch_courses_by_ids(ids: Iterable[str]) -> Dict[str, Course]:
    ids = [cid for cid in (canonical_id(i) for i in ids) if cid is not None]
    if not ids:
        return {}
    with get_conn() as conn:
        df = pd.read_sql_query(
            f"SELECT {COURSE_COLUMNS} FROM materias WHERE materia_id IN ({_placeholders(len(ids))})",
            conn, params=ids,
        )
        return {c.id: c for c in _hydrate(conn, df)}


def fetch_course(course_id: str) -> Course:
    cid = require_id(course_id, "course id")
    course = fetch_courses_by_ids([cid]).get(cid)
    if course is None:
        raise NotFound(f"Course not found: {cid}")
    return course


def fetch_history_for_student(student_id: str) -> List[HistoryEntry]:
    sid = require_id(student_id, "student id")
    with get_conn() as conn:
        rows = conn.execute(
            "SELECT materia_id, estado FROM historial WHERE usuario_id = ?", (sid,)
        ).fetchall()
    return [HistoryEntry(sid, materia_id, Status(estado)) for materia_id, estado in rows]


def create_course(payload: dict) -> Course:
    """
    Insert a course with its slots and prerequisites.

    Every prerequisite target must already exist.
    """
    course_id = str(uuid.uuid4())
    slots = _parse_slots(payload.get("horarios", []))
    prereqs = _parse_prereqs(payload.get("previas", []))

    with get_conn() as conn:
        _ensure_exist(conn, [t for _, t in prereqs], "Prerequisite course")
        try:
            conn.execute(
                "INSERT INTO materias(materia_id, codigo, nombre, creditos, semestre, created_at) VALUES(?,?,?,?,?,?)",
                (course_id, payload["codigo"].strip(), payload["nombre"].strip(),
                 float(payload["creditos"]), int(payload["semestre"]), _now()),
            )
        except sqlite3.IntegrityError as e:
            raise InvalidArgument(f"Course could not be created: {e}") from e
        _insert_slots(conn, course_id, slots)
        _insert_prereqs(conn, course_id, prereqs)

    return fetch_course(course_id)


def update_course(course_id: str, changes: dict) -> Course:
    """
    Update basic fields; `horarios` / `previas`, when present, replace the
    current lists.
    """
    cid = require_id(course_id, "course id")
    fields = {k: changes[k] for k in COURSE_FIELDS if changes.get(k) is not None}
    slots = _parse_slots(changes["horarios"]) if changes.get("horarios") is not None else None
    prereqs = _parse_prereqs(changes["previas"], cid) if changes.get("previas") is not None else None

    with get_conn() as conn:
        _ensure_exist(conn, [cid])
        if fields:
            sets = ", ".join(f"{k} = ?" for k in fields)
            values = [v.strip() if isinstance(v, str) else v for v in fields.values()]
            try:
                conn.execute(f"UPDATE materias SET {sets} WHERE materia_id = ?", [*values, cid])
            except sqlite3.IntegrityError as e:
                raise InvalidArgument(f"Course could not be updated: {e}") from e
        if slots is not None:
            conn.execute("DELETE FROM horarios WHERE materia_id = ?", (cid,))
            _insert_slots(conn, cid, slots)
        if prereqs is not None:
            _ensure_exist(conn, [t for _, t in prereqs], "Prerequisite course")
            conn.execute("DELETE FROM previas WHERE materia_id = ?", (cid,))
            _insert_prereqs(conn, cid, prereqs)

    return fetch_course(cid)


def delete_course(course_id: str) -> None:
    # slots, prerequisites and history rows of the course cascade; other
    # courses keep their prerequisite rows pointing at the removed id
    cid = require_id(course_id, "course id")
    with get_conn() as conn:
        if conn.execute("DELETE FROM materias WHERE materia_id = ?", (cid,)).rowcount == 0:
            raise NotFound(f"Course not found: {cid}")


def add_prerequisite(course_id: str, tipo, target_id: str) -> Course:
    cid = require_id(course_id, "course id")
    prereqs = _parse_prereqs([{"tipo": tipo, "materia": target_id}], cid)
    with get_conn() as conn:
        _ensure_exist(conn, [cid])
        _ensure_exist(conn, [prereqs[0][1]], "Prerequisite course")
        existing = conn.execute(
            "SELECT 1 FROM previas WHERE materia_id = ? AND tipo = ? AND previa_id = ?", (cid, *prereqs[0])
        ).fetchone()
        if existing is None:
            _insert_prereqs(conn, cid, prereqs)
    return fetch_course(cid)


def remove_prerequisite(course_id: str, target_id: str, tipo=None) -> Course:
    cid = require_id(course_id, "course id")
    target = require_id(target_id, "prerequisite id")
    query = "DELETE FROM previas WHERE materia_id = ? AND previa_id = ?"
    params = [cid, target]
    if tipo is not None:
        query += " AND tipo = ?"
        try:
            params.append(PrereqKind(tipo).value)
        except ValueError as e:
            raise InvalidArgument(str(e)) from e
    with get_conn() as conn:
        _ensure_exist(conn, [cid])
        if conn.execute(query, params).rowcount == 0:
            raise NotFound(f"Prerequisite {target} not declared on course {cid}")
    return fetch_course(cid)


def add_slot(course_id: str, dia, inicio: str, fin: str) -> Course:
    cid = require_id(course_id, "course id")
    slot = _parse_slots([{"dia": dia, "inicio": inicio, "fin": fin}])[0]
    with get_conn() as conn:
        _ensure_exist(conn, [cid])
        existing = conn.execute(
            "SELECT 1 FROM horarios WHERE materia_id = ? AND dia = ? AND inicio = ? AND fin = ?",
            (cid, slot.dia.value, slot.inicio, slot.fin),
        ).fetchone()
        if existing is None:
            _insert_slots(conn, cid, [slot])
    return fetch_course(cid)


def remove_slot(course_id: str, dia, inicio: str, fin: str) -> Course:
    cid = require_id(course_id, "course id")
    slot = _parse_slots([{"dia": dia, "inicio": inicio, "fin": fin}])[0]
    with get_conn() as conn:
        _ensure_exist(conn, [cid])
        deleted = conn.execute(
            "DELETE FROM horarios WHERE materia_id = ? AND dia = ? AND inicio = ? AND fin = ?",
            (cid, slot.dia.value, slot.inicio, slot.fin),
        ).rowcount
        if deleted == 0:
            raise NotFound(f"Slot {slot.dia.value} {slot.inicio}-{slot.fin} not declared on course {cid}")
    return fetch_course(cid)


def upsert_history(student_id: str, course_id: str, estado, nota_examen=None, fecha=None) -> dict:
    sid = require_id(student_id, "usuario id")
    cid = require_id(course_id, "materia id")
    estado = Status(estado).value
    now = _now()

    with get_conn() as conn:
        if conn.execute("SELECT 1 FROM materias WHERE materia_id = ?", (cid,)).fetchone() is None:
            raise NotFound(f"Course not found: {cid}")
        conn.execute(
            """INSERT INTO historial(historial_id, usuario_id, materia_id, estado, nota_examen, fecha, created_at, updated_at)
               VALUES(?,?,?,?,?,?,?,?)
               ON CONFLICT(usuario_id, materia_id) DO UPDATE SET
                   estado = excluded.estado,
                   nota_examen = excluded.nota_examen,
                   fecha = excluded.fecha,
                   updated_at = excluded.updated_at""",
            (str(uuid.uuid4()), sid, cid, estado, nota_examen, fecha, now, now),
        )
    return list_history(sid, course_id=cid)[0]


def _history_rows(where: str = "", params=()) -> List[dict]:
    query = f"""SELECT h.historial_id, h.usuario_id, h.materia_id, m.codigo, m.nombre, m.semestre, m.creditos,
                       h.estado, h.nota_examen, h.fecha, h.created_at, h.updated_at
                FROM historial h JOIN materias m ON m.materia_id = h.materia_id
                {where}
                ORDER BY h.usuario_id, m.semestre, m.codigo"""
    with get_conn() as conn:
        rows = conn.execute(query, list(params)).fetchall()
    return [
        {
            "id": r[0],
            "usuario": r[1],
            "materia": {"id": r[2], "codigo": r[3], "nombre": r[4], "semestre": r[5], "creditos": r[6]},
            "estado": r[7],
            "notaExamen": r[8],
            "fecha": r[9],
            "createdAt": r[10],
            "updatedAt": r[11],
        }
        for r in rows
    ]


def list_history(student_id: str, course_id: Optional[str] = None) -> List[dict]:
    """A student's history rows with a short course summary, ordered by semestre/codigo."""
    params = [require_id(student_id, "usuario id")]
    where = "WHERE h.usuario_id = ?"
    if course_id is not None:
        where += " AND h.materia_id = ?"
        params.append(require_id(course_id, "materia id"))
    return _history_rows(where, params)


def list_all_history() -> List[dict]:
    return _history_rows()
