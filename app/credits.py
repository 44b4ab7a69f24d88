from typing import Iterable, List, Optional, Union

import pandas as pd

from .db import get_conn
from .model import Status
from .store import require_id

DEFAULT_STATES = (Status.APROBADO.value,)
VALID_STATES = {s.value for s in Status}


def normalize_states(estados: Union[str, Iterable[str], None]) -> List[str]:
    """Accept a list or a comma separated string; unknown values are dropped."""
    if estados is None:
        return list(DEFAULT_STATES)
    if isinstance(estados, str):
        estados = estados.split(",")
    out: List[str] = []
    for e in estados:
        e = str(e).strip().upper()
        if e in VALID_STATES and e not in out:
            out.append(e)
    return out or list(DEFAULT_STATES)


def compute_credits(student_id: str, estados=DEFAULT_STATES, hasta_semestre: Optional[int] = None) -> dict:
    """
    Credits accumulated by a student over history rows in the given states,
    optionally only for courses with semestre <= hasta_semestre.
    """
    student_id = require_id(student_id, "student id")
    states = normalize_states(estados)

    with get_conn() as conn:
        df = pd.read_sql_query(
            f"""SELECT m.materia_id AS materiaId, m.codigo, m.nombre, m.semestre, m.creditos, h.estado, h.fecha
                FROM historial h JOIN materias m ON m.materia_id = h.materia_id
                WHERE h.usuario_id = ? AND h.estado IN ({",".join("?" * len(states))})""",
            conn, params=[student_id, *states],
        )

    if hasta_semestre is not None:
        df = df[df["semestre"] <= int(hasta_semestre)]
    if df.empty:
        return {"totalCreditos": 0, "detalle": []}

    df = df.sort_values(["semestre", "codigo"], kind="mergesort")
    detalle = [
        {
            "materiaId": r.materiaId,
            "codigo": r.codigo,
            "nombre": r.nombre,
            "semestre": int(r.semestre),
            "creditos": float(r.creditos),
            "estado": r.estado,
            "fecha": None if pd.isna(r.fecha) else r.fecha,
        }
        for r in df.itertuples(index=False)
    ]
    return {"totalCreditos": float(df["creditos"].sum()), "detalle": detalle}
