from typing import List

from .conflicts import find_conflicts
from .eligibility import evaluate_course
from .errors import InvalidArgument
from .horario import hours_from_slots
from .model import build_status_map
from .store import canonical_id, fetch_courses_by_ids, fetch_history_for_student, require_id


def normalize_ids(raw) -> List[str]:
    """Unique ids in canonical form, first-seen order; malformed ones are dropped."""
    if not isinstance(raw, (list, tuple)) or len(raw) == 0:
        raise InvalidArgument("materias is required (non-empty list)")
    ids: List[str] = []
    for value in raw:
        cid = canonical_id(value)
        if cid is not None and cid not in ids:
            ids.append(cid)
    if not ids:
        raise InvalidArgument("materias contains no valid ids")
    return ids


def verify_selection(student_id: str, candidate_ids) -> dict:
    ids = normalize_ids(candidate_ids)
    student_id = require_id(student_id, "student id")

    found = fetch_courses_by_ids(ids)
    status_map = build_status_map(fetch_history_for_student(student_id))

    courses = [found[i] for i in ids if i in found]
    missing = [i for i in ids if i not in found]

    detailed = []
    for c in courses:
        item = evaluate_course(c, status_map)
        item["horarios"] = [h.as_dict() for h in c.horarios]
        item["cargaHorasMateria"] = hours_from_slots(c.horarios)
        detailed.append(item)

    conflicts = find_conflicts(courses)["conflictos"]
    eligible = sum(1 for d in detailed if d["elegible"])

    return {
        "resumen": {
            "seleccionadas": len(detailed),
            "elegibles": eligible,
            "noElegibles": len(detailed) - eligible,
            "conflictos": len(conflicts),
            "cargaHoras": round(sum(d["cargaHorasMateria"] for d in detailed), 2),
        },
        "conflictos": conflicts,
        "materias": detailed,
        "noEncontradas": missing,
    }
