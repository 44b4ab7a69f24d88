from typing import Dict, List, Optional

from .model import (
    STATUS_LEVEL,
    Course,
    PrereqKind,
    Status,
    StatusMap,
    build_status_map,
    status_of,
)
from .store import fetch_courses_by_semester, fetch_history_for_student, require_id

# Minimum status level each prerequisite kind asks for
REQUIRED_LEVEL: Dict[str, int] = {
    PrereqKind.CURSO.value: STATUS_LEVEL[Status.CURSADO],    # CURSADO or APROBADO
    PrereqKind.EXAMEN.value: STATUS_LEVEL[Status.APROBADO],  # APROBADO only
}

REASON_TEMPLATES: Dict[str, str] = {
    PrereqKind.CURSO.value: "Falta CURSAR/APROBAR la previa: {}",
    PrereqKind.EXAMEN.value: "Falta APROBAR EXAMEN de la previa: {}",
}

ALREADY_PASSED_NOTE = "La materia ya está APROBADA."


def prerequisite_satisfied(kind, status: Optional[Status]) -> bool:
    required = REQUIRED_LEVEL.get(getattr(kind, "value", kind))
    if required is None:
        return False
    return STATUS_LEVEL[status or Status.PENDIENTE] >= required


def evaluate_course(course: Course, status_map: StatusMap) -> dict:
    """
    Evaluate one course against a student's status map.

    `motivos` lists the unmet prerequisites and is empty iff the course is
    eligible. `notas` carries informational remarks that never affect
    eligibility (e.g. the course is already approved).
    """
    reasons: List[str] = []
    notes: List[str] = []
    detail: List[dict] = []

    own_status = status_of(status_map, course.id)
    if own_status is Status.APROBADO:
        notes.append(ALREADY_PASSED_NOTE)

    for p in course.previas:
        status = status_of(status_map, p.materia.id)
        ok = prerequisite_satisfied(p.tipo, status)
        detail.append({
            "tipo": p.tipo,
            "materia": p.materia.as_dict(),
            "cumplida": ok,
            "estadoActual": status.value,
        })
        if not ok:
            template = REASON_TEMPLATES.get(p.tipo, "Previa no cumplida: {}")
            reasons.append(template.format(p.materia.label()))

    return {
        "materia": course.summary(),
        "estadoActual": own_status.value,
        "elegible": len(reasons) == 0,
        "motivos": reasons,
        "notas": notes,
        "previas": detail,
    }


def summarize(items: List[dict]) -> dict:
    eligible = sum(1 for i in items if i["elegible"])
    return {
        "totalMaterias": len(items),
        "elegibles": eligible,
        "noElegibles": len(items) - eligible,
    }


def compute_eligibility(student_id: str, semestre: Optional[int] = None) -> dict:
    student_id = require_id(student_id, "student id")
    status_map = build_status_map(fetch_history_for_student(student_id))
    courses = fetch_courses_by_semester(semestre)

    items = [evaluate_course(c, status_map) for c in courses]
    return {"resumen": summarize(items), "items": items}
