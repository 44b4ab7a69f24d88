import uuid

import pytest

from app.errors import InvalidArgument
from app.selection import normalize_ids, verify_selection
from app.store import upsert_history


def test_normalize_ids_dedupes_and_filters():
    a, b = str(uuid.uuid4()), str(uuid.uuid4())
    assert normalize_ids([a, "junk", b, a, 3]) == [a, b]


@pytest.mark.parametrize("raw", [[], None, "abc", {"a": 1}, ["junk", 42]])
def test_normalize_ids_rejects_unusable_input(raw):
    with pytest.raises(InvalidArgument):
        normalize_ids(raw)


def test_verify_selection_report(make_course, student_id):
    base = make_course("MAT101", horarios=[("LUN", "08:00", "10:00")])
    calc = make_course("MAT201", semestre=2, previas=[("EXAMEN", base)],
                       horarios=[("LUN", "18:00", "20:00"), ("MIE", "18:00", "19:30")])
    prog = make_course("PRG201", semestre=2, previas=[("CURSO", base)],
                       horarios=[("LUN", "19:00", "21:00")])
    upsert_history(student_id, base.id, "CURSADO")

    out = verify_selection(student_id, [prog.id, calc.id])

    assert [m["materia"]["codigo"] for m in out["materias"]] == ["PRG201", "MAT201"]
    assert out["resumen"] == {
        "seleccionadas": 2,
        "elegibles": 1,
        "noElegibles": 1,
        "conflictos": 1,
        "cargaHoras": 5.5,
    }
    conflict = out["conflictos"][0]
    assert conflict["dia"] == "LUN"
    assert conflict["a"]["codigo"] == "MAT201"
    assert conflict["b"]["codigo"] == "PRG201"
    assert conflict["solapeMinutos"] == 60
    assert conflict["solape"] == "19:00–20:00"

    mat201 = out["materias"][1]
    assert mat201["elegible"] is False
    assert mat201["motivos"] == ["Falta APROBAR EXAMEN de la previa: MAT101"]
    assert mat201["horarios"] == [
        {"dia": "LUN", "inicio": "18:00", "fin": "20:00"},
        {"dia": "MIE", "inicio": "18:00", "fin": "19:30"},
    ]
    assert mat201["cargaHorasMateria"] == 3.5
    assert out["noEncontradas"] == []


def test_course_load_per_course(make_course, student_id):
    c = make_course("LAB100", horarios=[("MAR", "08:00", "09:30"), ("JUE", "10:00", "10:45")])
    out = verify_selection(student_id, [c.id])
    assert out["materias"][0]["cargaHorasMateria"] == 2.25
    assert out["resumen"]["cargaHoras"] == 2.25


def test_duplicate_ids_behave_like_single(make_course, student_id):
    c = make_course("MAT101", horarios=[("LUN", "08:00", "10:00")])
    assert verify_selection(student_id, [c.id, c.id]) == verify_selection(student_id, [c.id])


def test_unknown_ids_reported_separately(make_course, student_id):
    c = make_course("MAT101")
    ghost = str(uuid.uuid4())
    out = verify_selection(student_id, [ghost, c.id])
    assert out["resumen"]["seleccionadas"] == 1
    assert out["noEncontradas"] == [ghost]


def test_verify_selection_rejects_bad_student(make_course):
    c = make_course("MAT101")
    with pytest.raises(InvalidArgument):
        verify_selection("nope", [c.id])


def test_same_id_in_other_spellings_is_one_course(make_course, student_id):
    c = make_course("MAT101", horarios=[("LUN", "08:00", "10:00")])
    spellings = [c.id.upper(), c.id.replace("-", ""), "{%s}" % c.id, "urn:uuid:" + c.id]
    out = verify_selection(student_id, spellings)
    assert out["resumen"]["seleccionadas"] == 1
    assert out["noEncontradas"] == []
    assert out["materias"][0]["materia"]["id"] == c.id
    assert out == verify_selection(student_id, [c.id])


def test_student_id_spelling_does_not_hide_history(make_course, student_id):
    base = make_course("MAT101")
    nxt = make_course("MAT201", semestre=2, previas=[("EXAMEN", base)])
    upsert_history(student_id, base.id, "APROBADO")
    out = verify_selection(student_id.upper(), [nxt.id])
    assert out["resumen"]["elegibles"] == 1
