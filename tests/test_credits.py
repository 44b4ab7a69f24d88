import pytest

from app.credits import compute_credits, normalize_states
from app.errors import InvalidArgument
from app.store import upsert_history


def test_normalize_states():
    assert normalize_states("cursado, APROBADO,bogus") == ["CURSADO", "APROBADO"]
    assert normalize_states(["bogus"]) == ["APROBADO"]
    assert normalize_states(None) == ["APROBADO"]


def test_credits_sum_approved_only_by_default(make_course, student_id):
    a = make_course("MAT101", creditos=8)
    b = make_course("FIS101", creditos=6)
    c = make_course("MAT201", semestre=2, creditos=10)
    upsert_history(student_id, a.id, "APROBADO", nota_examen=9, fecha="2025-07-10")
    upsert_history(student_id, b.id, "CURSADO")
    upsert_history(student_id, c.id, "APROBADO")

    out = compute_credits(student_id)
    assert out["totalCreditos"] == 18
    assert [d["codigo"] for d in out["detalle"]] == ["MAT101", "MAT201"]
    assert out["detalle"][0]["fecha"] == "2025-07-10"
    assert out["detalle"][1]["fecha"] is None


def test_credits_with_states_and_semester_limit(make_course, student_id):
    a = make_course("MAT101", creditos=8)
    b = make_course("FIS101", creditos=6)
    c = make_course("MAT201", semestre=2, creditos=10)
    upsert_history(student_id, a.id, "APROBADO")
    upsert_history(student_id, b.id, "CURSADO")
    upsert_history(student_id, c.id, "CURSADO")

    out = compute_credits(student_id, "CURSADO,APROBADO", hasta_semestre=1)
    assert out["totalCreditos"] == 14
    assert [d["codigo"] for d in out["detalle"]] == ["FIS101", "MAT101"]


def test_credits_empty_history(student_id):
    assert compute_credits(student_id) == {"totalCreditos": 0, "detalle": []}


def test_credits_bad_student():
    with pytest.raises(InvalidArgument):
        compute_credits("123")
