"""
Conflict detection across candidate courses.

A conflict exists when two slots on the same day overlap; touching
endpoints (end == start) are not a conflict.
"""

from app.conflicts import find_conflicts, find_day_conflicts
from app.model import Course, ScheduleSlot


def course(cid, *slots):
    return Course(cid, cid.upper(), f"Materia {cid}", 6, 1,
                  horarios=tuple(ScheduleSlot(*s) for s in slots))


def test_overlap_same_day():
    out = find_conflicts([course("a", ("LUN", "18:00", "20:00")), course("b", ("LUN", "19:00", "21:00"))])
    assert len(out["conflictos"]) == 1
    c = out["conflictos"][0]
    assert c["dia"] == "LUN"
    assert c["solapeMinutos"] == 60
    assert c["solape"] == "19:00–20:00"
    assert c["a"] == {"materia": "a", "codigo": "A", "nombre": "Materia a", "inicio": "18:00", "fin": "20:00"}
    assert c["b"]["materia"] == "b"


def test_same_range_different_days_no_conflict():
    out = find_conflicts([course("a", ("LUN", "18:00", "20:00")), course("b", ("MAR", "18:00", "20:00"))])
    assert out["conflictos"] == []


def test_touching_slots_no_conflict():
    out = find_conflicts([course("a", ("MIE", "08:00", "10:00")), course("b", ("MIE", "10:00", "12:00"))])
    assert out["conflictos"] == []


def test_long_slot_overlaps_several_later_ones():
    out = find_conflicts([
        course("long", ("JUE", "08:00", "14:00")),
        course("b", ("JUE", "09:00", "10:00")),
        course("c", ("JUE", "13:00", "15:00")),
    ])
    pairs = [(c["a"]["materia"], c["b"]["materia"], c["solapeMinutos"]) for c in out["conflictos"]]
    assert pairs == [("long", "b", 60), ("long", "c", 60)]


def test_day_slots_sorted_by_start_and_ties_keep_input_order():
    slots = [
        {"materia": "late", "codigo": "L", "nombre": "L", "dia": "VIE", "inicio": "10:00", "fin": "11:00"},
        {"materia": "x", "codigo": "X", "nombre": "X", "dia": "VIE", "inicio": "09:00", "fin": "10:30"},
        {"materia": "y", "codigo": "Y", "nombre": "Y", "dia": "VIE", "inicio": "09:00", "fin": "09:30"},
    ]
    confs = find_day_conflicts(slots)
    assert [(c["a"]["materia"], c["b"]["materia"]) for c in confs] == [("x", "y"), ("x", "late")]
    assert confs[1]["solape"] == "10:00–10:30"


def test_conflicts_follow_week_order():
    out = find_conflicts([
        course("a", ("VIE", "08:00", "10:00"), ("LUN", "08:00", "10:00")),
        course("b", ("VIE", "09:00", "11:00"), ("LUN", "09:00", "11:00")),
    ])
    assert [c["dia"] for c in out["conflictos"]] == ["LUN", "VIE"]


def test_total_hours_does_not_subtract_overlap():
    out = find_conflicts([course("a", ("LUN", "18:00", "20:00")), course("b", ("LUN", "19:00", "21:00"))])
    assert out["totalHoras"] == 4.0


def test_no_courses():
    assert find_conflicts([]) == {"conflictos": [], "totalHoras": 0}
