from collections import defaultdict
from typing import Dict, Iterable, List

import numpy as np

from .horario import format_time, overlaps, parse_time, to_hours, total_minutes
from .model import WEEK_ORDER, Course, Day, slots_of


def _descriptor(slot: dict) -> dict:
    return {k: slot[k] for k in ("materia", "codigo", "nombre", "inicio", "fin")}


def find_day_conflicts(day_slots: List[dict]) -> List[dict]:
    """
    Conflicts among slots of a single day.

    Each slot is a dict with materia, codigo, nombre, dia, inicio, fin.
    Sorting is stable, so slots with the same start keep input order.
    """
    starts = np.array([parse_time(s["inicio"]) for s in day_slots], dtype=int)
    ends = np.array([parse_time(s["fin"]) for s in day_slots], dtype=int)
    order = np.argsort(starts, kind="stable")

    conflicts: List[dict] = []
    for pos, i in enumerate(order):
        a1, a2 = int(starts[i]), int(ends[i])
        for j in order[pos + 1:]:
            b1, b2 = int(starts[j]), int(ends[j])
            # sorted by start: once B starts after A ends, no later B can overlap A
            if b1 >= a2:
                break
            if not overlaps(a1, a2, b1, b2):
                continue
            lo, hi = max(a1, b1), min(a2, b2)
            conflicts.append({
                "dia": day_slots[i]["dia"],
                "a": _descriptor(day_slots[i]),
                "b": _descriptor(day_slots[j]),
                "solapeMinutos": hi - lo,
                "solape": f"{format_time(lo)}–{format_time(hi)}",
            })
    return conflicts


def bucket_by_day(courses: Iterable[Course]) -> Dict[Day, List[dict]]:
    buckets: Dict[Day, List[dict]] = defaultdict(list)
    for c in courses:
        for h in c.horarios:
            buckets[h.dia].append({
                "materia": c.id,
                "codigo": c.codigo,
                "nombre": c.nombre,
                "dia": h.dia.value,
                "inicio": h.inicio,
                "fin": h.fin,
            })
    return buckets


def find_conflicts(courses: List[Course]) -> dict:
    # totalHoras sums every declared slot; overlapping time counts once per course
    buckets = bucket_by_day(courses)
    conflicts: List[dict] = []
    for day in WEEK_ORDER:
        if day in buckets:
            conflicts.extend(find_day_conflicts(buckets[day]))

    return {
        "conflictos": conflicts,
        "totalHoras": to_hours(total_minutes(slots_of(courses))),
    }
