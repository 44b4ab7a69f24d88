from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Iterable, List, Mapping, Optional, Tuple, Union

from .horario import parse_time


class Status(str, Enum):
    PENDIENTE = "PENDIENTE"
    EN_CURSO = "EN_CURSO"
    CURSADO = "CURSADO"
    A_EXAMEN = "A_EXAMEN"
    APROBADO = "APROBADO"


# A_EXAMEN means the course was completed and the exam is still pending,
# so it ranks with CURSADO.
STATUS_LEVEL: Dict[Status, int] = {
    Status.PENDIENTE: 0,
    Status.EN_CURSO: 1,
    Status.CURSADO: 2,
    Status.A_EXAMEN: 2,
    Status.APROBADO: 3,
}


class PrereqKind(str, Enum):
    CURSO = "CURSO"
    EXAMEN = "EXAMEN"


class Day(str, Enum):
    LUN = "LUN"
    MAR = "MAR"
    MIE = "MIE"
    JUE = "JUE"
    VIE = "VIE"
    SAB = "SAB"


WEEK_ORDER: Tuple[Day, ...] = tuple(Day)


@dataclass(frozen=True)
class ScheduleSlot:
    dia: Day
    inicio: str
    fin: str

    def __post_init__(self):
        object.__setattr__(self, "dia", Day(self.dia))
        if parse_time(self.inicio) >= parse_time(self.fin):
            raise ValueError(f"Slot start must be before end: {self.inicio}-{self.fin}")

    def as_dict(self) -> dict:
        return {"dia": self.dia.value, "inicio": self.inicio, "fin": self.fin}


@dataclass(frozen=True)
class UnresolvedRef:
    """Prerequisite target known only by id (target course missing from store)."""

    id: str

    def label(self) -> str:
        return self.id

    def as_dict(self):
        return self.id


@dataclass(frozen=True)
class ResolvedRef:
    id: str
    codigo: str
    nombre: str
    semestre: int

    def label(self) -> str:
        return self.codigo or self.id

    def as_dict(self):
        return {"id": self.id, "codigo": self.codigo, "nombre": self.nombre, "semestre": self.semestre}


CourseRef = Union[UnresolvedRef, ResolvedRef]


@dataclass(frozen=True)
class Prerequisite:
    tipo: str
    materia: CourseRef


@dataclass(frozen=True)
class Course:
    id: str
    codigo: str
    nombre: str
    creditos: float
    semestre: int
    previas: Tuple[Prerequisite, ...] = field(default_factory=tuple)
    horarios: Tuple[ScheduleSlot, ...] = field(default_factory=tuple)

    def summary(self) -> dict:
        return {
            "id": self.id,
            "codigo": self.codigo,
            "nombre": self.nombre,
            "semestre": self.semestre,
            "creditos": self.creditos,
        }


@dataclass(frozen=True)
class HistoryEntry:
    usuario: str
    materia: str
    estado: Status
    nota_examen: Optional[float] = None
    fecha: Optional[str] = None


StatusMap = Mapping[str, Status]


def build_status_map(entries: Iterable[HistoryEntry]) -> Dict[str, Status]:
    return {str(e.materia): Status(e.estado) for e in entries}


def status_of(status_map: StatusMap, course_id: str) -> Status:
    """Student's status on a course; PENDIENTE when there is no history entry."""
    return status_map.get(str(course_id), Status.PENDIENTE)


def slots_of(courses: Iterable[Course]) -> List[ScheduleSlot]:
    return [s for c in courses for s in c.horarios]
