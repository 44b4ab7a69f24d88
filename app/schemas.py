from pydantic import BaseModel, Field, field_validator
from typing import Any, Dict, List, Optional

from .horario import is_time
from .model import Day, PrereqKind, Status

class SlotInput(BaseModel):
    dia: Day
    inicio: str = Field(..., description="HH:MM, 24h")
    fin: str = Field(..., description="HH:MM, 24h")

    @field_validator("inicio", "fin")
    @classmethod
    def check_time(cls, v):
        if not is_time(v):
            raise ValueError("must be HH:MM (00:00-23:59)")
        return v

class PrerequisiteInput(BaseModel):
    tipo: PrereqKind
    materia: str

class CourseInput(BaseModel):
    codigo: str = Field(..., min_length=1)
    nombre: str = Field(..., min_length=1)
    creditos: float = Field(..., ge=0)
    semestre: int = Field(..., ge=1)
    horarios: List[SlotInput] = []
    previas: List[PrerequisiteInput] = []

class HistoryUpsertInput(BaseModel):
    materia: str
    estado: Status
    notaExamen: Optional[float] = Field(default=None, ge=0, le=12)
    fecha: Optional[str] = None

class SelectionInput(BaseModel):
    materias: Any = Field(..., description="List of course ids")

class EligibilityOutput(BaseModel):
    resumen: Dict[str, int]
    items: list

class SelectionOutput(BaseModel):
    resumen: Dict[str, Any]
    conflictos: list
    materias: list
    noEncontradas: list

class CourseUpdateInput(BaseModel):
    codigo: Optional[str] = Field(default=None, min_length=1)
    nombre: Optional[str] = Field(default=None, min_length=1)
    creditos: Optional[float] = Field(default=None, ge=0)
    semestre: Optional[int] = Field(default=None, ge=1)
    horarios: Optional[List[SlotInput]] = None
    previas: Optional[List[PrerequisiteInput]] = None

class PrerequisiteRemoveInput(BaseModel):
    materia: str
    tipo: Optional[PrereqKind] = None
