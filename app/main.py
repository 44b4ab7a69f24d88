import uuid

import uvicorn
from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.responses import JSONResponse, RedirectResponse, Response
from typing import Any, Dict, Optional

from .auth import current_user_id
from .credits import compute_credits
from .db import init_db
from .eligibility import compute_eligibility
from .errors import InvalidArgument, NotFound
from .logger import log_event, log_payload
from .schemas import (
    CourseInput,
    CourseUpdateInput,
    EligibilityOutput,
    HistoryUpsertInput,
    PrerequisiteInput,
    PrerequisiteRemoveInput,
    SelectionInput,
    SelectionOutput,
    SlotInput,
)
from .selection import verify_selection
from .store import (
    add_prerequisite,
    add_slot,
    create_course,
    delete_course,
    fetch_course,
    fetch_courses_by_semester,
    list_all_history,
    list_history,
    remove_prerequisite,
    remove_slot,
    update_course,
    upsert_history,
)

app = FastAPI(title="Course Eligibility API", version="1.0.0")

# Initialize DB at import time
init_db()


@app.middleware("http")
async def request_id(request: Request, call_next):
    request.state.request_id = str(uuid.uuid4())
    response = await call_next(request)
    response.headers["X-Request-Id"] = request.state.request_id
    return response


def _run(request: Request, route: str, payload_in: Dict[str, Any], fn):
    """
    Log the incoming payload, run fn, log the outcome.
    InvalidArgument -> 400, NotFound -> 404, anything else -> 500.
    """
    req_id = request.state.request_id
    log_payload("in", {"route": route, **payload_in}, req_id)
    try:
        result = fn()
    except InvalidArgument as e:
        log_payload("out", {"route": route, "error": str(e), "status": 400}, req_id)
        raise HTTPException(status_code=400, detail=str(e))
    except NotFound as e:
        log_payload("out", {"route": route, "error": str(e), "status": 404}, req_id)
        raise HTTPException(status_code=404, detail=str(e))
    except Exception as e:
        # Still log a structured error output
        log_payload("out", {"route": route, "error": f"Internal error: {e}", "status": 500}, req_id)
        raise HTTPException(status_code=500, detail="Internal Server Error")
    return result


# --- Convenience routes ---
@app.get("/", include_in_schema=False)
def home():
    return RedirectResponse(url="/docs", status_code=307)

@app.get("/health", include_in_schema=False)
def health():
    return {"status": "healthy"}

@app.get("/favicon.ico", include_in_schema=False)
def favicon():
    # Avoid 404 log spam from browsers requesting a favicon.
    return Response(status_code=204)
# --- End convenience routes ---


@app.get("/elegibilidad", response_model=EligibilityOutput)
async def get_elegibilidad(
    request: Request,
    semestre: Optional[int] = Query(default=None, ge=1),
    user_id: str = Depends(current_user_id),
):
    result = _run(request, "elegibilidad", {"userId": user_id, "semestre": semestre},
                  lambda: compute_eligibility(user_id, semestre))
    log_payload("out", {"route": "elegibilidad", "resumen": result["resumen"]}, request.state.request_id)
    log_event("elegibilidad:consultada", {"userId": user_id, "filtros": {"semestre": semestre}},
              request.state.request_id)
    return JSONResponse(content=result)


@app.post("/seleccion/verificar", response_model=SelectionOutput)
async def verificar_seleccion(
    request: Request,
    payload: SelectionInput,
    user_id: str = Depends(current_user_id),
):
    payload_dict: Dict[str, Any] = payload.model_dump()
    result = _run(request, "seleccion", {"userId": user_id, **payload_dict},
                  lambda: verify_selection(user_id, payload_dict["materias"]))
    log_payload("out", {"route": "seleccion", "resumen": result["resumen"]}, request.state.request_id)
    log_event("seleccion:verificada", {"userId": user_id, "resumen": result["resumen"]},
              request.state.request_id)
    return JSONResponse(content=result)


@app.get("/creditos")
async def get_creditos(
    request: Request,
    estados: Optional[str] = Query(default=None, description="Comma separated states, default APROBADO"),
    hastaSemestre: Optional[int] = Query(default=None, ge=1),
    user_id: str = Depends(current_user_id),
):
    result = _run(request, "creditos", {"userId": user_id, "estados": estados, "hastaSemestre": hastaSemestre},
                  lambda: compute_credits(user_id, estados, hastaSemestre))
    log_payload("out", {"route": "creditos", "totalCreditos": result["totalCreditos"]}, request.state.request_id)
    return JSONResponse(content=result)


def _course_body(course) -> dict:
    return {
        **course.summary(),
        "horarios": [h.as_dict() for h in course.horarios],
        "previas": [{"tipo": p.tipo, "materia": p.materia.as_dict()} for p in course.previas],
    }


@app.post("/api/materias", status_code=201)
async def crear_materia(request: Request, payload: CourseInput):
    payload_dict: Dict[str, Any] = payload.model_dump(mode="json")
    course = _run(request, "materias", payload_dict, lambda: create_course(payload_dict))
    log_event("materia:creada", {"materiaId": course.id}, request.state.request_id)
    return JSONResponse(status_code=201, content=_course_body(course))


@app.get("/api/materias")
async def listar_materias(semestre: Optional[int] = Query(default=None, ge=1)):
    return [_course_body(c) for c in fetch_courses_by_semester(semestre)]


@app.get("/api/materias/{materia_id}")
async def ver_materia(request: Request, materia_id: str):
    course = _run(request, "materias", {"materiaId": materia_id}, lambda: fetch_course(materia_id))
    return _course_body(course)


@app.put("/api/materias/{materia_id}")
async def actualizar_materia(request: Request, materia_id: str, payload: CourseUpdateInput):
    changes: Dict[str, Any] = payload.model_dump(mode="json", exclude_unset=True)
    course = _run(request, "materias", {"materiaId": materia_id, **changes},
                  lambda: update_course(materia_id, changes))
    log_event("materia:actualizada", {"materiaId": course.id}, request.state.request_id)
    return _course_body(course)


@app.delete("/api/materias/{materia_id}", status_code=204)
async def eliminar_materia(request: Request, materia_id: str):
    _run(request, "materias", {"materiaId": materia_id, "action": "delete"}, lambda: delete_course(materia_id))
    log_event("materia:eliminada", {"materiaId": materia_id}, request.state.request_id)
    return Response(status_code=204)


@app.post("/api/materias/{materia_id}/previas")
async def agregar_previa(request: Request, materia_id: str, payload: PrerequisiteInput):
    p = payload.model_dump(mode="json")
    course = _run(request, "previas", {"materiaId": materia_id, **p},
                  lambda: add_prerequisite(materia_id, p["tipo"], p["materia"]))
    return _course_body(course)


@app.delete("/api/materias/{materia_id}/previas")
async def quitar_previa(request: Request, materia_id: str, payload: PrerequisiteRemoveInput):
    p = payload.model_dump(mode="json")
    course = _run(request, "previas", {"materiaId": materia_id, "action": "delete", **p},
                  lambda: remove_prerequisite(materia_id, p["materia"], p["tipo"]))
    return _course_body(course)


@app.post("/api/materias/{materia_id}/horarios")
async def agregar_horario(request: Request, materia_id: str, payload: SlotInput):
    h = payload.model_dump(mode="json")
    course = _run(request, "horarios", {"materiaId": materia_id, **h},
                  lambda: add_slot(materia_id, h["dia"], h["inicio"], h["fin"]))
    return _course_body(course)


@app.delete("/api/materias/{materia_id}/horarios")
async def quitar_horario(request: Request, materia_id: str, payload: SlotInput):
    h = payload.model_dump(mode="json")
    course = _run(request, "horarios", {"materiaId": materia_id, "action": "delete", **h},
                  lambda: remove_slot(materia_id, h["dia"], h["inicio"], h["fin"]))
    return _course_body(course)


@app.post("/api/historial/upsert")
async def historial_upsert(
    request: Request,
    payload: HistoryUpsertInput,
    user_id: str = Depends(current_user_id),
):
    p = payload.model_dump(mode="json")
    row = _run(request, "historial", {"userId": user_id, **p},
               lambda: upsert_history(user_id, p["materia"], p["estado"], p["notaExamen"], p["fecha"]))
    log_event("historial:actualizado",
              {"usuarioId": row["usuario"], "materiaId": row["materia"]["id"], "estado": row["estado"]},
              request.state.request_id)
    return JSONResponse(content=row)


@app.get("/api/historial")
async def historial_list():
    return list_all_history()


@app.get("/api/historial/usuario/{usuario_id}")
async def historial_by_usuario(request: Request, usuario_id: str):
    return _run(request, "historial", {"usuarioId": usuario_id}, lambda: list_history(usuario_id))


if __name__ == "__main__":
    uvicorn.run("app.main:app", host="0.0.0.0", port=8000, reload=False)
