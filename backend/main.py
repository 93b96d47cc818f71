import base64
import binascii
import logging

from dotenv import load_dotenv

load_dotenv(".env.local"); load_dotenv()  # also loads .env if present

import os  # noqa: E402
from typing import Optional  # noqa: E402

from fastapi import Body, FastAPI, HTTPException, Response  # noqa: E402
from fastapi.middleware.cors import CORSMiddleware  # noqa: E402
from pydantic import BaseModel  # noqa: E402

from template_autofill import (  # noqa: E402
    AutofillError,
    AutofillService,
    OutputBuildError,
    SessionNotFoundError,
    TemplateLoadError,
)

logging.basicConfig(level=os.getenv("LOG_LEVEL", "INFO"))
logger = logging.getLogger(__name__)

app = FastAPI(title="Template Auto-Fill")
app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:8501",
        "http://127.0.0.1:8501",
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "*"
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

autofill_service = AutofillService()


class SessionCreateRequest(BaseModel):
    template_url: Optional[str] = None
    template_base64: Optional[str] = None
    subject: dict = {}
    authority: dict = {}
    meta: dict = {}


class ProfileSessionRequest(BaseModel):
    profile: dict
    subject: dict = {}
    meta: dict = {}


class FieldValueRequest(BaseModel):
    value: str = ""


class PageRequest(BaseModel):
    page: int


class RadioToggleRequest(BaseModel):
    group: str
    option: str


def _decode_template(encoded: Optional[str]) -> Optional[bytes]:
    if encoded is None:
        return None
    try:
        return base64.b64decode(encoded, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise HTTPException(status_code=400, detail="template_base64 is not valid base64") from exc


def _session_or_404(session_id: str):
    try:
        return autofill_service.get_session(session_id)
    except SessionNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc


@app.get("/healthz")
def healthz():
    return {"status": "ok"}


# --- Template auto-fill endpoints ---------------------------------------------


@app.post("/autofill/sessions")
def autofill_create_session(req: SessionCreateRequest):
    try:
        session = autofill_service.create_session(
            subject=req.subject,
            authority=req.authority,
            meta=req.meta,
            template_url=req.template_url,
            template_bytes=_decode_template(req.template_base64),
        )
    except TemplateLoadError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return session.to_dict()


@app.post("/autofill/profile-sessions")
def autofill_create_profile_session(req: ProfileSessionRequest):
    try:
        session = autofill_service.create_session_for_profile(
            req.profile, subject=req.subject, meta=req.meta
        )
    except TemplateLoadError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    return session.to_dict()


@app.get("/autofill/sessions/{session_id}")
def autofill_get_session(session_id: str):
    return _session_or_404(session_id).to_dict()


@app.put("/autofill/sessions/{session_id}/fields/{key:path}")
def autofill_set_field(session_id: str, key: str, req: FieldValueRequest):
    session = _session_or_404(session_id)
    try:
        session.set_field_value(key, req.value)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown field '{key}'") from exc
    return session.to_dict()


@app.post("/autofill/sessions/{session_id}/radios/toggle")
def autofill_toggle_radio(session_id: str, req: RadioToggleRequest):
    session = _session_or_404(session_id)
    try:
        session.toggle_radio(req.group, req.option)
    except KeyError as exc:
        raise HTTPException(status_code=404, detail=f"Unknown radio option {req.group}/{req.option}") from exc
    return session.to_dict()


@app.get("/autofill/sessions/{session_id}/preview")
def autofill_preview(session_id: str, page: Optional[int] = None, filled: bool = False):
    """Render a page without moving the session's current page."""
    session = _session_or_404(session_id)
    try:
        png = session.render_preview(page=page, with_values=filled)
    except IndexError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    except OutputBuildError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    return Response(content=png, media_type="image/png")


@app.post("/autofill/sessions/{session_id}/page")
def autofill_go_to_page(session_id: str, req: PageRequest):
    session = _session_or_404(session_id)
    try:
        session.go_to_page(req.page)
    except IndexError as exc:
        raise HTTPException(status_code=404, detail=str(exc)) from exc
    return session.to_dict()


@app.post("/autofill/sessions/{session_id}/output")
def autofill_build_output(session_id: str):
    """Download the filled PDF for the session."""
    session = _session_or_404(session_id)
    try:
        pdf_bytes = session.build_output()
    except OutputBuildError as exc:
        raise HTTPException(status_code=500, detail=str(exc)) from exc
    except AutofillError as exc:
        raise HTTPException(status_code=409, detail=str(exc)) from exc
    filename = session.suggested_filename()
    headers = {"Content-Disposition": f'attachment; filename="{filename}"'}
    return Response(content=pdf_bytes, media_type="application/pdf", headers=headers)


@app.delete("/autofill/sessions/{session_id}")
def autofill_close_session(session_id: str):
    if not autofill_service.close_session(session_id):
        raise HTTPException(status_code=404, detail=f"Session '{session_id}' not found")
    return {"ok": True}


@app.post("/autofill/sessions/{session_id}/reload")
def autofill_reload(session_id: str, template_url: Optional[str] = Body(None, embed=True),
                    template_base64: Optional[str] = Body(None, embed=True)):
    _session_or_404(session_id)
    try:
        applied = autofill_service.reload_session(
            session_id,
            template_url=template_url,
            template_bytes=_decode_template(template_base64),
        )
    except TemplateLoadError as exc:
        raise HTTPException(status_code=400, detail=str(exc)) from exc
    payload = autofill_service.get_session(session_id).to_dict()
    payload["applied"] = applied
    return payload
