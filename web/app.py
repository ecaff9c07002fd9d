"""
FastAPI web application for ResumeMatch.
Users and master resumes, application tracking, AI tailoring with streaming
progress, local ATS scoring, job import, DOCX export and the extension channel.
"""

import json
import os
from functools import lru_cache
from pathlib import Path
from typing import Callable, List, Optional

import pydantic
from fastapi import Depends, FastAPI, File, Form, HTTPException, Query, Request, UploadFile
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response, StreamingResponse
from loguru import logger

from resumematch import __version__
from resumematch.config import Settings, load_settings
from resumematch.exceptions import NotFound, ServiceUnavailable, ValidationError
from resumematch.extractor import job_from_text
from resumematch.generator import generate_resume_docx, resume_filename
from resumematch.job_page import fetch_job_posting
from resumematch.llm import AnthropicClient
from resumematch.logger import setup_logger
from resumematch.messages import ExtensionMessage, build_extension_channel
from resumematch.models import (
    ApplicationRecord,
    ApplicationStatus,
    CamelModel,
    JobDescription,
    ResumeData,
    User,
)
from resumematch.resume_parser import ensure_valid, extract_docx_text, parse_resume_text, validate_resume
from resumematch.scorer import ATS_FRIENDLY_FORMATTING, analyze_ats_compatibility
from resumematch.storage import ApplicationStore, build_store
from resumematch.tailor import ResumeTailor

app = FastAPI(title="ResumeMatch", version=__version__)


# === Dependencies ===

@lru_cache()
def get_settings() -> Settings:
    settings = load_settings()
    setup_logger(settings.log_level, settings.log_dir)
    return settings


@lru_cache()
def get_store() -> ApplicationStore:
    return ApplicationStore(build_store(get_settings().storage_path))


def get_tailor_factory(settings: Settings = Depends(get_settings)) -> Callable[[], ResumeTailor]:
    """Builds tailors lazily so routes that may not need the model don't require an API key."""

    def factory() -> ResumeTailor:
        client = AnthropicClient(
            api_key=settings.anthropic_api_key,
            model=settings.model,
            max_tokens=settings.max_tokens,
        )
        return ResumeTailor(client)

    return factory


def get_tailor(factory: Callable[[], ResumeTailor] = Depends(get_tailor_factory)) -> ResumeTailor:
    return factory()


# === Error handling ===

@app.exception_handler(ValidationError)
async def resume_validation_handler(request: Request, exc: ValidationError):
    return JSONResponse(status_code=400, content={"detail": str(exc), "errors": exc.errors})


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(status_code=400, content={"detail": jsonable_encoder(exc.errors())})


@app.exception_handler(NotFound)
async def not_found_handler(request: Request, exc: NotFound):
    return JSONResponse(status_code=404, content={"detail": str(exc)})


@app.exception_handler(ServiceUnavailable)
async def service_unavailable_handler(request: Request, exc: ServiceUnavailable):
    return JSONResponse(status_code=503, content={"detail": str(exc), "retryable": True})


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.opt(exception=exc).error(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(status_code=500, content={"detail": str(exc)})


@app.exception_handler(ValueError)
async def value_error_handler(request: Request, exc: ValueError):
    """Only a missing API key is the caller's problem; other ValueErrors are server faults."""
    if "ANTHROPIC_API_KEY" in str(exc):
        return JSONResponse(status_code=400, content={"detail": "ANTHROPIC_API_KEY not set"})
    return await unhandled_error_handler(request, exc)


# === Request models ===

class StatusUpdateRequest(CamelModel):
    status: ApplicationStatus


class TailorRequest(CamelModel):
    job_description: str
    resume: Optional[ResumeData] = None
    user_id: Optional[str] = None


class ATSScoreRequest(CamelModel):
    resume: ResumeData
    job: Optional[JobDescription] = None
    job_description: Optional[str] = None


class URLImportRequest(CamelModel):
    url: str


class ExportRequest(CamelModel):
    resume: ResumeData
    company: str = ""
    job_title: str = ""


def resolve_master_resume(request: TailorRequest, store: ApplicationStore) -> ResumeData:
    """The resume sent with the request, or the user's stored master resume."""
    if request.resume is not None:
        return request.resume
    if not request.user_id:
        raise HTTPException(status_code=400, detail="Either resume or userId is required")

    resume = store.get_resume(request.user_id)
    if resume is None:
        raise HTTPException(status_code=400, detail="No master resume found. Please upload one first.")
    return resume


# === Routes ===

@app.get("/api/health")
async def health_check(settings: Settings = Depends(get_settings)):
    return {
        "status": "healthy",
        "version": __version__,
        "ai_enabled": settings.ai_enabled,
        "features": ["tailoring", "streaming", "ats_score", "url_import", "resume_parse",
                     "docx_export", "applications", "extension"]
    }


@app.post("/api/users", status_code=201)
async def create_user(user: User, store: ApplicationStore = Depends(get_store)):
    """Create a user, or update the fields sent for an existing one."""
    return store.save_user(user).to_json_dict()


@app.get("/api/users/{user_id}/resume")
async def get_user_resume(user_id: str, store: ApplicationStore = Depends(get_store)):
    resume = store.get_resume(user_id)
    return {"resume": resume.to_json_dict() if resume else None}


@app.post("/api/users/{user_id}/resume")
async def save_user_resume(user_id: str, resume: ResumeData,
                           store: ApplicationStore = Depends(get_store)):
    user = store.save_resume(user_id, resume)
    return {"success": True, "user": user.to_json_dict(), "errors": validate_resume(resume)}


@app.post("/api/applications", status_code=201)
async def create_application(record: ApplicationRecord, store: ApplicationStore = Depends(get_store)):
    return store.save(record).to_json_dict()


@app.get("/api/applications")
async def list_applications(user_id: Optional[str] = Query(None, alias="userId"),
                            store: ApplicationStore = Depends(get_store)):
    if not user_id:
        raise HTTPException(status_code=400, detail="userId is required")
    return [record.to_json_dict() for record in store.list_by_user(user_id)]


@app.get("/api/applications/{app_id}")
async def get_application(app_id: str, store: ApplicationStore = Depends(get_store)):
    return store.get_application(app_id).to_json_dict()


@app.patch("/api/applications/{app_id}")
async def update_application_status(app_id: str, request: StatusUpdateRequest,
                                    store: ApplicationStore = Depends(get_store)):
    return store.update_status(app_id, request.status).to_json_dict()


@app.post("/api/tailor/stream")
async def tailor_resume_stream(request: TailorRequest,
                               store: ApplicationStore = Depends(get_store),
                               tailor: ResumeTailor = Depends(get_tailor)):
    """Streaming AI tailoring with real-time progress updates via SSE."""
    master = resolve_master_resume(request, store)
    ensure_valid(master)

    async def generate_events():
        try:
            async for update in tailor.tailor_with_progress(master, request.job_description):
                if update.get("step") == "result":
                    final_data = {"step": "result", **update["result"].to_dict()}
                    yield f"data: {json.dumps(final_data)}\n\n"
                else:
                    yield f"data: {json.dumps(update)}\n\n"

        except ServiceUnavailable as e:
            yield f"data: {json.dumps({'step': 'error', 'message': str(e), 'retryable': True})}\n\n"
        except Exception as e:
            logger.opt(exception=e).error("Tailoring stream failed")
            yield f"data: {json.dumps({'step': 'error', 'message': str(e)})}\n\n"

    return StreamingResponse(
        generate_events(),
        media_type="text/event-stream",
        headers={
            "Cache-Control": "no-cache",
            "Connection": "keep-alive",
            "X-Accel-Buffering": "no"
        }
    )


@app.post("/api/tailor")
async def tailor_resume(request: TailorRequest,
                        store: ApplicationStore = Depends(get_store),
                        tailor: ResumeTailor = Depends(get_tailor)):
    """Full AI tailoring (non-streaming)."""
    master = resolve_master_resume(request, store)
    result = await tailor.tailor(master, request.job_description)
    return result.to_dict()


@app.post("/api/analyze-job")
async def analyze_job(job_description: str = Form(...),
                      title: str = Form("Unknown Position"),
                      company: str = Form("Unknown Company"),
                      url: Optional[str] = Form(None)):
    """Offline keyword extraction; no language model involved."""
    job = job_from_text(job_description, title=title, company=company, url=url)
    return job.to_json_dict()


@app.post("/api/ats-score")
async def ats_score(request: ATSScoreRequest):
    """Deterministic ATS score of a resume against a job."""
    job = request.job
    if job is None:
        if not request.job_description:
            raise HTTPException(status_code=400, detail="Either job or jobDescription is required")
        job = job_from_text(request.job_description)
    return analyze_ats_compatibility(request.resume, job).to_json_dict()


@app.get("/api/ats-tips")
async def ats_tips():
    return {"tips": ATS_FRIENDLY_FORMATTING}


@app.post("/api/import-url")
async def import_job_url(request: URLImportRequest):
    """Import job description from URL."""
    try:
        posting = await fetch_job_posting(request.url)
    except ServiceUnavailable as e:
        raise HTTPException(status_code=400, detail=e.message)

    return {
        "success": True,
        "jobDescription": posting.text,
        "url": posting.url,
        "job": posting.job.to_json_dict() if posting.job else None,
    }


@app.post("/api/resume/parse")
async def parse_resume(file: UploadFile = File(...)):
    """Parse an uploaded DOCX/TXT/JSON resume and report what is missing."""
    filename = file.filename or ""
    ext = Path(filename).suffix.lower()
    content = await file.read()

    if ext == ".docx":
        resume = parse_resume_text(extract_docx_text(content))
    elif ext in (".txt", ".md"):
        resume = parse_resume_text(content.decode("utf-8", errors="ignore"))
    elif ext == ".json":
        try:
            resume = ResumeData.model_validate_json(content)
        except pydantic.ValidationError as e:
            raise HTTPException(status_code=400, detail=f"Invalid resume JSON ({e.error_count()} errors)")
    else:
        raise HTTPException(status_code=400, detail=f"Unsupported file type: {ext or filename}. Use DOCX/TXT/JSON")

    errors: List[str] = validate_resume(resume)
    return {"resume": resume.to_json_dict(), "errors": errors, "isValid": not errors}


@app.post("/api/export/docx")
async def export_docx(request: ExportRequest):
    """Export resume as a Word document."""
    company = request.company or "Unknown"
    job_title = request.job_title or "Position"
    filename = resume_filename(company, job_title)
    return Response(
        content=generate_resume_docx(request.resume, company, job_title),
        media_type="application/vnd.openxmlformats-officedocument.wordprocessingml.document",
        headers={"Content-Disposition": f"attachment; filename={filename}"}
    )


@app.post("/api/extension/message")
async def extension_message(message: ExtensionMessage,
                            store: ApplicationStore = Depends(get_store),
                            tailor_factory: Callable[[], ResumeTailor] = Depends(get_tailor_factory)):
    """Single entry point for the browser extension's typed messages."""
    channel = build_extension_channel(store, tailor_factory)
    response = await channel.dispatch(message)
    return response.to_json_dict()


def serve() -> None:
    import uvicorn
    uvicorn.run(app, host=os.environ.get("HOST", "0.0.0.0"), port=int(os.environ.get("PORT", "8000")))


if __name__ == "__main__":
    serve()
