"""FastAPI application exposing caption segmentation and burn-in renders.

WHY: Other tools (automation flows, a web front end, curl scripts) need to
segment transcripts and render captioned videos without running the CLI
on the same machine. FastAPI gives request validation, background tasks
and OpenAPI docs for free.

HOW: POST /renders accepts a multipart upload of the video plus the
caption project JSON, creates a job and renders it in the background
through RenderOrchestrator.render_tracks(). Clients poll
GET /renders/{id}, download the result, or DELETE the job (which also
cancels a running render). POST /segment is synchronous.

RULES:
- Error responses use a consistent ErrorResponse schema
- Video extension is checked against SUPPORTED_VIDEO_FORMATS (400)
- Invalid project JSON or resolution -> 422 / 400 before a job is created
- Too many jobs -> 429; download before completion -> 409
- One shared encoder; one orchestrator per job
- Python 3.9+ compatible (no match/case, no PEP 604 unions)
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Annotated, List, Optional

from fastapi import BackgroundTasks, FastAPI, File, Form, HTTPException, UploadFile
from fastapi.responses import FileResponse, Response

from caption_formats import Word, resolve_preset, segment, serialize_srt

from captioner import __version__, config
from captioner.core.project import CaptionProject, ProjectFileError, loads_project
from captioner.render import (
    Encoder,
    RenderOrchestrator,
    RenderState,
    Resolution,
)
from captioner.server.jobs import Job, JobStatus, JobStore
from captioner.server.models import (
    CueOut,
    ErrorResponse,
    HealthResponse,
    RenderCreatedResponse,
    RenderJobResponse,
    ResolutionInfo,
    SegmentRequest,
    SegmentResponse,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# App and store setup
# ---------------------------------------------------------------------------

job_store = JobStore()

_encoder: Optional[Encoder] = None


def get_encoder() -> Encoder:
    """The process-wide encoder, created from config on first use."""
    global _encoder
    if _encoder is None:
        _encoder = config.create_encoder(font_config=config.create_font_config())
    return _encoder


async def _periodic_cleanup() -> None:
    """Run job cleanup every 5 minutes."""
    while True:
        await asyncio.sleep(300)
        job_store.cleanup_expired()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Start periodic cleanup on startup, cancel on shutdown."""
    task = asyncio.create_task(_periodic_cleanup())
    yield
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass


app = FastAPI(
    lifespan=lifespan,
    title="Captioner API",
    description=(
        "Segment speech-to-text word lists into captions and burn "
        "multi-language captions into videos with ffmpeg. Submit a render, "
        "poll for progress, and download the captioned video."
    ),
    version=__version__,
    docs_url="/docs",
    redoc_url="/redoc",
)

_STATE_TO_STATUS = {
    RenderState.PROBING_INPUT: JobStatus.PROBING,
    RenderState.ENCODING: JobStatus.ENCODING,
}


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _job_to_response(job: Job) -> RenderJobResponse:
    return RenderJobResponse(
        id=job.id,
        status=job.status.value,
        filename=job.filename,
        progress=job.progress,
        created_at=job.created_at,
        target_resolution=job.config.get("target_resolution", Resolution.ORIGINAL.value),
        languages=job.config.get("languages", []),
        error=job.error,
        log=job.log,
        output_file=job.output_file,
    )


def _validate_video_extension(filename: str) -> None:
    ext = Path(filename).suffix.lower()
    if ext not in config.SUPPORTED_VIDEO_FORMATS:
        raise HTTPException(
            status_code=400,
            detail="Unsupported file type '{}'. Supported formats: {}".format(
                ext, ", ".join(sorted(config.SUPPORTED_VIDEO_FORMATS))
            ),
        )


def _output_filename(filename: str) -> str:
    path = Path(filename)
    return "{}.captioned{}".format(path.stem, path.suffix)


def _run_render(job_id: str, store: JobStore, project: CaptionProject) -> None:
    """Render one job to a terminal status.

    WHY: This is the background task behind POST /renders. It runs in
    FastAPI's threadpool, so the blocking encode does not stall the event
    loop.

    RULES:
    - State transitions and progress are mirrored into the store
    - Any unexpected exception marks the job failed
    """
    job = store.get_job(job_id)
    if job is None:
        return

    def on_state(state: RenderState) -> None:
        status = _STATE_TO_STATUS.get(state)
        if status is not None:
            store.update_job(job_id, status=status)

    def on_progress(fraction: float) -> None:
        store.update_job(job_id, progress=fraction)

    output_name = _output_filename(job.filename)

    try:
        orchestrator = RenderOrchestrator(get_encoder(), on_state=on_state)
        result = orchestrator.render_tracks(
            project.track_specs(),
            input_path=job.work_dir / job.filename,
            output_path=job.work_dir / output_name,
            work_dir=job.work_dir,
            target_resolution=job.config.get("target_resolution", Resolution.ORIGINAL.value),
            progress_sink=on_progress,
            cancel_event=job.cancel_event,
        )
    except Exception as exc:
        logger.exception("Render failed for job %s", job_id)
        store.update_job(job_id, status=JobStatus.FAILED, error=str(exc))
        return

    if result.success:
        store.update_job(job_id, status=JobStatus.COMPLETED, progress=1.0, output_file=output_name)
    elif job.cancel_event.is_set():
        store.update_job(job_id, status=JobStatus.CANCELLED, error=result.status)
    else:
        store.update_job(job_id, status=JobStatus.FAILED, error=result.status, log=result.log)


# ---------------------------------------------------------------------------
# Endpoints: Renders
# ---------------------------------------------------------------------------


@app.post(
    "/renders",
    response_model=RenderCreatedResponse,
    status_code=201,
    tags=["renders"],
    summary="Submit a render job",
    description=(
        "Upload a video and a caption project (JSON). Returns a job ID "
        "immediately; the render runs in the background. Poll "
        "GET /renders/{id} for progress."
    ),
    responses={
        400: {"model": ErrorResponse, "description": "Invalid file type or resolution"},
        422: {"model": ErrorResponse, "description": "Invalid caption project"},
        429: {"model": ErrorResponse, "description": "Too many jobs"},
    },
)
async def create_render(
    background_tasks: BackgroundTasks,
    file: Annotated[
        UploadFile,
        File(description="Video file to burn captions into."),
    ],
    project: Annotated[
        str,
        Form(description="Caption project JSON (tracks, styles, original language)."),
    ],
    target_resolution: Annotated[
        str,
        Form(description="Output resolution: original, 4k, 1440p, 1080p, 720p, 480p."),
    ] = config.DEFAULT_RESOLUTION,
) -> RenderCreatedResponse:
    # Sanitize filename to prevent path traversal
    filename = Path(file.filename or "upload.mp4").name
    _validate_video_extension(filename)

    try:
        resolution = Resolution.parse(target_resolution)
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    try:
        caption_project = loads_project(project)
    except ProjectFileError as exc:
        raise HTTPException(status_code=422, detail=str(exc))
    if not any(caption_project.tracks.values()):
        raise HTTPException(status_code=422, detail="Caption project has no cues to render")

    job_config = {
        "target_resolution": resolution.value,
        "languages": list(caption_project.tracks.keys()),
    }

    try:
        job = job_store.create_job(filename=filename, config=job_config)
    except ValueError as exc:
        raise HTTPException(status_code=429, detail=str(exc))

    content = await file.read()
    (job.work_dir / filename).write_bytes(content)

    background_tasks.add_task(_run_render, job.id, job_store, caption_project)

    return RenderCreatedResponse(id=job.id, status=job.status.value, filename=job.filename)


@app.get(
    "/renders/{job_id}",
    response_model=RenderJobResponse,
    tags=["renders"],
    summary="Get render job status",
    responses={404: {"model": ErrorResponse, "description": "Job not found"}},
)
async def get_render(job_id: str) -> RenderJobResponse:
    job = job_store.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found: {}".format(job_id))
    return _job_to_response(job)


@app.get(
    "/renders/{job_id}/download",
    tags=["renders"],
    summary="Download the captioned video",
    responses={
        404: {"model": ErrorResponse, "description": "Job or file not found"},
        409: {"model": ErrorResponse, "description": "Job not yet completed"},
    },
)
async def download_render(job_id: str) -> FileResponse:
    job = job_store.get_job(job_id)
    if job is None:
        raise HTTPException(status_code=404, detail="Job not found: {}".format(job_id))

    if job.status != JobStatus.COMPLETED or not job.output_file:
        raise HTTPException(
            status_code=409,
            detail="Job is not completed (current status: {}).".format(job.status.value),
        )

    path = job.work_dir / job.output_file
    if not path.is_file():
        raise HTTPException(status_code=404, detail="Rendered file missing on disk.")

    return FileResponse(path, media_type=_infer_media_type(path.name), filename=path.name)


@app.delete(
    "/renders/{job_id}",
    status_code=204,
    tags=["renders"],
    summary="Cancel and delete a render job",
    description="Stops a running render, then deletes the job and all its files.",
    responses={404: {"model": ErrorResponse, "description": "Job not found"}},
)
async def delete_render(job_id: str) -> Response:
    if not job_store.delete_job(job_id):
        raise HTTPException(status_code=404, detail="Job not found: {}".format(job_id))
    return Response(status_code=204)


# ---------------------------------------------------------------------------
# Endpoints: Captions
# ---------------------------------------------------------------------------


@app.post(
    "/segment",
    response_model=SegmentResponse,
    tags=["captions"],
    summary="Segment words into caption cues",
    responses={400: {"model": ErrorResponse, "description": "Unknown preset or invalid words"}},
)
async def segment_words(request: SegmentRequest) -> SegmentResponse:
    try:
        limits = resolve_preset(request.preset)
        if request.max_chars is not None:
            limits["max_chars"] = request.max_chars
        if request.max_duration_ms is not None:
            limits["max_duration_ms"] = request.max_duration_ms

        words = [Word(text=w.text, start_ms=w.start_ms, end_ms=w.end_ms) for w in request.words]
        cues = segment(words, limits["max_chars"], limits["max_duration_ms"])
    except ValueError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    return SegmentResponse(
        cues=[CueOut(start_ms=c.start_ms, end_ms=c.end_ms, text=c.text) for c in cues],
        srt=serialize_srt(cues),
    )


@app.get(
    "/resolutions",
    response_model=List[ResolutionInfo],
    tags=["renders"],
    summary="List output resolutions",
)
async def list_resolutions() -> List[ResolutionInfo]:
    return [ResolutionInfo(key=r.value, short_side=r.short_side) for r in Resolution]


# ---------------------------------------------------------------------------
# Endpoints: Health
# ---------------------------------------------------------------------------


@app.get(
    "/health",
    response_model=HealthResponse,
    tags=["health"],
    summary="Health check",
)
async def health_check() -> HealthResponse:
    return HealthResponse(
        status="ok",
        version=__version__,
        encoder_available=get_encoder().is_available(),
    )


def run_api():
    """Entry point for the captioner-api console script."""
    import uvicorn

    from captioner.logs import configure_logging

    configure_logging()
    uvicorn.run(app, host="0.0.0.0", port=8000)


def _infer_media_type(filename: str) -> str:
    """Infer the video MIME type from the extension."""
    ext = Path(filename).suffix.lower()
    mapping = {
        ".mp4": "video/mp4",
        ".m4v": "video/x-m4v",
        ".mov": "video/quicktime",
        ".mkv": "video/x-matroska",
        ".webm": "video/webm",
        ".avi": "video/x-msvideo",
    }
    return mapping.get(ext, "application/octet-stream")
