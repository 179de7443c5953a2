#!/usr/bin/env python3
# -*- coding: utf-8 -*-

"""
FastAPI Web Server - REST API for Layout Translator.

Endpoints:
    POST   /api/upload                          - Upload PDFs and start a job
    GET    /api/jobs                            - List recent jobs
    GET    /api/jobs/{job_id}                   - Current job snapshot
    GET    /api/jobs/{job_id}/progress          - Server-sent events until the job ends
    GET    /api/files/{job_id}/{kind}/{name}    - Download original/translated file
    DELETE /api/jobs/{job_id}                   - Delete a finished job
    GET    /health                              - Liveness probe

Usage:
    # Start server
    uvicorn api.main:app --host 0.0.0.0 --port 8000

    # Or run directly
    python -m api.main

Configuration:
    Environment variables (or .env), see config/settings.py:
    - OPENAI_API_KEY / ANTHROPIC_API_KEY: translation backend
    - RENDERER_API_KEY: rendering backend token
    - MAX_UPLOAD_FILES / MAX_UPLOAD_SIZE_MB: upload limits
"""

from fastapi import FastAPI, File, Form, HTTPException, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import FileResponse, StreamingResponse
from pathlib import Path
from typing import Any, Dict, List, Optional
import shutil

from config.constants import PDF_CONTENT_TYPE, SUPPORTED_EXTENSIONS
from config.logging_config import configure_logging, get_logger
from config.settings import Settings
from ai_providers import BaseAIProvider, create_provider
from core.batch.dispatcher import TranslationDispatcher
from core.batch.job_handler import JobHandler, JobStatus, PipelineStep, next_step
from core.batch.orchestrator import PipelineRunner, RunnerConfig
from core.batch.progress_tracker import ProgressPublisher, build_snapshot, format_sse
from core.job_queue import JobScheduler
from core.layout_preserve.converter import DocumentConverter
from core.layout_preserve.document_renderer import DocumentRenderer
from api.job_repository import JobRepository

logger = get_logger(__name__)

FILE_KINDS = ("original", "translated")


def create_app(
    settings: Optional[Settings] = None,
    provider: Optional[BaseAIProvider] = None,
    converter: Optional[DocumentConverter] = None,
    renderer: Optional[DocumentRenderer] = None,
) -> FastAPI:
    """
    Build the application and its collaborators.

    Args:
        settings: Settings (defaults to the global instance)
        provider: Translation backend client (built from settings if omitted)
        converter: Conversion tool adapter (built from settings if omitted)
        renderer: Rendering backend client (built from settings if omitted)
    """
    if settings is None:
        from config.settings import settings

    configure_logging(settings.log_level, settings.log_file or None)

    provider = provider or create_provider(settings)
    converter = converter or DocumentConverter(
        command=settings.converter_command,
        timeout=settings.converter_timeout_seconds,
    )
    renderer = renderer or DocumentRenderer(
        api_url=settings.renderer_api_url,
        api_key=settings.renderer_api_key,
        page_format=settings.page_format,
        timeout=settings.renderer_timeout_seconds,
    )

    upload_dir = Path(settings.upload_dir)
    repository = JobRepository(str(settings.db_path))
    publisher = ProgressPublisher()
    dispatcher = TranslationDispatcher(
        provider,
        max_concurrency=settings.max_concurrency,
        timeout=settings.request_timeout_seconds,
    )
    runner = PipelineRunner(
        repository=repository,
        dispatcher=dispatcher,
        converter=converter,
        renderer=renderer,
        publisher=publisher,
        config=RunnerConfig.from_settings(settings),
    )
    scheduler = JobScheduler(runner.run, max_parallel_jobs=settings.max_parallel_jobs)

    app = FastAPI(
        title="Layout Translator API",
        description="Layout-preserving document translation",
        version="1.0.0",
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.repository = repository
    app.state.publisher = publisher
    app.state.runner = runner
    app.state.scheduler = scheduler

    # =========================================================================
    # Lifecycle
    # =========================================================================

    @app.on_event("startup")
    async def startup():
        """Start the workers and pick up jobs left over from a previous run."""
        missing = settings.missing_credentials()
        if missing:
            logger.warning(f"Missing credentials: {', '.join(missing)}")

        scheduler.start()

        try:
            recovered = recover_jobs(repository, scheduler)
            if recovered:
                logger.info(f"Startup: recovered {recovered} unfinished jobs")
        except Exception as e:
            logger.error(f"Startup: failed to recover jobs: {e}")

    @app.on_event("shutdown")
    async def shutdown():
        await scheduler.stop()
        await renderer.close()
        await provider.close()

    # =========================================================================
    # Helpers
    # =========================================================================

    def current_snapshot(job_id: str) -> Dict[str, Any]:
        snapshot = publisher.snapshot(job_id)
        if snapshot is not None:
            return snapshot

        job = repository.get_job(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")
        publisher.seed(job)
        return build_snapshot(job)

    # =========================================================================
    # Routes
    # =========================================================================

    @app.get("/health")
    async def health():
        return {
            "status": "ok",
            "provider": settings.provider,
            "workers": scheduler.max_parallel_jobs if scheduler.is_running else 0,
            "pending_jobs": scheduler.pending,
        }

    @app.post("/api/upload")
    async def upload(
        language: Optional[str] = Form(None),
        files: Optional[List[UploadFile]] = File(None),
    ):
        """
        Upload PDF files and start a translation job.

        - **language**: Target language label
        - **files**: One to MAX_UPLOAD_FILES PDF files
        """
        if not language or not language.strip():
            raise HTTPException(status_code=400, detail="Target language is required")

        if not files:
            raise HTTPException(status_code=400, detail="At least one file is required")

        if len(files) > settings.max_upload_files:
            raise HTTPException(
                status_code=400,
                detail=f"Maximum {settings.max_upload_files} files allowed",
            )

        # Validate everything before creating the job
        max_bytes = settings.max_upload_size_mb * 1024 * 1024
        accepted = []
        names = set()
        for upload_file in files:
            name = Path(upload_file.filename or "").name
            content = await upload_file.read()

            if len(content) > max_bytes:
                raise HTTPException(
                    status_code=400,
                    detail=f"File {name} exceeds {settings.max_upload_size_mb}MB limit",
                )
            if (
                Path(name).suffix.lower() not in SUPPORTED_EXTENSIONS
                or (upload_file.content_type and upload_file.content_type != PDF_CONTENT_TYPE)
            ):
                raise HTTPException(status_code=400, detail=f"File {name} is not a PDF")
            if name in names:
                raise HTTPException(status_code=400, detail=f"Duplicate file name: {name}")

            names.add(name)
            accepted.append((name, content))

        job = repository.create_job(language.strip())
        job_dir = upload_dir / job.id
        job_dir.mkdir(parents=True, exist_ok=True)

        for name, content in accepted:
            file_path = job_dir / name
            with open(file_path, "wb") as f:
                f.write(content)
            repository.add_file(job.id, name, str(file_path))

        scheduler.submit(job.id)
        logger.info(f"[{job.id}] Upload accepted: {len(accepted)} file(s) -> {job.language}")
        return {"jobId": job.id}

    @app.get("/api/jobs")
    async def list_jobs(limit: int = 50):
        """List recent jobs, most recent first."""
        return [build_snapshot(job) for job in repository.list_jobs(limit)]

    @app.get("/api/jobs/{job_id}")
    async def get_job(job_id: str):
        """Current snapshot of a job."""
        return current_snapshot(job_id)

    @app.get("/api/jobs/{job_id}/progress")
    async def stream_progress(job_id: str):
        """
        Stream job snapshots as server-sent events.

        The stream starts with the current snapshot and ends after the
        COMPLETED or FAILED snapshot. Disconnecting does not stop the job.
        """
        subscription = publisher.subscribe(job_id, current_snapshot(job_id))

        async def event_stream():
            try:
                async for snapshot in subscription:
                    yield format_sse(snapshot)
            finally:
                subscription.close()

        return StreamingResponse(
            event_stream(),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    @app.get("/api/files/{job_id}/{kind}/{name}")
    async def download_file(job_id: str, kind: str, name: str):
        """Download an original or translated file of a job."""
        if kind not in FILE_KINDS:
            raise HTTPException(status_code=404, detail=f"Unknown file kind: {kind}")

        for record in repository.get_job_files(job_id):
            if kind == "original" and record.original_name == name:
                path = record.original_path
            elif kind == "translated" and record.translated_name == name:
                path = record.translated_path
            else:
                continue

            if not path or not Path(path).is_file():
                break
            return FileResponse(path, media_type=PDF_CONTENT_TYPE, filename=name)

        raise HTTPException(status_code=404, detail=f"File not found: {name}")

    @app.delete("/api/jobs/{job_id}")
    async def delete_job(job_id: str):
        """
        Delete a job (only if completed or failed)

        - **job_id**: Job ID to delete
        """
        job = repository.get_job(job_id)
        if job is None:
            raise HTTPException(status_code=404, detail=f"Job not found: {job_id}")

        if not job.is_terminal or scheduler.is_active(job_id):
            raise HTTPException(
                status_code=409,
                detail="Cannot delete job (only completed/failed jobs can be deleted)",
            )

        repository.delete_job(job_id)
        shutil.rmtree(upload_dir / job_id, ignore_errors=True)
        publisher.forget(job_id)

        logger.info(f"[{job_id}] Job deleted")
        return {"message": f"Job {job_id} deleted successfully"}

    return app


def recover_jobs(repository: JobRepository, scheduler: JobScheduler) -> int:
    """
    Handle jobs interrupted by a restart.

    QUEUED jobs are submitted again. PROCESSING jobs cannot resume a step,
    so they fail at the step that was running, the one after the last
    completed step.
    """
    recovered = 0
    for job in repository.get_unfinished_jobs():
        if job.status == JobStatus.QUEUED:
            scheduler.submit(job.id)
        else:
            handler = JobHandler(job, store=repository.update_job_progress)
            running = next_step(job.current_step) if job.current_step else PipelineStep.UPLOAD
            handler.fail(running or job.current_step, "interrupted by server restart")
        recovered += 1
    return recovered


app = create_app()


def main():
    import uvicorn

    logger.info("Starting Layout Translator API Server...")
    logger.info("API Documentation: http://localhost:8000/docs")

    uvicorn.run(app, host="0.0.0.0", port=8000, log_level="info")


# =============================================================================
# Main Entry Point
# =============================================================================

if __name__ == "__main__":
    main()
