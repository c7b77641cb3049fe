from __future__ import annotations

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from refiner.api.routes import refinement, tasks
from refiner.config import get_settings
from refiner.core.exceptions import chunk_aborted_exception_handler, global_exception_handler, http_exception_handler, job_not_found_exception_handler, request_validation_exception_handler
from refiner.core.lifespan import lifespan
from refiner.core.middleware import RequestLoggingMiddleware, SecurityHeadersMiddleware
from refiner.pipeline.errors import ChunkAbortedError, JobNotFoundError

APP_VERSION = "0.1.0"

settings = get_settings()

app = FastAPI(title="Semantic Refinement Service", version=APP_VERSION, lifespan=lifespan, docs_url="/docs" if settings.debug else None, redoc_url=None)

app.add_middleware(CORSMiddleware, allow_origins=settings.allowed_origins, allow_credentials=True, allow_methods=["GET", "POST", "OPTIONS"], allow_headers=["content-type", "authorization"], expose_headers=["content-length", "x-request-id"])

# Add exception handlers
app.add_exception_handler(Exception, global_exception_handler)
app.add_exception_handler(HTTPException, http_exception_handler)
app.add_exception_handler(RequestValidationError, request_validation_exception_handler)
app.add_exception_handler(ChunkAbortedError, chunk_aborted_exception_handler)
app.add_exception_handler(JobNotFoundError, job_not_found_exception_handler)

# Add middleware
app.add_middleware(RequestLoggingMiddleware)
app.add_middleware(SecurityHeadersMiddleware)


@app.get("/health", include_in_schema=False)
async def health_check() -> dict[str, str]:
  """Return a simple health status."""
  return {"status": "ok", "version": APP_VERSION}


app.include_router(refinement.router, prefix="/v1/refinement/jobs", tags=["refinement"])
app.include_router(tasks.router, prefix="/internal", tags=["tasks"])
