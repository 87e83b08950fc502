"""FastAPI application for invoice extraction.

Production-ready API with:
- Health and readiness checks for Kubernetes
- Upload validation (size, emptiness, supported formats)
- Hybrid XML / PDF / image extraction
- Structured error responses
- Prometheus metrics for monitoring

Based on FastAPI best practices:
https://fastapi.tiangolo.com/
"""

import logging
import time
import uuid

from fastapi import FastAPI, File, HTTPException, Query, Request, Response, UploadFile, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from invoice_processor.api import metrics
from invoice_processor.model.invoice import Invoice
from invoice_processor.processor.detection import DocumentFormat
from invoice_processor.processor.pipeline import ExtractionMethod, create_pipeline
from invoice_processor.shared.config import get_settings
from invoice_processor.shared.errors import UnsupportedInput

settings = get_settings()

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Invoice Processor",
    description="Hybrid invoice extraction API for XML, PDF and image documents",
    version=settings.service_version,
)

pipeline = create_pipeline(settings)


@app.middleware("http")
async def metrics_middleware(request: Request, call_next):  # type: ignore[no-untyped-def]
    """Middleware to collect request metrics.

    Tracks:
    - Request count by method, endpoint, and status
    - Request duration by method and endpoint
    """
    # Skip metrics for /metrics endpoint itself
    if request.url.path == "/metrics":
        return await call_next(request)

    start_time = time.time()
    response = await call_next(request)
    duration = time.time() - start_time

    metrics.http_requests_total.labels(
        method=request.method,
        endpoint=request.url.path,
        status=response.status_code,
    ).inc()

    metrics.http_request_duration_seconds.labels(
        method=request.method,
        endpoint=request.url.path,
    ).observe(duration)

    return response


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    version: str
    service: str


class ReadinessResponse(BaseModel):
    """Readiness check response."""

    ready: bool
    model_extraction: bool


class ExtractionResponse(BaseModel):
    """Invoice extraction response."""

    success: bool
    document_id: str
    format: DocumentFormat
    method: ExtractionMethod | None = None
    confidence: float = 0.0
    invoice: Invoice | None = None
    warnings: list[str] = Field(default_factory=list)
    error: str | None = None


@app.get("/health", response_model=HealthResponse, tags=["Health"])
def health_check() -> HealthResponse:
    """Health check endpoint for liveness probe.

    Returns:
        Health status information
    """
    return HealthResponse(
        status="healthy", version=settings.service_version, service=settings.service_name
    )


@app.get("/ready", response_model=ReadinessResponse, tags=["Health"])
def readiness_check() -> ReadinessResponse:
    """Readiness check endpoint for Kubernetes readiness probe.

    XML extraction never needs a model, so the service is ready even when
    model-based extraction is disabled.

    Returns:
        Readiness status
    """
    return ReadinessResponse(ready=True, model_extraction=pipeline.llm_extractor is not None)


@app.get("/metrics", tags=["Monitoring"])
def get_metrics() -> Response:
    """Prometheus metrics endpoint.

    Returns:
        Prometheus metrics in text format
    """
    metrics_data, content_type = metrics.get_metrics()
    return Response(content=metrics_data, media_type=content_type)


@app.post("/api/v1/invoices/extract", response_model=ExtractionResponse, tags=["Invoices"])
async def extract_invoice(
    file: UploadFile = File(..., description="XML e-invoice, PDF or image file"),  # noqa: B008
    timeout: float | None = Query(
        None,
        gt=0,
        description="Deadline in seconds passed to model and rendering calls",
    ),
) -> Response | ExtractionResponse:
    """Extract a canonical invoice from an uploaded document.

    The format is detected from the file content, not the filename:

    1. **XML**: parsed deterministically (confidence 1.0)
    2. **PDF**: text mined from content streams and corrected by the text
       model; if that fails, the first page is rendered and sent to the
       vision model
    3. **Image**: sent to the vision model

    ## Usage Example

    ```bash
    curl -X POST "http://localhost:8000/api/v1/invoices/extract" \\
      -F "file=@invoice.pdf"
    ```

    ## Error Handling

    - Returns 400 if the file is empty or its format is not supported
    - Returns 413 if the file exceeds the configured upload limit
    - Returns 422 with `error` and `warnings` if extraction fails

    Args:
        file: Document to process (required)
        timeout: Optional per-call deadline in seconds

    Returns:
        Extraction response with the invoice, method and confidence

    Raises:
        HTTPException: If the upload is empty, too large or unsupported
    """
    content = await file.read()
    if not content:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Empty file")

    if len(content) > settings.max_upload_bytes:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large: {len(content)} bytes (limit {settings.max_upload_bytes})",
        )

    metrics.document_upload_size_bytes.observe(len(content))

    document_format = pipeline.detect_format(content)
    if document_format == DocumentFormat.UNKNOWN:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported document format: {file.content_type}",
        )

    doc_id = str(uuid.uuid4())
    logger.info(f"Extracting document {doc_id} ({document_format}, {len(content)} bytes)")

    extraction_start = time.time()
    result = pipeline.process(content, declared_mime=file.content_type, timeout=timeout)
    metrics.extraction_processing_duration_seconds.labels(format=document_format).observe(
        time.time() - extraction_start
    )

    response = ExtractionResponse(
        success=result.success,
        document_id=doc_id,
        format=document_format,
        method=result.method,
        confidence=result.confidence,
        invoice=result.invoice,
        warnings=result.warnings,
        error=result.error_message,
    )

    if not result.success:
        metrics.extraction_requests_total.labels(
            format=document_format, method="none", status="failed"
        ).inc()
        logger.warning(f"Extraction failed for document {doc_id}: {result.error}")
        if isinstance(result.error, UnsupportedInput):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=response.error)
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content=response.model_dump(mode="json"),
        )

    metrics.extraction_requests_total.labels(
        format=document_format, method=result.method, status="success"
    ).inc()
    return response
