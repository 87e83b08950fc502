"""Unit tests for the invoice extraction API.

Tests cover:
- Health check endpoints
- Upload validation
- XML, PDF and image extraction responses
- Prometheus metrics endpoint
"""

import io
from unittest.mock import patch

import pytest
from fastapi import status
from fastapi.testclient import TestClient
from PIL import Image

from invoice_processor.api.main import app, pipeline, settings
from invoice_processor.model.invoice import Invoice
from invoice_processor.processor.pipeline import ExtractionMethod, Result
from invoice_processor.shared.errors import CompositeExtractionFailure, NoExtractableText

TCT_XML = """<?xml version="1.0" encoding="UTF-8"?>
<HDon>
  <DLHDon Id="data">
    <TTChung>
      <KHMSHDon>1</KHMSHDon>
      <KHHDon>C24TAA</KHHDon>
      <SHDon>0000123</SHDon>
      <NLap>2024-01-15</NLap>
    </TTChung>
    <NDHDon>
      <NBan><Ten>Công ty TNHH ABC</Ten><MST>0101234567</MST></NBan>
      <NMua><Ten>Công ty CP XYZ</Ten></NMua>
      <DSHHDVu>
        <HHDVu>
          <STT>1</STT>
          <THHDVu>Dịch vụ tư vấn</THHDVu>
          <SLuong>1</SLuong>
          <DGia>1000000</DGia>
          <TSuat>10%</TSuat>
        </HHDVu>
      </DSHHDVu>
    </NDHDon>
  </DLHDon>
</HDon>
""".encode()


@pytest.fixture
def client() -> TestClient:
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def sample_image_bytes() -> bytes:
    """Create a simple test image as bytes."""
    img = Image.new("RGB", (200, 100), color="white")
    img_bytes = io.BytesIO()
    img.save(img_bytes, format="PNG")
    img_bytes.seek(0)
    return img_bytes.read()


def test_health_check(client: TestClient) -> None:
    """Test health check endpoint."""
    response = client.get("/health")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["status"] == "healthy"
    assert "version" in data
    assert data["service"] == "invoice-processor"


def test_readiness_check(client: TestClient) -> None:
    """Test readiness check endpoint."""
    response = client.get("/ready")

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["ready"] is True
    assert "model_extraction" in data


def test_extract_xml_invoice(client: TestClient) -> None:
    """Test that XML invoices are extracted deterministically."""
    files = {"file": ("invoice.xml", TCT_XML, "application/xml")}

    response = client.post("/api/v1/invoices/extract", files=files)

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["success"] is True
    assert data["format"] == "xml"
    assert data["method"] == "xml"
    assert data["confidence"] == 1.0
    assert data["error"] is None
    assert "document_id" in data
    invoice = data["invoice"]
    assert invoice["number"] == "0000123"
    assert invoice["series"] == "1C24TAA"
    assert invoice["provider"] == "TCT"
    assert invoice["seller"]["name"] == "Công ty TNHH ABC"
    assert invoice["total_amount"] == "1100000"
    assert "raw_source" not in invoice


def test_extract_image_invoice(client: TestClient, sample_image_bytes: bytes) -> None:
    """Test image upload is routed to the vision model."""
    files = {"file": ("invoice.png", sample_image_bytes, "image/png")}

    with patch.object(pipeline, "process") as mock_process:
        mock_process.return_value = Result.succeeded(
            Invoice(number="0000456"), ExtractionMethod.LLM_VISION
        )
        response = client.post("/api/v1/invoices/extract?timeout=30", files=files)

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert data["format"] == "image"
    assert data["method"] == "llm_vision"
    assert data["confidence"] == 0.8
    assert data["invoice"]["number"] == "0000456"
    mock_process.assert_called_once_with(
        sample_image_bytes, declared_mime="image/png", timeout=30.0
    )


def test_extract_failure_returns_422(client: TestClient) -> None:
    """Test that failed extraction reports the error and warnings."""
    files = {"file": ("scan.pdf", b"%PDF-1.4\n%%EOF", "application/pdf")}
    error = CompositeExtractionFailure(
        "PDF extraction failed (text: no text, vision: render failed)",
        [NoExtractableText("no text")],
    )

    with patch.object(pipeline, "process") as mock_process:
        mock_process.return_value = Result.failed(error, ["PDF contains no extractable text"])
        response = client.post("/api/v1/invoices/extract", files=files)

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY
    data = response.json()
    assert data["success"] is False
    assert data["format"] == "pdf"
    assert data["invoice"] is None
    assert data["error"].startswith("PDF extraction failed")
    assert data["warnings"] == ["PDF contains no extractable text"]


def test_extract_empty_file(client: TestClient) -> None:
    """Test that empty uploads are rejected."""
    files = {"file": ("empty.pdf", b"", "application/pdf")}

    response = client.post("/api/v1/invoices/extract", files=files)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert response.json()["detail"] == "Empty file"


def test_extract_unsupported_format(client: TestClient) -> None:
    """Test that unrecognised content is rejected regardless of filename."""
    files = {"file": ("invoice.pdf", b"just some text", "application/pdf")}

    response = client.post("/api/v1/invoices/extract", files=files)

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert "Unsupported document format" in response.json()["detail"]


def test_extract_oversized_file(client: TestClient) -> None:
    """Test that uploads over the configured limit are rejected."""
    files = {"file": ("big.pdf", b"%PDF" + b"0" * 64, "application/pdf")}

    with patch.object(settings, "max_upload_bytes", 16):
        response = client.post("/api/v1/invoices/extract", files=files)

    assert response.status_code == status.HTTP_413_REQUEST_ENTITY_TOO_LARGE


def test_extract_without_file(client: TestClient) -> None:
    """Test that the file field is required."""
    response = client.post("/api/v1/invoices/extract")

    assert response.status_code == status.HTTP_422_UNPROCESSABLE_ENTITY


def test_metrics_endpoint(client: TestClient) -> None:
    """Test Prometheus metrics endpoint."""
    client.post(
        "/api/v1/invoices/extract", files={"file": ("invoice.xml", TCT_XML, "application/xml")}
    )

    response = client.get("/metrics")

    assert response.status_code == status.HTTP_200_OK
    assert "http_requests_total" in response.text
    assert "invoice_extraction_requests_total" in response.text
    assert "document_upload_size_bytes" in response.text
