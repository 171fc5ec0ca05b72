# procarni/observability/metrics.py
from fastapi import APIRouter
from starlette.responses import Response

from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest

router = APIRouter(tags=["observability"])

documents_generated_total = Counter(
    "procarni_documents_generated_total",
    "Generated artifacts",
    ["kind", "result"],  # kind: xlsx|pdf, result: success|error
)

documents_published_total = Counter(
    "procarni_documents_published_total",
    "Artifacts written to object storage",
    ["result"],  # success|storage_error|metadata_error
)

deliveries_total = Counter(
    "procarni_deliveries_total",
    "Delivery attempts per channel",
    ["channel", "result"],  # channel: email|whatsapp
)

generation_latency = Histogram(
    "procarni_generation_latency_seconds",
    "Time spent building an artifact",
    ["kind"],
)


@router.get("/metrics", include_in_schema=True)
def metrics() -> Response:
    # Prometheus expects text/plain; version=0.0.4
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
