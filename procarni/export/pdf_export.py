# procarni/export/pdf_export.py
from typing import Any, Mapping

from procarni.core.errors import GenerationError
from procarni.core.logging_config import logger
from procarni.services.artifacts import PDF_MIME, GeneratedArtifact
from procarni.templates import render_template


def html_to_pdf(html: str) -> bytes:
    # weasyprint pulls in cairo/pango at import time, only load it when a PDF is requested
    from weasyprint import HTML

    return HTML(string=html).write_pdf()


def render_pdf(template: str, context: Mapping[str, Any], filename: str) -> GeneratedArtifact:
    """
    Render an HTML template and convert it to PDF in one synchronous step.
    Either the complete document comes back or GenerationError is raised.
    """
    log = logger.bind(template=template, filename=filename)
    try:
        html = render_template(template, context)
        content = html_to_pdf(html)
    except Exception as exc:
        log.error("pdf_generation_failed", error=str(exc))
        raise GenerationError("No se pudo generar el PDF.", template=template) from exc

    if not content:
        log.error("pdf_generation_empty")
        raise GenerationError("No se pudo generar el PDF.", template=template)

    log.info("pdf_generated", size=len(content))
    return GeneratedArtifact(filename=filename, mime_type=PDF_MIME, content=content)
