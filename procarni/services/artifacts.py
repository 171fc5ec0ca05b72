from __future__ import annotations

from dataclasses import dataclass

XLSX_MIME = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
PDF_MIME = "application/pdf"


@dataclass(frozen=True)
class GeneratedArtifact:
    """Fully materialized output of a generator. No identity until published."""

    filename: str
    mime_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)


@dataclass(frozen=True)
class PublishedArtifact:
    key: str
    public_url: str
    filename: str
    mime_type: str
    size_bytes: int
    document_id: str
