from fastapi.responses import Response

from procarni.services.artifacts import GeneratedArtifact, PublishedArtifact


def artifact_response(artifact: GeneratedArtifact) -> Response:
    """Binary download with the generated filename (ASCII, see export.filenames)."""
    return Response(
        content=artifact.content,
        media_type=artifact.mime_type,
        headers={"Content-Disposition": f'attachment; filename="{artifact.filename}"'},
    )


def published_payload(published: PublishedArtifact) -> dict:
    return {
        "publicUrl": published.public_url,
        "key": published.key,
        "filename": published.filename,
        "documentId": published.document_id,
    }
