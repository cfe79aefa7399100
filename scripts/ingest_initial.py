"""Script to register and process the files already in object storage."""

import asyncio
import mimetypes
import sys
from pathlib import Path
from uuid import uuid4

sys.path.insert(0, str(Path(__file__).parent.parent))

from trustrag.core.config import settings
from trustrag.core.dependencies import services
from trustrag.models.document import Document

mimetypes.add_type(
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document", ".docx")


async def ingest_storage_root(organization_id: str) -> None:
    """Register every file under the storage root for one organization."""
    await services.initialize()
    root = services.storage.root

    try:
        paths = sorted(path for path in root.rglob("*") if path.is_file())
        for path in paths:
            mime_type = mimetypes.guess_type(path.name)[0] or "application/octet-stream"
            document = Document(
                id=str(uuid4()),
                organization_id=organization_id,
                name=path.name,
                storage_key=str(path.relative_to(root)),
                mime_type=mime_type,
            )
            await services.database.add(document)
            document = await services.pipeline.process(document.id)
            print(
                f"{path.name}: {document.status.value}, "
                f"confidence {document.parse_confidence}, {len(document.warnings)} warnings")

        print(f"\nIngested {len(paths)} documents from {settings.storage_root}")
    finally:
        await services.shutdown()


if __name__ == "__main__":
    if len(sys.argv) != 2:
        print("Usage: ingest_initial.py <organization_id>")
        sys.exit(1)
    asyncio.run(ingest_storage_root(sys.argv[1]))
