from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
import logging
import uuid

from werkzeug.datastructures import FileStorage
from werkzeug.utils import secure_filename

from app.core.errors import InternalError, ValidationError

logger = logging.getLogger(__name__)

ALLOWED_MIME_TYPES = {
    "application/pdf": ".pdf",
    "image/jpeg": ".jpg",
    "image/png": ".png",
}


@dataclass(frozen=True)
class StoredFile:
    path: str
    mime_type: str
    filename: str


class LocalReceiptStorage:
    """Guarda los comprobantes de pago en disco bajo ``RECEIPTS_DIR``."""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    @classmethod
    def from_config(cls, config) -> "LocalReceiptStorage":
        return cls(config.get("RECEIPTS_DIR", "uploads/comprobantes"))

    def store(self, upload: FileStorage | None) -> StoredFile:
        if upload is None or not upload.filename:
            raise ValidationError("Falta el archivo del comprobante", [{"field": "comprobante", "message": "Falta el archivo"}])
        mime_type = (upload.mimetype or "").lower()
        if mime_type not in ALLOWED_MIME_TYPES:
            raise ValidationError(
                "Tipo de archivo no permitido",
                [{"field": "comprobante", "message": "Solo se admiten PDF, JPG o PNG"}],
            )
        original_name = secure_filename(upload.filename) or f"comprobante{ALLOWED_MIME_TYPES[mime_type]}"
        stamp = datetime.now(timezone.utc).strftime("%Y%m%d%H%M%S")
        stored_name = f"{stamp}_{uuid.uuid4().hex[:8]}_{original_name}"

        target = self.root / stored_name
        try:
            self.root.mkdir(parents=True, exist_ok=True)
            upload.save(target)
        except OSError as exc:
            logger.exception("Could not store receipt %s in %s", original_name, self.root)
            raise InternalError("No se pudo guardar el comprobante") from exc
        logger.info("Receipt stored at %s", target)
        return StoredFile(path=str(target), mime_type=mime_type, filename=original_name)

    def delete(self, path: str) -> bool:
        try:
            Path(path).unlink()
        except FileNotFoundError:
            logger.warning("Receipt file %s already missing", path)
            return False
        except OSError as exc:
            logger.warning("Could not delete receipt file %s: %s", path, exc)
            return False
        return True
