# agenciaos/services/storage.py

import asyncio
from pathlib import Path
from typing import Optional

from loguru import logger

from agenciaos.core.config import settings

class LocalFileStorage:
    """Arquivos gerados em UPLOADS_DIR, servidos pela API em UPLOADS_URL_PATH."""

    def __init__(self, root: Optional[str | Path] = None, url_prefix: Optional[str] = None):
        self.root = Path(root or settings.UPLOADS_DIR)
        self.url_prefix = (url_prefix or settings.UPLOADS_URL_PATH).rstrip("/")

    def _write(self, path: Path, data: bytes):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)

    async def save(self, folder: str, filename: str, data: bytes) -> str:
        """Grava o arquivo e devolve a URL pública relativa (/uploads/<folder>/<filename>)."""
        path = self.root / folder / filename
        await asyncio.to_thread(self._write, path, data)
        logger.bind(service="LocalFileStorage").info(f"File stored at {path} ({len(data)} bytes).")
        return f"{self.url_prefix}/{folder}/{filename}"
