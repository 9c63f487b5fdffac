"""Content store: a private zone at the storage root and a public zone
nested inside it.

Names are used verbatim as storage keys. Writing a name that already
exists replaces the old file; there is no versioning and no locking, so
two concurrent uploads of the same name end with whichever finished last.
"""
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import List, NamedTuple, Optional

import aiofiles

from .errors import StorageError, ValidationError
from .models import Visibility

log = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


class FileEntry(NamedTuple):
    name: str
    size: int
    modified: datetime


class ContentStore:
    def __init__(self, root, public_name: str = 'public'):
        self.root = Path(root)
        self.public_dir = self.root / public_name
        self.root.mkdir(parents=True, exist_ok=True)
        self.public_dir.mkdir(parents=True, exist_ok=True)

    def zone(self, visibility: Visibility) -> Path:
        return self.public_dir if visibility == Visibility.public else self.root

    def path_for(self, name: str, visibility: Visibility) -> Path:
        if not name or name in ('.', '..') or '/' in name or '\\' in name or '\x00' in name:
            raise ValidationError(f'Invalid filename: {name!r}')
        return self.zone(visibility) / name

    async def store(self, name: str, content, visibility: Visibility):
        """Write ``content`` under ``name`` and return ``(name, size)``.

        ``content`` is anything with an async ``read(size)`` (an
        ``UploadFile``), or plain bytes.
        """
        path = self.path_for(name, visibility)
        size = 0
        try:
            async with aiofiles.open(path, 'wb') as out:
                if isinstance(content, (bytes, bytearray)):
                    await out.write(content)
                    size = len(content)
                else:
                    while True:
                        chunk = await content.read(CHUNK_SIZE)
                        if not chunk:
                            break
                        await out.write(chunk)
                        size += len(chunk)
        except OSError as e:
            log.error('[SERVER] write failed for %s (%s): %s', name, visibility.value, e)
            self.discard(path)
            raise StorageError('Failed to store file') from e
        log.info('[SERVER] stored %s (%s, %d bytes)', name, visibility.value, size)
        return name, size

    def list(self, visibility: Visibility) -> List[FileEntry]:
        entries = []
        try:
            for p in self.zone(visibility).iterdir():
                # skips the nested public directory when listing the private zone
                if not p.is_file():
                    continue
                st = p.stat()
                entries.append(FileEntry(p.name, st.st_size,
                                         datetime.fromtimestamp(st.st_mtime, tz=timezone.utc)))
        except OSError as e:
            log.error('[SERVER] listing %s zone failed: %s', visibility.value, e)
            raise StorageError('Failed to read files') from e
        return entries

    def remove(self, name: str, visibility: Visibility) -> bool:
        path = self.path_for(name, visibility)
        if not path.is_file():
            return False
        try:
            path.unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            log.error('[SERVER] delete failed for %s: %s', name, e)
            raise StorageError('Failed to delete file') from e
        return True

    def read(self, name: str, visibility: Visibility) -> Optional[Path]:
        path = self.path_for(name, visibility)
        return path if path.is_file() else None

    @staticmethod
    def discard(path: Path):
        try:
            path.unlink()
        except FileNotFoundError:
            pass
        except OSError as e:
            log.warning('[SERVER] could not remove partial file %s: %s', path, e)
