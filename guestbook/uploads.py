"""
Filesystem side of image uploads.

UploadStore owns the flat upload directory. Files are addressed only by
their generated name, which is also the value stored in the images table.
"""

import logging
import uuid
from pathlib import Path

from guestbook.errors import StorageIOError

logger = logging.getLogger(__name__)


def generate_filename(extension: str) -> str:
    """uuid4 gives enough randomness that no existence check is needed."""
    return f"{uuid.uuid4()}.{extension}"


class UploadStore:
    """Local directory holding uploaded images."""

    def __init__(self, root: str):
        self.root = Path(root).resolve()

    def ensure_dir(self) -> None:
        self.root.mkdir(parents=True, exist_ok=True)

    def path_for(self, filename: str) -> Path:
        """
        Resolve a stored filename inside the upload root.

        Raises:
            ValueError: if filename is empty, contains a separator or escapes the root
        """
        if not filename or "/" in filename or "\\" in filename or filename in (".", ".."):
            raise ValueError(f"Invalid upload filename: {filename!r}")
        candidate = (self.root / filename).resolve()
        if candidate.parent != self.root:
            raise ValueError(f"Invalid upload filename: {filename!r}")
        return candidate

    def exists(self, filename: str) -> bool:
        try:
            return self.path_for(filename).is_file()
        except ValueError:
            return False

    def write(self, payload: bytes, extension: str) -> str:
        """
        Write payload to a new file named by generate_filename.

        The file is opened in exclusive-create mode so an existing file is
        never overwritten. A partially written file is removed before raising.

        Returns:
            The generated filename

        Raises:
            StorageIOError: on any OS-level failure
        """
        filename = generate_filename(extension)
        try:
            self.ensure_dir()
            path = self.path_for(filename)
        except OSError as e:
            logger.error(f"Upload directory unavailable: {e}")
            raise StorageIOError(f"upload directory unavailable: {e}") from e

        try:
            with open(path, "xb") as fh:
                fh.write(payload)
        except OSError as e:
            logger.error(f"Failed to write upload {filename}: {e}")
            try:
                path.unlink(missing_ok=True)
            except OSError as cleanup_error:
                logger.warning(f"Could not remove partial upload {filename}: {cleanup_error}")
            raise StorageIOError(f"write failed: {e}") from e

        logger.debug(f"Wrote {len(payload)} bytes to {path}")
        return filename

    def remove(self, filename: str) -> None:
        """
        Delete a stored file. A file that is already gone is not an error.

        Raises:
            ValueError: for an invalid filename
            OSError: if the file exists but cannot be removed
        """
        self.path_for(filename).unlink(missing_ok=True)
        logger.debug(f"Removed upload {filename}")
