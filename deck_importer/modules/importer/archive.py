"""Unpacking and removal of downloaded deck directories."""

import logging
import shutil
import zipfile
from pathlib import Path

from deck_importer.shared.errors import safe

logger = logging.getLogger(__name__)

ARCHIVE_FILENAME = "main.apkg"


@safe(operation="unpack")
def unpack_deck(deck_dir: Path) -> None:
    """Extract ``main.apkg`` into its deck directory and delete the archive.

    Does nothing when the archive is absent, so an already unpacked
    directory is left as is.

    Raises:
        ArchiveUnpackError: If the archive is corrupt.
    """
    archive_path = deck_dir / ARCHIVE_FILENAME
    if not archive_path.exists():
        logger.debug(f"No archive at {archive_path}, skipping unpack")
        return

    with zipfile.ZipFile(archive_path) as zf:
        zf.extractall(deck_dir)

    archive_path.unlink()


def delete_deck(deck_dir: Path) -> None:
    """Remove a deck directory and everything in it, if it exists."""
    shutil.rmtree(deck_dir, ignore_errors=True)
