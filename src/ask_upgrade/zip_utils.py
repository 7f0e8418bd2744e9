"""Zip archive extraction for downloaded skill packages."""

import io
import logging
import zipfile
from pathlib import Path

from .errors import UpgradeError

logger = logging.getLogger(__name__)


def extract_zip_bytes(data: bytes, target_dir: Path) -> list[str]:
    """Extract an in-memory zip archive into target_dir.

    Entries that would land outside target_dir are rejected.

    Returns:
        Names of the extracted entries

    Raises:
        UpgradeError: If the archive is corrupt or contains unsafe paths
    """
    target = Path(target_dir).resolve()
    try:
        archive = zipfile.ZipFile(io.BytesIO(data))
    except zipfile.BadZipFile as e:
        raise UpgradeError(f"Downloaded skill package is not a valid zip archive: {e}") from e

    with archive:
        names = archive.namelist()
        for name in names:
            destination = (target / name).resolve()
            if destination != target and target not in destination.parents:
                raise UpgradeError(f"Refusing to extract {name!r} outside {target}.")
        archive.extractall(target)

    logger.debug("Extracted %d entries into %s", len(names), target)
    return names


def archive_names(data: bytes) -> list[str]:
    """List the entry names of an in-memory zip archive.

    Raises:
        UpgradeError: If the archive is corrupt
    """
    try:
        with zipfile.ZipFile(io.BytesIO(data)) as archive:
            return archive.namelist()
    except zipfile.BadZipFile as e:
        raise UpgradeError(f"Downloaded skill package is not a valid zip archive: {e}") from e
