"""Writes generated sources to disk."""

import logging
from pathlib import Path
from typing import Dict, List, Union

from ..errors import GenerationError

logger = logging.getLogger(__name__)


def write_files(
    output_dir: Union[str, Path],
    files: Dict[str, str],
    overwrite: bool = True,
) -> List[Path]:
    """Write generated files below a directory.

    Args:
        output_dir: Target directory (created if missing)
        files: Mapping of relative path to file content
        overwrite: Replace existing files; when False they are skipped

    Returns:
        Paths of the files actually written
    """
    root = Path(output_dir)
    written = []

    for relative, content in files.items():
        path = root / relative
        if path.exists() and not overwrite:
            logger.info("Skipping existing file %s", path)
            continue

        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as e:
            raise GenerationError(
                f"Could not write {path}: {e}",
                details={"path": str(path)},
            ) from e

        logger.debug("Wrote %s (%d bytes)", path, len(content))
        written.append(path)

    return written
