"""Local storage for uploaded MCP binaries."""

from pathlib import Path, PureWindowsPath

import aiofiles

from shared.logging import get_logger

logger = get_logger(__name__)


class BinaryStore:
    """
    Writes uploaded binaries into the application's local data directory.

    Each upload lands at ``<data_dir>/<file name>``. Uploading a file with the
    same name again overwrites the previous copy.
    """

    def __init__(self, data_dir: str | Path) -> None:
        self.data_dir = Path(data_dir)

    def path_for(self, file_name: str) -> Path:
        """
        Resolve the storage path for an uploaded file name.

        Directory components are stripped, so a name can never escape
        the data directory.

        Raises:
            ValueError: If nothing usable remains of the name
        """
        name = PureWindowsPath(file_name).name
        if name in ("", ".", ".."):
            raise ValueError(f"Invalid binary file name: {file_name!r}")
        return self.data_dir / name

    async def save(self, file_name: str, data: bytes) -> Path:
        """
        Write ``data`` for ``file_name`` and return the stored path.

        Args:
            file_name: Original name of the uploaded file
            data: File contents

        Returns:
            Path the binary was written to
        """
        path = self.path_for(file_name)
        self.data_dir.mkdir(parents=True, exist_ok=True)

        async with aiofiles.open(path, "wb") as f:
            await f.write(data)

        logger.info("Binary saved", path=str(path), size=len(data))
        return path
