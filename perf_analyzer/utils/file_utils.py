"""
File utility functions.
"""
import json
from pathlib import Path
from typing import Any, Optional

import aiofiles

from .helpers import to_serializable


def ensure_directory(path: str) -> Path:
    """
    Ensure a directory exists, creating it if necessary.
    
    Args:
        path: Directory path to ensure
        
    Returns:
        Path object for the directory
    """
    directory = Path(path)
    directory.mkdir(parents=True, exist_ok=True)
    return directory


async def write_json_file(file_path: Path, data: Any) -> Path:
    """
    Serialize data to JSON and write it to a file.
    
    Args:
        file_path: Destination file
        data: Any structure accepted by ``to_serializable``
        
    Returns:
        The path that was written
    """
    file_path = Path(file_path)
    ensure_directory(str(file_path.parent))
    payload = json.dumps(to_serializable(data), indent=2)
    async with aiofiles.open(file_path, "w", encoding="utf-8") as f:
        await f.write(payload)
    return file_path


async def read_json_file(file_path: Path) -> Optional[Any]:
    """
    Read a JSON file.
    
    Args:
        file_path: File to read
        
    Returns:
        Decoded content, or None if the file does not exist
    """
    file_path = Path(file_path)
    if not file_path.exists():
        return None
    async with aiofiles.open(file_path, "r", encoding="utf-8") as f:
        content = await f.read()
    return json.loads(content)
