"""File saving helpers for the conversion outputs.

- JSON (COCO documents), written atomically
- CSVs (split manifest)
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Dict, Optional, Union

import pandas as pd


def _current_umask() -> int:
    # os.umask can only be read by setting it
    mask = os.umask(0)
    os.umask(mask)
    return mask


def save_json(data: Dict[str, Any], output_path: Union[str, Path], indent: Optional[int] = None):
    """
    Save a dictionary to a JSON file, replacing any existing file.

    The document is written to a temporary file next to ``output_path`` and
    moved into place, so readers never see a partially written file.

    Args:
        data: Dictionary to save
        output_path: Path to save JSON file
        indent: JSON indentation level (default: compact)
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    fd, tmp_name = tempfile.mkstemp(prefix=f".{output_path.name}.", suffix=".tmp", dir=output_path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(data, fh, indent=indent, ensure_ascii=False)
        # mkstemp creates 0600; give the file the mode open() would have
        os.chmod(tmp_name, 0o666 & ~_current_umask())
        os.replace(tmp_name, output_path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def save_csv(df: pd.DataFrame, output_path: Union[str, Path], **kwargs):
    """
    Save a DataFrame to CSV file.

    Args:
        df: DataFrame to save
        output_path: Path to save CSV file
        **kwargs: Additional arguments passed to df.to_csv()

    Note:
        Creates parent directories if they don't exist.
    """
    output_path = Path(output_path)
    output_path.parent.mkdir(parents=True, exist_ok=True)

    df.to_csv(output_path, index=False, **kwargs)

