"""
Line-based file reader used by the refresh workers.
"""

from linewatch.config import DEFAULT_ENCODING
from linewatch.watcher.types import PathLike


def read_lines(path: PathLike, encoding: str = DEFAULT_ENCODING) -> list[str]:
    """
    Read a whole text file and return its lines without terminators.

    Universal newlines: "\\n", "\\r\\n" and "\\r" all end a line. A trailing
    terminator does not produce an empty last line, and the default encoding
    drops a leading UTF-8 BOM.

    Raises:
    -------
    FileNotFoundError: If the file is gone
    OSError: Any other I/O failure (locked, permission denied, ...)
    UnicodeDecodeError: If the content is not valid for `encoding`
    """
    with open(path, "r", encoding=encoding, newline=None) as f:
        return [line[:-1] if line.endswith("\n") else line for line in f]
