import os
import time
from typing import Optional


def get_file_name_with_ext(path: str) -> str:
    """
    Extracts file name with ext from a given path.

    :param path: Path to file.
    :type path: str
    :returns: File name with extension
    :rtype: :class:`str`
    :Usage example:

     .. code-block::

        from imagecraft.io.fs import get_file_name_with_ext

        get_file_name_with_ext("/home/admin/photos/IMG_0748.jpeg")
        # Output: IMG_0748.jpeg
    """
    return os.path.basename(path)


def make_upload_name(name: str, prefix: str = "post-image", now_ms: Optional[int] = None) -> str:
    """
    Build the proposed store name ``<prefix>-<epoch ms>-<name>``.

    The file name is kept as selected; directories are dropped.

    :param name: Original file name.
    :type name: str
    :param prefix: Name prefix.
    :type prefix: str
    :param now_ms: Timestamp in milliseconds, current time if omitted.
    :type now_ms: int, optional
    :rtype: :class:`str`
    """
    if now_ms is None:
        now_ms = int(time.time() * 1000)
    return f"{prefix}-{now_ms}-{get_file_name_with_ext(name)}"
