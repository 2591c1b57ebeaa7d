"""Administrator-privilege check."""

import ctypes
import os


def is_admin() -> bool:
    """Return True when the process runs with administrator/root rights."""
    if os.name == "nt":
        try:
            return bool(ctypes.windll.shell32.IsUserAnAdmin())  # type: ignore[attr-defined]
        except (AttributeError, OSError):
            return False
    return os.geteuid() == 0
