import ctypes
import logging
from typing import Optional

logger = logging.getLogger(__name__)

class InkviewDevice:
    """PocketBook firmware calls exposed by libinkview."""

    def __init__(self, lib=None):
        if lib is None:
            lib = ctypes.CDLL("libinkview.so")
            lib.GetCurrentProfile.restype = ctypes.c_char_p
            lib.PageSnapshot.restype = None
        self.lib = lib

    def current_profile_name(self) -> Optional[str]:
        name = self.lib.GetCurrentProfile()
        if not name:
            return None
        if isinstance(name, bytes):
            return name.decode("utf-8", errors="replace")
        return name

    def page_snapshot(self):
        self.lib.PageSnapshot()
