"""
Contracts of the reader application objects the engine talks to.

The engine only reads from the document and only writes through the settings
and collection stores, so any object with these methods can be plugged in.
"""
from typing import Any, Iterable, Optional, Protocol

class Document(Protocol):
    file: str
    current_page: int

    def get_page_flow(self, page: int) -> int: ...

    def get_total_pages_in_flow(self, flow: int) -> int: ...

    def get_page_number_in_flow(self, page: int) -> int: ...

class SettingsStore(Protocol):
    def read_setting(self, key: str, default: Any = None) -> Any: ...

    def save_setting(self, key: str, value: Any) -> None: ...

    def del_setting(self, key: str) -> None: ...

    def flush(self) -> None: ...

class CollectionStore(Protocol):
    def names(self) -> Iterable[str]: ...

    def contains(self, name: str, path: str) -> bool: ...

    def remove(self, name: str, path: str) -> bool: ...

    def save(self) -> None: ...

class Device(Protocol):
    def current_profile_name(self) -> Optional[str]: ...

    def page_snapshot(self) -> None: ...
