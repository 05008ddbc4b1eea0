from __future__ import annotations

from typing import Any, Optional, Protocol, runtime_checkable


@runtime_checkable
class SessionStoreProtocol(Protocol):
    """Capability set a session middleware host expects from a store."""

    async def get(self, session_id: str) -> Optional[dict[str, Any]]:
        """Return the live session, or None when absent or expired."""
        ...

    async def set(self, session_id: str, session: dict[str, Any]) -> None:
        ...

    async def destroy(self, session_id: str) -> None:
        ...

    async def all(self) -> list[dict[str, Any]]:
        ...

    async def length(self) -> int:
        ...

    async def clear(self) -> None:
        ...

    async def touch(self, session_id: str, session: Optional[dict[str, Any]]) -> bool:
        ...
