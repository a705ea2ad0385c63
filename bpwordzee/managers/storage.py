from __future__ import annotations
import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

import httpx

logger = logging.getLogger(__name__)

# Describe the stored body, which is already decoded and re-framed on replay
_DROPPED_HEADERS = {'content-encoding', 'content-length', 'transfer-encoding'}

@dataclass(frozen=True)
class CachedEntry:
    status_code: int
    headers: Tuple[Tuple[str, str], ...]
    content: bytes

    @classmethod
    async def read(cls, response: httpx.Response) -> CachedEntry:
        content = await response.aread()
        headers = tuple(
            (name, value) for name, value in response.headers.multi_items()
            if name.lower() not in _DROPPED_HEADERS
        )
        return cls(status_code=response.status_code, headers=headers, content=content)

    def to_response(self, request: httpx.Request) -> httpx.Response:
        # a fresh Response per call, so every reader gets its own copy
        return httpx.Response(self.status_code, headers=list(self.headers), content=self.content, request=request)

def request_key(request: httpx.Request) -> str:
    return f"{request.method} {str(request.url).split('#', 1)[0]}"

class CacheStore:
    """One named store of responses, keyed by method + URL."""

    def __init__(self, name: str):
        self.name = name
        self._entries: Dict[str, CachedEntry] = {}

    def match(self, request: httpx.Request) -> Optional[httpx.Response]:
        entry = self._entries.get(request_key(request))
        if entry is None:
            return None
        return entry.to_response(request)

    def put(self, request: httpx.Request, entry: CachedEntry) -> None:
        if request.method != 'GET':
            raise ValueError(f"Only GET requests can be cached, got {request.method}")
        # overwrite; the last writer for a key wins
        self._entries[request_key(request)] = entry

    def keys(self) -> List[str]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, request: httpx.Request) -> bool:
        return request_key(request) in self._entries

class CacheStorage:
    """All named stores of the process.

    Deleting a store only unlinks it from here; a reader that already holds
    the CacheStore finishes its lookup against it.
    """

    def __init__(self):
        self._stores: Dict[str, CacheStore] = {}

    def open(self, name: str) -> CacheStore:
        store = self._stores.get(name)
        if store is None:
            store = self._stores[name] = CacheStore(name)
        return store

    def get(self, name: str) -> Optional[CacheStore]:
        return self._stores.get(name)

    def has(self, name: str) -> bool:
        return name in self._stores

    def keys(self) -> List[str]:
        return list(self._stores)

    def delete(self, name: str) -> bool:
        if self._stores.pop(name, None) is None:
            return False
        logger.info("Deleted cache store %s", name)
        return True
