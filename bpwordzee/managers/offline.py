"""Offline cache layer: versioned stores and per-request fetch policy"""

from __future__ import annotations
import asyncio
import enum
import logging
from typing import Dict, List, Optional, Sequence, Tuple

import httpx

from ..config import Config
from ..errors import PrecacheError
from ..schemas import CacheMessage, CacheStatus
from .storage import CacheStorage, CachedEntry

logger = logging.getLogger(__name__)

SKIP_WAITING = 'SKIP_WAITING'

_DEFAULT_PORTS = {'http': 80, 'https': 443}


class WorkerState(str, enum.Enum):
    INSTALLING = 'installing'
    INSTALLED = 'installed'
    ACTIVATING = 'activating'
    ACTIVATED = 'activated'
    REDUNDANT = 'redundant'


def origin_of(url: httpx.URL) -> Tuple[str, str, Optional[int]]:
    return (url.scheme, url.host, url.port or _DEFAULT_PORTS.get(url.scheme))


class ResourceWorker:
    def __init__(
        self,
        version: str,
        storage: CacheStorage,
        network: httpx.AsyncBaseTransport,
        origin: str,
        primary_name: str,
        external_name: str,
        precache_urls: Sequence[str] = (),
        external_urls: Sequence[str] = (),
        api_path_marker: str = '/api/',
        api_host_marker: str = 'api.',
        offline_message: str = 'No se pudo conectar con el servidor.',
        skip_waiting_on_install: bool = True,
    ):
        self.version = version
        self.storage = storage
        self.network = network
        self.origin = httpx.URL(origin)
        self.primary_name = primary_name
        self.external_name = external_name
        self.precache_urls = list(precache_urls)
        self.external_urls = list(external_urls)
        self.api_path_marker = api_path_marker
        self.api_host_marker = api_host_marker
        self.offline_message = offline_message
        self.skip_waiting_on_install = skip_waiting_on_install
        self.state: Optional[WorkerState] = None
        self.skip_waiting_requested = False
        self._registration: Optional[Registration] = None

    @classmethod
    def from_config(cls, settings: Config, storage: CacheStorage, network: httpx.AsyncBaseTransport) -> ResourceWorker:
        return cls(
            version=settings.cache_version,
            storage=storage,
            network=network,
            origin=settings.origin,
            primary_name=settings.primary_cache_name,
            external_name=settings.external_cache_name,
            precache_urls=settings.precache_urls,
            external_urls=settings.external_urls,
            api_path_marker=settings.get('cache.api_path_marker', '/api/'),
            api_host_marker=settings.get('cache.api_host_marker', 'api.'),
            offline_message=settings.get('cache.offline_message'),
            skip_waiting_on_install=bool(settings.get('cache.skip_waiting_on_install', True)),
        )

    def attach(self, registration: Registration) -> None:
        self._registration = registration

    def resolve(self, url: str) -> httpx.URL:
        return self.origin.join(url)

    # -- install / activate -------------------------------------------------

    async def install(self) -> None:
        """Fill both stores of this version.

        Any same-origin asset that cannot be fetched fails the whole install
        and nothing is written to the primary store. The cross-origin manifest
        is best effort.
        """
        self.state = WorkerState.INSTALLING
        if self.skip_waiting_on_install:
            self.skip_waiting_requested = True
        await asyncio.gather(self._precache_primary(), self._precache_external())
        logger.info("Cache version %s installed (%d assets)", self.version,
                    len(self.storage.open(self.primary_name)))

    async def _fetch(self, request: httpx.Request) -> CachedEntry:
        response = await self.network.handle_async_request(request)
        return await CachedEntry.read(response)

    async def _fetch_for_precache(self, request: httpx.Request) -> CachedEntry:
        try:
            entry = await self._fetch(request)
        except httpx.RequestError as exc:
            raise PrecacheError(str(request.url), f"Could not fetch {request.url}: {exc}") from exc
        if not 200 <= entry.status_code < 300:
            raise PrecacheError(str(request.url), f"{request.url} answered HTTP {entry.status_code}")
        return entry

    async def _precache_primary(self) -> None:
        requests = [httpx.Request('GET', self.resolve(url)) for url in self.precache_urls]
        entries = await asyncio.gather(*(self._fetch_for_precache(r) for r in requests), return_exceptions=True)
        for entry in entries:
            if isinstance(entry, BaseException):
                raise entry
        store = self.storage.open(self.primary_name)
        for request, entry in zip(requests, entries):
            store.put(request, entry)

    async def _precache_external(self) -> None:
        requests = [httpx.Request('GET', self.resolve(url)) for url in self.external_urls]
        results = await asyncio.gather(*(self._fetch_for_precache(r) for r in requests), return_exceptions=True)
        store = self.storage.open(self.external_name)
        for request, result in zip(requests, results):
            if isinstance(result, BaseException):
                logger.warning("Skipping external asset %s: %s", request.url, result)
                continue
            store.put(request, result)

    async def activate(self) -> List[str]:
        """Delete every store that belongs to another version."""
        self.state = WorkerState.ACTIVATING
        keep = {self.primary_name, self.external_name}
        deleted = [name for name in self.storage.keys() if name not in keep and self.storage.delete(name)]
        self.state = WorkerState.ACTIVATED
        return deleted

    # -- request interception -----------------------------------------------

    def is_api_request(self, url: httpx.URL) -> bool:
        return self.api_path_marker in url.path or self.api_host_marker in url.host

    def is_cross_origin(self, url: httpx.URL) -> bool:
        return origin_of(url) != origin_of(self.origin)

    async def handle_fetch(self, request: httpx.Request) -> httpx.Response:
        if self.is_api_request(request.url):
            return await self._network_only(request)
        if self.is_cross_origin(request.url):
            return await self._cache_first(request, self.external_name, keep_copy=True)
        return await self._cache_first(request, self.primary_name, keep_copy=False)

    async def _network_only(self, request: httpx.Request) -> httpx.Response:
        try:
            entry = await self._fetch(request)
        except httpx.RequestError as exc:
            logger.warning("API request to %s failed offline: %s", request.url, exc)
            return httpx.Response(
                200,
                json={'success': False, 'mensaje': self.offline_message},
                request=request,
            )
        return entry.to_response(request)

    async def _cache_first(self, request: httpx.Request, store_name: str, keep_copy: bool) -> httpx.Response:
        # a store deleted by a newer version just means a miss
        store = self.storage.get(store_name)
        if store is not None:
            cached = store.match(request)
            if cached is not None:
                logger.debug("Cache hit in %s for %s", store_name, request.url)
                return cached

        logger.debug("Cache miss in %s for %s", store_name, request.url)
        entry = await self._fetch(request)
        if keep_copy and entry.status_code == 200 and request.method == 'GET':
            self.storage.open(store_name).put(request, entry)
        return entry.to_response(request)

    # -- control messages ---------------------------------------------------

    async def handle_message(self, message: Optional[CacheMessage]) -> None:
        if message is None:
            return
        if message.type == SKIP_WAITING:
            await self.skip_waiting()

    async def skip_waiting(self) -> None:
        self.skip_waiting_requested = True
        if self._registration is not None:
            await self._registration.promote(self)


class ClientTransport(httpx.AsyncBaseTransport):
    """httpx transport of one client session.

    Requests go to the worker currently controlling the session, or straight
    to the network while no worker does.
    """

    def __init__(self, registration: Registration, client_id: str):
        self.registration = registration
        self.client_id = client_id

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        worker = self.registration.controller(self.client_id)
        if worker is None:
            return await self.registration.network.handle_async_request(request)
        return await worker.handle_fetch(request)


class Registration:
    def __init__(self, storage: Optional[CacheStorage] = None, network: Optional[httpx.AsyncBaseTransport] = None):
        self.storage = storage or CacheStorage()
        self.network = network or httpx.AsyncHTTPTransport()
        self.installing: Optional[ResourceWorker] = None
        self.waiting: Optional[ResourceWorker] = None
        self.active: Optional[ResourceWorker] = None
        # client session id -> controlling worker
        self._controllers: Dict[str, Optional[ResourceWorker]] = {}

    def worker(self, settings: Config) -> ResourceWorker:
        return ResourceWorker.from_config(settings, self.storage, self.network)

    async def register(self, worker: ResourceWorker) -> ResourceWorker:
        """Install ``worker`` and activate it as soon as the lifecycle allows.

        A failed install raises PrecacheError and leaves the current active
        worker in control.
        """
        worker.attach(self)
        self.installing = worker
        try:
            await worker.install()
        except PrecacheError:
            worker.state = WorkerState.REDUNDANT
            raise
        finally:
            if self.installing is worker:
                self.installing = None

        if self.waiting is not None:
            self.waiting.state = WorkerState.REDUNDANT
        self.waiting = worker
        worker.state = WorkerState.INSTALLED
        await self.promote(worker)
        return worker

    def _can_activate(self, worker: ResourceWorker) -> bool:
        if self.active is None or worker.skip_waiting_requested:
            return True
        return not any(c is self.active for c in self._controllers.values())

    async def promote(self, worker: ResourceWorker) -> bool:
        if worker is not self.waiting or not self._can_activate(worker):
            return False
        self.waiting = None
        previous, self.active = self.active, worker
        if previous is not None:
            previous.state = WorkerState.REDUNDANT
        deleted = await worker.activate()
        self.claim(worker)
        logger.info("Cache version %s active; removed stores: %s", worker.version, ', '.join(deleted) or 'none')
        return True

    def claim(self, worker: ResourceWorker) -> None:
        for client_id in self._controllers:
            self._controllers[client_id] = worker

    def open_client(self, client_id: str) -> ClientTransport:
        self._controllers[client_id] = self.active
        return ClientTransport(self, client_id)

    async def close_client(self, client_id: str) -> None:
        self._controllers.pop(client_id, None)
        if self.waiting is not None:
            await self.promote(self.waiting)

    def controller(self, client_id: str) -> Optional[ResourceWorker]:
        return self._controllers.get(client_id)

    async def post_message(self, message: Optional[CacheMessage]) -> CacheStatus:
        target = self.waiting or self.active
        if target is not None:
            await target.handle_message(message)
        return self.status()

    def status(self) -> CacheStatus:
        return CacheStatus(
            version=self.active.version if self.active else None,
            active=self.active.primary_name if self.active else None,
            waiting=self.waiting.primary_name if self.waiting else None,
            stores=self.storage.keys(),
            clients=len(self._controllers),
            controlled=sum(1 for c in self._controllers.values() if c is not None),
        )

    async def aclose(self) -> None:
        await self.network.aclose()
