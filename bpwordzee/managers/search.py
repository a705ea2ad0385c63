from __future__ import annotations
import logging
from typing import Any, Dict, Optional

import httpx

from ..client import WordSourceClient
from ..config import Config
from ..errors import AssetNotFound
from ..ranking import RankingEngine
from ..schemas import RankedResult
from ..validation import validate
from .offline import Registration, origin_of

logger = logging.getLogger(__name__)

HOST_SESSION = 'host'

class SearchManager:
    """Runs searches: validate, query the word source once, rank.

    Each client session gets its own httpx client whose transport belongs to
    the offline layer. Searches share nothing else.
    """

    def __init__(self, settings: Config, registration: Registration, engine: Optional[RankingEngine] = None):
        self.settings = settings
        self.registration = registration
        self.engine = engine or RankingEngine(top_n=settings.top_n)
        self.clients: Dict[str, WordSourceClient] = {}

    def get_or_create(self, session_id: str) -> WordSourceClient:
        if session_id not in self.clients:
            http = httpx.AsyncClient(
                transport=self.registration.open_client(session_id),
                timeout=self.settings.timeout,
            )
            self.clients[session_id] = WordSourceClient(http, self.settings.endpoint)
        return self.clients[session_id]

    async def search(self, letters: Any, bonus_table: Any, round_number: Any,
                     session_id: str = HOST_SESSION, endpoint: Optional[str] = None) -> RankedResult:
        request = validate(letters, bonus_table, round_number)
        client = self.get_or_create(session_id)
        candidates = await client.fetch_candidates(request, endpoint)
        result = self.engine.rank(candidates)
        logger.info("Search %s round %d: %d words, %d kept", ''.join(request.letters), request.round,
                    result.total_before_truncation, result.total_returned)
        return result

    async def fetch_asset(self, path: str, session_id: str = HOST_SESSION) -> httpx.Response:
        origin = httpx.URL(self.settings.origin)
        url = origin.join(path)
        # absolute or scheme-relative paths would leave the origin
        if origin_of(url) != origin_of(origin):
            raise AssetNotFound(path)
        client = self.get_or_create(session_id)
        return await client.http.get(url)

    async def close_session(self, session_id: str) -> None:
        client = self.clients.pop(session_id, None)
        if client is not None:
            await client.http.aclose()
        await self.registration.close_client(session_id)

    async def aclose(self) -> None:
        for session_id in list(self.clients):
            await self.close_session(session_id)
