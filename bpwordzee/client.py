"""Client for the remote word-scoring endpoint"""

from __future__ import annotations
import enum
import json
import logging
from typing import Any, List, NamedTuple, Optional, Sequence, Tuple
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from .errors import MalformedResponse, SourceRejected, SourceUnavailable
from .schemas import ScoredWord, SearchRequest, SourceEnvelope

logger = logging.getLogger(__name__)

# Characters left alone by JavaScript's encodeURIComponent
_URI_COMPONENT_SAFE = "-_.!~*'()"


class DecodeKind(enum.Enum):
    OK = 'ok'
    REJECTED = 'rejected'
    MALFORMED = 'malformed'


class Decoded(NamedTuple):
    kind: DecodeKind
    words: Tuple[ScoredWord, ...] = ()
    reason: Optional[str] = None


def _is_score(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def flatten_entry(entry: Any) -> Optional[ScoredWord]:
    """Turn one wire entry into a ScoredWord, or None if it is unusable.

    Accepts the single-key mapping ``{"WORD": score}`` and the explicit
    record ``{"palabra": "WORD", "puntos": score}``. Scores are kept as sent.
    """
    if not isinstance(entry, dict):
        return None
    if len(entry) == 1:
        word, score = next(iter(entry.items()))
    elif set(entry) == {'palabra', 'puntos'}:
        word, score = entry['palabra'], entry['puntos']
    else:
        return None
    if not isinstance(word, str) or not word or not _is_score(score):
        return None
    return ScoredWord(word=word, score=score)


def decode_envelope(body: bytes) -> Decoded:
    try:
        envelope = SourceEnvelope.model_validate_json(body)
    except ValidationError:
        return Decoded(DecodeKind.MALFORMED)

    if not envelope.success:
        return Decoded(DecodeKind.REJECTED, reason=envelope.mensaje or SourceRejected.default_reason)
    if envelope.data is None:
        return Decoded(DecodeKind.MALFORMED)

    words = []
    for entry in envelope.data.palabras:
        scored = flatten_entry(entry)
        if scored is None:
            logger.debug("Dropping malformed word entry %r", entry)
            continue
        words.append(scored)
    return Decoded(DecodeKind.OK, words=tuple(words))


def build_query(letters: Sequence[str], bonus_table: Sequence[Sequence[Any]], round_number: int) -> str:
    bonus = json.dumps(bonus_table, separators=(',', ':'), ensure_ascii=False)
    return (
        f"letras={','.join(letters)}"
        f"&puntos_extra={quote(bonus, safe=_URI_COMPONENT_SAFE)}"
        f"&ronda={round_number}"
    )


class WordSourceClient:
    def __init__(self, http: httpx.AsyncClient, endpoint: str):
        self.http = http
        self.endpoint = endpoint

    def build_url(self, request: SearchRequest, endpoint: Optional[str] = None) -> str:
        base = endpoint or self.endpoint
        separator = '&' if '?' in base else '?'
        return base + separator + build_query(request.letters, request.bonus_table, request.round)

    async def fetch_candidates(self, request: SearchRequest, endpoint: Optional[str] = None) -> List[ScoredWord]:
        """Query the word source once and return its scored words.

        Raises SourceUnavailable, MalformedResponse or SourceRejected. Nothing
        is retried here.
        """
        url = self.build_url(request, endpoint)
        try:
            response = await self.http.get(url)
        except httpx.RequestError as exc:
            logger.warning("Word source unreachable at %s: %s", url, exc)
            raise SourceUnavailable(url=url) from exc

        decoded = decode_envelope(response.content)
        if decoded.kind is DecodeKind.MALFORMED:
            logger.warning("Word source sent an unreadable body (HTTP %d)", response.status_code)
            raise MalformedResponse()
        if decoded.kind is DecodeKind.REJECTED:
            raise SourceRejected(decoded.reason)
        return list(decoded.words)
