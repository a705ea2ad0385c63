from __future__ import annotations
from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Literal, Optional, Union

Score = Union[int, float]

class SearchRequest(BaseModel):
    # letters are already uppercased when this exists
    letters: List[str]
    # cells go to the word source exactly as the caller sent them
    bonus_table: List[List[Any]]
    round: int

class ScoredWord(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    word: str = Field(..., alias='palabra')
    score: Score = Field(..., alias='puntos')

    @property
    def length(self) -> int:
        return len(self.word)

class LengthStats(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total: int
    kept: int = Field(..., alias='mejores')
    max_score: Score = Field(..., alias='puntos_max')
    min_score: Score = Field(..., alias='puntos_min')

class RankedResult(BaseModel):
    words: List[ScoredWord] = []
    total_returned: int = 0
    total_before_truncation: int = 0
    per_length_stats: Dict[int, LengthStats] = {}

    def to_payload(self) -> dict:
        """Search result as sent to the presentation layer."""
        return {
            'success': True,
            'data': {
                'palabras': [w.model_dump(by_alias=True) for w in self.words],
                'total': self.total_returned,
                'total_antes_filtro': self.total_before_truncation,
                'estadisticas': {
                    f'longitud_{length}': stats.model_dump(by_alias=True)
                    for length, stats in sorted(self.per_length_stats.items())
                },
            },
        }

# Word source response envelope
class SourceData(BaseModel):
    palabras: List[Any] = []

class SourceEnvelope(BaseModel):
    success: bool = False
    data: Optional[SourceData] = None
    mensaje: Optional[str] = None

class ErrorReport(BaseModel):
    titulo: str
    mensaje: str
    detalle: str

class CacheMessage(BaseModel):
    type: str

WorkerStateName = Literal['installing', 'installed', 'activating', 'activated', 'redundant']

class CacheStatus(BaseModel):
    version: Optional[str] = None
    active: Optional[str] = None
    waiting: Optional[str] = None
    stores: List[str] = []
    clients: int = 0
    controlled: int = 0
