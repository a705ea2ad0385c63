from __future__ import annotations
from typing import Any

from .errors import InvalidInput
from .schemas import SearchRequest

LETTER_COUNT = 7
BONUS_ROWS = 5
MIN_WORD_LENGTH = 3
MIN_ROUND = 1
MAX_ROUND = 5


def _is_sequence(value: Any) -> bool:
    # strings are sequences too, but never a valid letter set or bonus row
    return isinstance(value, (list, tuple))


def validate(letters: Any, bonus_table: Any, round_number: Any) -> SearchRequest:
    """Check the three search parameters and return them normalized.

    Runs synchronously and touches nothing else, so an invalid search never
    issues a request.
    """
    if not _is_sequence(letters) or len(letters) != LETTER_COUNT:
        raise InvalidInput('letras', f'El array de letras disponibles debe tener exactamente {LETTER_COUNT} letras', letters)
    for letter in letters:
        if not isinstance(letter, str) or len(letter) != 1:
            raise InvalidInput('letras', 'Cada letra disponible debe ser un único carácter', letter)

    if not _is_sequence(bonus_table) or len(bonus_table) != BONUS_ROWS:
        raise InvalidInput('puntos_extra', f'El array de puntos extra debe tener {BONUS_ROWS} filas (para longitudes 3-7)', bonus_table)
    for i, row in enumerate(bonus_table):
        length = i + MIN_WORD_LENGTH
        if not _is_sequence(row) or len(row) != length:
            raise InvalidInput('puntos_extra', f'La fila {i} debe tener {length} elementos', row)

    # bool is an int subclass; True must not pass as round 1
    if isinstance(round_number, bool) or not isinstance(round_number, int) \
            or not MIN_ROUND <= round_number <= MAX_ROUND:
        raise InvalidInput('ronda', f'La ronda debe ser un número entre {MIN_ROUND} y {MAX_ROUND}', round_number)

    return SearchRequest(
        letters=[letter.upper() for letter in letters],
        bonus_table=[list(row) for row in bonus_table],
        round=round_number,
    )
