from __future__ import annotations
import json
from typing import Any, Dict

from fastapi import APIRouter, Body, Request, Response

from ..errors import InvalidInput
from ..schemas import CacheMessage, CacheStatus

router = APIRouter()


def _parse_query(letras: str, puntos_extra: str, ronda: str):
    letters = letras.split(',') if letras else []
    try:
        bonus_table = json.loads(puntos_extra)
    except ValueError as exc:
        raise InvalidInput('puntos_extra', 'Los puntos extra no tienen un formato válido', puntos_extra) from exc
    try:
        round_number = int(ronda)
    except ValueError as exc:
        raise InvalidInput('ronda', 'La ronda debe ser un número entre 1 y 5', ronda) from exc
    return letters, bonus_table, round_number


@router.get('/search')
async def search_query(request: Request, letras: str = '', puntos_extra: str = '[]', ronda: str = '1'):
    letters, bonus_table, round_number = _parse_query(letras, puntos_extra, ronda)
    result = await request.app.state.searches.search(letters, bonus_table, round_number)
    return result.to_payload()


@router.post('/search')
async def search_body(request: Request, payload: Dict[str, Any] = Body(...)):
    result = await request.app.state.searches.search(
        payload.get('letras'), payload.get('puntos_extra'), payload.get('ronda'))
    return result.to_payload()


@router.get('/assets/{path:path}')
async def asset(request: Request, path: str):
    upstream = await request.app.state.searches.fetch_asset(path)
    headers = {k: v for k, v in upstream.headers.items()
               if k.lower() not in ('content-length', 'content-encoding', 'transfer-encoding')}
    return Response(content=upstream.content, status_code=upstream.status_code, headers=headers)


@router.post('/cache/messages')
async def cache_message(request: Request, message: CacheMessage) -> CacheStatus:
    return await request.app.state.registration.post_message(message)


@router.get('/cache/status')
async def cache_status(request: Request) -> CacheStatus:
    return request.app.state.registration.status()
