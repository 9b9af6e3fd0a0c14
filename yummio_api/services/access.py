"""
Reglas de acceso comunes a recetas, colecciones y listas de la compra.

Política única para lecturas y escrituras: si el recurso no existe (o está borrado) es NotFound,
lo resuelve el repositorio; si existe y el solicitante no puede verlo o modificarlo es Forbidden.
"""
from __future__ import annotations
from typing import Optional, Protocol

from ..errors import Forbidden


class Owned(Protocol):
    user_id: str


class Shareable(Owned, Protocol):
    is_public: bool


def ensure_owner(resource: Owned, requester_id: Optional[str], action: str, kind: str) -> None:
    if requester_id is None or resource.user_id != requester_id:
        raise Forbidden(f"unauthorized to {action} this {kind}")


def can_view(resource: Shareable, requester_id: Optional[str]) -> bool:
    return resource.is_public or (requester_id is not None and resource.user_id == requester_id)


def ensure_visible(resource: Shareable, requester_id: Optional[str], kind: str) -> None:
    if not can_view(resource, requester_id):
        raise Forbidden(f"unauthorized to access this {kind}")
