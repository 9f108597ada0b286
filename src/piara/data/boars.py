"""Boar catalogue, used to fill in service events."""

from piara.core.client import NotFoundError
from piara.core.models import Boar
from piara.core.store import Store


async def list_boars(store: Store, active_only: bool = True) -> list[Boar]:
    """Boars ordered by code."""
    return await store.query_boars(active_only=active_only)


async def find_boar(store: Store, identifier: str) -> Boar:
    """
    Find an active boar by id or code (case-insensitive).

    Raises:
        NotFoundError: If no active boar matches
    """
    for boar in await store.query_boars(active_only=True):
        if boar.id == identifier or boar.codigo.lower() == identifier.lower():
            return boar
    raise NotFoundError(f"No active boar found matching '{identifier}'")
