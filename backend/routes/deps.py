"""
Shared route dependencies.
"""

from fastapi import Depends
from sqlmodel import Session

from db import get_session
from integrations.mercadolibre.client import MeliClient


def get_meli_client(session: Session = Depends(get_session)) -> MeliClient:
    """Request-scoped Mercado Livre client."""
    return MeliClient(session)
