"""
Credential management endpoints.

The stored API key is write-only: it can be set or cleared but never
read back.
"""

import logging
from typing import Any, Dict

from fastapi import APIRouter, Depends, status

from ai_code_review.dependencies import get_credential_store
from ai_code_review.llm.schemas import Credentials
from ai_code_review.storage.credentials import CredentialStore

logger = logging.getLogger(__name__)

router = APIRouter()


def _status(store: CredentialStore) -> Dict[str, Any]:
    credentials = store.get()
    return {
        "configured": credentials is not None,
        "model": credentials.model if credentials else None,
    }


@router.get("", summary="Credential status")
async def get_credentials_status(
    store: CredentialStore = Depends(get_credential_store),
) -> Dict[str, Any]:
    return _status(store)


@router.put("", summary="Store credentials")
async def put_credentials(
    credentials: Credentials,
    store: CredentialStore = Depends(get_credential_store),
) -> Dict[str, Any]:
    store.set(credentials)
    logger.info(f"Credentials stored for model {credentials.model}")
    return _status(store)


@router.delete("", status_code=status.HTTP_204_NO_CONTENT, summary="Clear credentials")
async def delete_credentials(store: CredentialStore = Depends(get_credential_store)) -> None:
    store.clear()
    logger.info("Credentials cleared")
