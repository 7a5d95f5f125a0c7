from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException, Request, status

from invbill.apps.accounts.admin import AdminGate, MasterPasswordError
from invbill.apps.accounts.store import CredentialStore, StoreConflictError, StoreError

from . import schemas, services

logger = logging.getLogger(__name__)

router = APIRouter(tags=["transfer"])


def get_admin_gate(request: Request) -> AdminGate:
    return request.app.state.admin_gate


def get_credential_store(request: Request) -> CredentialStore:
    return request.app.state.credential_store


def _unauthorized() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid master password",
    )


@router.post("/backup/run", summary="Export stored records (master password required)")
def backup_data(
    payload: schemas.BackupRequest,
    gate: AdminGate = Depends(get_admin_gate),
    store: CredentialStore = Depends(get_credential_store),
):
    try:
        return services.run_backup(
            gate=gate,
            store=store,
            master_password=payload.master_password,
        )
    except MasterPasswordError:
        raise _unauthorized()
    except StoreError as exc:
        logger.error("Backup failed", exc_info=exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to back up data",
        )


@router.post(
    "/import/run",
    response_model=schemas.ImportResult,
    summary="Import records from a backup (master password required)",
)
def import_data(
    payload: schemas.ImportRequest,
    gate: AdminGate = Depends(get_admin_gate),
    store: CredentialStore = Depends(get_credential_store),
):
    try:
        imported, skipped = services.run_import(
            gate=gate,
            store=store,
            master_password=payload.master_password,
            data=payload.data,
        )
    except MasterPasswordError:
        raise _unauthorized()
    except services.ImportFormatError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )
    except StoreConflictError as exc:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=str(exc),
        )
    except StoreError as exc:
        logger.error("Import failed", exc_info=exc)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to import data",
        )
    return schemas.ImportResult(
        message="Import completed successfully",
        imported=imported,
        skipped=skipped,
    )
