from __future__ import annotations

from typing import Dict, List

from pydantic import BaseModel, Field


class BackupRequest(BaseModel):
    master_password: str


class ImportRequest(BaseModel):
    master_password: str
    data: str = Field(
        ...,
        description='JSON object keyed by table name, e.g. {"user": [{...}, ...]}',
    )


class ImportResult(BaseModel):
    message: str
    imported: Dict[str, int] = Field(default_factory=dict)
    skipped: List[str] = Field(default_factory=list)
