from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

ScanMethod = Literal["qr_code", "manual_id"]


class AuditStart(BaseModel):
    name: str = Field(..., min_length=1)
    notes: Optional[str] = None


class AuditCount(BaseModel):
    device_id: str = Field(..., min_length=1)
    scan_method: ScanMethod = "manual_id"
    location_found: Optional[str] = None
    condition_found: Optional[str] = None
    location_confirmed: Optional[bool] = None
    notes: Optional[str] = None


class AuditItemOut(BaseModel):
    id: int
    audit_id: int
    chromebook_id: int
    device_id: Optional[str] = None
    counted_at: str
    counted_by: Optional[str] = None
    scan_method: str
    location_found: Optional[str] = None
    condition_found: Optional[str] = None
    location_confirmed: Optional[bool] = None
    notes: Optional[str] = None

    model_config = {"from_attributes": True}


class AuditOut(BaseModel):
    id: int
    name: str
    status: str
    started_at: str
    completed_at: Optional[str] = None
    notes: Optional[str] = None
    total_expected: int
    total_counted: int
    created_by: Optional[str] = None

    model_config = {"from_attributes": True}


class AuditDetail(AuditOut):
    items: list[AuditItemOut] = Field(default_factory=list)
