from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

DeviceStatus = Literal["available", "on_loan", "fixed", "out_of_use", "maintenance"]


class ChromebookBase(BaseModel):
    model: str = Field(..., min_length=1)
    manufacturer: Optional[str] = None
    serial_number: Optional[str] = None
    patrimony_number: Optional[str] = None
    status: DeviceStatus = "available"
    condition: Optional[str] = None
    location: Optional[str] = None
    classroom: Optional[str] = None
    is_deprovisioned: bool = False

    model_config = {"protected_namespaces": ()}


class ChromebookCreate(ChromebookBase):
    device_id: Optional[str] = None


class ChromebookUpdate(BaseModel):
    device_id: Optional[str] = None
    model: Optional[str] = None
    manufacturer: Optional[str] = None
    serial_number: Optional[str] = None
    patrimony_number: Optional[str] = None
    status: Optional[DeviceStatus] = None
    condition: Optional[str] = None
    location: Optional[str] = None
    classroom: Optional[str] = None
    is_deprovisioned: Optional[bool] = None

    model_config = {"protected_namespaces": ()}


class ChromebookOut(ChromebookBase):
    id: int
    device_id: str
    created_by: Optional[str] = None
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True, "protected_namespaces": ()}


class InventoryStats(BaseModel):
    total: int
    by_status: dict[str, int]
    bookable: int


class NextDeviceId(BaseModel):
    device_id: str


class SyncResult(BaseModel):
    device_id: str
    status: str
    message: str
