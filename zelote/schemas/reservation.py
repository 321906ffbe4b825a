from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field


class ReservationBase(BaseModel):
    time_slot: str
    teacher_id: int
    justification: str = Field(..., min_length=1)
    quantity_requested: int = Field(..., gt=0)
    needs_tv: bool = False
    needs_sound: bool = False
    needs_mic: bool = False
    mic_quantity: int = Field(default=0, ge=0)
    is_minecraft: bool = False
    classroom: Optional[str] = None


class ReservationCreate(ReservationBase):
    date: dt.date


class BulkReservationCreate(ReservationBase):
    dates: list[dt.date] = Field(..., min_length=1)


class ReservationOut(ReservationBase):
    id: int
    date: str
    teacher_name: Optional[str] = None
    teacher_email: Optional[str] = None
    associated_device_ids: list[str] = Field(default_factory=list)
    created_by: Optional[str] = None
    created_at: str

    model_config = {"from_attributes": True}


class BulkReservationResult(BaseModel):
    count: int
    items: list[ReservationOut]


class WeekSchedule(BaseModel):
    start: str
    end: str
    days: list[str]
    time_slots: list[str]
    capacity: int
    reservations: list[ReservationOut]
