from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from .people import UserType

LoanType = Literal["individual", "batch"]
LoanStatus = Literal["active", "returned", "overdue"]


class LoanCreate(BaseModel):
    device_id: str = Field(..., min_length=1)
    borrower_name: str = Field(..., min_length=1)
    borrower_ra: Optional[str] = None
    borrower_email: str = Field(..., min_length=3)
    purpose: str = Field(..., min_length=1)
    user_type: UserType = "student"
    loan_type: LoanType = "individual"
    expected_return_date: Optional[str] = None
    reservation_id: Optional[int] = None


class BulkLoanCreate(BaseModel):
    """Same borrower and purpose for a list of devices."""

    device_ids: list[str] = Field(..., min_length=1)
    borrower_name: str = Field(..., min_length=1)
    borrower_ra: Optional[str] = None
    borrower_email: str = Field(..., min_length=3)
    purpose: str = Field(..., min_length=1)
    user_type: UserType = "student"
    expected_return_date: Optional[str] = None
    reservation_id: Optional[int] = None

    def to_loans(self) -> list[LoanCreate]:
        shared = self.model_dump(exclude={"device_ids"})
        return [LoanCreate(device_id=device_id, loan_type="batch", **shared) for device_id in self.device_ids]


class LoanOut(BaseModel):
    id: int
    chromebook_id: int
    device_id: Optional[str] = None
    borrower_name: str
    borrower_ra: Optional[str] = None
    borrower_email: str
    purpose: str
    user_type: str
    loan_type: str
    loan_date: str
    expected_return_date: Optional[str] = None
    reservation_id: Optional[int] = None
    created_by: Optional[str] = None

    model_config = {"from_attributes": True}


class LoanHistoryItem(BaseModel):
    id: int
    device_id: str
    chromebook_model: Optional[str] = None
    borrower_name: str
    borrower_ra: Optional[str] = None
    borrower_email: str
    purpose: str
    user_type: str
    loan_type: str
    loan_date: str
    expected_return_date: Optional[str] = None
    return_date: Optional[str] = None
    returned_by_name: Optional[str] = None
    returned_by_email: Optional[str] = None
    returned_by_type: Optional[str] = None
    return_notes: Optional[str] = None
    status: LoanStatus
    due_message: Optional[str] = None
    due_variant: Optional[str] = None
    duration: Optional[str] = None


class LoanHistoryPage(BaseModel):
    total: int
    items: list[LoanHistoryItem]


class ReturnCreate(BaseModel):
    device_id: str = Field(..., min_length=1)
    returned_by_name: str = Field(..., min_length=1)
    returned_by_ra: Optional[str] = None
    returned_by_email: str = Field(..., min_length=3)
    returned_by_type: UserType = "student"
    notes: Optional[str] = None


class BulkReturnCreate(BaseModel):
    device_ids: list[str] = Field(..., min_length=1)
    returned_by_name: str = Field(..., min_length=1)
    returned_by_ra: Optional[str] = None
    returned_by_email: str = Field(..., min_length=3)
    returned_by_type: UserType = "student"
    notes: Optional[str] = None


class ReturnOut(BaseModel):
    id: int
    loan_id: int
    returned_by_name: str
    returned_by_ra: Optional[str] = None
    returned_by_email: str
    returned_by_type: str
    return_date: str
    notes: Optional[str] = None
    created_by: Optional[str] = None

    model_config = {"from_attributes": True}


class OverdueLoan(BaseModel):
    loan_id: int
    device_id: str
    borrower_name: str
    borrower_email: str
    loan_date: str
    expected_return_date: str
    days_overdue: int


class UpcomingDueLoan(BaseModel):
    loan_id: int
    device_id: str
    borrower_name: str
    borrower_email: str
    loan_date: str
    expected_return_date: str
    days_until_due: int


class OverdueCheckResult(BaseModel):
    overdue: int
    upcoming: int
    notifications_created: int
