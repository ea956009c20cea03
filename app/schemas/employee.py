"""
PeopleDesk HRM - Employee Schemas
"""

from datetime import date
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import EmailStr, Field, model_validator

from app.schemas.base import CamelModel, Money


class OnboardingRequest(CamelModel):
    """Create an employee login and HR profile in one step."""
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=72)
    employee_id: str = Field(..., min_length=1, max_length=50)
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    personal_email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=30)
    designation: Optional[str] = Field(None, max_length=150)
    employee_type: Optional[str] = Field(None, max_length=50)
    joining_date: Optional[date] = None
    date_of_birth: Optional[date] = None


class EmployeeProfileResponse(CamelModel):
    """Employee profile."""
    id: UUID
    user_id: UUID
    employee_id: str
    first_name: str
    last_name: str
    personal_email: Optional[str] = None
    phone: Optional[str] = None
    designation: Optional[str] = None
    employee_type: Optional[str] = None
    joining_date: Optional[date] = None
    is_active: bool


class OnboardingResponse(CamelModel):
    """Result of onboarding."""
    message: str
    user_id: UUID
    profile: EmployeeProfileResponse


class OfferRequest(CamelModel):
    """Monthly salary structure."""
    annual_ctc: Decimal = Field(..., ge=0)
    role_title: str = Field(..., min_length=1, max_length=150)
    basic: Decimal = Field(Decimal("0"), ge=0)
    hra: Decimal = Field(Decimal("0"), ge=0)
    da: Decimal = Field(Decimal("0"), ge=0)
    special_allowance: Decimal = Field(Decimal("0"), ge=0)
    gross_salary: Decimal = Field(..., ge=0)
    pf_deduction: Decimal = Field(Decimal("0"), ge=0)
    tax: Decimal = Field(Decimal("0"), ge=0)
    net_salary: Decimal = Field(..., ge=0)
    is_signed: bool = False

    @model_validator(mode="after")
    def check_deductions(self) -> "OfferRequest":
        if self.pf_deduction + self.tax > self.gross_salary:
            raise ValueError("Deductions cannot exceed gross salary")
        return self


class OfferResponse(CamelModel):
    """Stored salary structure."""
    id: UUID
    user_id: UUID
    annual_ctc: Money
    role_title: str
    basic: Money
    hra: Money
    da: Money
    special_allowance: Money
    gross_salary: Money
    pf_deduction: Money
    tax: Money
    net_salary: Money
    is_signed: bool
