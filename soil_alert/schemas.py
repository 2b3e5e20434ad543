"""
Pydantic schemas for request/response validation.

This module contains:
- Request models for incoming data validation
- Response models for API responses
- The CheckResult model returned by the alert workflow
"""

from enum import Enum
from typing import Optional, Union

from pydantic import BaseModel, Field, field_validator


# =============================================================================
# Pydantic Request Models
# =============================================================================

class FarmerNumberRequest(BaseModel):
    """
    Body of POST /api/farmer-number.

    phoneNumber is optional at the schema level so a missing value can be
    answered with 400 rather than a generic 422.
    """
    name: Optional[str] = Field(None, description="Farmer display name")
    phone_number: Optional[str] = Field(
        None,
        alias="phoneNumber",
        description="10-digit number, optionally prefixed with the country code"
    )

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: Optional[str]) -> Optional[str]:
        return v.strip() if v is not None else v

    model_config = {
        "populate_by_name": True,
        "json_schema_extra": {
            "examples": [
                {"name": "Ravi", "phoneNumber": "9876543210"}
            ]
        }
    }


# =============================================================================
# Pydantic Response Models
# =============================================================================

class ContactResponse(BaseModel):
    """The stored farmer contact."""
    name: Optional[str] = Field(None, description="Farmer display name")
    phone_number: str = Field(
        ...,
        alias="phoneNumber",
        serialization_alias="phoneNumber",
        description="Normalized phone number"
    )

    model_config = {
        "populate_by_name": True,
        "from_attributes": True,  # Allow creating from ORM objects
    }


class FarmerNumberUpdateResponse(ContactResponse):
    """Response model for a successful contact upsert."""
    message: str = Field(
        default="Farmer number updated successfully",
        description="Operation status"
    )


class TriggerSmsResponse(BaseModel):
    """Response model for GET /api/trigger-sms."""
    message: str = Field(..., description="Operation status")
    delivered: bool = Field(..., description="Whether the SMS provider accepted the message")
    reading: Union[int, float] = Field(..., description="Soil moisture percentage sent")
    message_sid: Optional[str] = Field(None, description="Provider message identifier")


class ErrorResponse(BaseModel):
    """Response model for error responses."""
    detail: str = Field(..., description="Error description")


class HealthResponse(BaseModel):
    """Response model for health check endpoints."""
    status: str = Field(..., description="Health status")
    reason: Optional[str] = Field(None, description="Reason if not ready")


# =============================================================================
# Workflow Result
# =============================================================================

class CheckOutcome(str, Enum):
    ALERT_SENT = "alert_sent"
    NO_ACTION = "no_action"
    NO_CONTACT = "no_contact"
    FETCH_FAILED = "fetch_failed"
    STORE_FAILED = "store_failed"
    DELIVERY_FAILED = "delivery_failed"
    MANUAL_SENT = "manual_sent"


class CheckResult(BaseModel):
    """
    Result of one alert workflow invocation.

    Collaborator failures are reported here instead of being raised, so the
    scheduler never sees an exception.
    """
    outcome: CheckOutcome = Field(..., description="What the workflow did")
    trigger: str = Field(..., description="startup, scheduled, manual or api")
    reading: Optional[Union[int, float]] = Field(None, description="Soil moisture percentage")
    phone_number: Optional[str] = Field(None, description="Recipient, when one was set")
    message_sid: Optional[str] = Field(None, description="Provider message identifier")
    error: Optional[str] = Field(None, description="Failure detail for *_failed outcomes")
