"""Request schemas for Billing API

Pydantic models for validating incoming HTTP requests.
"""

from typing import Optional
from pydantic import BaseModel, Field, model_validator


class CheckoutSessionRequestSchema(BaseModel):
    """
    Request schema for starting a Stripe checkout

    Used for POST /billing/checkout-sessions endpoint.
    Exactly one of package_id or plan_id must be given.
    """

    account_id: str = Field(
        ...,
        min_length=1,
        description="Account identifier (required, non-empty)"
    )

    package_id: Optional[str] = Field(
        default=None,
        description="Credit package to buy once (e.g., 'credit-15')"
    )

    plan_id: Optional[str] = Field(
        default=None,
        description="Subscription plan to subscribe to (e.g., 'premium')"
    )

    success_url: str = Field(
        ...,
        min_length=1,
        description="Where Stripe redirects after payment"
    )

    cancel_url: str = Field(
        ...,
        min_length=1,
        description="Where Stripe redirects when the user backs out"
    )

    @model_validator(mode="after")
    def validate_single_item(self):
        """Ensure the checkout buys exactly one thing"""
        if bool(self.package_id) == bool(self.plan_id):
            raise ValueError("Provide exactly one of 'package_id' or 'plan_id'")
        return self

    class Config:
        json_schema_extra = {
            "example": {
                "account_id": "3f6c1d9e-7a0b-4b8e-9d61-0c2f5b1e4a77",
                "package_id": "credit-15",
                "success_url": "https://app.example.com/billing/success",
                "cancel_url": "https://app.example.com/billing"
            }
        }


class VerifyCheckoutRequestSchema(BaseModel):
    """
    Request schema for verifying a completed checkout

    Used for POST /billing/checkout-sessions/{session_id}/verify endpoint.
    """

    account_id: str = Field(
        ...,
        min_length=1,
        description="Account the success page is shown to (required, non-empty)"
    )

    class Config:
        json_schema_extra = {
            "example": {
                "account_id": "3f6c1d9e-7a0b-4b8e-9d61-0c2f5b1e4a77"
            }
        }
