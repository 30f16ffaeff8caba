"""Inbound Stripe Event

Stripe payloads are validated once, at the parse boundary, into a tagged
union keyed by event type. Each variant carries only the object its handler
needs; unknown event types parse to None and are acknowledged untouched.

Only the fields the reconciler reads are modelled; everything else in the
payload is ignored.
"""

from datetime import datetime, timezone
from typing import Any, ClassVar, Dict, List, Optional, Type, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator


ACCOUNT_METADATA_KEYS = ("accountId", "account_id", "userId", "user_id")


def _expandable_id(value: Any) -> Any:
    """Stripe may expand a referenced object inline; keep only its id"""
    if isinstance(value, dict):
        return value.get("id")
    return value


def _timestamp(value: Optional[int]) -> Optional[datetime]:
    """Unix seconds -> naive UTC datetime"""
    if value is None:
        return None
    return datetime.fromtimestamp(value, tz=timezone.utc).replace(tzinfo=None)


def account_id_from_metadata(metadata: Optional[Dict[str, Any]]) -> Optional[str]:
    for key in ACCOUNT_METADATA_KEYS:
        value = (metadata or {}).get(key)
        if value:
            return str(value)
    return None


class StripeObject(BaseModel):
    model_config = ConfigDict(extra="ignore")


class StripePrice(StripeObject):
    id: str


class StripeSubscriptionItem(StripeObject):
    price: Optional[StripePrice] = None
    plan: Optional[StripePrice] = None
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None


class StripeSubscriptionItems(StripeObject):
    data: List[StripeSubscriptionItem] = Field(default_factory=list)


class StripeSubscriptionObject(StripeObject):
    """Subscription as sent in events and returned by the API"""

    id: str
    customer: Optional[str] = None
    status: str
    metadata: Dict[str, Any] = Field(default_factory=dict)
    items: StripeSubscriptionItems = Field(default_factory=StripeSubscriptionItems)
    current_period_start: Optional[int] = None
    current_period_end: Optional[int] = None

    _normalize_customer = field_validator("customer", mode="before")(_expandable_id)

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_or_empty(cls, value):
        return value or {}

    @property
    def first_item(self) -> Optional[StripeSubscriptionItem]:
        return self.items.data[0] if self.items.data else None

    @property
    def price_id(self) -> Optional[str]:
        item = self.first_item
        if item is None:
            return None
        price = item.price or item.plan
        return price.id if price else None

    @property
    def period_start(self) -> Optional[datetime]:
        # Newer API versions moved the billing period onto subscription items
        value = self.current_period_start
        if value is None and self.first_item is not None:
            value = self.first_item.current_period_start
        return _timestamp(value)

    @property
    def period_end(self) -> Optional[datetime]:
        value = self.current_period_end
        if value is None and self.first_item is not None:
            value = self.first_item.current_period_end
        return _timestamp(value)

    @property
    def metadata_account_id(self) -> Optional[str]:
        return account_id_from_metadata(self.metadata)


class StripeCustomerDetails(StripeObject):
    email: Optional[str] = None


class StripeLineItem(StripeObject):
    price: Optional[StripePrice] = None


class StripeLineItems(StripeObject):
    data: List[StripeLineItem] = Field(default_factory=list)


class StripeCheckoutSessionObject(StripeObject):
    id: str
    mode: Optional[str] = None
    customer: Optional[str] = None
    customer_email: Optional[str] = None
    customer_details: Optional[StripeCustomerDetails] = None
    client_reference_id: Optional[str] = None
    subscription: Optional[str] = None
    payment_status: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)
    line_items: Optional[StripeLineItems] = None  # Only when retrieved with expand=["line_items"]

    _normalize_ids = field_validator("customer", "subscription", mode="before")(_expandable_id)

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_or_empty(cls, value):
        return value or {}

    @property
    def email(self) -> Optional[str]:
        if self.customer_details and self.customer_details.email:
            return self.customer_details.email
        return self.customer_email

    @property
    def metadata_account_id(self) -> Optional[str]:
        return account_id_from_metadata(self.metadata) or self.client_reference_id

    @property
    def package_id(self) -> Optional[str]:
        return self.metadata.get("packageId") or self.metadata.get("package_id")

    @property
    def price_id(self) -> Optional[str]:
        if not self.line_items or not self.line_items.data:
            return None
        price = self.line_items.data[0].price
        return price.id if price else None

    @property
    def is_paid(self) -> bool:
        # Delayed payment methods complete the session before funds settle
        return self.payment_status in (None, "paid", "no_payment_required")


class StripeSubscriptionDetails(StripeObject):
    subscription: Optional[str] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    _normalize_subscription = field_validator("subscription", mode="before")(_expandable_id)

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_or_empty(cls, value):
        return value or {}


class StripeInvoiceParent(StripeObject):
    subscription_details: Optional[StripeSubscriptionDetails] = None


class StripeInvoiceObject(StripeObject):
    id: str
    customer: Optional[str] = None
    customer_email: Optional[str] = None
    subscription: Optional[str] = None
    parent: Optional[StripeInvoiceParent] = None
    subscription_details: Optional[StripeSubscriptionDetails] = None
    metadata: Dict[str, Any] = Field(default_factory=dict)

    _normalize_ids = field_validator("customer", "subscription", mode="before")(_expandable_id)

    @field_validator("metadata", mode="before")
    @classmethod
    def _metadata_or_empty(cls, value):
        return value or {}

    def _details(self) -> Optional[StripeSubscriptionDetails]:
        if self.parent and self.parent.subscription_details:
            return self.parent.subscription_details
        return self.subscription_details

    @property
    def subscription_id(self) -> Optional[str]:
        if self.subscription:
            return self.subscription
        details = self._details()
        return details.subscription if details else None

    @property
    def metadata_account_id(self) -> Optional[str]:
        details = self._details()
        return account_id_from_metadata(self.metadata) or (
            account_id_from_metadata(details.metadata) if details else None
        )


class StripeEventData(StripeObject):
    object: Dict[str, Any]


class StripeEventEnvelope(StripeObject):
    """Outer shape shared by every Stripe event"""

    id: str
    type: str
    created: int
    livemode: bool = False
    data: StripeEventData

    @property
    def occurred_at(self) -> datetime:
        return _timestamp(self.created)


class StripeEvent(BaseModel):
    """Base of the tagged union"""

    payload_field: ClassVar[str]
    event_types: ClassVar[tuple]

    event_id: str
    event_type: str
    occurred_at: datetime


class CheckoutSessionCompleted(StripeEvent):
    payload_field: ClassVar[str] = "session"
    event_types: ClassVar[tuple] = (
        "checkout.session.completed",
        "checkout.session.async_payment_succeeded",
    )

    session: StripeCheckoutSessionObject


class SubscriptionChanged(StripeEvent):
    payload_field: ClassVar[str] = "subscription"
    event_types: ClassVar[tuple] = (
        "customer.subscription.created",
        "customer.subscription.updated",
    )

    subscription: StripeSubscriptionObject


class SubscriptionDeleted(StripeEvent):
    payload_field: ClassVar[str] = "subscription"
    event_types: ClassVar[tuple] = ("customer.subscription.deleted",)

    subscription: StripeSubscriptionObject


class InvoicePaid(StripeEvent):
    payload_field: ClassVar[str] = "invoice"
    event_types: ClassVar[tuple] = ("invoice.paid", "invoice.payment_succeeded")

    invoice: StripeInvoiceObject


class InvoicePaymentFailed(StripeEvent):
    payload_field: ClassVar[str] = "invoice"
    event_types: ClassVar[tuple] = ("invoice.payment_failed",)

    invoice: StripeInvoiceObject


ReconcilableEvent = Union[
    CheckoutSessionCompleted,
    SubscriptionChanged,
    SubscriptionDeleted,
    InvoicePaid,
    InvoicePaymentFailed,
]

EVENT_VARIANTS: Dict[str, Type[StripeEvent]] = {
    event_type: variant
    for variant in (
        CheckoutSessionCompleted,
        SubscriptionChanged,
        SubscriptionDeleted,
        InvoicePaid,
        InvoicePaymentFailed,
    )
    for event_type in variant.event_types
}


def parse_event(envelope: StripeEventEnvelope) -> Optional[ReconcilableEvent]:
    """
    Narrow an envelope to its variant

    Returns:
        The typed event, or None for event types we do not act on

    Raises:
        pydantic.ValidationError: If a known event type carries a malformed object
    """
    variant = EVENT_VARIANTS.get(envelope.type)
    if variant is None:
        return None
    return variant(
        event_id=envelope.id,
        event_type=envelope.type,
        occurred_at=envelope.occurred_at,
        **{variant.payload_field: envelope.data.object},
    )
