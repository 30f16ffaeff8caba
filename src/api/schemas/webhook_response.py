from pydantic import BaseModel


class WebhookReceivedSchema(BaseModel):
    """Body Stripe expects back for an accepted delivery"""

    received: bool = True
