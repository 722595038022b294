"""API-specific request/response models.

Domain models (WebhookAck, Order, CheckoutIntent, ...) are in
relay_shared.models and are reused here where appropriate.

Modules:
- common: Health and signing response models
"""

__all__: list[str] = []
