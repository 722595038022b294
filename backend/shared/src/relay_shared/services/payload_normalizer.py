"""Normalization of inbound Cielo checkout notifications.

The gateway posts notifications either as JSON or as form-encoded text,
with field names that vary across notification types. This module turns
any such body into a plain mapping and extracts the two fields the
reconciliation engine needs: the order number and the payment status.

Field aliases are kept as ordered, named accessor tables so the lookup
priority is data rather than a chain of conditionals.
"""

import json
import re
from collections.abc import Callable, Mapping
from typing import Any, NamedTuple
from urllib.parse import parse_qs

from relay_shared.models.enums import GatewayPaymentStatus
from relay_shared.models.notification import NormalizedNotification, PaymentClassification

# Form fields that some gateways send as embedded JSON strings
EMBEDDED_JSON_FIELDS = ("Payment", "payment", "payload", "data")

RAW_BODY_KEY = "_raw"

Accessor = Callable[[Mapping[str, Any]], Any]


class DecodedBody(NamedTuple):
    """Result of decoding a request body."""

    payload: dict[str, Any]
    raw_text: str


def _key(name: str) -> Accessor:
    return lambda payload: payload.get(name)


def _nested(*path: str) -> Accessor:
    def access(payload: Mapping[str, Any]) -> Any:
        current: Any = payload
        for part in path:
            if not isinstance(current, Mapping):
                return None
            current = current.get(part)
        return current

    return access


# Priority order matters: the first non-empty value wins.
ORDER_NUMBER_ACCESSORS: tuple[tuple[str, Accessor], ...] = (
    ("order_number", _key("order_number")),
    ("OrderNumber", _key("OrderNumber")),
    ("orderNumber", _key("orderNumber")),
    ("OrderNumberId", _key("OrderNumberId")),
    ("orderNumberId", _key("orderNumberId")),
    ("order.number", _nested("order", "number")),
)

STATUS_CODE_ACCESSORS: tuple[tuple[str, Accessor], ...] = (
    ("payment_status", _key("payment_status")),
    ("PaymentStatus", _key("PaymentStatus")),
    ("Payment.Status", _nested("Payment", "Status")),
    ("payment.status", _nested("payment", "status")),
)

# Textual status is only consulted when no numeric code is present.
STATUS_TEXT_ACCESSORS: tuple[tuple[str, Accessor], ...] = STATUS_CODE_ACCESSORS + (
    ("Status", _key("Status")),
    ("status", _key("status")),
)

STATUS_CODE_TAGS: dict[int, str] = {
    GatewayPaymentStatus.PENDING.value: "pendente",
    GatewayPaymentStatus.PAID.value: "pago",
    GatewayPaymentStatus.DECLINED.value: "negado",
    GatewayPaymentStatus.EXPIRED.value: "expirado",
    GatewayPaymentStatus.CANCELLED.value: "cancelado",
}

_NEGATED_PAID_PATTERN = re.compile(
    r"unpaid|not[\s_-]+(?:paid|confirm|captur|approv|authori)|unconfirm"
    r"|n[aã]o[\s_-]*(?:pag|aprov|confirm|captur|autoriz)|desaprov|reprov",
    re.IGNORECASE,
)
_PAID_PATTERN = re.compile(r"paid|pago|captur|confirm|aprovad", re.IGNORECASE)
_AUTHORIZED_PATTERN = re.compile(r"authori[sz]|autoriz", re.IGNORECASE)


# === Body decoding ===


def _safe_json_loads(text: str) -> Any:
    try:
        return json.loads(text)
    except ValueError:
        return None


def _looks_like_json(value: Any) -> bool:
    return isinstance(value, str) and value.lstrip().startswith(("{", "["))


def _parse_form(text: str) -> dict[str, Any] | None:
    """Parse application/x-www-form-urlencoded text.

    Parsing is lenient: empty segments (a trailing "&") are skipped and a
    valueless flag maps to "". Returns None when the text holds no
    "name=value" pair at all. Repeated keys keep all their values as a list.
    """
    if "=" not in text:
        return None
    parsed = parse_qs(text, keep_blank_values=True)
    if not parsed:
        return None

    form: dict[str, Any] = {}
    for key, values in parsed.items():
        form[key] = values[0] if len(values) == 1 else values

    for key in EMBEDDED_JSON_FIELDS:
        value = form.get(key)
        if _looks_like_json(value):
            embedded = _safe_json_loads(value)
            if embedded is not None:
                form[key] = embedded

    return form


def decode_text(text: str) -> dict[str, Any]:
    """Decode body text: JSON first, then form encoding, else empty.

    An undecodable body yields a mapping holding only the raw text under
    RAW_BODY_KEY, so it still reaches the audit log.
    """
    stripped = text.strip()
    if not stripped:
        return {}

    decoded = _safe_json_loads(stripped)
    # Double-encoded JSON arrives as a JSON string holding an object
    if isinstance(decoded, str) and _looks_like_json(decoded):
        decoded = _safe_json_loads(decoded)
    if isinstance(decoded, dict):
        return decoded

    form = _parse_form(stripped)
    if form is not None:
        return form

    return {RAW_BODY_KEY: stripped}


def decode_body(body: Mapping[str, Any] | str | bytes | None) -> DecodedBody:
    """Decode a request body of unknown encoding into a mapping.

    Args:
        body: Body already parsed upstream (mapping), or raw text/bytes

    Returns:
        DecodedBody with the payload mapping and the raw text for audit
    """
    if body is None:
        return DecodedBody({}, "")

    if isinstance(body, Mapping):
        payload = dict(body)
        return DecodedBody(payload, json.dumps(payload, default=str, ensure_ascii=False))

    if isinstance(body, bytes):
        text = body.decode("utf-8", errors="replace")
    else:
        text = str(body)

    return DecodedBody(decode_text(text), text)


# === Field extraction ===


def _first_element(value: Any) -> Any:
    if isinstance(value, (list, tuple)):
        return value[0] if value else None
    return value


def _probe(
    payload: Mapping[str, Any], accessors: tuple[tuple[str, Accessor], ...]
) -> tuple[str | None, Any]:
    """Return the first alias with a non-empty value, and that value."""
    for alias, accessor in accessors:
        value = _first_element(accessor(payload))
        if value is None:
            continue
        if isinstance(value, str) and not value.strip():
            continue
        return alias, value
    return None, None


def extract_order_number(payload: Mapping[str, Any]) -> str:
    """Extract the order identifier, or an empty string when absent."""
    _, value = _probe(payload, ORDER_NUMBER_ACCESSORS)
    if value is None or isinstance(value, (Mapping, list)):
        return ""
    return str(value).strip()


def _as_status_code(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else None
    if isinstance(value, str):
        text = value.strip()
        if re.fullmatch(r"[+-]?\d+", text):
            return int(text)
    return None


def _numeric_status(payload: Mapping[str, Any]) -> tuple[int | None, str]:
    for _alias, accessor in STATUS_CODE_ACCESSORS:
        value = _first_element(accessor(payload))
        code = _as_status_code(value)
        if code is not None:
            return code, str(value).strip()
    return None, ""


def _text_status(payload: Mapping[str, Any]) -> str:
    for _alias, accessor in STATUS_TEXT_ACCESSORS:
        value = _first_element(accessor(payload))
        if isinstance(value, str) and value.strip():
            return value.strip()
    return ""


def classify_payment_status(payload: Mapping[str, Any]) -> PaymentClassification:
    """Classify the payment status of a notification.

    A numeric code always wins. Without one, the status text is matched
    against paid and authorized patterns.
    """
    code, raw_text = _numeric_status(payload)
    if code is not None:
        return PaymentClassification(
            code=code,
            raw_text=raw_text,
            is_paid=code == GatewayPaymentStatus.PAID.value,
            reason_tag=STATUS_CODE_TAGS.get(code, "unknown"),
        )

    text = _text_status(payload)
    if not text:
        return PaymentClassification()

    tag = f"text:{text.lower()}"
    if _PAID_PATTERN.search(text) and not _NEGATED_PAID_PATTERN.search(text):
        return PaymentClassification(raw_text=text, is_paid=True, reason_tag=tag)
    if _AUTHORIZED_PATTERN.search(text):
        return PaymentClassification(raw_text=text, is_paid=False, reason_tag=tag)

    return PaymentClassification(raw_text=text)


def normalize_notification(body: Mapping[str, Any] | str | bytes | None) -> NormalizedNotification:
    """Decode a notification body and extract its semantic fields."""
    decoded = decode_body(body)
    return NormalizedNotification(
        payload=decoded.payload,
        raw_text=decoded.raw_text,
        order_number=extract_order_number(decoded.payload),
        classification=classify_payment_status(decoded.payload),
    )
