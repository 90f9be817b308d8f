"""Pydantic request/response schemas for the storefront API.

These are external contracts (anti-corruption layer), separate from the
internal Protean commands.
"""

from dataclasses import asdict

from pydantic import BaseModel, Field


# ---------------------------------------------------------------------------
# Shared sub-models
# ---------------------------------------------------------------------------
class LineSchema(BaseModel):
    product_id: str
    quantity: int = Field(ge=1)


class DeliverySchema(BaseModel):
    full_name: str | None = None
    phone: str | None = None
    city: str | None = None
    address: str | None = None
    postal_code: str | None = None
    country: str | None = None


class CardSchema(BaseModel):
    holder_name: str | None = None
    number: str
    expiry: str


class StatusResponse(BaseModel):
    status: str = "ok"


# ---------------------------------------------------------------------------
# Catalogue
# ---------------------------------------------------------------------------
class RegisterProductRequest(BaseModel):
    name: str
    list_price: float = Field(ge=0)
    discount_percent: float = Field(default=0.0, ge=0, le=100)
    stock: int = Field(default=0, ge=0)


class ChangePriceRequest(BaseModel):
    new_price: float = Field(ge=0)


class SetDiscountRequest(BaseModel):
    discount_percent: float = Field(ge=0, le=100)


class RestockRequest(BaseModel):
    quantity: int = Field(ge=1)


class ProductIdResponse(BaseModel):
    product_id: str


# ---------------------------------------------------------------------------
# Cart
# ---------------------------------------------------------------------------
class AddCartLineRequest(BaseModel):
    product_id: str
    quantity: int = Field(ge=1, default=1)


class SetCartLineRequest(BaseModel):
    quantity: int  # zero or less removes the line


class MergeCartRequest(BaseModel):
    lines: list[dict] = Field(default_factory=list)
    revision: str | None = None

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "lines": [{"product_id": "prod-001", "quantity": 2}],
                    "revision": "4f1c2b0e9a7d4c36b8e5f0a1d2c3b4a5",
                }
            ]
        }
    }


class CartLineResponse(BaseModel):
    product_id: str
    name: str
    quantity: int
    list_price: float
    discount_percent: float
    unit_price: float
    line_total: float
    available: bool
    stale: bool


class CartResponse(BaseModel):
    lines: list[CartLineResponse]
    total: float
    item_count: int

    @classmethod
    def from_view(cls, view):
        return cls(
            lines=[CartLineResponse(**asdict(line)) for line in view.lines],
            total=view.total,
            item_count=view.item_count,
        )


class MergeResponse(BaseModel):
    merged: bool
    lines_merged: int
    error: str | None = None
    cart: CartResponse


# ---------------------------------------------------------------------------
# Checkout
# ---------------------------------------------------------------------------
class CheckoutCartRequest(BaseModel):
    delivery: DeliverySchema
    payment_method: str = "cash"
    card: CardSchema | None = None
    contact_consent: bool = False
    client_total: float | None = None
    idempotency_key: str | None = None


class PlaceOrderRequest(CheckoutCartRequest):
    lines: list[LineSchema] = Field(default_factory=list)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "lines": [{"product_id": "prod-001", "quantity": 3}],
                    "delivery": {
                        "full_name": "Amal Haddad",
                        "phone": "+212 600 123 456",
                        "city": "Rabat",
                        "address": "12 Avenue Mohammed V",
                    },
                    "payment_method": "cash",
                }
            ]
        }
    }


class BuyNowRequest(BaseModel):
    product_id: str
    quantity: int = Field(default=1, ge=1)
    delivery: DeliverySchema
    payment_method: str = "cash"
    card: CardSchema | None = None
    contact_consent: bool = False


class OrderIdResponse(BaseModel):
    order_id: str
    tracking_code: str


# ---------------------------------------------------------------------------
# Orders
# ---------------------------------------------------------------------------
class OrderLineResponse(BaseModel):
    product_id: str
    product_name: str
    quantity: int
    list_price: float
    discount_percent: float
    unit_price: float
    line_total: float


class StatusChangeResponse(BaseModel):
    action: str
    from_status: str | None = None
    to_status: str | None = None
    actor_id: str | None = None
    actor_role: str
    note: str | None = None
    changed_at: str


class OrderResponse(BaseModel):
    order_id: str
    tracking_code: str
    customer_id: str | None = None
    status: str
    total_amount: float
    payment_method: str
    payment_status: str
    card_last4: str | None = None
    contact_consent: bool
    source: str
    delivery: DeliverySchema
    delivery_agent_id: str | None = None
    delivery_status: str | None = None
    delivery_notes: str | None = None
    lines: list[OrderLineResponse]
    history: list[StatusChangeResponse]
    created_at: str
    updated_at: str

    @classmethod
    def from_order(cls, order):
        delivery = order.delivery
        return cls(
            order_id=str(order.id),
            tracking_code=order.tracking_code,
            customer_id=str(order.customer_id) if order.customer_id else None,
            status=order.status,
            total_amount=order.total_amount,
            payment_method=order.payment_method,
            payment_status=order.payment_status,
            card_last4=order.card.last4 if order.card else None,
            contact_consent=bool(order.contact_consent),
            source=order.source,
            delivery=DeliverySchema(
                full_name=delivery.full_name,
                phone=delivery.phone,
                city=delivery.city,
                address=delivery.address,
                postal_code=delivery.postal_code,
                country=delivery.country,
            ),
            delivery_agent_id=str(order.delivery_agent_id) if order.delivery_agent_id else None,
            delivery_status=order.delivery_status,
            delivery_notes=order.delivery_notes,
            lines=[
                OrderLineResponse(
                    product_id=str(item.product_id),
                    product_name=item.product_name,
                    quantity=item.quantity,
                    list_price=item.list_price,
                    discount_percent=item.discount_percent or 0.0,
                    unit_price=item.unit_price,
                    line_total=item.line_total,
                )
                for item in order.items
            ],
            history=[
                StatusChangeResponse(
                    action=change.action,
                    from_status=change.from_status,
                    to_status=change.to_status,
                    actor_id=str(change.actor_id) if change.actor_id else None,
                    actor_role=change.actor_role,
                    note=change.note,
                    changed_at=change.changed_at.isoformat(),
                )
                for change in sorted(order.history, key=lambda c: c.changed_at)
            ],
            created_at=order.created_at.isoformat(),
            updated_at=order.updated_at.isoformat(),
        )


class ChangeStatusRequest(BaseModel):
    status: str
    note: str | None = None


class AssignAgentRequest(BaseModel):
    agent_id: str
    note: str | None = None


class ConsentRequest(BaseModel):
    contact_consent: bool


# ---------------------------------------------------------------------------
# Delivery
# ---------------------------------------------------------------------------
class DeliveryUpdateRequest(BaseModel):
    delivery_status: str
    notes: str | None = None


class ResolutionResponse(BaseModel):
    order: OrderResponse
    assigned_to_caller: bool
    assignment_warning: str | None = None


# ---------------------------------------------------------------------------
# Order requests and product inquiries
# ---------------------------------------------------------------------------
class SubmitOrderRequestRequest(BaseModel):
    customer_name: str | None = None
    customer_phone: str | None = None
    city: str | None = None
    address: str | None = None
    product_id: str | None = None
    quantity: int = 1


class OrderRequestResponse(BaseModel):
    request_id: str
    customer_name: str
    customer_phone: str
    city: str
    address: str
    product_id: str
    product_name: str
    quantity: int
    unit_price: float
    total_amount: float
    status: str
    created_at: str

    @classmethod
    def from_request(cls, request):
        return cls(
            request_id=str(request.id),
            customer_name=request.customer_name,
            customer_phone=request.customer_phone,
            city=request.city,
            address=request.address,
            product_id=str(request.product_id),
            product_name=request.product_name,
            quantity=request.quantity,
            unit_price=request.unit_price,
            total_amount=request.total_amount,
            status=request.status,
            created_at=request.created_at.isoformat(),
        )


class SubmitInquiryRequest(BaseModel):
    product_id: str | None = None
    full_name: str | None = None
    phone: str | None = None
    city: str | None = None
    address: str | None = None
    note: str | None = None


class InquiryResponse(BaseModel):
    inquiry_id: str
    product_id: str
    product_name: str
    full_name: str
    phone: str
    city: str
    address: str
    note: str | None = None
    status: str
    delivery_agent_id: str | None = None
    delivery_status: str
    delivery_notes: str | None = None
    created_at: str

    @classmethod
    def from_inquiry(cls, inquiry):
        return cls(
            inquiry_id=str(inquiry.id),
            product_id=str(inquiry.product_id),
            product_name=inquiry.product_name,
            full_name=inquiry.full_name,
            phone=inquiry.phone,
            city=inquiry.city,
            address=inquiry.address,
            note=inquiry.note,
            status=inquiry.status,
            delivery_agent_id=str(inquiry.delivery_agent_id) if inquiry.delivery_agent_id else None,
            delivery_status=inquiry.delivery_status,
            delivery_notes=inquiry.delivery_notes,
            created_at=inquiry.created_at.isoformat(),
        )


class RecordIdResponse(BaseModel):
    id: str
