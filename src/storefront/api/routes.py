"""FastAPI routes for the storefront: catalogue, carts, checkout, orders,
delivery, order requests and product inquiries."""

import json

from fastapi import APIRouter, Depends
from protean.utils.globals import current_domain

from storefront.access import Caller, Owner, Permission, Role
from storefront.api.identity import current_caller
from storefront.api.schemas import (
    AddCartLineRequest,
    AssignAgentRequest,
    BuyNowRequest,
    CartResponse,
    ChangePriceRequest,
    ChangeStatusRequest,
    CheckoutCartRequest,
    ConsentRequest,
    DeliveryUpdateRequest,
    InquiryResponse,
    MergeCartRequest,
    MergeResponse,
    OrderIdResponse,
    OrderRequestResponse,
    OrderResponse,
    PlaceOrderRequest,
    ProductIdResponse,
    RecordIdResponse,
    RegisterProductRequest,
    ResolutionResponse,
    RestockRequest,
    SetCartLineRequest,
    SetDiscountRequest,
    StatusResponse,
    SubmitInquiryRequest,
    SubmitOrderRequestRequest,
)
from storefront.cart.reconciler import CartReconciler
from storefront.cart.session import CartSession
from storefront.cart.store import get_account_store
from storefront.cart.store.guest import GuestCartStore, InMemoryClientStorage
from storefront.catalogue.management import (
    ChangeProductPrice,
    RegisterProduct,
    RestockProduct,
    SetProductDiscount,
    WithdrawProduct,
)
from storefront.delivery.resolution import lookup_order, require_found
from storefront.errors import PermissionDenied
from storefront.inquiries.handling import (
    AssignInquiryDelivery,
    ChangeInquiryStatus,
    SubmitProductInquiry,
    UpdateInquiryDelivery,
    list_inquiries,
)
from storefront.lifecycle.dispatch import process_serialized
from storefront.order.consent import SetContactConsent
from storefront.order.delivery import AssignDeliveryAgent, UpdateDeliveryStatus
from storefront.order.factory import mask_card
from storefront.order.order import Order
from storefront.order.placement import BuyNow, PlaceOrder
from storefront.order.queries import get_order, orders_by_status, orders_for_agent, orders_for_customer
from storefront.order.status import ChangeOrderStatus
from storefront.requests.submission import ChangeOrderRequestStatus, SubmitOrderRequest, list_order_requests


def _card_json(payment_method, card):
    if payment_method != "card" or card is None:
        return None
    return json.dumps(mask_card(card.model_dump()))


def _placed(order_id) -> OrderIdResponse:
    order = current_domain.repository_for(Order).get(order_id)
    return OrderIdResponse(order_id=str(order.id), tracking_code=order.tracking_code)


# ---------------------------------------------------------------------------
# Catalogue Router
# ---------------------------------------------------------------------------
product_router = APIRouter(prefix="/products", tags=["products"])


def _require_admin(caller: Caller):
    caller.require_role(Role.ADMIN)


@product_router.post("", status_code=201, response_model=ProductIdResponse)
async def register_product(body: RegisterProductRequest, caller: Caller = Depends(current_caller)):
    _require_admin(caller)
    result = current_domain.process(RegisterProduct(**body.model_dump()), asynchronous=False)
    return ProductIdResponse(product_id=result)


@product_router.put("/{product_id}/price", response_model=StatusResponse)
async def change_product_price(product_id: str, body: ChangePriceRequest, caller: Caller = Depends(current_caller)):
    _require_admin(caller)
    current_domain.process(ChangeProductPrice(product_id=product_id, new_price=body.new_price), asynchronous=False)
    return StatusResponse()


@product_router.put("/{product_id}/discount", response_model=StatusResponse)
async def set_product_discount(product_id: str, body: SetDiscountRequest, caller: Caller = Depends(current_caller)):
    _require_admin(caller)
    current_domain.process(
        SetProductDiscount(product_id=product_id, discount_percent=body.discount_percent),
        asynchronous=False,
    )
    return StatusResponse()


@product_router.put("/{product_id}/stock", response_model=StatusResponse)
async def restock_product(product_id: str, body: RestockRequest, caller: Caller = Depends(current_caller)):
    _require_admin(caller)
    current_domain.process(RestockProduct(product_id=product_id, quantity=body.quantity), asynchronous=False)
    return StatusResponse()


@product_router.delete("/{product_id}", response_model=StatusResponse)
async def withdraw_product(product_id: str, caller: Caller = Depends(current_caller)):
    _require_admin(caller)
    current_domain.process(WithdrawProduct(product_id=product_id), asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Cart Router
# ---------------------------------------------------------------------------
# Guest carts live in client storage, so the HTTP cart API serves account
# carts only. Guests merge their local cart through POST /cart/merge.
cart_router = APIRouter(prefix="/cart", tags=["cart"])


def _account_session(caller: Caller) -> CartSession:
    if not caller.is_authenticated:
        raise PermissionDenied("Sign in to use the server cart")
    return CartSession(caller, InMemoryClientStorage())


@cart_router.get("", response_model=CartResponse)
async def get_cart(caller: Caller = Depends(current_caller)):
    return CartResponse.from_view(_account_session(caller).get_cart())


@cart_router.post("/items", response_model=CartResponse)
async def add_cart_line(body: AddCartLineRequest, caller: Caller = Depends(current_caller)):
    view = _account_session(caller).add_line(body.product_id, body.quantity)
    return CartResponse.from_view(view)


@cart_router.put("/items/{product_id}", response_model=CartResponse)
async def set_cart_line(product_id: str, body: SetCartLineRequest, caller: Caller = Depends(current_caller)):
    view = _account_session(caller).set_line_quantity(product_id, body.quantity)
    return CartResponse.from_view(view)


@cart_router.delete("/items/{product_id}", response_model=CartResponse)
async def remove_cart_line(product_id: str, caller: Caller = Depends(current_caller)):
    return CartResponse.from_view(_account_session(caller).remove_line(product_id))


@cart_router.delete("", response_model=StatusResponse)
async def clear_cart(caller: Caller = Depends(current_caller)):
    _account_session(caller).clear()
    return StatusResponse()


@cart_router.post("/merge", response_model=MergeResponse)
async def merge_guest_cart(body: MergeCartRequest, caller: Caller = Depends(current_caller)):
    """Fold a client-held guest cart into the caller's account cart.

    A rejected batch is reported with ``merged: false``; the client keeps
    its local cart and sends it again later.
    """
    if not caller.is_authenticated:
        raise PermissionDenied("Sign in to merge a guest cart")
    account_store = get_account_store()
    reconciler = CartReconciler(GuestCartStore(InMemoryClientStorage()), account_store)
    outcome = reconciler.merge_snapshot(Owner.account(caller.account_id), body.lines, revision=body.revision)
    return MergeResponse(
        merged=outcome.merged,
        lines_merged=outcome.lines_merged,
        error=outcome.error.reason if outcome.error else None,
        cart=CartResponse.from_view(outcome.cart),
    )


# ---------------------------------------------------------------------------
# Checkout Router
# ---------------------------------------------------------------------------
checkout_router = APIRouter(prefix="/checkout", tags=["checkout"])


@checkout_router.post("/cart", status_code=201, response_model=OrderIdResponse)
async def checkout_cart(body: CheckoutCartRequest, caller: Caller = Depends(current_caller)):
    order_id = _account_session(caller).checkout(
        delivery=body.delivery.model_dump(),
        payment_method=body.payment_method,
        card=body.card.model_dump() if body.card else None,
        contact_consent=body.contact_consent,
        client_total=body.client_total,
        idempotency_key=body.idempotency_key,
    )
    return _placed(order_id)


@checkout_router.post("/orders", status_code=201, response_model=OrderIdResponse)
async def place_order(body: PlaceOrderRequest, caller: Caller = Depends(current_caller)):
    command = PlaceOrder(
        customer_id=caller.account_id if caller.is_authenticated else None,
        lines=json.dumps([line.model_dump() for line in body.lines]),
        delivery=json.dumps(body.delivery.model_dump()),
        payment_method=body.payment_method,
        card=_card_json(body.payment_method, body.card),
        contact_consent=body.contact_consent,
        client_total=body.client_total,
        idempotency_key=body.idempotency_key,
    )
    return _placed(current_domain.process(command, asynchronous=False))


@checkout_router.post("/buy-now", status_code=201, response_model=OrderIdResponse)
async def buy_now(body: BuyNowRequest, caller: Caller = Depends(current_caller)):
    command = BuyNow(
        customer_id=caller.account_id if caller.is_authenticated else None,
        product_id=body.product_id,
        quantity=body.quantity,
        delivery=json.dumps(body.delivery.model_dump()),
        payment_method=body.payment_method,
        card=_card_json(body.payment_method, body.card),
        contact_consent=body.contact_consent,
    )
    return _placed(current_domain.process(command, asynchronous=False))


# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


@order_router.get("/mine", response_model=list[OrderResponse])
async def my_orders(caller: Caller = Depends(current_caller)):
    return [OrderResponse.from_order(o) for o in orders_for_customer(caller)]


@order_router.get("", response_model=list[OrderResponse])
async def list_orders(status: str | None = None, caller: Caller = Depends(current_caller)):
    return [OrderResponse.from_order(o) for o in orders_by_status(caller, status)]


@order_router.get("/{order_id}", response_model=OrderResponse)
async def read_order(order_id: str, caller: Caller = Depends(current_caller)):
    return OrderResponse.from_order(get_order(order_id, caller))


@order_router.put("/{order_id}/status", response_model=OrderResponse)
async def change_order_status(order_id: str, body: ChangeStatusRequest, caller: Caller = Depends(current_caller)):
    process_serialized(
        order_id,
        ChangeOrderStatus(order_id=order_id, status=body.status, note=body.note, **caller.claims()),
    )
    return OrderResponse.from_order(get_order(order_id, caller))


@order_router.put("/{order_id}/assign", response_model=OrderResponse)
async def assign_order(order_id: str, body: AssignAgentRequest, caller: Caller = Depends(current_caller)):
    process_serialized(
        order_id,
        AssignDeliveryAgent(order_id=order_id, agent_id=body.agent_id, note=body.note, **caller.claims()),
    )
    return OrderResponse.from_order(get_order(order_id, caller))


@order_router.put("/{order_id}/consent", response_model=OrderResponse)
async def set_consent(order_id: str, body: ConsentRequest, caller: Caller = Depends(current_caller)):
    process_serialized(
        order_id,
        SetContactConsent(order_id=order_id, contact_consent=body.contact_consent, **caller.claims()),
    )
    return OrderResponse.from_order(get_order(order_id, caller))


# ---------------------------------------------------------------------------
# Delivery Router
# ---------------------------------------------------------------------------
delivery_router = APIRouter(prefix="/delivery", tags=["delivery"])


def _require_delivery_staff(caller: Caller):
    if caller.role == Role.DELIVERY:
        return
    caller.require_operator(Permission.MANAGE_ORDERS)


@delivery_router.get("/resolve/{identifier}", response_model=ResolutionResponse)
async def resolve(identifier: str, caller: Caller = Depends(current_caller)):
    """Resolve a scanned or typed tracking code. Unassigned orders come back with a warning."""
    _require_delivery_staff(caller)
    found = require_found(lookup_order(identifier, caller if caller.role == Role.DELIVERY else None))
    return ResolutionResponse(
        order=OrderResponse.from_order(found.order),
        assigned_to_caller=found.assigned_to_caller,
        assignment_warning=found.warning,
    )


@delivery_router.get("/orders", response_model=list[OrderResponse])
async def my_deliveries(caller: Caller = Depends(current_caller)):
    return [OrderResponse.from_order(o) for o in orders_for_agent(caller)]


@delivery_router.put("/orders/{order_id}/status", response_model=OrderResponse)
async def update_delivery(order_id: str, body: DeliveryUpdateRequest, caller: Caller = Depends(current_caller)):
    process_serialized(
        order_id,
        UpdateDeliveryStatus(
            order_id=order_id,
            delivery_status=body.delivery_status,
            notes=body.notes,
            **caller.claims(),
        ),
    )
    return OrderResponse.from_order(get_order(order_id, caller))


# ---------------------------------------------------------------------------
# Order Request Router
# ---------------------------------------------------------------------------
request_router = APIRouter(prefix="/requests", tags=["requests"])


@request_router.post("", status_code=201, response_model=RecordIdResponse)
async def submit_order_request(body: SubmitOrderRequestRequest):
    result = current_domain.process(SubmitOrderRequest(**body.model_dump()), asynchronous=False)
    return RecordIdResponse(id=result)


@request_router.get("", response_model=list[OrderRequestResponse])
async def list_requests(status: str | None = None, caller: Caller = Depends(current_caller)):
    return [OrderRequestResponse.from_request(r) for r in list_order_requests(caller, status)]


@request_router.put("/{request_id}/status", response_model=StatusResponse)
async def change_request_status(request_id: str, body: ChangeStatusRequest, caller: Caller = Depends(current_caller)):
    status = process_serialized(
        request_id,
        ChangeOrderRequestStatus(request_id=request_id, status=body.status, note=body.note, **caller.claims()),
    )
    return StatusResponse(status=status)


# ---------------------------------------------------------------------------
# Product Inquiry Router
# ---------------------------------------------------------------------------
inquiry_router = APIRouter(prefix="/inquiries", tags=["inquiries"])


@inquiry_router.post("", status_code=201, response_model=RecordIdResponse)
async def submit_inquiry(body: SubmitInquiryRequest):
    result = current_domain.process(SubmitProductInquiry(**body.model_dump()), asynchronous=False)
    return RecordIdResponse(id=result)


@inquiry_router.get("", response_model=list[InquiryResponse])
async def inquiries(status: str | None = None, caller: Caller = Depends(current_caller)):
    return [InquiryResponse.from_inquiry(i) for i in list_inquiries(caller, status)]


@inquiry_router.put("/{inquiry_id}/status", response_model=StatusResponse)
async def change_inquiry_status(inquiry_id: str, body: ChangeStatusRequest, caller: Caller = Depends(current_caller)):
    status = process_serialized(
        inquiry_id,
        ChangeInquiryStatus(inquiry_id=inquiry_id, status=body.status, **caller.claims()),
    )
    return StatusResponse(status=status)


@inquiry_router.put("/{inquiry_id}/assign", response_model=StatusResponse)
async def assign_inquiry(inquiry_id: str, body: AssignAgentRequest, caller: Caller = Depends(current_caller)):
    process_serialized(
        inquiry_id,
        AssignInquiryDelivery(inquiry_id=inquiry_id, agent_id=body.agent_id, **caller.claims()),
    )
    return StatusResponse()


@inquiry_router.put("/{inquiry_id}/delivery", response_model=StatusResponse)
async def update_inquiry_delivery(
    inquiry_id: str, body: DeliveryUpdateRequest, caller: Caller = Depends(current_caller)
):
    status = process_serialized(
        inquiry_id,
        UpdateInquiryDelivery(
            inquiry_id=inquiry_id,
            delivery_status=body.delivery_status,
            notes=body.notes,
            **caller.claims(),
        ),
    )
    return StatusResponse(status=status)
