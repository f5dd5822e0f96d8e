"""FastAPI dependency injection functions."""

from typing import Annotated

from fastapi import Depends, Header, Request, Response

from storefront.api.middleware.auth import AuthError, AuthErrorCode, decode_jwt
from storefront.core.authorization import AuthorizationPolicy, get_authorization_policy
from storefront.core.config import get_settings
from storefront.core.exceptions import AuthenticationError, AuthorizationError
from storefront.core.local_storage import open_session_storage
from storefront.core.session import (
    SessionLocks,
    SessionState,
    generate_session_token,
    is_valid_session_token,
)
from storefront.schemas.auth import UserContext
from storefront.schemas.common import NotificationSchema
from storefront.services.address_service import AddressBook
from storefront.services.cart_service import CartEngine
from storefront.services.checkout_service import CheckoutOrchestrator
from storefront.services.order_service import OrderService
from storefront.services.payment import PaymentGateway, SimulatedPaymentGateway
from storefront.services.persistence import PersistenceAdapter, get_persistence_adapter
from storefront.services.product_service import ProductService
from storefront.services.promo import PromoCodes


def get_session_cookie_config() -> dict:
    """Get session cookie configuration from settings."""
    settings = get_settings()
    # SameSite=None requires Secure=True; local development uses Lax
    samesite = "none" if settings.session_cookie_secure else "lax"
    return {
        "key": settings.session_cookie_name,
        "max_age": settings.session_cookie_max_age,
        "httponly": True,
        "secure": settings.session_cookie_secure,
        "samesite": samesite,
        "path": "/",
    }


def get_session_token(request: Request) -> str | None:
    """Extract session token from X-Session-Token header or cookie.

    Checks header first (works when third-party cookies are blocked),
    then falls back to cookie.
    """
    header_token = request.headers.get("x-session-token")
    if header_token:
        return header_token
    return request.cookies.get(get_session_cookie_config()["key"])


def set_session_cookie(response: Response, token: str) -> None:
    config = get_session_cookie_config()
    response.set_cookie(
        key=config["key"],
        value=token,
        max_age=config["max_age"],
        httponly=config["httponly"],
        secure=config["secure"],
        samesite=config["samesite"],
        path=config["path"],
    )


# Authentication


async def get_optional_user(
    authorization: Annotated[str | None, Header()] = None,
) -> UserContext | None:
    """Extract the current user if an Authorization header is present.

    Returns None without a header. A header carrying an invalid or expired
    token is an error rather than a silent downgrade to guest.

    Raises:
        AuthenticationError: If the header is malformed or the token invalid.
    """
    if not authorization:
        return None

    parts = authorization.split()
    if len(parts) != 2 or parts[0].lower() != "bearer":
        raise AuthenticationError("Invalid authorization header format. Expected: Bearer <token>")

    try:
        return decode_jwt(parts[1]).to_user_context()
    except AuthError as e:
        if e.code == AuthErrorCode.TOKEN_EXPIRED:
            raise AuthenticationError("Token has expired") from e
        raise AuthenticationError(e.message) from e


OptionalUser = Annotated[UserContext | None, Depends(get_optional_user)]


async def get_current_user(user: OptionalUser) -> UserContext:
    """Require an authenticated user.

    Raises:
        AuthenticationError: If no bearer token was sent.
    """
    if user is None:
        raise AuthenticationError("Authorization header required")
    return user


CurrentUser = Annotated[UserContext, Depends(get_current_user)]
Policy = Annotated[AuthorizationPolicy, Depends(get_authorization_policy)]


async def get_admin_user(user: CurrentUser, policy: Policy) -> UserContext:
    """Require a user the authorization policy admits to the back-office.

    Raises:
        AuthorizationError: If the user is not an admin.
    """
    if not policy.is_admin(user):
        raise AuthorizationError("Access denied. Seller privileges required")
    return user


AdminUser = Annotated[UserContext, Depends(get_admin_user)]


# Session


async def get_session(request: Request, response: Response, user: OptionalUser) -> SessionState:
    """Open the state of the requesting client session.

    Requests without a valid session token are given a new one, returned in
    both the session cookie and the X-Session-Token response header.
    """
    token = get_session_token(request)
    if not is_valid_session_token(token):
        token = generate_session_token()
        set_session_cookie(response, token)
        response.headers["x-session-token"] = token
    return SessionState(token=token, storage=open_session_storage(token), user=user)


Session = Annotated[SessionState, Depends(get_session)]


def get_session_locks(request: Request) -> SessionLocks:
    return request.app.state.session_locks


Locks = Annotated[SessionLocks, Depends(get_session_locks)]


# Services


Adapter = Annotated[PersistenceAdapter, Depends(get_persistence_adapter)]


def get_product_service(adapter: Adapter) -> ProductService:
    return ProductService(adapter)


def get_order_service(adapter: Adapter) -> OrderService:
    return OrderService(adapter)


Products = Annotated[ProductService, Depends(get_product_service)]
Orders = Annotated[OrderService, Depends(get_order_service)]


def get_payment_gateway() -> PaymentGateway:
    return SimulatedPaymentGateway(delay_seconds=get_settings().payment_simulation_delay_seconds)


def get_promo_codes() -> PromoCodes:
    return PromoCodes(get_settings().promo_codes)


async def get_cart(session: Session, products: Products) -> CartEngine:
    return CartEngine(session, await products.catalog())


def get_address_book(session: Session) -> AddressBook:
    return AddressBook(session)


Cart = Annotated[CartEngine, Depends(get_cart)]
Addresses = Annotated[AddressBook, Depends(get_address_book)]


def get_checkout(
    session: Session,
    cart: Cart,
    addresses: Addresses,
    adapter: Adapter,
    promo_codes: Annotated[PromoCodes, Depends(get_promo_codes)],
    payment_gateway: Annotated[PaymentGateway, Depends(get_payment_gateway)],
) -> CheckoutOrchestrator:
    return CheckoutOrchestrator(
        session=session,
        cart=cart,
        addresses=addresses,
        adapter=adapter,
        promo_codes=promo_codes,
        payment_gateway=payment_gateway,
    )


Checkout = Annotated[CheckoutOrchestrator, Depends(get_checkout)]


def drain_notifications(session: SessionState) -> list[NotificationSchema]:
    """Take the notifications queued during this request."""
    return [NotificationSchema.model_validate(n) for n in session.drain_notifications()]
