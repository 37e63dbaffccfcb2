"""HTTP API: routes, request logging, token checks and handlers."""

from __future__ import annotations

import functools
import logging
import time
import uuid
from collections.abc import Callable
from typing import Any

from flask import Flask, Response, g, jsonify, request

from gophermart.model import (
    InsufficientFundsError,
    InvalidOrderNumberError,
    OrderAlreadyUploadedError,
    OrderUploadedByAnotherUserError,
    UserAlreadyExistsError,
)

_Reply = tuple[Response, int] | tuple[str, int]


def get_user_id() -> uuid.UUID:
    """Return the id of the user authenticated for the current request.

    Raises LookupError when no user is set, TypeError when the stored id is
    not text and ValueError when it is not a UUID.
    """
    user_id = g.get("user_id")
    if user_id is None:
        raise LookupError("user is not authenticated")
    if not isinstance(user_id, str):
        raise TypeError("invalid user ID format")
    try:
        return uuid.UUID(user_id)
    except ValueError as exc:
        raise ValueError("invalid user ID") from exc


def _caused_by(exc: BaseException | None, kind: type[BaseException]) -> bool:
    """Return True if the exception or anything in its cause chain is of this kind."""
    seen: set[int] = set()
    while exc is not None and id(exc) not in seen:
        if isinstance(exc, kind):
            return True
        seen.add(id(exc))
        exc = exc.__cause__ or exc.__context__
    return False


def _json_body() -> Any:
    return request.get_json(force=True, silent=True)


def _credentials() -> tuple[str, str] | None:
    data = _json_body()
    if not isinstance(data, dict):
        return None
    login = data.get("login")
    password = data.get("password")
    if not isinstance(login, str) or not isinstance(password, str):
        return None
    if not login or not password:
        return None
    return login, password


def _withdrawal_request() -> tuple[str, float] | None:
    data = _json_body()
    if not isinstance(data, dict):
        return None
    order = data.get("order")
    if order is None:
        order = ""
    amount = data.get("sum")
    if amount is None:
        amount = 0.0
    if not isinstance(order, str):
        return None
    if isinstance(amount, bool) or not isinstance(amount, (int, float)):
        return None
    return order, float(amount)


def create_app(auth_service, order_service, balance_service, logger=None) -> Flask:
    """Build the web application serving the loyalty API."""
    log = logger if logger is not None else logging.getLogger(__name__)
    app = Flask("gophermart")
    app.json.sort_keys = False

    @app.before_request
    def _start_timer() -> None:
        g.request_started = time.perf_counter()

    @app.after_request
    def _log_request(response: Response) -> Response:
        started = g.get("request_started", time.perf_counter())
        latency = time.perf_counter() - started
        path = request.path
        query = request.query_string.decode("latin-1")
        if query:
            path = f"{path}?{query}"
        log.info(
            "Request processed method=%s path=%s status=%d ip=%s latency=%.6fs",
            request.method,
            path,
            response.status_code,
            request.remote_addr,
            latency,
        )
        return response

    def authenticated(view: Callable[[], _Reply]) -> Callable[[], _Reply]:
        @functools.wraps(view)
        def wrapper() -> _Reply:
            log.debug("Middleware AuthValidation")
            header = request.headers.get("Authorization", "")
            if not header:
                log.debug("Authorization token is empty")
                return jsonify(error="Authorization token required"), 401
            token_string = header.removeprefix("Bearer ")
            try:
                token = auth_service.validate(token_string)
            except Exception as exc:
                log.debug("Failed to validate token: %s", exc)
                return jsonify(error="Invalid token"), 401
            log.debug("Token: %r", token)
            g.user_id = token.user_id
            return view()

        return wrapper

    def current_user() -> uuid.UUID | None:
        try:
            user_id = get_user_id()
        except (LookupError, TypeError, ValueError) as exc:
            log.debug("Failed to get user ID: %s", exc)
            return None
        log.debug("User ID: %s", user_id)
        return user_id

    def signed_in(token: str, label: str) -> Response:
        response = jsonify(f"{label} Token: {token}")
        response.headers["Authorization"] = "Bearer " + token
        return response

    @app.post("/api/user/register")
    def sign_up() -> _Reply:
        log.debug("Handler SignUp")
        credentials = _credentials()
        if credentials is None:
            return jsonify("Invalid request format"), 400
        try:
            token = auth_service.sign_up(*credentials)
        except Exception as exc:
            log.debug("Failed to sign up: %s", exc)
            if _caused_by(exc, UserAlreadyExistsError):
                return jsonify("User is already exist"), 409
            return jsonify("Something went wrong"), 500
        return signed_in(token, "SignUp"), 200

    @app.post("/api/user/login")
    def sign_in() -> _Reply:
        log.debug("Handler SignIn")
        credentials = _credentials()
        if credentials is None:
            return jsonify("Invalid request format"), 400
        try:
            token = auth_service.sign_in(*credentials)
        except Exception as exc:
            log.debug("Failed to sign in: %s", exc)
            return jsonify("Credentials are invalid"), 401
        return signed_in(token, "SignIn"), 200

    @app.post("/api/user/orders")
    @authenticated
    def upload_order() -> _Reply:
        log.debug("Handler UploadOrder")
        order_number = request.get_data(as_text=True).strip()
        log.debug("Order number: %s", order_number)
        user_id = current_user()
        if user_id is None:
            return jsonify("Internal server error"), 500
        try:
            order_service.upload_order(order_number, user_id)
        except Exception as exc:
            log.debug("Failed to upload order: %s", exc)
            if _caused_by(exc, OrderAlreadyUploadedError):
                return jsonify("Order is already uploaded"), 200
            if _caused_by(exc, InvalidOrderNumberError):
                return jsonify("Order number is invalid"), 422
            if _caused_by(exc, OrderUploadedByAnotherUserError):
                return jsonify("Order was uploaded by another user"), 409
            return jsonify("Something went wrong"), 500
        return jsonify("Order is uploaded"), 202

    @app.get("/api/user/orders")
    @authenticated
    def all_orders() -> _Reply:
        log.debug("Handler AllOrders")
        user_id = current_user()
        if user_id is None:
            return jsonify("Internal server error"), 500
        try:
            orders = order_service.all_orders(user_id)
        except Exception as exc:
            log.debug("Failed to get orders: %s", exc)
            return jsonify("Internal server error"), 500
        log.debug("Orders count: %d", len(orders))
        if not orders:
            return "", 204
        return jsonify([order.to_dict() for order in orders]), 200

    @app.get("/api/user/balance")
    @authenticated
    def balance() -> _Reply:
        log.debug("Handler Balance")
        user_id = current_user()
        if user_id is None:
            return jsonify("Internal server error"), 500
        try:
            current = balance_service.balance(user_id)
        except Exception as exc:
            log.debug("Failed to get balance: %s", exc)
            return jsonify("Something went wrong"), 500
        return jsonify(current.to_dict()), 200

    @app.post("/api/user/balance/withdraw")
    @authenticated
    def withdraw() -> _Reply:
        log.debug("Handler Withdraw")
        parsed = _withdrawal_request()
        if parsed is None:
            return jsonify("Invalid request format"), 400
        user_id = current_user()
        if user_id is None:
            return jsonify("Internal server error"), 500
        order_number, amount = parsed
        try:
            balance_service.withdraw(user_id, order_number, amount)
        except Exception as exc:
            log.debug("Failed to withdraw: %s", exc)
            if _caused_by(exc, InvalidOrderNumberError):
                return jsonify("Order number is invalid"), 422
            if _caused_by(exc, InsufficientFundsError):
                return jsonify("Unsufficient funds"), 402
            return jsonify("Something went wrong"), 500
        return jsonify("Withdrawal"), 200

    @app.get("/api/user/withdrawals")
    @authenticated
    def all_withdrawals() -> _Reply:
        log.debug("Handler AllWithdrawals")
        user_id = current_user()
        if user_id is None:
            return jsonify("Internal server error"), 500
        try:
            withdrawals = balance_service.all_withdrawals(user_id)
        except Exception as exc:
            log.debug("Failed to get withdrawals: %s", exc)
            return jsonify("Something went wrong"), 500
        log.debug("Withdrawals count: %d", len(withdrawals))
        if not withdrawals:
            return "", 204
        return jsonify([item.to_dict() for item in withdrawals]), 200

    return app