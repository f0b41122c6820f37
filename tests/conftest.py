"""Pytest bootstrap configuration.

Ensure gateway credentials are set before test collection and module
imports that read application settings, then provide in-memory stand-ins
for the billing host and the remote checkout API.
"""
import copy
import json
import os
from decimal import Decimal
from typing import Any, Optional

import pytest

os.environ.setdefault("CHECKOUT__ACCOUNT_ID", "acct_test")
os.environ.setdefault("CHECKOUT__API_KEY", "key_test")
os.environ.setdefault("CHECKOUT__WEBHOOK_SECRET", "whsec_test")
os.environ.setdefault("ADMIN_API_TOKEN", "admin-test-token")

from application.dtos.checkout import (  # noqa: E402
    Basket,
    CheckoutLinks,
    CheckoutResponse,
    Package,
    RecurringPaymentStatus,
    RemoteBasket,
    Sale,
    TriageEvent,
)
from application.dtos.webhooks import PaymentSubject, RecurringPaymentSubject  # noqa: E402
from domain.billing import BillingRepository, HostingService, Invoice  # noqa: E402
from domain.common.exceptions import DuplicateTransactionException  # noqa: E402
from domain.common.unit_of_work import AbstractUnitOfWork  # noqa: E402
from infrastructure.external.checkout import compute_signature  # noqa: E402

WEBHOOK_SECRET = os.environ["CHECKOUT__WEBHOOK_SECRET"]
ADMIN_TOKEN = os.environ["ADMIN_API_TOKEN"]


# ---------------------------------------------------------------------------
# Webhook payload builders
# ---------------------------------------------------------------------------

def _price(amount: float, currency: str = "USD") -> dict:
    return {"amount": amount, "currency": currency}


def make_payment(
    transaction_id: str = "tbx-26929434a27329-2c2c5e",
    *,
    invoice_id: Optional[Any] = 100,
    amount: float = 10.0,
    gateway_fee: float = 0.5,
    tax: float = 0.0,
    status: str = "Complete",
    product_custom: Optional[dict] = None,
    with_custom: bool = True,
) -> dict:
    product_custom = {"relid": 55} if product_custom is None else product_custom
    payment = {
        "transaction_id": transaction_id,
        "status": {"id": 1, "description": status},
        "payment_sequence": "oneoff",
        "created_at": "2024-04-16T13:13:13.000000Z",
        "price": _price(amount),
        "price_paid": _price(amount),
        "payment_method": {"name": "PayPal", "refundable": True},
        "fees": {"tax": _price(tax), "gateway": _price(gateway_fee)},
        "customer": {
            "first_name": "Jane",
            "last_name": "Doe",
            "email": "jane@example.com",
            "ip": "127.0.0.1",
            "username": {"id": "1", "username": "jane"},
            "marketing_consent": False,
            "country": "US",
            "postal_code": "12345",
        },
        "products": [
            {
                "id": 1,
                "name": "VPS Monthly",
                "quantity": 1,
                "base_price": _price(amount),
                "paid_price": _price(amount),
                "variables": [],
                "expires_at": None,
                "custom": json.dumps(product_custom),
                "username": None,
            }
        ],
        "coupons": [],
        "gift_cards": [],
        "recurring_payment_reference": None,
        "decline_reason": None,
    }
    if with_custom:
        payment["custom"] = {"invoiceId": invoice_id}
    return payment


def make_recurring(
    reference: str = "tbx-r-3c46c5c2c3a0",
    *,
    invoice_id: Optional[Any] = 100,
    transaction_id: str = "tbx-26929434a27329-rcr001",
    relid: Any = 55,
    subject_custom: Optional[dict] = None,
) -> dict:
    initial = make_payment("tbx-26929434a27329-init01", invoice_id=invoice_id, product_custom={"relid": relid})
    last = make_payment(transaction_id, invoice_id=invoice_id, product_custom={"relid": relid})
    subject = {
        "reference": reference,
        "created_at": "2024-04-16T13:13:13.000000Z",
        "next_payment_at": "2024-05-16T13:13:13.000000Z",
        "status": {"id": 2, "description": "Active"},
        "initial_payment": initial,
        "last_payment": last,
        "fail_count": 0,
        "price": _price(10.0),
        "cancelled_at": None,
        "cancel_reason": None,
    }
    if subject_custom is not None:
        subject["custom"] = subject_custom
    return subject


def make_envelope(event_type: str, subject: Any = None, event_id: str = "2a6bd5a0-3e0f-4b5c-9d8b-6f2f0c1d9e11") -> bytes:
    return json.dumps(
        {"id": event_id, "type": event_type, "date": "2024-04-16T13:13:13+00:00", "subject": subject}
    ).encode("utf-8")


def sign(body: bytes, secret: str = WEBHOOK_SECRET) -> str:
    return compute_signature(body, secret)


# ---------------------------------------------------------------------------
# Billing host stand-ins
# ---------------------------------------------------------------------------

class InMemoryBillingRepository(BillingRepository):
    def __init__(self) -> None:
        self.invoices: dict[int, Invoice] = {}
        self.hostings: dict[int, HostingService] = {}
        self.payments: list[dict] = []
        self.gateway_log: list[dict] = []

    async def get_invoice(self, invoice_id: int) -> Optional[Invoice]:
        return self.invoices.get(invoice_id)

    async def invoice_exists(self, invoice_id: int) -> bool:
        return invoice_id in self.invoices

    async def get_hosting(self, relid: int) -> Optional[HostingService]:
        return self.hostings.get(relid)

    async def transaction_exists(self, transaction_id: str) -> bool:
        return any(p["transaction_id"] == transaction_id for p in self.payments)

    async def add_invoice_payment(self, invoice_id, transaction_id, amount, fee, gateway) -> None:
        # unique constraint on the transaction id
        if any(p["transaction_id"] == transaction_id for p in self.payments):
            raise DuplicateTransactionException(transaction_id)
        self.payments.append(
            {
                "invoice_id": invoice_id,
                "transaction_id": transaction_id,
                "amount": Decimal(amount),
                "fee": Decimal(fee),
                "gateway": gateway,
            }
        )

    async def set_hosting_subscription_id(self, relid: int, subscription_id: str) -> bool:
        hosting = self.hostings.get(relid)
        if hosting is None:
            return False
        hosting.subscription_id = subscription_id
        return True

    async def log_transaction(self, gateway: str, data: str, status: str) -> None:
        self.gateway_log.append({"gateway": gateway, "data": data, "status": status})


class InMemoryUnitOfWork(AbstractUnitOfWork):
    """Snapshots the repository on enter and restores it on rollback."""

    def __init__(self, repo: InMemoryBillingRepository, *, readonly: bool = False) -> None:
        super().__init__(readonly=readonly)
        self.billing_repository = repo
        self._snapshot: Optional[dict] = None
        self.commits = 0
        self.rollbacks = 0

    async def __aenter__(self) -> "InMemoryUnitOfWork":
        repo = self.billing_repository
        self._snapshot = copy.deepcopy(
            {"payments": repo.payments, "hostings": repo.hostings, "gateway_log": repo.gateway_log}
        )
        return self

    async def commit(self) -> None:
        self._committed = True
        self.commits += 1

    async def rollback(self) -> None:
        if self._snapshot is not None:
            for key, value in self._snapshot.items():
                setattr(self.billing_repository, key, value)
        self.rollbacks += 1


# ---------------------------------------------------------------------------
# Remote checkout API stand-in
# ---------------------------------------------------------------------------

class StubGateway:
    """Records calls; responses and failures are configured per test."""

    def __init__(self) -> None:
        self.calls: list[tuple[str, tuple]] = []
        self.triage_events: list[TriageEvent] = []
        self.checkout_response: CheckoutResponse = CheckoutResponse(
            ident="bskt-1", links=CheckoutLinks(checkout="https://pay.tebex.io/bskt-1")
        )
        self.payment: Optional[dict] = None
        self.recurring: Optional[dict] = None
        self.error: Optional[Exception] = None
        self.triage_error: Optional[Exception] = None
        self.closed = False

    def _record(self, name: str, *args) -> None:
        self.calls.append((name, args))
        if self.error is not None:
            raise self.error

    async def create_basket(self, basket: Basket) -> RemoteBasket:
        self._record("create_basket", basket)
        return RemoteBasket(ident="bskt-1")

    async def fetch_basket(self, basket_id: str) -> RemoteBasket:
        self._record("fetch_basket", basket_id)
        return RemoteBasket(ident=basket_id)

    async def add_package_to_basket(self, basket_id: str, package: Package) -> RemoteBasket:
        self._record("add_package_to_basket", basket_id, package)
        return RemoteBasket(ident=basket_id)

    async def remove_row_from_basket(self, basket_id: str, row_id: int) -> RemoteBasket:
        self._record("remove_row_from_basket", basket_id, row_id)
        return RemoteBasket(ident=basket_id)

    async def add_sale_to_basket(self, basket_id: str, sale: Sale) -> RemoteBasket:
        self._record("add_sale_to_basket", basket_id, sale)
        return RemoteBasket(ident=basket_id)

    async def create_checkout_request(self, basket: Basket, sale: Optional[Sale] = None) -> CheckoutResponse:
        self._record("create_checkout_request", basket, sale)
        return self.checkout_response

    async def fetch_payment(self, transaction_id: str) -> PaymentSubject:
        self._record("fetch_payment", transaction_id)
        return PaymentSubject.model_validate(self.payment or make_payment(transaction_id))

    async def refund_payment(self, transaction_id: str) -> PaymentSubject:
        self._record("refund_payment", transaction_id)
        return PaymentSubject.model_validate(self.payment or make_payment(transaction_id, status="Refund"))

    async def fetch_recurring_payment(self, reference: str) -> RecurringPaymentSubject:
        self._record("fetch_recurring_payment", reference)
        return RecurringPaymentSubject.model_validate(self.recurring or make_recurring(reference))

    async def update_subscribed_product(self, reference: str, items: list) -> RecurringPaymentSubject:
        self._record("update_subscribed_product", reference, items)
        return RecurringPaymentSubject.model_validate(self.recurring or make_recurring(reference))

    async def cancel_recurring_payment(self, reference: str) -> RecurringPaymentSubject:
        self._record("cancel_recurring_payment", reference)
        return RecurringPaymentSubject.model_validate(self.recurring or make_recurring(reference))

    async def update_recurring_payment_status(
        self, reference: str, status: RecurringPaymentStatus
    ) -> RecurringPaymentSubject:
        self._record("update_recurring_payment_status", reference, status)
        return RecurringPaymentSubject.model_validate(self.recurring or make_recurring(reference))

    async def post_plugin_log(self, event: TriageEvent) -> None:
        self.triage_events.append(event)
        if self.triage_error is not None:
            raise self.triage_error

    async def aclose(self) -> None:
        self.closed = True

    def call_names(self) -> list[str]:
        return [name for name, _ in self.calls]


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def repo() -> InMemoryBillingRepository:
    return InMemoryBillingRepository()


@pytest.fixture
def uow_factory(repo):
    def factory(*, readonly: bool = False) -> InMemoryUnitOfWork:
        return InMemoryUnitOfWork(repo, readonly=readonly)
    return factory


@pytest.fixture
def gateway() -> StubGateway:
    return StubGateway()
