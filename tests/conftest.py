"""Shared test fixtures and configuration."""

import os
import json
import pytest
import httpx
from typing import Any, Dict, List, Optional
from urllib.parse import parse_qsl

# Set up test environment variables before importing modules
os.environ.setdefault("API_KEY", "test_api_key_12345")
os.environ.setdefault("GOCARDLESS_LEDGER_LANGUAGE", "en")

from gocardless_ledger.client import GoCardlessClient, RefreshContext

CREDITOR_ID = "CR000TEST"
OTHER_CREDITOR_ID = "CR000OTHER"
API_URL = "https://api.gocardless.test/"


class FakeGoCardlessAPI:
    """
    In-memory stand-in for the GoCardless API, served through httpx.MockTransport.

    Collections are registered with the query params they answer to; a request
    is served by the registered collection whose params are the largest subset
    of the request's params. Unregistered queries return an empty page.
    """

    def __init__(self):
        self.objects: Dict[str, Dict[str, Any]] = {}
        self.collections: Dict[str, List[Dict[str, Any]]] = {}
        self.queued: Dict[str, List[httpx.Response]] = {}
        self.requests: List[httpx.Request] = []

    # Registration helpers

    def add_object(self, resource_type: str, data: Dict[str, Any]) -> Dict[str, Any]:
        self.objects[f"{resource_type}s/{data['id']}"] = data
        return data

    def add_collection(
        self,
        name: str,
        pages: List[List[Dict[str, Any]]],
        params: Optional[Dict[str, str]] = None,
        linked: Optional[List[Dict[str, List[Dict[str, Any]]]]] = None,
    ) -> None:
        """Register a collection answered with the given pages (cursors c1, c2, ...)."""
        self.collections.setdefault(name, []).append({
            "params": params or {},
            "pages": pages,
            "linked": linked or [{} for _ in pages],
        })

    def add_error(
        self,
        path: str,
        error: Dict[str, Any],
        status_code: int = 400,
        headers: Optional[Dict[str, str]] = None,
    ) -> None:
        """Queue an error response for the next request to a path."""
        self.queue(path, httpx.Response(status_code, json={"error": error}, headers=headers))

    def queue(self, path: str, response: httpx.Response) -> None:
        self.queued.setdefault(path, []).append(response)

    # Request inspection

    def requests_to(self, path: str) -> List[httpx.Request]:
        return [r for r in self.requests if r.url.path.lstrip("/") == path]

    @staticmethod
    def params_of(request: httpx.Request) -> Dict[str, str]:
        return dict(parse_qsl(request.url.query.decode()))

    # Transport

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        path = request.url.path.lstrip("/")

        if self.queued.get(path):
            return self.queued[path].pop(0)

        if path in self.objects:
            resource_type = path.split("/")[0]
            return httpx.Response(200, json={resource_type: self.objects[path]})

        if path in self.collections or "/" not in path:
            return self._collection_page(path, self.params_of(request))

        return httpx.Response(404, json={"error": {
            "type": "invalid_api_usage",
            "message": "Resource not found",
            "errors": [{"reason": "resource_not_found"}],
            "documentation_url": "https://developer.gocardless.com/api-reference#resource_not_found",
        }})

    def _collection_page(self, name: str, params: Dict[str, str]) -> httpx.Response:
        cursor = params.pop("after", None)
        candidates = [
            c for c in self.collections.get(name, [])
            if all(params.get(k) == v for k, v in c["params"].items())
        ]
        if not candidates:
            return httpx.Response(200, json={name: [], "meta": {"cursors": {"before": None, "after": None}}})

        collection = max(candidates, key=lambda c: len(c["params"]))
        index = int(cursor[1:]) if cursor else 0
        pages = collection["pages"]
        next_cursor = f"c{index + 1}" if index + 1 < len(pages) else None
        body = {
            name: pages[index],
            "linked": collection["linked"][index],
            "meta": {"cursors": {"before": None, "after": next_cursor}, "limit": 50},
        }
        return httpx.Response(200, json=body)


class FakeClock:
    """Controllable clock; sleeping advances time."""

    def __init__(self, now: float = 1_700_000_000.0):
        self.now = now
        self.sleeps: List[float] = []

    def time(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture
def fake_api():
    """The fake GoCardless API."""
    return FakeGoCardlessAPI()


@pytest.fixture
def fake_clock():
    return FakeClock()


@pytest.fixture
def client(fake_api, fake_clock):
    """A GoCardlessClient wired to the fake API."""
    gc_client = GoCardlessClient(
        token="test_token",
        base_url=API_URL,
        transport=httpx.MockTransport(fake_api.handler),
        sleep=fake_clock.sleep,
        clock=fake_clock.time,
    )
    yield gc_client
    gc_client.close()


@pytest.fixture
def context(client):
    """A fresh refresh context on the fake API."""
    return RefreshContext(client)


# Resource factories

def make_creditor(**overrides) -> Dict[str, Any]:
    data = {"id": CREDITOR_ID, "name": "Example Ltd", "fx_payout_currency": "EUR"}
    data.update(overrides)
    return data


def make_mandate(mandate_id="MD001", creditor=CREDITOR_ID, bank_account="BA001", **overrides) -> Dict[str, Any]:
    data = {
        "id": mandate_id,
        "scheme": "sepa_core",
        "reference": f"REF-{mandate_id}",
        "status": "active",
        "links": {"creditor": creditor, "customer_bank_account": bank_account, "customer": "CU001"},
    }
    data.update(overrides)
    return data


def make_bank_account(account_id="BA001", **overrides) -> Dict[str, Any]:
    data = {
        "id": account_id,
        "account_number_ending": "89",
        "bank_name": "Example Bank",
        "account_holder_name": "Jane Doe",
        "currency": "EUR",
    }
    data.update(overrides)
    return data


def make_payment(payment_id="PM001", mandate="MD001", **overrides) -> Dict[str, Any]:
    data = {
        "id": payment_id,
        "amount": 2500,
        "currency": "EUR",
        "status": "confirmed",
        "created_at": "2024-03-01T09:30:00.000Z",
        "charge_date": "2024-03-05",
        "description": "Monthly subscription",
        "reference": f"E2E-{payment_id}",
        "links": {"mandate": mandate, "creditor": CREDITOR_ID},
    }
    data.update(overrides)
    return data


def make_refund(refund_id="RF001", payment="PM001", mandate=None, **overrides) -> Dict[str, Any]:
    links = {"payment": payment}
    if mandate is not None:
        links["mandate"] = mandate
    data = {
        "id": refund_id,
        "amount": 1000,
        "currency": "EUR",
        "status": "paid",
        "created_at": "2024-03-10T12:00:00.000Z",
        "reference": f"E2E-{refund_id}",
        "links": links,
    }
    data.update(overrides)
    return data


def make_payout(payout_id="PO001", **overrides) -> Dict[str, Any]:
    data = {
        "id": payout_id,
        "amount": 10000,
        "deducted_fees": 150,
        "currency": "EUR",
        "status": "paid",
        "created_at": "2024-03-08T06:00:00.000Z",
        "arrival_date": "2024-03-09",
        "reference": f"PAYOUT-{payout_id}",
        "links": {"creditor_bank_account": "BA900", "creditor": CREDITOR_ID},
    }
    data.update(overrides)
    return data


def make_event(event_id, action, payment=None, refund=None, created_at="2024-03-12T08:00:00.000Z",
               reason_code=None, description=None) -> Dict[str, Any]:
    links = {}
    if payment is not None:
        links["payment"] = payment
    if refund is not None:
        links["refund"] = refund
    return {
        "id": event_id,
        "action": action,
        "resource_type": "payments" if payment is not None else "refunds",
        "created_at": created_at,
        "details": {
            "reason_code": reason_code,
            "description": description,
            "cause": action,
            "origin": "bank",
        },
        "links": links,
    }


def error_payload(reason: str, error_type: str = "invalid_api_usage", message: str = "Request failed",
                  metadata: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    detail = {"reason": reason, "message": message}
    if metadata is not None:
        detail["metadata"] = metadata
    return {
        "type": error_type,
        "message": message,
        "code": 400,
        "errors": [detail],
        "documentation_url": f"https://developer.gocardless.com/api-reference#{reason}",
    }


@pytest.fixture
def sepa_setup(fake_api):
    """Creditor, mandate and both bank accounts registered on the fake API."""
    fake_api.add_object("creditor", make_creditor())
    fake_api.add_object("mandate", make_mandate())
    fake_api.add_object("customer_bank_account", make_bank_account())
    fake_api.add_object(
        "creditor_bank_account",
        make_bank_account("BA900", account_number_ending="00", account_holder_name="Example Ltd",
                          bank_name="Merchant Bank"),
    )
    return fake_api


def request_body(request: httpx.Request) -> Dict[str, Any]:
    return json.loads(request.content.decode())
