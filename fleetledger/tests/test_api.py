"""
Tests for the HTTP layer: auth, status codes and error bodies.
"""
from datetime import timedelta
from decimal import Decimal

from fleetledger.core.security import create_access_token


def _create_subtrip(client, auth_headers, seed):
    response = client.post("/api/subtrips", headers=auth_headers, json={
        "vehicle_id": seed.own_vehicle.id,
        "driver_id": seed.driver.id,
        "route_id": seed.route.id,
        "customer_id": seed.customer_intra.id,
        "start_date": "2026-03-01",
        "material": {"material_type": "Cement", "loading_weight": "20", "rate": "500"},
    })
    assert response.status_code == 201
    return response.json()


def _receive(client, auth_headers, subtrip_id):
    response = client.post(f"/api/subtrips/{subtrip_id}/receive", headers=auth_headers, json={
        "unloading_weight": "20",
        "end_date": "2026-03-02",
    })
    assert response.status_code == 200
    return response.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "healthy"}


def test_requires_token(client):
    assert client.get("/api/subtrips").status_code == 401
    response = client.get("/api/subtrips", headers={"Authorization": "Bearer not-a-token"})
    assert response.status_code == 401


def test_expired_token_is_rejected(client, seed):
    token = create_access_token(1, seed.tenant.id, expires_delta=timedelta(seconds=-5))
    response = client.get("/api/subtrips", headers={"Authorization": f"Bearer {token}"})
    assert response.status_code == 401


def test_subtrip_to_invoice_flow(client, auth_headers, seed):
    subtrip = _create_subtrip(client, auth_headers, seed)
    assert subtrip["subtrip_status"] == "loaded"
    assert len(subtrip["expenses"]) == 3

    subtrip = _receive(client, auth_headers, subtrip["id"])
    assert subtrip["subtrip_status"] == "received"

    response = client.post("/api/invoices", headers=auth_headers, json={
        "customer_id": seed.customer_intra.id,
        "subtrip_ids": [subtrip["id"]],
    })
    assert response.status_code == 201
    invoice = response.json()
    assert invoice["invoice_no"] == "UC/1/26"
    assert Decimal(str(invoice["net_total"])) == Decimal("11200")
    assert Decimal(str(invoice["tax_breakup"]["cgst"]["amount"])) == Decimal("600")
    assert invoice["subtrip_snapshot"][0]["subtrip_id"] == subtrip["id"]

    subtrip = client.get(f"/api/subtrips/{subtrip['id']}", headers=auth_headers).json()
    assert subtrip["subtrip_status"] == "billed"
    assert subtrip["invoice_id"] == invoice["id"]

    events = client.get(f"/api/subtrip-events/{subtrip['id']}", headers=auth_headers).json()
    assert events[-1]["event_type"] == "INVOICE_GENERATED"
    assert events[-1]["message"].startswith("Invoice UC/1/26 generated")
    assert events[-1]["message"].endswith("by Asha")


def test_error_bodies(client, auth_headers, seed):
    subtrip = _receive(client, auth_headers, _create_subtrip(client, auth_headers, seed)["id"])
    invoice = client.post("/api/invoices", headers=auth_headers, json={
        "customer_id": seed.customer_intra.id,
        "subtrip_ids": [subtrip["id"]],
    }).json()

    response = client.post("/api/invoices", headers=auth_headers, json={
        "customer_id": seed.customer_intra.id,
        "subtrip_ids": [subtrip["id"]],
    })
    assert response.status_code == 400
    body = response.json()
    assert body["type"] == "PartialEligibilityError"
    assert body["details"]["failed_subtrips"] == [subtrip["id"]]

    response = client.patch(f"/api/subtrips/{subtrip['id']}", headers=auth_headers, json={"rate": "600"})
    assert response.status_code == 423
    assert response.json()["type"] == "LockedError"

    response = client.post(f"/api/invoices/{invoice['id']}/payments", headers=auth_headers, json={"amount": "20000"})
    assert response.status_code == 400
    assert response.json()["type"] == "OverpaymentError"

    response = client.get("/api/invoices/9999", headers=auth_headers)
    assert response.status_code == 404
    assert response.json()["error"] == "Invoice not found"

    response = client.post(f"/api/invoices/{invoice['id']}/payments", headers=auth_headers, json={"amount": "0"})
    assert response.status_code == 422


def test_payment_and_cancel(client, auth_headers, seed):
    subtrip = _receive(client, auth_headers, _create_subtrip(client, auth_headers, seed)["id"])
    invoice = client.post("/api/invoices", headers=auth_headers, json={
        "customer_id": seed.customer_intra.id,
        "subtrip_ids": [subtrip["id"]],
    }).json()

    response = client.post(f"/api/invoices/{invoice['id']}/payments", headers=auth_headers, json={
        "amount": "5000",
        "reference_number": "UTR-77",
    })
    assert response.status_code == 200
    assert response.json()["invoice_status"] == "partial_received"

    response = client.delete(f"/api/invoices/{invoice['id']}", headers=auth_headers)
    assert response.status_code == 409

    response = client.post(f"/api/invoices/{invoice['id']}/cancel", headers=auth_headers, json={"remarks": "Re-bill"})
    assert response.status_code == 200
    assert response.json()["invoice_status"] == "cancelled"
    assert len(response.json()["payments"]) == 1

    listing = client.get("/api/invoices", headers=auth_headers, params={"subtrip_id": subtrip["id"]}).json()
    assert listing["total"] == 1


def test_driver_salary_endpoints(client, auth_headers, seed):
    subtrip = _receive(client, auth_headers, _create_subtrip(client, auth_headers, seed)["id"])

    loan = client.post("/api/loans", headers=auth_headers, json={
        "driver_id": seed.driver.id,
        "principal_amount": "1000",
    })
    assert loan.status_code == 201

    response = client.post("/api/driver-salaries", headers=auth_headers, json={
        "driver_id": seed.driver.id,
        "subtrip_ids": [subtrip["id"]],
        "loan_repayments": [{"loan_id": loan.json()["id"], "amount": "250"}],
    })
    assert response.status_code == 201
    salary = response.json()
    assert Decimal(str(salary["net_income"])) == Decimal("750")

    loan = client.get(f"/api/loans/{loan.json()['id']}", headers=auth_headers).json()
    assert Decimal(str(loan["remaining_balance"])) == Decimal("750")

    response = client.delete(f"/api/driver-salaries/{salary['id']}", headers=auth_headers)
    assert response.status_code == 200
    assert "deleted" in response.json()["message"]


def test_bulk_transporter_payment_error(client, auth_headers, seed):
    response = client.post("/api/transporter-payments/bulk", headers=auth_headers, json={
        "payloads": [{"transporter_id": 9999, "subtrip_ids": [1]}],
    })
    assert response.status_code == 404
    body = response.json()
    assert body["type"] == "BatchItemError"
    assert body["details"]["index"] == 0
    assert body["details"]["error"] == "NotFoundError"


def test_patch_with_null_required_field(client, auth_headers, seed):
    subtrip = _create_subtrip(client, auth_headers, seed)

    for field in ("subtrip_status", "start_date"):
        response = client.patch(f"/api/subtrips/{subtrip['id']}", headers=auth_headers, json={field: None})
        assert response.status_code == 400
        body = response.json()
        assert body["type"] == "ValidationError"
        assert body["details"]["fields"] == [field]


def test_bulk_invoices(client, auth_headers, seed):
    first = _receive(client, auth_headers, _create_subtrip(client, auth_headers, seed)["id"])
    second = _receive(client, auth_headers, _create_subtrip(client, auth_headers, seed)["id"])

    response = client.post("/api/invoices/bulk", headers=auth_headers, json={
        "payloads": [
            {"customer_id": seed.customer_intra.id, "subtrip_ids": [first["id"]]},
            {"customer_id": seed.customer_intra.id, "subtrip_ids": [first["id"], second["id"]]},
        ],
    })
    assert response.status_code == 400
    body = response.json()
    assert body["type"] == "BatchItemError"
    assert body["details"]["index"] == 1
    assert body["details"]["failed_subtrips"] == [first["id"]]

    response = client.post("/api/invoices/bulk", headers=auth_headers, json={
        "payloads": [
            {"customer_id": seed.customer_intra.id, "subtrip_ids": [first["id"]]},
            {"customer_id": seed.customer_intra.id, "subtrip_ids": [second["id"]]},
        ],
    })
    assert response.status_code == 201
    assert [i["invoice_no"] for i in response.json()] == ["UC/1/26", "UC/2/26"]
