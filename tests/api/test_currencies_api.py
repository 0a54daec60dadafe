"""
Tests for the currency endpoints.
"""

from decimal import Decimal


def create_currency(client, code="USD", name="US Dollar"):
    response = client.post("/currencies", json={"name": name, "code": code})
    assert response.status_code == 201
    return response.json()


def test_create_currency(client):
    data = create_currency(client, code="usd")

    assert data["code"] == "USD"
    assert Decimal(data["balance"]) == Decimal("0")
    assert data["state"] == "ACTIVE"


def test_duplicate_code_returns_400(client):
    create_currency(client)

    response = client.post("/currencies", json={"name": "Again", "code": "USD"})

    assert response.status_code == 400
    assert "already exists" in response.json()["detail"]


def test_list_and_get(client):
    usd = create_currency(client)
    create_currency(client, code="EUR", name="Euro")

    codes = [c["code"] for c in client.get("/currencies").json()]
    assert codes == ["EUR", "USD"]

    response = client.get(f"/currencies/{usd['id']}")
    assert response.status_code == 200
    assert response.json()["name"] == "US Dollar"


def test_get_unknown_currency_returns_404(client):
    response = client.get("/currencies/999")
    assert response.status_code == 404


def test_add_balance(client):
    usd = create_currency(client)

    response = client.post(
        f"/currencies/{usd['id']}/balance", json={"amount": "1000.50"}
    )

    assert response.status_code == 200
    data = response.json()
    assert Decimal(data["new_balance"]) == Decimal("1000.50")
    assert data["movement_id"] is not None

    movement = client.get(f"/treasury/movements/{data['movement_id']}").json()
    assert movement["statement"] == "Manual balance addition"
    assert movement["user_id"] == 1


def test_add_balance_rejects_zero(client):
    usd = create_currency(client)

    response = client.post(f"/currencies/{usd['id']}/balance", json={"amount": "0"})

    assert response.status_code == 422


def test_add_balance_requires_user(client):
    usd = create_currency(client)

    response = client.post(
        f"/currencies/{usd['id']}/balance",
        json={"amount": "10"},
        headers={"X-User-Id": "0"},
    )

    assert response.status_code == 422


def test_delete_currency_with_balance_returns_409(client):
    usd = create_currency(client)
    client.post(f"/currencies/{usd['id']}/balance", json={"amount": "5"})

    response = client.delete(f"/currencies/{usd['id']}")

    assert response.status_code == 409


def test_delete_empty_currency(client):
    eur = create_currency(client, code="EUR", name="Euro")

    response = client.delete(f"/currencies/{eur['id']}")

    assert response.status_code == 200
    assert response.json()["state"] == "DELETED"
    assert client.get(f"/currencies/{eur['id']}").status_code == 404


def test_add_balance_rejects_amount_beyond_money_column(client):
    usd = create_currency(client)

    response = client.post(
        f"/currencies/{usd['id']}/balance", json={"amount": "10000000000000000"}
    )

    assert response.status_code == 422
    assert Decimal(client.get(f"/currencies/{usd['id']}").json()["balance"]) == 0


def test_add_balance_past_money_range_returns_400(client):
    usd = create_currency(client)
    client.post(
        f"/currencies/{usd['id']}/balance", json={"amount": "999999999999999"}
    )

    response = client.post(f"/currencies/{usd['id']}/balance", json={"amount": "1"})

    assert response.status_code == 400
    assert "would exceed" in response.json()["detail"]
