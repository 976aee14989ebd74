"""
Tests for the HTTP layer.

The API only moves data: stored expenses in, engine output back verbatim.
"""

import pytest
from fastapi.testclient import TestClient

from main import app


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def group_id(client):
    response = client.post("/groups", json={"name": "Flat 4B"})
    assert response.status_code == 200
    return response.json()["id"]


def _add_expense(client, group_id, **payload):
    return client.post(f"/groups/{group_id}/expenses", json=payload)


class TestGroups:

    def test_create_group(self, client):
        response = client.post("/groups", json={"name": "  Ski trip "})

        assert response.status_code == 200
        assert response.json()["name"] == "Ski trip"

    def test_blank_name_rejected(self, client):
        response = client.post("/groups", json={"name": "  "})

        assert response.status_code == 400

    def test_unknown_group(self, client):
        assert client.get("/groups/nope/settlements").status_code == 404
        assert client.get("/groups/nope/balances").status_code == 404
        assert _add_expense(client, "nope", payer="U1",
                            amount="1").status_code == 404


class TestExpenses:

    def test_add_expense(self, client, group_id):
        response = _add_expense(client, group_id, payer="U1", amount="100.00",
                                participants=["U1", "U2"],
                                description="Groceries")

        assert response.status_code == 201
        body = response.json()
        assert body["payer"] == "U1"
        assert body["participants"] == ["U1", "U2"]
        assert body["kind"] == "expense"

    @pytest.mark.parametrize("payload", [
        {"payer": "U1", "amount": "0", "participants": ["U1"]},
        {"payer": "U1", "amount": "-5", "participants": ["U1"]},
        {"payer": "", "amount": "5", "participants": ["U1"]},
        {"payer": "U1", "amount": "10000000000", "participants": ["U1"]},
        {"payer": "U1", "amount": "abc"},
        {"amount": "5"},
    ])
    def test_invalid_expense_rejected(self, client, group_id, payload):
        response = _add_expense(client, group_id, **payload)

        assert response.status_code == 400

    def test_summary_newest_first(self, client, group_id):
        _add_expense(client, group_id, payer="U1", amount="1",
                     participants=["U2"], description="first")
        _add_expense(client, group_id, payer="U1", amount="2",
                     participants=["U2"], description="second")

        expenses = client.get(f"/groups/{group_id}/summary").json()["expenses"]

        assert [e["description"] for e in expenses] == ["second", "first"]

    def test_summary_keeps_expenses_before_reset(self, client, group_id):
        _add_expense(client, group_id, payer="U1", amount="1",
                     participants=["U2"], description="before")
        client.post(f"/groups/{group_id}/settlements/clear")
        _add_expense(client, group_id, payer="U1", amount="2",
                     participants=["U2"], description="after")

        expenses = client.get(f"/groups/{group_id}/summary").json()["expenses"]

        assert [e["description"] for e in expenses] == ["after", "before"]

    def test_comma_decimal_separator(self, client, group_id):
        response = _add_expense(client, group_id, payer="U1", amount="12,50",
                                participants=["U1", "U2"])

        assert response.status_code == 201
        assert response.json()["amount"] == "12.50"


class TestSettlements:

    def test_balances_and_settlements(self, client, group_id):
        _add_expense(client, group_id, payer="U1", amount="100.00",
                     participants=["U1", "U2"])

        balances = client.get(f"/groups/{group_id}/balances").json()
        summary = client.get(f"/groups/{group_id}/settlements").json()

        assert balances == [{"user_id": "U1", "amount": "50.00"},
                            {"user_id": "U2", "amount": "-50.00"}]
        assert summary["anchor"] is None
        assert summary["settlements"] == [
            {"from": "U2", "to": "U1", "amount": "50.00"}
        ]

    def test_clear_resets_anchor(self, client, group_id):
        _add_expense(client, group_id, payer="U1", amount="100.00",
                     participants=["U1", "U2"])

        response = client.post(f"/groups/{group_id}/settlements/clear")
        summary = client.get(f"/groups/{group_id}/settlements").json()

        assert response.json() == {"message": "Settlements cleared"}
        assert summary["anchor"] is not None
        assert summary["balances"] == []
        assert summary["settlements"] == []

    def test_expenses_after_clear_count(self, client, group_id):
        _add_expense(client, group_id, payer="U1", amount="100.00",
                     participants=["U1", "U2"])
        client.post(f"/groups/{group_id}/settlements/clear")
        _add_expense(client, group_id, payer="U2", amount="20.00",
                     participants=["U1", "U2"])

        summary = client.get(f"/groups/{group_id}/settlements").json()

        assert summary["settlements"] == [
            {"from": "U1", "to": "U2", "amount": "10.00"}
        ]

    def test_export_csv(self, client, group_id):
        _add_expense(client, group_id, payer="U1", amount="100.00",
                     participants=["U1", "U2"], description="Rent")

        response = client.get(f"/groups/{group_id}/export/csv")

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert 'filename="settlements_Flat_4B.csv"' in \
            response.headers["content-disposition"]
        assert "U2,U1,50.00" in response.text
        assert "U1,50.00" in response.text
        assert "U2,-50.00" in response.text

    def test_export_csv_non_ascii_group_name(self, client):
        group_id = client.post("/groups", json={"name": "Wyjazd Łódź"}).json()["id"]
        _add_expense(client, group_id, payer="U1", amount="10.00",
                     participants=["U1", "U2"])

        response = client.get(f"/groups/{group_id}/export/csv")
        disposition = response.headers["content-disposition"]

        assert response.status_code == 200
        assert 'filename="settlements_Wyjazd___d_.csv"' in disposition
        assert ("filename*=UTF-8''settlements_Wyjazd_%C5%81%C3%B3d%C5%BA.csv"
                in disposition)
        assert "Group: Wyjazd Łódź" in response.text
