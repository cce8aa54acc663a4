"""
Tests for authorization boundaries — cross-member isolation and role enforcement.

These tests verify two critical security properties:

1. **Cross-member isolation**: A logged-in MEMBER cannot see, verify or
   resend codes for another member's transactions. Attempts return 404 so
   ids can't be guessed at.

2. **Role enforcement**: MEMBER users cannot reach /admin/*, and ADMIN users
   (who have no fund activity) cannot use the member money endpoints.
"""

import uuid


class TestCrossMemberTransactionAccess:
    """A logged-in member cannot touch another member's transactions."""

    async def test_cannot_list_other_members_transactions(
        self, authenticated_client, second_member, fund_account
    ):
        await fund_account(5000)

        resp = await authenticated_client.get("/transactions", headers=second_member.headers)
        assert resp.status_code == 200
        assert resp.json() == []

    async def test_cannot_verify_other_members_transaction(
        self, authenticated_client, second_member, dispatcher
    ):
        initiated = await authenticated_client.post(
            "/transactions/initiate",
            json={"amount_cents": 5000, "type": "deposit"},
        )
        payload = {
            "transaction_id": initiated.json()["transaction_id"],
            "code": dispatcher.last_code(),
        }

        resp = await authenticated_client.post(
            "/transactions/verify", json=payload, headers=second_member.headers
        )
        assert resp.status_code == 404

        # Still verifiable by its owner
        resp = await authenticated_client.post("/transactions/verify", json=payload)
        assert resp.status_code == 200

    async def test_cannot_resend_other_members_code(self, authenticated_client, second_member):
        initiated = await authenticated_client.post(
            "/transactions/initiate",
            json={"amount_cents": 5000, "type": "deposit"},
        )
        txn_id = initiated.json()["transaction_id"]

        resp = await authenticated_client.post(
            f"/transactions/{txn_id}/resend-code", headers=second_member.headers
        )
        assert resp.status_code == 404

    async def test_balances_are_independent(
        self, authenticated_client, second_member, fund_account
    ):
        await fund_account(5000)
        await fund_account(7000, headers=second_member.headers)

        mine = await authenticated_client.get("/account")
        theirs = await authenticated_client.get("/account", headers=second_member.headers)
        assert mine.json()["balance_cents"] == 5000
        assert theirs.json()["balance_cents"] == 7000


class TestNonAdminBlockedFromAdminEndpoints:
    """
    Regular MEMBER users must receive 403 on every /admin/* endpoint.
    """

    async def test_member_cannot_list_all_accounts(self, authenticated_client):
        resp = await authenticated_client.get("/admin/accounts")
        assert resp.status_code == 403

    async def test_member_cannot_view_any_account(self, authenticated_client, member):
        resp = await authenticated_client.get(f"/admin/accounts/{member.account_id}")
        assert resp.status_code == 403

    async def test_member_cannot_list_all_transactions(self, authenticated_client):
        resp = await authenticated_client.get("/admin/transactions")
        assert resp.status_code == 403

    async def test_member_cannot_change_interest_rate(self, authenticated_client):
        resp = await authenticated_client.put(
            "/admin/settings/interest-rate", json={"daily_rate": "1.0"}
        )
        assert resp.status_code == 403


class TestAdminOversight:

    async def test_admin_sees_all_accounts(self, authenticated_client, admin_client, member):
        resp = await admin_client.get("/admin/accounts")
        assert resp.status_code == 200
        assert str(member.account_id) in {a["id"] for a in resp.json()}

    async def test_admin_sees_any_balance_and_transactions(
        self, authenticated_client, admin_client, member, fund_account
    ):
        await fund_account(5000)

        balance = await admin_client.get(f"/admin/accounts/{member.account_id}/balance")
        assert balance.json()["balance_cents"] == 5000
        assert balance.json()["match"] is True

        txns = await admin_client.get(f"/admin/accounts/{member.account_id}/transactions")
        assert [t["amount_cents"] for t in txns.json()] == [5000]

        everything = await admin_client.get("/admin/transactions", params={"status": "completed"})
        assert len(everything.json()) == 1

    async def test_admin_unknown_account_is_404(self, admin_client):
        resp = await admin_client.get(f"/admin/accounts/{uuid.uuid4()}")
        assert resp.status_code == 404
        assert resp.json()["error_type"] == "account_not_found"

    async def test_admin_cannot_move_money(self, admin_client):
        resp = await admin_client.post(
            "/transactions/initiate",
            json={"amount_cents": 5000, "type": "deposit"},
        )
        assert resp.status_code == 403
