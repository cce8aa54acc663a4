"""
Tests for integer-cent precision — no floating point anywhere.

Floating point representations of money cause rounding errors
(0.1 + 0.2 = 0.30000000000000004). Balances and amounts are integer cents,
and interest is computed in Decimal and rounded once, to a whole cent.

Tests verify:
  - All amounts are integers in responses
  - Large cent values work correctly
  - Balance = exact sum of completed ledger entries after mixed operations
"""

from decimal import Decimal

from growthfund.services.interest_service import calculate_interest_cents


class TestIntegerCentPrecision:
    """Tests that all monetary operations use integer cents exactly."""

    async def test_all_amounts_are_integers(self, authenticated_client, fund_account):
        data = await fund_account(1050)
        assert isinstance(data["new_balance_cents"], int)
        assert isinstance(data["transaction"]["amount_cents"], int)
        assert isinstance(data["transaction"]["balance_after_cents"], int)

        balance = (await authenticated_client.get("/account")).json()
        assert isinstance(balance["balance_cents"], int)
        assert isinstance(balance["computed_balance_cents"], int)

    async def test_large_values(self, authenticated_client, fund_account, confirm):
        """Deposit $1,000,000.00 and withdraw $999,990.00 without precision loss."""
        await fund_account(100_000_000)
        response = await confirm(99_999_000, "withdrawal")
        assert response.json()["new_balance_cents"] == 1000

    async def test_sum_verification_after_mixed_operations(
        self, authenticated_client, fund_account, confirm
    ):
        """$33.33 + $66.67 - $16.66 - $18.34 must be exactly $65.00."""
        await fund_account(3333)
        await fund_account(6667)
        await confirm(1666, "withdrawal")
        await confirm(1834, "withdrawal")

        data = (await authenticated_client.get("/account")).json()
        assert data["balance_cents"] == 6500
        assert data["computed_balance_cents"] == 6500
        assert data["match"] is True

    def test_interest_on_large_balance_is_exact(self):
        """A float would lose the last cent on a $90 trillion balance."""
        balance = 9_007_199_254_740_993
        assert calculate_interest_cents(balance, Decimal("0.05")) == 4_503_599_627_370
        assert isinstance(calculate_interest_cents(balance, Decimal("0.05")), int)
