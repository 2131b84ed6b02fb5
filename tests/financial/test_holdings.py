"""Tests for sparebook.financial.holdings."""

import random
from decimal import Decimal

import pytest

from sparebook.financial.holdings import (
    UNKNOWN_ACCOUNT_NAME,
    UNKNOWN_SECURITY_NAME,
    CostBasis,
    chronological,
    compute_holdings,
    holdings_from_positions,
    replay_holdings,
    to_trade,
)
from sparebook.financial.models import Position


def _by_key(holdings):
    return {(h.account_id, h.security_id): h for h in holdings}


class TestCostBasis:
    def test_blended_average(self):
        basis = CostBasis()
        basis.buy(Decimal("10"), Decimal("100"))
        basis.buy(Decimal("10"), Decimal("200"))
        assert basis.quantity == Decimal("20")
        assert basis.avg_price == Decimal("150")
        assert basis.book_value == Decimal("3000")

    def test_partial_sell_keeps_average(self):
        basis = CostBasis(Decimal("20"), Decimal("150"), Decimal("3000"))
        basis.sell(Decimal("5"))
        assert basis.quantity == Decimal("15")
        assert basis.book_value == Decimal("2250")
        assert basis.avg_price == Decimal("150")

    def test_full_sell_resets(self):
        basis = CostBasis(Decimal("10"), Decimal("100"), Decimal("1000"))
        basis.sell(Decimal("10"))
        assert basis == CostBasis()

    def test_oversell_floors_at_zero(self):
        basis = CostBasis(Decimal("5"), Decimal("100"), Decimal("500"))
        basis.sell(Decimal("8"))
        assert basis.quantity == Decimal("0")
        assert basis.book_value == Decimal("0")


class TestToTrade:
    def test_cash_events_are_not_trades(self, trade, day):
        assert to_trade(trade("d", "dividend", None, None, day(0))) is None

    def test_buy_without_price_is_free(self, trade, day):
        result = to_trade(trade("b", "buy", 3, None, day(0)))
        assert result.price == Decimal("0")
        assert result.key == ("brk", "AAPL")

    @pytest.mark.parametrize("quantity", [None, 0, -1, "lots"])
    def test_bad_quantity(self, trade, day, quantity):
        assert to_trade(trade("b", "buy", quantity, 10, day(0))) is None

    def test_negative_price(self, trade, day):
        assert to_trade(trade("b", "buy", 1, -10, day(0))) is None

    @pytest.mark.parametrize("price", ["", "  "])
    def test_blank_price_is_unpriced(self, trade, day, price):
        assert to_trade(trade("b", "buy", 3, price, day(0))).price == Decimal("0")

    def test_unparseable_buy_price(self, trade, day):
        assert to_trade(trade("b", "buy", 3, "n/a", day(0))) is None

    @pytest.mark.parametrize("price", ["", "n/a", -5])
    def test_sell_kept_without_usable_price(self, trade, day, price):
        result = to_trade(trade("s", "sell", 4, price, day(0)))
        assert result.quantity == Decimal("4")
        assert result.price == Decimal("0")

    def test_missing_security(self, trade, day):
        assert to_trade(trade("b", "buy", 1, 10, day(0), security_id=None)) is None


class TestChronological:
    def test_buys_before_sells_same_day(self, trade, day):
        sell = trade("a", "sell", 5, 120, day(1))
        buy = trade("z", "buy", 5, 100, day(1))
        earlier = trade("m", "buy", 1, 90, day(0))
        assert [tx.id for tx in chronological([sell, buy, earlier])] == ["m", "z", "a"]


class TestReplayHoldings:
    def test_average_cost(self, trade, day, securities, brokerage):
        txs = [trade("1", "buy", 10, 100, day(0)), trade("2", "buy", 10, 200, day(1))]
        [holding] = replay_holdings(txs, securities, [brokerage])
        assert holding.quantity == Decimal("20")
        assert holding.avg_price == Decimal("150")
        assert holding.book_value == Decimal("3000")
        assert holding.last_price == Decimal("200")
        assert holding.market_value == Decimal("4000")
        assert holding.unrealized_pnl == Decimal("1000")
        assert float(holding.unrealized_pnl_percent) == pytest.approx(33.3333, rel=1e-4)
        assert holding.account_name == "Brokerage"
        assert holding.name == "Apple Inc."
        assert holding.sector == "Technology"

    def test_liquidated_position_dropped(self, trade, day, securities):
        txs = [trade("1", "buy", 10, 100, day(0)), trade("2", "sell", 10, 130, day(1))]
        assert replay_holdings(txs, securities, []) == []

    def test_order_independent(self, trade, day, securities):
        txs = [
            trade("1", "buy", 10, 100, day(0)),
            trade("2", "sell", 4, 110, day(2)),
            trade("3", "buy", 6, 120, day(2)),
            trade("4", "buy", 5, 50, day(1), security_id="VTI"),
        ]
        expected = _by_key(replay_holdings(txs, securities, []))
        shuffled = list(txs)
        random.Random(3).shuffle(shuffled)
        assert _by_key(replay_holdings(shuffled, securities, [])) == expected

    def test_liquidation_with_blank_sell_price(self, trade, day, securities):
        txs = [trade("1", "buy", 10, 100, day(0)), trade("2", "sell", 10, "", day(1))]
        assert replay_holdings(txs, securities, []) == []

    def test_unpriced_sell_keeps_last_quote(self, trade, day, securities):
        txs = [trade("1", "buy", 10, 100, day(0)), trade("2", "sell", 4, "n/a", day(1))]
        [holding] = replay_holdings(txs, securities, [])
        assert holding.quantity == Decimal("6")
        assert holding.last_price == Decimal("100")
        assert holding.book_value == Decimal("600")

    def test_last_price_skips_zero_price_trades(self, trade, day, securities):
        txs = [trade("1", "buy", 10, 100, day(0)), trade("2", "buy", 1, None, day(1))]
        [holding] = replay_holdings(txs, securities, [])
        assert holding.last_price == Decimal("100")
        assert holding.quantity == Decimal("11")

    def test_invalid_trades_skipped(self, trade, day, securities):
        txs = [trade("1", "buy", 10, 100, day(0)), trade("2", "sell", "x", 100, day(1))]
        [holding] = replay_holdings(txs, securities, [])
        assert holding.quantity == Decimal("10")

    def test_unknown_security_and_account(self, trade, day):
        [holding] = replay_holdings([trade("1", "buy", 1, 10, day(0), security_id="ZZZ")], [], [])
        assert holding.name == UNKNOWN_SECURITY_NAME
        assert holding.account_name == UNKNOWN_ACCOUNT_NAME
        assert holding.asset_type == "Stock"

    def test_sector_fallback_from_asset_class(self, trade, day, securities):
        [holding] = replay_holdings([trade("1", "buy", 1, 10, day(0), security_id="VTI")], securities, [])
        assert holding.asset_type == "ETF"
        assert holding.sector == "Broad Market"


class TestHoldingsFromPositions:
    def test_maps_fields(self, securities, brokerage):
        position = Position(
            security_id="AAPL",
            account_id="brk",
            open_quantity="12",
            average_entry_price="150",
            total_cost="1800",
            current_price="180",
            current_market_value="2160",
            open_pnl="360",
        )
        [holding] = holdings_from_positions([position], securities, [brokerage])
        assert holding.quantity == Decimal("12")
        assert holding.book_value == Decimal("1800")
        assert holding.market_value == Decimal("2160")
        assert holding.unrealized_pnl_percent == Decimal("20")

    def test_closed_positions_dropped(self, securities):
        position = Position(security_id="AAPL", account_id="brk", open_quantity=0)
        assert holdings_from_positions([position], securities, []) == []


class TestComputeHoldings:
    def test_positions_take_precedence(self, trade, day, securities):
        positions = [Position(security_id="VTI", account_id="brk", open_quantity=3, current_market_value=600)]
        txs = [trade("1", "buy", 10, 100, day(0))]
        holdings = compute_holdings("brk", positions, txs, securities)
        assert [h.security_id for h in holdings] == ["VTI"]

    def test_falls_back_to_replay(self, trade, day, securities):
        positions = [Position(security_id="VTI", account_id="other", open_quantity=3)]
        txs = [trade("1", "buy", 10, 100, day(0))]
        holdings = compute_holdings("brk", positions, txs, securities)
        assert [h.security_id for h in holdings] == ["AAPL"]

    def test_closed_positions_do_not_block_replay(self, trade, day, securities):
        positions = [Position(security_id="VTI", account_id="brk", open_quantity=0)]
        holdings = compute_holdings("brk", positions, [trade("1", "buy", 2, 5, day(0))], securities)
        assert [h.security_id for h in holdings] == ["AAPL"]

    def test_scoped_to_account(self, trade, day, securities):
        txs = [trade("1", "buy", 10, 100, day(0)), trade("2", "buy", 1, 100, day(0), account_id="ira")]
        holdings = compute_holdings("ira", None, txs, securities)
        assert [h.account_id for h in holdings] == ["ira"]

    def test_all_accounts(self, trade, day, securities):
        txs = [trade("1", "buy", 10, 100, day(0)), trade("2", "buy", 1, 100, day(0), account_id="ira")]
        assert len(compute_holdings(None, [], txs, securities)) == 2

    def test_nothing_to_hold(self):
        assert compute_holdings(None, None, None) == []
