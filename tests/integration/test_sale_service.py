"""Integration tests for SaleService with an SQLite purchase journal."""

import asyncio
from unittest.mock import AsyncMock

import pytest
import pytest_asyncio
from web3 import Web3

from presale.core.engine import TokenSale
from presale.core.reporting import SaleReporter
from presale.database import create_journal_engine, create_session_maker, init_journal
from presale.repositories.purchase_repository import PurchaseRepository
from presale.services.sale_service import SaleService, get_sale_lock
from presale.utils.exceptions import InvalidAmount, SaleBusy, SaleNotOpen, Unauthorized
from tests.helpers import BUYER, HALF_ETHER, OTHER_BUYER, OWNER, REFERRER_1, REFERRER_3, TREASURY


@pytest_asyncio.fixture
async def session_maker(tmp_path):
    """Session maker over a fresh journal database."""
    engine = create_journal_engine(f"sqlite+aiosqlite:///{tmp_path / 'journal.db'}")
    await init_journal(engine)
    yield create_session_maker(engine)
    await engine.dispose()


class TestSaleServicePurchase:
    """Journaled purchases."""

    @pytest.mark.asyncio
    async def test_purchase_is_journaled(self, sale: TokenSale, session_maker) -> None:
        async with session_maker() as session:
            receipt = await SaleService(session, sale).purchase(BUYER, HALF_ETHER)

        async with session_maker() as session:
            records = await SaleService(session, sale).get_purchases(BUYER)

        assert len(records) == 1
        record = records[0]
        assert record.buyer == BUYER
        assert record.value == HALF_ETHER
        assert record.currency_used == receipt.currency_used
        assert record.asset_issued == 100_000_000_000
        assert record.top_sales_added == HALF_ETHER * 15 // 100
        assert (record.start_stage, record.end_stage) == (0, 1)
        assert record.payouts == []

    @pytest.mark.asyncio
    async def test_referral_payouts_are_journaled(self, sale, session_maker, referral_chain) -> None:
        async with session_maker() as session:
            await SaleService(session, sale).purchase(BUYER, HALF_ETHER)

        async with session_maker() as session:
            service = SaleService(session, sale)
            record = (await service.get_purchases(BUYER))[0]

            assert [p.level for p in record.payouts] == [0, 1, 2]
            assert [p.referrer for p in record.payouts] == referral_chain
            assert record.referral_paid == HALF_ETHER * 17 // 100
            assert record.pending_added == HALF_ETHER * 18 // 100

            assert await service.get_referral_total(REFERRER_1) == HALF_ETHER * 6 // 100
            assert await service.get_referral_total(REFERRER_3) == HALF_ETHER * 5 // 100
            assert len(await service.get_referral_payouts(REFERRER_3)) == 1

    @pytest.mark.asyncio
    async def test_large_amounts_round_trip(self, sale, session_maker) -> None:
        value = Web3.to_wei(100, "ether")

        async with session_maker() as session:
            await SaleService(session, sale).purchase(BUYER, value)

        async with session_maker() as session:
            total = await PurchaseRepository(session).get_total_currency_used(BUYER)

        assert total == sale.state.total_currency_sold


class TestSaleServiceFailures:
    """Engine and journal succeed or fail together."""

    @pytest.mark.asyncio
    async def test_failed_commit_restores_engine(self, sale, session_maker, ledger, wallet) -> None:
        async with session_maker() as session:
            service = SaleService(session, sale)
            service.commit = AsyncMock(side_effect=RuntimeError("database unavailable"))

            with pytest.raises(RuntimeError):
                await service.purchase(BUYER, HALF_ETHER)

        assert sale.state.total_tx_count == 0
        assert sale.state.stage == 0
        assert ledger.balance_of(BUYER) == 0
        assert wallet.holder_balance == 0

        async with session_maker() as session:
            assert await PurchaseRepository(session).count() == 0

    @pytest.mark.asyncio
    async def test_pending_commit_is_not_observable(self, sale, session_maker) -> None:
        commit_started = asyncio.Event()
        release_commit = asyncio.Event()

        async def slow_failing_commit() -> None:
            commit_started.set()
            await release_commit.wait()
            raise RuntimeError("database unavailable")

        async with session_maker() as session:
            service = SaleService(session, sale)
            service.commit = slow_failing_commit
            purchase = asyncio.create_task(service.purchase(BUYER, HALF_ETHER))
            await commit_started.wait()

            with pytest.raises(SaleBusy):
                SaleReporter(sale).status()
            with pytest.raises(SaleBusy):
                sale.pause(OWNER)

            status = asyncio.create_task(service.get_status())
            await asyncio.sleep(0)
            assert not status.done()

            release_commit.set()
            with pytest.raises(RuntimeError):
                await purchase

            assert (await status).total_tx_count == 0

        assert SaleReporter(sale).status().total_tx_count == 0
        assert sale.state.stage == 0
        assert sale.access.paused is False
        async with session_maker() as session:
            assert await PurchaseRepository(session).count() == 0

    @pytest.mark.asyncio
    async def test_rejected_purchase_is_not_journaled(self, sale, session_maker) -> None:
        async with session_maker() as session:
            with pytest.raises(InvalidAmount):
                await SaleService(session, sale).purchase(BUYER, 1)

        async with session_maker() as session:
            assert await PurchaseRepository(session).count() == 0

    @pytest.mark.asyncio
    async def test_closed_sale(self, small_sale, session_maker) -> None:
        async with session_maker() as session:
            service = SaleService(session, small_sale)
            receipt = await service.purchase(BUYER, Web3.to_wei(2, "ether"))
            assert receipt.sale_closed

            with pytest.raises(SaleNotOpen):
                await service.purchase(OTHER_BUYER, HALF_ETHER)

        async with session_maker() as session:
            records = await PurchaseRepository(session).find_all()

        assert len(records) == 1
        assert records[0].sale_closed is True
        assert records[0].refunded == receipt.refunded


class TestSaleServiceSerialization:
    """All mutating calls share one lock per sale."""

    @pytest.mark.asyncio
    async def test_lock_is_shared_per_sale(self, sale, mock_session) -> None:
        first = SaleService(mock_session, sale)
        second = SaleService(mock_session, sale)

        assert first.lock is second.lock
        assert get_sale_lock(sale) is first.lock

    def test_lock_follows_event_loop(self, sale, mock_session) -> None:
        async def pause_while_contended() -> asyncio.Lock:
            service = SaleService(mock_session, sale)
            lock = service.lock
            async with lock:
                waiter = asyncio.create_task(service.execute(sale.pause, OWNER))
                await asyncio.sleep(0)
            await waiter
            return lock

        first = asyncio.run(pause_while_contended())
        second = asyncio.run(pause_while_contended())

        assert first is not second
        assert sale.access.paused is True

    @pytest.mark.asyncio
    async def test_reads_through_service(self, sale, session_maker) -> None:
        async with session_maker() as session:
            service = SaleService(session, sale)
            await service.purchase(BUYER, HALF_ETHER)

            status = await service.get_status()
            funds = await service.get_fund_status()

        assert status.total_tx_count == 1
        assert funds.total_sold == HALF_ETHER

    @pytest.mark.asyncio
    async def test_concurrent_purchases(self, sale, session_maker) -> None:
        buyers = ["0x" + f"{i + 1:040x}" for i in range(6)]

        async def buy(buyer: str):
            async with session_maker() as session:
                return await SaleService(session, sale).purchase(buyer, Web3.to_wei(0.3, "ether"))

        receipts = await asyncio.gather(*(buy(buyer) for buyer in buyers))

        assert sale.state.total_tx_count == 6
        assert sum(r.currency_used for r in receipts) == sale.state.total_currency_sold
        for stage, record in sale.state.stages.items():
            assert record.dollars_sold <= sale.curve.stage_dollar_cap(stage)

        async with session_maker() as session:
            assert await PurchaseRepository(session).count() == 6

    @pytest.mark.asyncio
    async def test_execute_runs_engine_call(self, sale, session_maker, wallet) -> None:
        async with session_maker() as session:
            service = SaleService(session, sale)
            await service.purchase(BUYER, HALF_ETHER)
            remainder = sale.unaccounted_remainder

            await service.execute(sale.withdraw_team, OWNER, TREASURY, remainder)

            with pytest.raises(Unauthorized):
                await service.execute(sale.withdraw_team, BUYER, TREASURY, 1)

        assert wallet.balance_of(TREASURY) == remainder
        assert sale.unaccounted_remainder == 0
