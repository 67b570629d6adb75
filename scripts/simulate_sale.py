#!/usr/bin/env python3
"""
Simulate a sale with in-memory collaborators.

Builds a sale, a whitelisted referral chain and a stream of purchases,
then prints the resulting status. With --journal, purchases go through
SaleService and are journaled to PRESALE_DATABASE_URL.

Usage:
    python scripts/simulate_sale.py --purchases 20 --value 0.5
    python scripts/simulate_sale.py --purchases 5 --value 12 --chain 3 --journal
"""

import argparse
import asyncio
import sys
from pathlib import Path


# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from loguru import logger
from web3 import Web3

from presale.config.settings import SaleSettings
from presale.core.engine import TokenSale
from presale.core.ledger import InMemoryAssetLedger, InMemoryWallet
from presale.core.reporting import SaleReporter, format_status
from presale.database import create_journal_engine, create_session_maker, init_journal
from presale.services.sale_service import SaleService
from presale.utils.exceptions import SaleNotOpen
from presale.utils.logging import setup_logging
from presale.utils.validation import to_checksum


OWNER = "0x" + "a0" * 20
AUDITOR = "0x" + "a1" * 20
TEAM = "0x" + "a2" * 20
SALE_HOLDER = "0x" + "a3" * 20


def account(index: int) -> str:
    """Deterministic simulation address."""
    return "0x" + f"{index + 1:040x}"


def build_sale(config: SaleSettings, rate: int, chain: int) -> tuple[TokenSale, list[str]]:
    """
    Build an open sale and a referral chain above the first buyer.

    Every referrer in the chain gets enough extra referees to qualify
    for its level.

    Returns:
        Sale and the buyer addresses, first buyer first
    """
    ledger = InMemoryAssetLedger(SALE_HOLDER)
    wallet = InMemoryWallet()
    sale = TokenSale(config, ledger, wallet, owner=OWNER)
    sale.add_auditor(OWNER, AUDITOR)
    sale.set_exchange_rate(AUDITOR, rate)
    sale.set_team_recipient(OWNER, TEAM)

    buyer = account(0)
    ledger.add_to_whitelist(buyer)

    cursor = buyer
    extra = 1000
    for level in range(chain):
        referrer = account(100 + level)
        ledger.register_referral(cursor, referrer)
        for _ in range(level):
            ledger.register_referral(account(extra), referrer)
            extra += 1
        cursor = referrer

    return sale, [buyer] + [account(i) for i in range(1, 10)]


async def simulate(purchases: int, value_ether: float, rate: int, chain: int, journal: bool) -> None:
    config = SaleSettings()
    sale, buyers = build_sale(config, rate, chain)
    value = Web3.to_wei(value_ether, "ether")

    session_maker = None
    engine = None
    if journal:
        engine = create_journal_engine(config.database_url, echo=config.database_echo)
        await init_journal(engine)
        session_maker = create_session_maker(engine)

    try:
        for i in range(purchases):
            buyer = buyers[i % len(buyers)]
            try:
                if session_maker is not None:
                    async with session_maker() as session:
                        receipt = await SaleService(session, sale).purchase(buyer, value)
                else:
                    receipt = sale.purchase(buyer, value)
            except SaleNotOpen:
                logger.warning("Sale closed, stopping simulation")
                break

            logger.info(
                f"Purchase {i + 1}: stages {receipt.start_stage}->{receipt.end_stage}",
                extra={"buyer": to_checksum(buyer), "asset_issued": str(receipt.asset_issued)},
            )
    finally:
        if engine is not None:
            await engine.dispose()

    reporter = SaleReporter(sale)
    print(format_status(reporter.status(), reporter.fund_status()))


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Simulate a staged token sale")
    parser.add_argument(
        "--purchases",
        type=int,
        default=10,
        help="Number of purchases to settle (default: 10)",
    )
    parser.add_argument(
        "--value",
        type=float,
        default=0.5,
        help="Payment per purchase in whole currency units (default: 0.5)",
    )
    parser.add_argument(
        "--rate",
        type=int,
        default=200_000_000,
        help="Dollars per currency unit, 6 decimals (default: 200_000_000)",
    )
    parser.add_argument(
        "--chain",
        type=int,
        default=3,
        help="Referral levels above the first buyer (default: 3)",
    )
    parser.add_argument(
        "--journal",
        action="store_true",
        help="Journal purchases to PRESALE_DATABASE_URL",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Log level (default: INFO)",
    )

    args = parser.parse_args()

    setup_logging(args.log_level)
    asyncio.run(simulate(args.purchases, args.value, args.rate, args.chain, args.journal))


if __name__ == "__main__":
    main()
