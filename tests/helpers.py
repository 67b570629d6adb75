"""Addresses and amounts shared by the test modules."""

from web3 import Web3


OWNER = "0x" + "0a" * 20
AUDITOR = "0x" + "0b" * 20
PROXY = "0x" + "0c" * 20
TEAM = "0x" + "0d" * 20
TREASURY = "0x" + "0e" * 20
SALE_HOLDER = "0x" + "0f" * 20
BUYER = "0x" + "11" * 20
OTHER_BUYER = "0x" + "12" * 20
REFERRER_1 = "0x" + "21" * 20
REFERRER_2 = "0x" + "22" * 20
REFERRER_3 = "0x" + "23" * 20

# $200.000000 per whole currency unit
RATE = 200_000_000

ONE_ETHER = Web3.to_wei(1, "ether")
HALF_ETHER = Web3.to_wei(0.5, "ether")


def filler(index: int) -> str:
    """Address of an extra referee used to qualify referrers."""
    return "0x" + f"{0xF000 + index:040x}"
