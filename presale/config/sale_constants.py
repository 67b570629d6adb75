"""
Sale business constants.

Central location for the fixed rules of the sale. Tunable parameters
(curve, limits, thresholds) live in settings.
"""

# Native currency has 18 decimals (wei)
WEI_PER_ETHER = 10**18

# Dollar amounts and prices are 6-decimal fixed point
DOLLAR_DECIMALS = 6

# Issued asset has 6 decimals
ASSET_DECIMALS = 6

# Top-sales ratio is expressed against this base (100% = 100,000,000)
TOP_SALES_RATIO_BASE = 100_000_000

# Whitelist referral program: 15 levels, 35% in total
REFERRAL_DEPTH = 15
REFERRAL_RATES: tuple[int, ...] = (6, 6, 5, 4, 3, 2, 1, 1, 1, 1, 1, 1, 1, 1, 1)
REFERRAL_TOTAL_PERCENT = sum(REFERRAL_RATES)

# Share of issued units granted as volume bonus
BONUS_PERCENT = 10

# Stage counter is 16-bit; the closed state needs stage_max + 1
STAGE_COUNTER_LIMIT = 2**16 - 1
