"""
Price and cap curve.

Pure functions mapping a stage index to its price, dollar cap, asset cap
and top-sales ratio, and a stage index to its season. All divisions
truncate, so caps never over-allocate.
"""

from typing import TYPE_CHECKING

from presale.utils import safe_math as sm
from presale.utils.safe_math import UINT16_BITS


if TYPE_CHECKING:
    from presale.config.settings import SaleSettings


class PriceCurve:
    """
    Stage price/cap curve.

    Stateless apart from the curve parameters it was built with.

    Example:
        >>> curve = PriceCurve(SaleSettings())
        >>> curve.stage_price(0), curve.stage_price(1)
        (1000, 1010)
    """

    def __init__(self, config: "SaleSettings") -> None:
        self.price_start = config.price_start
        self.price_step = config.price_step
        self.cap_start = config.cap_start
        self.cap_step = config.cap_step
        self.cap_max = config.cap_max
        self.ratio_start = config.ratio_start
        self.ratio_range = config.ratio_range
        self.stage_max = config.stage_max
        self.season_stage_width = config.season_stage_width
        self.units_per_dollar = config.units_per_dollar

    def stage_price(self, stage: int) -> int:
        """Dollar price of one whole asset unit at `stage`."""
        return sm.add(self.price_start, sm.mul(self.price_step, stage))

    def stage_dollar_cap(self, stage: int) -> int:
        """Cumulative dollars sellable in `stage`."""
        return min(self.cap_max, sm.add(self.cap_start, sm.mul(self.cap_step, stage)))

    def stage_asset_cap(self, stage: int) -> int:
        """Asset base units the stage cap buys at the stage's own price."""
        return sm.mul_div(self.stage_dollar_cap(stage), self.units_per_dollar, self.stage_price(stage))

    def top_sales_ratio(self, stage: int) -> int:
        """Top-sales share at `stage`, against TOP_SALES_RATIO_BASE."""
        if self.stage_max == 0:
            return self.ratio_start
        return sm.add(self.ratio_start, sm.mul_div(self.ratio_range, stage, self.stage_max))

    def season_of(self, stage: int) -> int:
        """
        Season a stage belongs to.

        Stage 0 belongs to season 1; otherwise a stage that divides the
        width closes the season ending there.
        """
        if stage == 0:
            return 1
        return sm.ceil_div(stage, self.season_stage_width, UINT16_BITS)

    def season_stages(self, season: int) -> tuple[int, int]:
        """Inclusive (first, last) stage range of `season`."""
        if season < 1:
            raise ValueError(f"Seasons start at 1, got {season}")
        last = min(sm.mul(season, self.season_stage_width), self.stage_max)
        first = 0 if season == 1 else sm.add(sm.mul(season - 1, self.season_stage_width), 1)
        return first, last

    @property
    def season_max(self) -> int:
        """Season of the last stage."""
        return self.season_of(self.stage_max)

    def dollars_to_units(self, dollars: int, stage: int) -> int:
        """Asset base units bought by `dollars` at the stage price."""
        return sm.mul_div(dollars, self.units_per_dollar, self.stage_price(stage))

    def units_to_dollars(self, units: int, stage: int) -> int:
        """Dollar value of `units` at the stage price, rounded down."""
        return sm.mul_div(units, self.stage_price(stage), self.units_per_dollar)
