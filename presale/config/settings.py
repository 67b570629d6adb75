"""
Sale settings.

Loads configuration from environment variables using pydantic-settings.
All monetary values are integers: wei for native currency, 6-decimal
fixed point for dollars and prices, base units for the issued asset.
"""

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from presale.config.sale_constants import (
    ASSET_DECIMALS,
    REFERRAL_TOTAL_PERCENT,
    STAGE_COUNTER_LIMIT,
    TOP_SALES_RATIO_BASE,
    WEI_PER_ETHER,
)
from presale.utils.validation import validate_address


class SaleSettings(BaseSettings):
    """Sale settings loaded from environment variables (PRESALE_*)."""

    # Price curve
    price_start: int = Field(default=1_000, gt=0, description="Stage 0 price, $0.001000")
    price_step: int = Field(default=10, ge=0, description="Price increase per stage, $0.000010")

    # Stage caps
    cap_start: int = Field(default=100_000_000, gt=0, description="Stage 0 dollar cap, $100")
    cap_step: int = Field(default=1_000_000, ge=0, description="Cap increase per stage, $1")
    cap_max: int = Field(default=15_100_000_000, gt=0, description="Upper bound of a stage cap, $15,100")

    # Top-sales pool ramp, against TOP_SALES_RATIO_BASE
    ratio_start: int = Field(default=15_000_000, ge=0, description="Top-sales ratio at stage 0, 15%")
    ratio_range: int = Field(default=50_000_000, ge=0, description="Ratio gained over the sale, +50%")

    # Stage/season layout
    stage_max: int = Field(default=60_000, ge=0, description="Last sellable stage index")
    season_stage_width: int = Field(default=600, gt=0, description="Stages per season")

    units_per_dollar: int = Field(
        default=10**ASSET_DECIMALS, gt=0, description="Asset base units per whole unit"
    )

    # Purchase limits (wei)
    min_purchase: int = Field(default=WEI_PER_ETHER // 10, gt=0, description="Minimum payment, 0.1")
    max_purchase: int = Field(default=100 * WEI_PER_ETHER, gt=0, description="Maximum payment, 100")
    bonus_threshold: int = Field(default=10 * WEI_PER_ETHER, gt=0, description="Payment earning the bonus")

    # Team sweep
    team_sweep_granularity: int = Field(
        default=WEI_PER_ETHER, gt=0, description="Sweep granularity while the sale is open"
    )

    # Bound on stage crossings processed by one purchase
    max_stage_iterations: int = Field(default=64, gt=0)

    # Sale schedule (unix seconds)
    start_time: int = Field(default=0, ge=0)

    # Initial roles
    owner: str | None = None
    team_recipient: str | None = None

    # Purchase journal
    database_url: str = "sqlite+aiosqlite:///presale.db"
    database_echo: bool = False

    # Logging
    log_level: str = "INFO"
    log_file: str | None = None

    model_config = SettingsConfigDict(
        env_prefix="PRESALE_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("owner", "team_recipient")
    @classmethod
    def validate_optional_address(cls, v: str | None) -> str | None:
        """Validate and normalize optional addresses."""
        if v is None or not v.strip():
            return None
        is_valid, error = validate_address(v)
        if not is_valid:
            raise ValueError(f"Invalid address {v}: {error}")
        return v.strip().lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level name."""
        level = v.upper()
        if level not in {"TRACE", "DEBUG", "INFO", "SUCCESS", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    @model_validator(mode="after")
    def validate_curve(self) -> "SaleSettings":
        """Validate that the curve parameters are coherent."""
        if self.stage_max >= STAGE_COUNTER_LIMIT:
            raise ValueError(
                f"stage_max must be below {STAGE_COUNTER_LIMIT} "
                "so the closed stage still fits a 16-bit counter"
            )
        if self.cap_start > self.cap_max:
            raise ValueError("cap_start must not exceed cap_max")

        # Referral rewards and the top-sales pool share the same wei
        ratio_ceiling = TOP_SALES_RATIO_BASE * (100 - REFERRAL_TOTAL_PERCENT) // 100
        if self.ratio_start + self.ratio_range > ratio_ceiling:
            raise ValueError(
                "ratio_start + ratio_range must not exceed "
                f"{100 - REFERRAL_TOTAL_PERCENT}% of the ratio base"
            )
        return self

    @model_validator(mode="after")
    def validate_limits(self) -> "SaleSettings":
        """Validate purchase limits."""
        if self.min_purchase > self.max_purchase:
            raise ValueError("min_purchase must not exceed max_purchase")
        return self


# Global settings instance
settings = SaleSettings()
