"""Configuration management using Pydantic Settings."""

import logging
from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from ticketflow.payments.models import GatewayFeeSchedule

logger = logging.getLogger(__name__)


class FeeConfig(BaseModel):
    """Platform fee and commission rates (fractions, 0.05 = 5%)."""

    platform_fee_rate: Decimal = Field(default=Decimal("0.01"), ge=0, le=1)
    commission_rates: dict[str, Decimal] = Field(
        default_factory=lambda: {
            "Free": Decimal("0.05"),
            "Essential": Decimal("0.03"),
            "Pro": Decimal("0.01"),
            "Custom": Decimal("0.01"),
        }
    )
    currency: str = "GHS"
    pass_fees_to_customer: bool = False

    @field_validator("commission_rates")
    @classmethod
    def require_free_tier(cls, v: dict[str, Decimal]) -> dict[str, Decimal]:
        """The Free tier is the fallback rate and must always be present."""
        if "Free" not in v:
            raise ValueError("commission_rates must define the 'Free' tier")
        return v


class SchedulerConfig(BaseModel):
    """Payout batch scheduling parameters."""

    payout_batch_minutes: int = 60
    batch_time_budget_seconds: float = 300.0
    max_workers: int = Field(default=4, ge=1)
    require_verified_profile: bool = True


class StorageConfig(BaseModel):
    """Ledger persistence."""

    backend: Literal["yaml", "memory"] = "yaml"
    ledger_filename: str = "ledger.yaml"


class ApiConfig(BaseModel):
    """HTTP server parameters."""

    host: str = "127.0.0.1"
    port: int = 8000
    allowed_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])


def _default_gateways() -> list[GatewayFeeSchedule]:
    return [
        GatewayFeeSchedule(
            id="mtn-momo",
            name="MTN Mobile Money",
            enabled=True,
            percent_fee=Decimal("1.8"),
            fixed_fee=0,
            currencies=["GHS"],
        )
    ]


class Settings(BaseSettings):
    """Main configuration class."""

    # Paths
    data_dir: Path = Path("data")

    # Secrets
    cron_secret: str = ""
    logfire_token: str = ""

    # Nested configuration sections
    fees: FeeConfig = Field(default_factory=FeeConfig)
    gateways: list[GatewayFeeSchedule] = Field(default_factory=_default_gateways)
    scheduler: SchedulerConfig = Field(default_factory=SchedulerConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    api: ApiConfig = Field(default_factory=ApiConfig)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )

    @field_validator("data_dir", mode="after")
    @classmethod
    def resolve_data_dir(cls, v: Path) -> Path:
        """Resolve data directory to absolute path."""
        return v.resolve()

    @property
    def ledger_path(self) -> Path:
        return self.data_dir / self.storage.ledger_filename

    def load_yaml_config(self) -> None:
        """Load and merge YAML configuration."""
        config_path = self.data_dir / "config.yaml"

        if not config_path.exists():
            logger.warning(
                f"Config file not found: {config_path}. "
                "Using defaults. Run 'python -m ticketflow init' to create it."
            )
            return

        try:
            with open(config_path, "r", encoding="utf-8") as f:
                yaml_config = yaml.safe_load(f)

            if not yaml_config:
                logger.warning(f"Empty config file: {config_path}")
                return

            for section_name in ["fees", "scheduler", "storage", "api"]:
                if section_name in yaml_config:
                    section = getattr(self, section_name)
                    yaml_section = yaml_config[section_name]

                    section_dict = section.model_dump()
                    section_dict.update(yaml_section)

                    new_section = section.__class__(**section_dict)
                    setattr(self, section_name, new_section)

            # Gateways replace the default table wholesale
            if "gateways" in yaml_config:
                self.gateways = [
                    GatewayFeeSchedule(**gateway) for gateway in yaml_config["gateways"]
                ]

            logger.info(f"Loaded configuration from {config_path}")

        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise
        except Exception as e:
            logger.error(f"Failed to load config: {e}")
            raise


@lru_cache()
def get_settings() -> Settings:
    """Get singleton Settings instance."""
    settings = Settings()
    settings.load_yaml_config()
    return settings
