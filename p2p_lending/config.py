"""Configuration management for p2p-lending."""

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from p2p_lending.exceptions import ConfigurationError
from p2p_lending.money import CurrencyUnit


@dataclass
class CurrencyConfig:
    """Currency the ledger is denominated in."""

    code: str = "BTC"
    decimal_places: int = 8

    def __post_init__(self) -> None:
        if not self.code:
            raise ConfigurationError("Currency code must not be empty")
        if not 0 <= self.decimal_places <= 18:
            raise ConfigurationError(
                f"Currency decimal places must be between 0 and 18, got {self.decimal_places}"
            )

    def to_unit(self) -> CurrencyUnit:
        return CurrencyUnit(self.code, self.decimal_places)


@dataclass
class KafkaConfig:
    """Kafka producer configuration."""

    bootstrap_servers: str = "localhost:9092"
    acks: str = "all"
    batch_size: int = 16384
    linger_ms: int = 5
    compression: str = "snappy"
    retries: int = 3

    def to_dict(self) -> dict[str, Any]:
        """Convert to confluent-kafka config dict."""
        return {
            "bootstrap.servers": self.bootstrap_servers,
            "acks": self.acks,
            "batch.size": self.batch_size,
            "linger.ms": self.linger_ms,
            "compression.type": self.compression,
            "retries": self.retries,
        }


@dataclass
class OutputConfig:
    """Output configuration."""

    json_output_dir: Path = field(default_factory=lambda: Path("output"))
    pretty_json: bool = False


@dataclass
class ScenarioConfig:
    """Configuration for the marketplace activity scenario."""

    name: str
    num_users: int = 20
    num_listings: int = 100
    match_rate: float = 0.6
    full_repayment_rate: float = 0.5
    default_rate: float = 0.1
    labels: dict[str, Any] = field(default_factory=dict)


@dataclass
class LendingConfig:
    """Main configuration for p2p-lending."""

    currency: CurrencyConfig = field(default_factory=CurrencyConfig)
    kafka: KafkaConfig = field(default_factory=KafkaConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    scenario: ScenarioConfig | None = None
    seed: int | None = None
    log_level: str = "INFO"
    event_topic: str = "lending.loan-events"

    @classmethod
    def from_env(cls) -> "LendingConfig":
        """Create config from environment variables."""
        import os

        try:
            currency = CurrencyConfig(
                code=os.getenv("CURRENCY_CODE", "BTC"),
                decimal_places=int(os.getenv("CURRENCY_DECIMALS", "8")),
            )
            seed = int(os.getenv("SEED")) if os.getenv("SEED") else None
        except ValueError as e:
            raise ConfigurationError(f"Invalid numeric setting in environment: {e}") from e

        kafka = KafkaConfig(
            bootstrap_servers=os.getenv("KAFKA_BOOTSTRAP_SERVERS", "localhost:9092"),
            acks=os.getenv("KAFKA_ACKS", "all"),
        )

        output = OutputConfig(
            json_output_dir=Path(os.getenv("OUTPUT_DIR", "output")),
            pretty_json=os.getenv("PRETTY_JSON", "false").lower() == "true",
        )

        return cls(
            currency=currency,
            kafka=kafka,
            output=output,
            seed=seed,
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            event_topic=os.getenv("EVENT_TOPIC", "lending.loan-events"),
        )
