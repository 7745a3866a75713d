import logging
import os
from dataclasses import dataclass, field
from enum import Enum
from typing import Mapping, Optional


class WithdrawalDisputeMode(Enum):
    # dispute moves the withdrawn amount from available to held
    HOLD = "hold"
    # dispute holds the withdrawn amount as a provisional refund, available untouched
    REVERSE = "reverse"


@dataclass(frozen=True)
class LedgerPolicy:
    """Business-rule switches the ledger consults while applying transactions."""

    # defaults reproduce the reference sample output
    allow_overdraft: bool = True
    withdrawal_disputes: WithdrawalDisputeMode = WithdrawalDisputeMode.REVERSE
    deposits_when_locked: bool = True
    allow_redispute: bool = False

    @classmethod
    def strict(cls) -> "LedgerPolicy":
        """Withdrawals need available funds; a disputed withdrawal is taken from available funds."""
        return cls(allow_overdraft=False, withdrawal_disputes=WithdrawalDisputeMode.HOLD)

    @classmethod
    def reference(cls) -> "LedgerPolicy":
        """
        Rules matching the reference sample output: withdrawals are not
        checked against available funds, and a disputed withdrawal is
        held as a refund instead of being taken from available funds.
        """
        return cls()

    @classmethod
    def named(cls, name: str) -> "LedgerPolicy":
        presets = {"strict": cls.strict, "reference": cls.reference}
        try:
            return presets[name.strip().lower()]()
        except KeyError:
            raise ValueError(f"unknown policy {name!r}, expected one of {sorted(presets)}") from None


@dataclass
class EngineConfig:
    workers: int = 1
    policy: LedgerPolicy = field(default_factory=LedgerPolicy)
    log_level: int = logging.WARNING

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        if self.workers < 1:
            raise ValueError(f"workers must be at least 1, got {self.workers}")

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "EngineConfig":
        """Build a config from PAYMENTS_WORKERS, PAYMENTS_POLICY and PAYMENTS_LOG_LEVEL."""
        environ = os.environ if environ is None else environ
        config = cls()
        if environ.get("PAYMENTS_WORKERS"):
            config.workers = int(environ["PAYMENTS_WORKERS"])
        if environ.get("PAYMENTS_POLICY"):
            config.policy = LedgerPolicy.named(environ["PAYMENTS_POLICY"])
        if environ.get("PAYMENTS_LOG_LEVEL"):
            config.log_level = parse_log_level(environ["PAYMENTS_LOG_LEVEL"])
        config.validate()
        return config


def parse_log_level(value: str) -> int:
    level = logging.getLevelName(value.strip().upper())
    if not isinstance(level, int):
        raise ValueError(f"unknown log level {value!r}")
    return level
