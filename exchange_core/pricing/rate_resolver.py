"""
Rate resolver module.

Converts amounts between currencies using the active rate table:
1. Direct path: forward or reverse quote between the two currencies,
   chosen by RatePriority.
2. Bridged path: two hops through a bridge currency, with the bridge
   currency's rounding applied to the intermediate amount.

Both legs of a bridged conversion are read from the store independently.
If rates change between the two reads, the result mixes two snapshots;
this is an accepted staleness window, not something the resolver guards.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Callable, Optional, Sequence

from exchange_core.models import Currency
from exchange_core.pricing.rounding import RoundingPolicy, to_decimal
from exchange_core.pricing.status_codes import (
    SUCCESS_STATUSES,
    ConversionPath,
    ConversionStatus,
)
from exchange_core.storage.rate_store import RateStore
from exchange_core.utils.config_loader import AppConfig

logger = logging.getLogger(__name__)

RoundingFunc = Callable[[Decimal, Optional[str]], Decimal]


@dataclass
class ConversionResult:
    """
    Result of a single conversion.

    Attributes:
        status: Outcome of the conversion.
        amount: Converted amount; 0 for every failure status.
        path: Route taken through the rate table.
        bridge_code: Code of the bridge currency, if one was used.
        intermediate_amount: Rounded amount in the bridge currency.
        reasons: Explanations for failures.
    """

    status: ConversionStatus
    amount: Decimal = Decimal(0)
    path: ConversionPath = ConversionPath.NONE
    bridge_code: str | None = None
    intermediate_amount: Decimal | None = None
    reasons: list[str] = field(default_factory=list)

    @property
    def is_success(self) -> bool:
        return self.status in SUCCESS_STATUSES


class RateResolver:
    """
    Finds the best available quote path and converts amounts along it.

    Attributes:
        store: Read-only currency/rate store.
        rounding: Rounding capability, called as ``rounding(value, code)``.
        bridge_preference: Bridge currency codes tried in order.
    """

    def __init__(
        self,
        store: RateStore,
        rounding: RoundingFunc,
        bridge_preference: Sequence[str] = ("OMR", "IRR"),
    ) -> None:
        self.store = store
        self.rounding = rounding
        self.bridge_preference = [code.upper() for code in bridge_preference]

    @classmethod
    def from_config(cls, store: RateStore, config: AppConfig) -> "RateResolver":
        """Build a resolver with the rounding policy and bridge list from config."""
        return cls(
            store=store,
            rounding=RoundingPolicy.from_config(config),
            bridge_preference=config.conversion.bridge_preference,
        )

    def convert(self, amount: Decimal, from_currency_id: int, to_currency_id: int) -> Decimal:
        """
        Convert an amount between two currencies.

        Returns 0 both for a zero amount and when no path exists; use
        convert_detailed() to tell these apart.

        Args:
            amount: Amount in the source currency.
            from_currency_id: Source currency id.
            to_currency_id: Target currency id.

        Returns:
            Decimal: Converted, rounded amount (or 0).
        """
        return self.convert_detailed(amount, from_currency_id, to_currency_id).amount

    def convert_detailed(
        self,
        amount: Decimal,
        from_currency_id: int,
        to_currency_id: int,
    ) -> ConversionResult:
        """
        Convert an amount and report how the conversion was resolved.

        Args:
            amount: Amount in the source currency. Floats are read
                through their repr, so 0.29 means Decimal("0.29").
            from_currency_id: Source currency id.
            to_currency_id: Target currency id.

        Returns:
            ConversionResult: Status, amount and path details.
        """
        amount = to_decimal(amount)

        if amount == 0:
            return ConversionResult(status=ConversionStatus.ZERO_AMOUNT)

        if from_currency_id == to_currency_id:
            return ConversionResult(
                status=ConversionStatus.IDENTITY,
                amount=amount,
                path=ConversionPath.IDENTITY,
            )

        from_currency = self.store.find_currency(from_currency_id)
        to_currency = self.store.find_currency(to_currency_id)
        if from_currency is None or to_currency is None:
            missing = [
                str(currency_id)
                for currency_id, currency in (
                    (from_currency_id, from_currency),
                    (to_currency_id, to_currency),
                )
                if currency is None
            ]
            logger.debug(f"Unresolved currency id(s): {', '.join(missing)}")
            return ConversionResult(
                status=ConversionStatus.UNRESOLVED_CURRENCY,
                reasons=[f"Currency not found: {currency_id}" for currency_id in missing],
            )

        ok, direct = self.try_convert(amount, from_currency, to_currency)
        if ok:
            return ConversionResult(
                status=ConversionStatus.OK,
                amount=self.rounding(direct, to_currency.code),
                path=ConversionPath.DIRECT,
            )

        bridge = self.resolve_bridge(from_currency, to_currency)
        if bridge is None:
            logger.debug(f"No direct rate and no bridge for {from_currency.code}->{to_currency.code}")
            return ConversionResult(
                status=ConversionStatus.NO_BRIDGE,
                reasons=[f"No rate path from {from_currency.code} to {to_currency.code}"],
            )

        ok, first_leg = self.try_convert(amount, from_currency, bridge)
        if not ok:
            return self._bridge_leg_failed(from_currency, bridge)

        # Rounded mid-path at the bridge currency's precision
        intermediate = self.rounding(first_leg, bridge.code)

        ok, second_leg = self.try_convert(intermediate, bridge, to_currency)
        if not ok:
            return self._bridge_leg_failed(bridge, to_currency, bridge_code=bridge.code)

        logger.debug(
            f"Bridged {from_currency.code}->{to_currency.code} via {bridge.code}: "
            f"intermediate={intermediate}"
        )
        return ConversionResult(
            status=ConversionStatus.OK,
            amount=self.rounding(second_leg, to_currency.code),
            path=ConversionPath.BRIDGED,
            bridge_code=bridge.code,
            intermediate_amount=intermediate,
        )

    def try_convert(
        self,
        amount: Decimal,
        from_currency: Currency,
        to_currency: Currency,
    ) -> tuple[bool, Decimal]:
        """
        Convert over a single hop using the forward or reverse rate.

        The side with the lower RatePriority value is authoritative:
        - from < to: forward (multiply), else reverse (divide).
        - from > to: reverse (divide), else forward, also divided.
        - equal: forward (multiply), else reverse (divide).

        Args:
            amount: Amount in from_currency.
            from_currency: Source currency.
            to_currency: Target currency.

        Returns:
            Tuple of (success, unrounded result). Fails only when neither
            rate is available.
        """
        if from_currency.id == to_currency.id:
            return True, amount

        forward = self._available_rate(from_currency.id, to_currency.id)
        reverse = self._available_rate(to_currency.id, from_currency.id)

        if from_currency.rate_priority > to_currency.rate_priority:
            if reverse is not None:
                return True, amount / reverse
            if forward is not None:
                # Forward rate is divided here, unlike the other branches.
                return True, amount / forward
            return False, Decimal(0)

        # from < to and equal priority share the same preference order
        if forward is not None:
            return True, amount * forward
        if reverse is not None:
            return True, amount / reverse
        return False, Decimal(0)

    def resolve_bridge(self, from_currency: Currency, to_currency: Currency) -> Currency | None:
        """
        Pick an intermediate currency for a two-hop conversion.

        Preferred bridge codes are tried in order; otherwise the active
        currency with the lowest RatePriority wins, ties going to the
        first one the store returns.

        Args:
            from_currency: Source currency.
            to_currency: Target currency.

        Returns:
            Bridge currency, or None if no active candidate remains.
        """
        excluded = {from_currency.id, to_currency.id}

        for code in self.bridge_preference:
            candidate = self.store.find_currency_by_code(code, active_only=True)
            if candidate is not None and candidate.is_active and candidate.id not in excluded:
                return candidate

        candidates = [c for c in self.store.list_active_currencies() if c.id not in excluded]
        if not candidates:
            return None

        return min(candidates, key=lambda c: c.rate_priority)

    def _available_rate(self, from_currency_id: int, to_currency_id: int) -> Decimal | None:
        rate = self.store.find_active_rate(from_currency_id, to_currency_id)
        if rate is None or rate <= 0:
            return None
        return rate

    def _bridge_leg_failed(
        self,
        leg_from: Currency,
        leg_to: Currency,
        bridge_code: str | None = None,
    ) -> ConversionResult:
        logger.debug(f"Bridge leg {leg_from.code}->{leg_to.code} has no rate")
        return ConversionResult(
            status=ConversionStatus.BRIDGE_LEG_FAILED,
            path=ConversionPath.BRIDGED,
            bridge_code=bridge_code or leg_to.code,
            reasons=[f"No rate for bridge leg {leg_from.code}->{leg_to.code}"],
        )
