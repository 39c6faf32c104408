"""Typed failures raised by the exchange plugins."""

from typing import Any, Optional


class SwapError(Exception):
    """Base class for errors a swap plugin reports to the host."""

    def __init__(self, swap_info: Any, message: str):
        self.swap_info = swap_info
        super().__init__(message)

    @property
    def plugin_id(self) -> str:
        return self.swap_info.plugin_id


class SwapBelowLimitError(SwapError):
    """Requested amount is below the exchange minimum."""

    def __init__(self, swap_info: Any, native_min: str):
        self.native_min = native_min
        super().__init__(
            swap_info, f"{swap_info.display_name}: amount is below the minimum of {native_min}"
        )


class SwapAboveLimitError(SwapError):
    """Requested amount is above the exchange maximum."""

    def __init__(self, swap_info: Any, native_max: str):
        self.native_max = native_max
        super().__init__(
            swap_info, f"{swap_info.display_name}: amount is above the maximum of {native_max}"
        )


class SwapCurrencyError(SwapError):
    """The exchange does not support the currency pair."""

    def __init__(self, swap_info: Any, from_currency_code: str, to_currency_code: str):
        self.from_currency_code = from_currency_code
        self.to_currency_code = to_currency_code
        super().__init__(
            swap_info,
            f"{swap_info.display_name} does not support {from_currency_code} to {to_currency_code}",
        )


class SwapPermissionError(SwapError):
    """The exchange refuses to serve this user (e.g. geofencing)."""

    def __init__(self, swap_info: Any, reason: str = "noVerification"):
        self.reason = reason
        super().__init__(swap_info, f"{swap_info.display_name} permission denied: {reason}")


class ExchangeError(Exception):
    """Transport failure or an exchange error that has no typed counterpart."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        code: Optional[Any] = None,
    ):
        self.status_code = status_code
        self.code = code
        super().__init__(message)
