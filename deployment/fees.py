from typing import Any, Dict, NamedTuple, Optional

from ape import networks
from ape.api import ProviderAPI


class FeeOverride(NamedTuple):
    """EIP-1559 fee parameters (in wei) attached to wiring transactions."""

    max_priority_fee: int
    max_fee: int

    def as_kwargs(self) -> Dict[str, Any]:
        """Returns the fee parameters as ape transaction kwargs."""
        return {"max_priority_fee": self.max_priority_fee, "max_fee": self.max_fee}

    def __str__(self) -> str:
        return f"max_priority_fee={self.max_priority_fee} wei, max_fee={self.max_fee} wei"


def fetch_fee_override(provider: Optional[ProviderAPI] = None) -> FeeOverride:
    """
    Takes a snapshot of the network fee data.

    The max fee leaves room for the base fee to double before the transaction
    stops being includable: max_fee = 2 * base_fee + max_priority_fee.
    """
    provider = provider or networks.provider
    max_priority_fee = int(provider.priority_fee)
    base_fee = int(provider.base_fee)
    if max_priority_fee < 0 or base_fee < 0:
        raise ValueError(
            f"Invalid fee data from provider: base_fee={base_fee}, "
            f"priority_fee={max_priority_fee}"
        )
    return FeeOverride(max_priority_fee=max_priority_fee, max_fee=2 * base_fee + max_priority_fee)
