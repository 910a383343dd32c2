from types import SimpleNamespace

import pytest

from deployment.fees import FeeOverride, fetch_fee_override

GWEI = 10**9


def test_fee_snapshot_from_provider():
    provider = SimpleNamespace(priority_fee=2 * GWEI, base_fee=30 * GWEI)

    fees = fetch_fee_override(provider)

    assert fees == FeeOverride(max_priority_fee=2 * GWEI, max_fee=62 * GWEI)


def test_fee_override_kwargs():
    fees = FeeOverride(max_priority_fee=1, max_fee=3)

    assert fees.as_kwargs() == {"max_priority_fee": 1, "max_fee": 3}
    assert str(fees) == "max_priority_fee=1 wei, max_fee=3 wei"


def test_negative_fee_data_is_rejected():
    provider = SimpleNamespace(priority_fee=-1, base_fee=30 * GWEI)

    with pytest.raises(ValueError, match="Invalid fee data"):
        fetch_fee_override(provider)
