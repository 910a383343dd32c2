from collections import OrderedDict
from typing import Any

from ape.utils import ZERO_ADDRESS


def _ask(question: str) -> None:
    """Exits unless the user answers anything other than 'n'."""
    answer = input(f"{question} Y/N? ")
    if answer.lower().strip() == "n":
        print("Aborting deployment!")
        exit(-1)


def _continue() -> None:
    """Asks the user to continue."""
    _ask("Continue")


def _is_zero_address(value: Any) -> bool:
    if isinstance(value, (list, tuple)):
        return any(_is_zero_address(v) for v in value)
    return value == ZERO_ADDRESS


def _confirm_resolution(resolved_params: OrderedDict, contract_name: str) -> None:
    """Asks the user to confirm the resolved constructor parameters for a single contract."""
    if len(resolved_params) == 0:
        print(f"\n(i) No constructor parameters for {contract_name}")
        _ask(f"Deploy {contract_name}")
        return

    print(f"\nConstructor parameters for {contract_name}")
    for name, resolved_value in resolved_params.items():
        print(f"\t{name}={resolved_value}")
    _ask(f"Deploy {contract_name}")

    if any(_is_zero_address(value) for value in resolved_params.values()):
        _ask("Zero Address detected for deployment parameter; Continue?")
