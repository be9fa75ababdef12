import sys
from typing import Any, Sequence

from bridge_deployment.constants import ZERO_ADDRESS


def _abort() -> None:
    print("Aborting deployment!")
    sys.exit(-1)


def _continue() -> None:
    """Asks the user to continue."""
    answer = input("Continue Y/N? ")
    if answer.lower().strip() == "n":
        _abort()


def _confirm_deployment(name: str, contract_type: str) -> None:
    """Asks the user to confirm the deployment of a single contract."""
    answer = input(f"Deploy {name} ({contract_type}) Y/N? ")
    if answer.lower().strip() == "n":
        _abort()


def _confirm_zero_address() -> None:
    answer = input("Zero Address detected for deployment parameter; Continue? Y/N? ")
    if answer.lower().strip() == "n":
        _abort()


def _confirm_resolution(args: Sequence[Any], name: str, contract_type: str) -> None:
    """Asks the user to confirm the resolved constructor arguments for a single contract."""
    if len(args) == 0:
        print(f"\n(i) No constructor parameters for {name}")
        _confirm_deployment(name, contract_type)
        return

    print(f"\nConstructor parameters for {name}")
    for position, value in enumerate(args):
        print(f"\t[{position}]={value!r}")
    _confirm_deployment(name, contract_type)
    if ZERO_ADDRESS in args:
        _confirm_zero_address()
