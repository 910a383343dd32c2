#!/usr/bin/python3

from itertools import groupby
from typing import List, Optional, Tuple

import click
from ape.cli import ConnectedProviderCommand

from deployment.constants import ARTIFACTS_DIR, SUPPORTED_ENVIRONMENTS
from deployment.options import environment_option
from deployment.registry import RegistryEntry, read_registry
from deployment.utils import get_chain_name, registry_filepath_from_environment


def _format_chain_name(chain_name: str) -> str:
    """Format the chain name to capitalize each word and join with slashes."""
    return "/".join(word.capitalize() for word in chain_name.split())


def _get_registry_entries(
    environment: Optional[str] = None,
) -> List[Tuple[str, List[RegistryEntry]]]:
    """Parse the registry files for the given environment or all published environments."""
    registry_entries = list()
    for env in SUPPORTED_ENVIRONMENTS:
        if environment and environment != env:
            continue
        if not environment and not (ARTIFACTS_DIR / f"{env}.json").exists():
            continue  # never published
        registry_filepath = registry_filepath_from_environment(environment=env)
        registry_entries.append((env, read_registry(filepath=registry_filepath)))
    return registry_entries


def _display_registry_entries(registry_entries: List[Tuple[str, List[RegistryEntry]]]) -> None:
    """Display registry entries grouped by chain ID."""
    for environment, entries in registry_entries:
        grouped_entries = groupby(entries, key=lambda e: e.chain_id)
        click.secho(f"\n{environment.capitalize()} Environment", fg="green")

        for chain_id, chain_entries in grouped_entries:
            chain_name = _format_chain_name(get_chain_name(chain_id))
            click.secho(f"    {chain_name}", fg="yellow")

            for index, entry in enumerate(chain_entries, start=1):
                click.secho(f"        {index}. {entry.name} {entry.address}", fg="cyan")


@click.command(cls=ConnectedProviderCommand, name="list-contracts")
@environment_option
def cli(environment):
    """List all marketplace contracts in the registries. Optionally filter by environment."""
    registry_entries = _get_registry_entries(environment)
    if not registry_entries:
        click.echo("No published registries found.")
        return
    _display_registry_entries(registry_entries)


if __name__ == "__main__":
    cli()
