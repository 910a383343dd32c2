from pathlib import Path

import click
from ape import networks
from ape.cli import ConnectedProviderCommand, network_option

from deployment.constants import MARKETPLACE_CONTRACTS
from deployment.options import environment_option, registry_option
from deployment.registry import contracts_from_registry
from deployment.utils import (
    check_etherscan_plugin,
    registry_filepath_from_environment,
    verify_contracts,
)


@click.command(cls=ConnectedProviderCommand)
@network_option(required=True)
@click.option(
    "--contract-name",
    "-c",
    "contract_names",
    help="Contract to verify",
    type=click.Choice(MARKETPLACE_CONTRACTS),
    required=True,
    multiple=True,
)
@environment_option
@registry_option
def cli(network, environment, contract_names, registry_filepath: Path):
    """Verify deployed marketplace contracts on the block explorer."""
    if not (bool(registry_filepath) ^ bool(environment)):
        raise click.BadOptionUsage(
            option_name="--environment",
            message=(
                f"Provide either 'environment' or 'registry_filepath'; "
                f"got {environment}, {registry_filepath}"
            ),
        )
    check_etherscan_plugin()

    registry_filepath = registry_filepath or registry_filepath_from_environment(environment)
    chain_id = networks.active_provider.chain_id
    contracts = contracts_from_registry(registry_filepath, chain_id=chain_id)

    contract_instances = []
    for contract_name in contract_names:
        try:
            contract_instances.append(contracts[contract_name])
        except KeyError:
            raise ValueError(
                f"Contract '{contract_name}' not found in registry, '{registry_filepath}', "
                f"for chain {chain_id}"
            )

    verify_contracts(contract_instances)


if __name__ == "__main__":
    cli()
