#!/usr/bin/python3

import click
from ape.cli import ConnectedProviderCommand, account_option, network_option

from deployment.options import (
    autosign_option,
    environment_option,
    manifest_option,
    verify_option,
)
from deployment.params import Deployer
from deployment.pipeline import DeploymentPipeline
from deployment.utils import manifest_filepath_from_environment


@click.command(cls=ConnectedProviderCommand, name="deploy-marketplace")
@account_option()
@network_option(required=True)
@environment_option
@manifest_option
@verify_option
@autosign_option
def cli(network, account, environment, manifest_filepath, verify, auto):
    """
    Deploy the marketplace contracts (Settings, Vault, Appeals, Providers, Deals)
    and wire their roles and peer addresses.

    ape run deploy_marketplace --network ethereum:sepolia:infura --environment sepolia
    """
    if not (bool(manifest_filepath) ^ bool(environment)):
        raise click.BadOptionUsage(
            option_name="--environment",
            message=(
                f"Provide either 'environment' or 'manifest'; "
                f"got {environment}, {manifest_filepath}"
            ),
        )
    manifest_filepath = manifest_filepath or manifest_filepath_from_environment(environment)
    click.echo(f"Connected to {network.name} network.")

    deployer = Deployer.from_yaml(
        filepath=manifest_filepath, verify=verify, account=account, autosign=auto
    )
    pipeline = DeploymentPipeline(manifest=deployer.manifest, deployer=deployer)
    # contracts already on chain are written to the registry even if a later step fails
    result = pipeline.run(on_failure=deployer.publish)

    click.secho("\nMarketplace deployed and wired:", fg="green")
    for name, address in result.addresses.items():
        click.echo(f"\t{name}: {address}")

    deployer.finalize(result)


if __name__ == "__main__":
    cli()
