from pathlib import Path

import click

from deployment.constants import SUPPORTED_ENVIRONMENTS

environment_option = click.option(
    "--environment",
    "-e",
    help="Marketplace environment; selects the bundled manifest and registry.",
    type=click.Choice(SUPPORTED_ENVIRONMENTS),
    required=False,
)

manifest_option = click.option(
    "--manifest",
    "-m",
    "manifest_filepath",
    help="Manifest filepath, for deployments outside the bundled environments.",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=False,
)

registry_option = click.option(
    "--registry-filepath",
    "-f",
    help="Registry filepath, for deployments outside the bundled environments.",
    type=click.Path(dir_okay=False, exists=True, path_type=Path),
    required=False,
)

verify_option = click.option(
    "--verify",
    help="Publish the deployed contracts to the block explorer.",
    is_flag=True,
)

autosign_option = click.option(
    "--auto",
    help="Automatically sign transactions.",
    is_flag=True,
)
