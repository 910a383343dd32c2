import pytest

from deployment.constants import CONSTRUCTOR_PARAMS_DIR, LOCAL, MANIFEST_FILENAME
from deployment.params import DeploymentManifest
from tests.fakes import FakeDeployer


@pytest.fixture
def manifest_filepath():
    return CONSTRUCTOR_PARAMS_DIR / LOCAL / MANIFEST_FILENAME


@pytest.fixture
def manifest(manifest_filepath):
    return DeploymentManifest.from_yaml(manifest_filepath)


@pytest.fixture
def fake_deployer():
    return FakeDeployer()


@pytest.fixture
def manifest_config():
    return {
        "deployment": {"name": "marketplace-test", "chain_id": 1337},
        "artifacts": {"filename": "test.json"},
        "contracts": [
            {"Settings": {"constructor": {"owner": "$deployer"}}},
            {"Vault": {"constructor": {"settings": "$Settings"}}},
        ],
        "wiring": [{"Settings": {"setVault": ["$Vault"]}}],
    }
