from collections import OrderedDict

import pytest

from deployment.params import (
    CallParameters,
    ConstructorParameters,
    ContractName,
    DeployerAccount,
    DeploymentManifest,
    ResolutionContext,
)
from tests.fakes import OWNER, SETTINGS_ADDRESS, VAULT_ADDRESS


def test_shipped_manifest(manifest):
    assert manifest.contract_names == ["Settings", "Vault", "Appeals", "Providers", "Deals"]
    assert [str(call) for call in manifest.inspections] == ["Vault.getProtocolBalance()"]
    assert [(call.contract_name, call.method_name) for call in manifest.wiring] == [
        ("Vault", "setAppealsRole"),
        ("Vault", "setProvidersRole"),
        ("Vault", "setDealsRole"),
        ("Appeals", "setDealsAddress"),
        ("Providers", "setDealsAddress"),
    ]


def test_constructor_params_resolve_against_earlier_deployments(manifest):
    context = ResolutionContext(
        deployer_address=OWNER,
        addresses={"Settings": SETTINGS_ADDRESS, "Vault": VAULT_ADDRESS},
    )

    settings_params = manifest.constructor_parameters.resolve("Settings", context)
    appeals_params = manifest.constructor_parameters.resolve("Appeals", context)

    assert settings_params == OrderedDict(owner=OWNER)
    assert list(appeals_params.values()) == [SETTINGS_ADDRESS, VAULT_ADDRESS]


def test_resolving_before_dependency_is_deployed(manifest):
    context = ResolutionContext(deployer_address=OWNER, addresses={"Settings": SETTINGS_ADDRESS})

    with pytest.raises(ValueError, match="Vault has not been deployed yet"):
        manifest.constructor_parameters.resolve("Appeals", context)


def test_forward_reference_is_rejected(manifest_config):
    manifest_config["contracts"] = [
        {"Vault": {"constructor": {"settings": "$Settings"}}},
        {"Settings": {"constructor": {"owner": "$deployer"}}},
    ]

    with pytest.raises(ConstructorParameters.Invalid, match="not deployed before it"):
        ConstructorParameters.from_config(manifest_config)


def test_self_reference_is_rejected(manifest_config):
    manifest_config["contracts"] = [{"Settings": {"constructor": {"owner": "$Settings"}}}]

    with pytest.raises(ConstructorParameters.Invalid):
        ConstructorParameters.from_config(manifest_config)


def test_unknown_constant_is_rejected(manifest_config):
    manifest_config["contracts"][0]["Settings"]["constructor"]["fee"] = "$PROTOCOL_FEE"

    with pytest.raises(ConstructorParameters.Invalid, match="PROTOCOL_FEE"):
        ConstructorParameters.from_config(manifest_config)


def test_constants_and_lists(manifest_config):
    manifest_config["constants"] = {"PROTOCOL_FEE": 250}
    manifest_config["contracts"].append(
        {"Deals": {"constructor": {"fee": "$PROTOCOL_FEE", "peers": ["$Settings", "$Vault"]}}}
    )
    parameters = ConstructorParameters.from_config(manifest_config)
    context = ResolutionContext(
        deployer_address=OWNER,
        addresses={"Settings": SETTINGS_ADDRESS, "Vault": VAULT_ADDRESS},
    )

    resolved = parameters.resolve("Deals", context)

    assert resolved == OrderedDict(fee=250, peers=[SETTINGS_ADDRESS, VAULT_ADDRESS])


def test_contract_without_constructor_params(manifest_config):
    manifest_config["contracts"].insert(0, "Registry")

    parameters = ConstructorParameters.from_config(manifest_config)

    assert parameters.contract_names == ["Registry", "Settings", "Vault"]
    assert parameters.parameters["Registry"] == OrderedDict()


def test_duplicate_contract_is_rejected(manifest_config):
    manifest_config["contracts"].append({"Vault": {"constructor": {"settings": "$Settings"}}})

    with pytest.raises(ValueError, match="more than once"):
        DeploymentManifest(manifest_config)


def test_variables():
    context = ResolutionContext(deployer_address=OWNER, addresses={"Settings": SETTINGS_ADDRESS})

    assert DeployerAccount().resolve(context) == OWNER
    assert repr(DeployerAccount()) == "$deployer"


def test_wiring_may_reference_later_contracts(manifest_config):
    calls = CallParameters.from_config(manifest_config, "wiring")

    (call,) = calls
    assert call.contract_name == "Settings"
    assert call.method_name == "setVault"
    assert isinstance(call.args[0], ContractName)
    context = ResolutionContext(deployer_address=OWNER, addresses={"Vault": VAULT_ADDRESS})
    assert call.resolve(context) == [VAULT_ADDRESS]


def test_wiring_scalar_argument(manifest_config):
    manifest_config["wiring"] = [{"Vault": {"setOwner": "$deployer"}}]

    (call,) = CallParameters.from_config(manifest_config, "wiring")

    assert isinstance(call.args[0], DeployerAccount)


@pytest.mark.parametrize(
    "entry",
    [
        {"Deals": {"setVault": ["$Vault"]}},  # unknown target
        {"Vault": {"setA": [], "setB": []}},  # two methods
        {"Vault": {"setSettings": ["$Deals"]}},  # unknown argument
        ["Vault", "setSettings"],  # not a mapping
    ],
)
def test_malformed_wiring_is_rejected(manifest_config, entry):
    manifest_config["wiring"] = [entry]

    with pytest.raises(CallParameters.Invalid):
        CallParameters.from_config(manifest_config, "wiring")


def test_missing_contracts_section():
    with pytest.raises(ValueError, match="contracts"):
        DeploymentManifest({"deployment": {"chain_id": 1}})
