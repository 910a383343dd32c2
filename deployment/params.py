import typing
from abc import ABC, abstractmethod
from collections import OrderedDict
from pathlib import Path
from typing import Any, Dict, List, NamedTuple

from ape import networks
from ape.api import AccountAPI, ReceiptAPI
from ape.cli.choices import select_account
from ape.contracts.base import ContractInstance, ContractTransactionHandler
from eth_typing import ChecksumAddress
from ethpm_types import MethodABI
from web3.auto import w3

from deployment.confirm import _confirm_resolution, _continue
from deployment.fees import FeeOverride, fetch_fee_override
from deployment.registry import registry_from_deployments
from deployment.utils import (
    _load_yaml,
    check_plugins,
    get_contract_container,
    validate_config,
    verify_contracts,
)

CONTRACT_CONSTRUCTOR_PARAMETER_KEY = "constructor"
INSPECT_KEY = "inspect"
WIRING_KEY = "wiring"


class ResolutionContext(NamedTuple):
    """What variables resolve against: the signer and the contracts deployed so far."""

    deployer_address: ChecksumAddress
    addresses: typing.Mapping[str, ChecksumAddress]


class VariableContext:
    def __init__(
        self,
        contract_names: List[str],
        contract_name: str,
        constants: typing.Dict[str, Any] = None,
    ):
        # only the contracts a parameter is allowed to reference
        self.contract_names = contract_names or list()
        self.contract_name = contract_name
        self.constants = constants or dict()


# Variables


class Variable(ABC):
    VARIABLE_PREFIX = "$"

    @abstractmethod
    def resolve(self, context: ResolutionContext) -> Any:
        raise NotImplementedError

    @classmethod
    def is_variable(cls, param: Any) -> bool:
        """Returns True if the param is a variable."""
        return isinstance(param, str) and param.startswith(cls.VARIABLE_PREFIX)


class DeployerAccount(Variable):
    DEPLOYER_INDICATOR = "deployer"

    @classmethod
    def is_deployer(cls, value: str) -> bool:
        """Returns True if the variable is a special deployer variable."""
        return value == cls.DEPLOYER_INDICATOR

    def resolve(self, context: ResolutionContext) -> Any:
        return context.deployer_address

    def __repr__(self):
        return f"${self.DEPLOYER_INDICATOR}"


class Constant(Variable):
    def __init__(self, constant_name: str, context: VariableContext):
        try:
            self.constant_value = context.constants[constant_name]
        except KeyError:
            raise ValueError(f"Constant '{constant_name}' not found in manifest file.")
        self.constant_name = constant_name

    @classmethod
    def is_constant(cls, value: str) -> bool:
        """Returns True if the variable is a manifest constant."""
        return value.isupper()

    def resolve(self, context: ResolutionContext) -> Any:
        return self.constant_value

    def __repr__(self):
        return f"${self.constant_name}"


class ContractName(Variable):
    def __init__(self, contract_name: str, context: VariableContext):
        if contract_name not in context.contract_names:
            raise ValueError(
                f"Contract name {contract_name} referenced by {context.contract_name} "
                f"is not deployed before it"
            )
        self.contract_name = contract_name

    def resolve(self, context: ResolutionContext) -> Any:
        """Resolves a contract address."""
        try:
            return context.addresses[self.contract_name]
        except KeyError:
            raise ValueError(f"Contract {self.contract_name} has not been deployed yet")

    def __repr__(self):
        return f"${self.contract_name}"


def _resolve_param(value: Any, context: ResolutionContext) -> Any:
    """Resolves a single parameter value or a list of parameter values."""
    if isinstance(value, list):
        return [_resolve_param(v, context) for v in value]

    if isinstance(value, Variable):
        return value.resolve(context)

    return value  # literally a value


def _resolve_params(parameters: OrderedDict, context: ResolutionContext) -> OrderedDict:
    resolved_parameters = OrderedDict()
    for name, value in parameters.items():
        resolved_parameters[name] = _resolve_param(value, context)

    return resolved_parameters


def _variable_from_value(variable: Any, context: VariableContext) -> Variable:
    variable = variable.strip(Variable.VARIABLE_PREFIX)
    if DeployerAccount.is_deployer(variable):
        return DeployerAccount()
    elif Constant.is_constant(variable):
        return Constant(variable, context)
    else:
        return ContractName(variable, context)


def _process_raw_value(value: Any, variable_context: VariableContext) -> Any:
    if isinstance(value, list):
        return [_process_raw_value(v, variable_context) for v in value]

    if Variable.is_variable(value):
        value = _variable_from_value(value, variable_context)

    return value


def _process_raw_values(values: typing.Mapping, variable_context: VariableContext) -> OrderedDict:
    processed_parameters = OrderedDict()
    for name, value in values.items():
        processed_parameters[name] = _process_raw_value(value, variable_context)

    return processed_parameters


def _get_contract_names(config: typing.Dict) -> List[str]:
    contract_names = list()
    for contract_info in config["contracts"]:
        if isinstance(contract_info, str):
            contract_names.append(contract_info)
        elif isinstance(contract_info, dict):
            contract_names.extend(list(contract_info.keys()))
        else:
            raise ValueError("Malformed manifest YAML.")

    duplicates = {name for name in contract_names if contract_names.count(name) > 1}
    if duplicates:
        raise ValueError(f"Contracts listed more than once in manifest: {sorted(duplicates)}")

    return contract_names


def _validate_method_args(
    method_abis: List[MethodABI], args: typing.Sequence[Any]
) -> typing.Dict[str, Any]:
    """Validates the transaction arguments against the function ABI."""
    if len(method_abis) == 0:
        raise ValueError("No method abis provided for validation of args")

    abis_matching_args_length = [abi for abi in method_abis if len(abi.inputs) == len(args)]
    for abi in abis_matching_args_length:
        named_args = {}
        for arg, abi_input in zip(args, abi.inputs):
            if not w3.is_encodable(abi_input.type, arg):
                break
            named_args[abi_input.name] = arg
        else:
            return named_args
    raise ValueError(
        f"Could not find ABI for '{method_abis[0].name}' with {len(args)} arg(s) and given type(s)"
    )


def _validate_constructor_abi_inputs(
    contract_name: str,
    abi_inputs: List[Any],
    resolved_parameters: OrderedDict,
) -> None:
    """
    Validates the constructor parameters against the constructor ABI.
    Manifest labels are informational; parameters are matched by position.
    """
    if len(resolved_parameters) != len(abi_inputs):
        raise ConstructorParameters.Invalid(
            f"Constructor parameters length mismatch - "
            f"{contract_name} ABI requires {len(abi_inputs)}, Got {len(resolved_parameters)}."
        )

    codex = enumerate(zip(abi_inputs, resolved_parameters.items()), start=0)
    for position, (abi_input, (name, value)) in codex:
        if not w3.is_encodable(abi_input.type, value):
            raise ConstructorParameters.Invalid(
                f"Constructor param name '{name}' at position {position} has a value '{value}' "
                f"whose type does not match expected ABI type '{abi_input.type}'"
            )


class ConstructorParameters:
    """Represents the constructor parameters for an ordered set of contracts."""

    class Invalid(Exception):
        """Raised when the constructor parameters are invalid"""

    def __init__(self, parameters: OrderedDict):
        self.parameters = parameters

    @classmethod
    def from_config(cls, config: typing.Dict) -> "ConstructorParameters":
        """Loads the constructor parameters from a manifest config."""
        print("Processing contract constructor parameters...")
        contracts_config = OrderedDict()
        contract_names = _get_contract_names(config)
        constants = config.get("constants")
        for position, contract_info in enumerate(config["contracts"]):
            # a constructor may only reference contracts listed before it
            deployed_before = contract_names[:position]
            if isinstance(contract_info, str):
                contracts_config[contract_info] = OrderedDict()
                continue

            if len(contract_info) != 1:
                raise ValueError("Malformed manifest YAML.")

            contract_name = list(contract_info.keys())[0]  # only one entry
            contract_data = contract_info[contract_name] or dict()
            if not isinstance(contract_data, dict):
                raise ValueError(f"Malformed constructor parameter config for {contract_name}.")
            try:
                parameter_values = cls._process_parameters(
                    constants, contract_data, contract_name, deployed_before
                )
            except ValueError as e:
                raise cls.Invalid(str(e)) from e
            contracts_config[contract_name] = parameter_values

        return cls(parameters=contracts_config)

    @classmethod
    def _process_parameters(cls, constants, contract_data, contract_name, contract_names):
        parameter_values = OrderedDict()
        if CONTRACT_CONSTRUCTOR_PARAMETER_KEY in contract_data:
            raw_values = contract_data[CONTRACT_CONSTRUCTOR_PARAMETER_KEY] or dict()
            if not isinstance(raw_values, dict):
                raise ValueError(f"Malformed constructor parameter config for {contract_name}.")
            parameter_values = _process_raw_values(
                raw_values,
                VariableContext(
                    contract_names=contract_names, constants=constants, contract_name=contract_name
                ),
            )
        return parameter_values

    @property
    def contract_names(self) -> List[str]:
        return list(self.parameters)

    def resolve(self, contract_name: str, context: ResolutionContext) -> OrderedDict:
        """Resolves the constructor parameters for a single contract."""
        return _resolve_params(self.parameters[contract_name], context)


class ContractCall(NamedTuple):
    contract_name: str
    method_name: str
    args: List[Any]

    def resolve(self, context: ResolutionContext) -> List[Any]:
        return [_resolve_param(arg, context) for arg in self.args]

    def __str__(self) -> str:
        pretty_args = ", ".join(repr(arg) for arg in self.args)
        return f"{self.contract_name}.{self.method_name}({pretty_args})"


class CallParameters:
    """
    Represents an ordered list of calls against deployed contracts, e.g.

        wiring:
          - Vault:
              setAppealsRole: [$Appeals]
    """

    class Invalid(Exception):
        """Raised when a call entry is invalid"""

    def __init__(self, calls: List[ContractCall]):
        self.calls = calls

    def __iter__(self):
        return iter(self.calls)

    def __len__(self):
        return len(self.calls)

    @classmethod
    def from_config(cls, config: typing.Dict, key: str) -> "CallParameters":
        contract_names = _get_contract_names(config)
        constants = config.get("constants")
        calls = list()
        for entry in config.get(key) or list():
            if not isinstance(entry, dict) or len(entry) != 1:
                raise cls.Invalid(f"Malformed '{key}' entry: {entry}")

            contract_name, call_data = list(entry.items())[0]
            if contract_name not in contract_names:
                raise cls.Invalid(f"'{key}' entry targets unknown contract {contract_name}")
            if isinstance(call_data, str):
                call_data = {call_data: list()}
            if not isinstance(call_data, dict) or len(call_data) != 1:
                raise cls.Invalid(f"'{key}' entry for {contract_name} must name exactly one method")

            method_name, raw_args = list(call_data.items())[0]
            if raw_args is None:
                raw_args = list()
            elif not isinstance(raw_args, list):
                raw_args = [raw_args]

            # calls run after every contract is deployed
            variable_context = VariableContext(
                contract_names=contract_names, constants=constants, contract_name=contract_name
            )
            try:
                args = [_process_raw_value(arg, variable_context) for arg in raw_args]
            except ValueError as e:
                raise cls.Invalid(str(e)) from e
            calls.append(ContractCall(contract_name, method_name, args))

        return cls(calls=calls)


class DeploymentManifest:
    """Contracts to deploy, in order, plus the calls to make once they are all deployed."""

    def __init__(self, config: typing.Dict):
        if not config or not config.get("contracts"):
            raise ValueError("Manifest file missing 'contracts' field.")
        self.config = config
        self.name = config.get("deployment", {}).get("name", "unnamed")
        self.constructor_parameters = ConstructorParameters.from_config(config)
        self.inspections = CallParameters.from_config(config, INSPECT_KEY)
        self.wiring = CallParameters.from_config(config, WIRING_KEY)

    @classmethod
    def from_yaml(cls, filepath: Path) -> "DeploymentManifest":
        return cls(config=_load_yaml(filepath))

    @property
    def contract_names(self) -> List[str]:
        return self.constructor_parameters.contract_names


class Transactor:
    """
    Represents an ape account plus validated/annotated transaction execution.
    """

    def __init__(self, account: typing.Optional[AccountAPI] = None, autosign: bool = False):
        if account is None:
            self._account = select_account()
        else:
            self._account = account
        if autosign:
            print("WARNING: Autosign is enabled. Transactions will be signed automatically.")
        self._autosign = autosign
        self._account.set_autosign(autosign)

    def get_account(self) -> AccountAPI:
        """Returns the transactor account."""
        return self._account

    def transact(
        self,
        method: ContractTransactionHandler,
        *args,
        overrides: typing.Optional[FeeOverride] = None,
    ) -> ReceiptAPI:
        named_args = _validate_method_args(method_abis=method.abis, args=args)
        base_message = (
            f"\nTransacting {method.contract.contract_type.name}"
            f"[{method.contract.address[:10]}].{method.abis[0].name}"
        )
        if named_args:
            pretty_args = "\n\t".join(f"{k}={v}" for k, v in named_args.items())
            message = f"{base_message} with arguments:\n\t{pretty_args}"
        else:
            message = f"{base_message} with no arguments"
        if overrides:
            message = f"{message}\n\tfees: {overrides}"
        print(message)
        if not self._autosign:
            _continue()

        fee_kwargs = overrides.as_kwargs() if overrides else dict()
        # ape returns once the receipt has the network's required confirmations
        return method(*args, sender=self._account, **fee_kwargs)


class Deployer(Transactor):
    """
    Represents an ape account plus a deployment manifest,
    plus validated/annotated deployment execution.
    """

    def __init__(
        self,
        config: typing.Dict,
        path: Path,
        verify: bool,
        account: typing.Optional[AccountAPI] = None,
        autosign: bool = False,
    ):
        super().__init__(account, autosign)

        check_plugins(verify=verify)
        self.path = path
        self.config = config
        self.registry_filepath = validate_config(config=self.config)
        self.manifest = DeploymentManifest(self.config)
        self.verify = verify
        self._print_deployment_info()

        if not self._autosign:
            # Confirms the start of the deployment.
            _continue()

    @classmethod
    def from_yaml(
        cls,
        filepath: Path,
        *,
        verify: bool,
        account: typing.Optional[AccountAPI] = None,
        autosign: bool = False,
    ) -> "Deployer":
        config = _load_yaml(filepath)
        return cls(
            config=config, path=filepath, verify=verify, account=account, autosign=autosign
        )

    def _get_kwargs(self) -> typing.Dict[str, Any]:
        """Returns the deployment kwargs."""
        return {"publish": self.verify}

    def fetch_fee_override(self) -> FeeOverride:
        return fetch_fee_override(networks.provider)

    def deploy(self, contract_name: str, resolved_params: OrderedDict) -> ContractInstance:
        container = get_contract_container(contract_name)
        _validate_constructor_abi_inputs(
            contract_name=contract_name,
            abi_inputs=container.constructor.abi.inputs,
            resolved_parameters=resolved_params,
        )
        if not self._autosign:
            _confirm_resolution(resolved_params, contract_name)

        return self._account.deploy(container, *resolved_params.values(), **self._get_kwargs())

    def at(self, contract_name: str, address: ChecksumAddress) -> ContractInstance:
        return get_contract_container(contract_name).at(address)

    def publish(self, result) -> Path:
        """Writes the deployed contracts, complete or not, to the registry."""
        return registry_from_deployments(
            records=result.records,
            instances=result.instances,
            output_filepath=self.registry_filepath,
        )

    def finalize(self, result) -> None:
        """
        Publishes the deployments to the registry and optionally to block explorers.
        """
        self.publish(result)
        if self.verify:
            verify_contracts(contracts=list(result.instances.values()))

    def _print_deployment_info(self):
        print(
            f"Account: {self.get_account().address}",
            f"Manifest: {self.path}",
            f"Registry: {self.registry_filepath}",
            f"Verify: {self.verify}",
            f"Ecosystem: {networks.provider.network.ecosystem.name}",
            f"Network: {networks.provider.network.name}",
            f"Chain ID: {networks.provider.network.chain_id}",
            f"Gas Price: {networks.provider.gas_price}",
            sep="\n",
        )
