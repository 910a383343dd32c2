"""
Ordered, fail-fast execution of a deployment manifest.

A run is a flat list of steps executed one at a time: take a fee snapshot,
deploy every contract in manifest order, make the read-only inspection calls,
then send the wiring transactions. Each step blocks until the network has
answered. The first step to raise stops the run; nothing is retried or rolled back.
"""

import typing
from abc import ABC, abstractmethod
from collections import OrderedDict
from typing import Any, Callable, List, NamedTuple, Optional, Tuple

from ape.utils import ZERO_ADDRESS
from eth_typing import ChecksumAddress

from deployment.fees import FeeOverride
from deployment.params import ContractCall, DeploymentManifest, ResolutionContext


class DeploymentRecord(NamedTuple):
    name: str
    address: ChecksumAddress
    args: Tuple[Any, ...]


class DeploymentResult(NamedTuple):
    records: List[DeploymentRecord]
    instances: typing.Dict[str, Any]
    fee_override: FeeOverride
    inspections: typing.Dict[str, Any]
    receipts: List[Any]

    @property
    def addresses(self) -> typing.Dict[str, ChecksumAddress]:
        return OrderedDict((record.name, record.address) for record in self.records)


class RunState:
    """Mutable state of a single run; only ever touched by the step being executed."""

    def __init__(self, deployer_address: ChecksumAddress):
        self.deployer_address = deployer_address
        self.fee_override: Optional[FeeOverride] = None
        self.records: typing.OrderedDict[str, DeploymentRecord] = OrderedDict()
        self.instances: typing.Dict[str, Any] = OrderedDict()
        self.inspections: typing.Dict[str, Any] = OrderedDict()
        self.receipts: List[Any] = list()
        self.completed_calls: List[ContractCall] = list()
        # on chain, but rejected as a record
        self.unrecorded: typing.Dict[str, ChecksumAddress] = OrderedDict()
        self.step_index = 0

    def resolution_context(self) -> ResolutionContext:
        addresses = {name: record.address for name, record in self.records.items()}
        return ResolutionContext(deployer_address=self.deployer_address, addresses=addresses)

    def record(self, name: str, address: ChecksumAddress, args: typing.Sequence) -> None:
        if not address or address == ZERO_ADDRESS:
            raise DeploymentPipeline.Failed(f"{name} deployment returned no address")
        for existing in self.records.values():
            if existing.address == address:
                self.unrecorded[name] = address
                raise DeploymentPipeline.Failed(
                    f"{name} deployment returned the address of {existing.name} ({address})"
                )
        self.records[name] = DeploymentRecord(name=name, address=address, args=tuple(args))


class Step(ABC):
    @abstractmethod
    def execute(self, deployer, state: RunState) -> None:
        raise NotImplementedError

    @abstractmethod
    def describe(self) -> str:
        raise NotImplementedError


class FetchFeesStep(Step):
    def describe(self) -> str:
        return "Fetch fee data"

    def execute(self, deployer, state: RunState) -> None:
        state.fee_override = deployer.fetch_fee_override()
        print(f"Overrides are: {state.fee_override}")


class DeployStep(Step):
    def __init__(self, contract_name: str, manifest: DeploymentManifest):
        self.contract_name = contract_name
        self.manifest = manifest

    def describe(self) -> str:
        return f"Deploy {self.contract_name}"

    def execute(self, deployer, state: RunState) -> None:
        resolved_params = self.manifest.constructor_parameters.resolve(
            self.contract_name, state.resolution_context()
        )
        instance = deployer.deploy(self.contract_name, resolved_params)
        state.record(self.contract_name, instance.address, resolved_params.values())
        state.instances[self.contract_name] = instance
        print(f"{self.contract_name} deployed at {instance.address}")


class InspectStep(Step):
    def __init__(self, call: ContractCall):
        self.call = call

    def describe(self) -> str:
        return f"Inspect {self.call}"

    def execute(self, deployer, state: RunState) -> None:
        address = state.records[self.call.contract_name].address
        contract = deployer.at(self.call.contract_name, address)
        args = self.call.resolve(state.resolution_context())
        value = getattr(contract, self.call.method_name)(*args)
        state.inspections[f"{self.call.contract_name}.{self.call.method_name}"] = value
        print(f"{self.call.contract_name}.{self.call.method_name}: {value}")


class WireStep(Step):
    def __init__(self, call: ContractCall):
        self.call = call

    def describe(self) -> str:
        return f"Wire {self.call}"

    def execute(self, deployer, state: RunState) -> None:
        if state.fee_override is None:
            raise DeploymentPipeline.Failed("Wiring requires a fee snapshot")
        address = state.records[self.call.contract_name].address
        contract = deployer.at(self.call.contract_name, address)
        args = self.call.resolve(state.resolution_context())
        receipt = deployer.transact(
            getattr(contract, self.call.method_name), *args, overrides=state.fee_override
        )
        state.receipts.append(receipt)
        state.completed_calls.append(self.call)


class DeploymentPipeline:
    """Runs a manifest against a deployer, one blocking step at a time."""

    class Failed(Exception):
        """Raised when a step produces a result the run cannot continue from"""

    def __init__(self, manifest: DeploymentManifest, deployer):
        self.manifest = manifest
        self.deployer = deployer
        self.steps = self._build_steps()

    def _build_steps(self) -> List[Step]:
        steps = [FetchFeesStep()]
        steps.extend(DeployStep(name, self.manifest) for name in self.manifest.contract_names)
        steps.extend(InspectStep(call) for call in self.manifest.inspections)
        steps.extend(WireStep(call) for call in self.manifest.wiring)
        return steps

    def run(
        self, on_failure: Optional[Callable[[DeploymentResult], None]] = None
    ) -> DeploymentResult:
        """
        Executes every step in order. When a step raises, `on_failure` receives what was
        deployed so far (if anything) before the exception propagates.
        """
        deployer_address = self.deployer.get_account().address
        print(f"Deployer address: {deployer_address}")

        state = RunState(deployer_address=deployer_address)
        total = len(self.steps)
        for index, step in enumerate(self.steps, start=1):
            state.step_index = index
            print(f"\n[{index}/{total}] {step.describe()}")
            try:
                step.execute(self.deployer, state)
            except Exception:
                self._print_partial_state(state, step)
                if on_failure and state.records:
                    on_failure(self._result(state))
                raise

        return self._result(state)

    @staticmethod
    def _result(state: RunState) -> DeploymentResult:
        return DeploymentResult(
            records=list(state.records.values()),
            instances=OrderedDict((name, state.instances[name]) for name in state.records),
            fee_override=state.fee_override,
            inspections=state.inspections,
            receipts=state.receipts,
        )

    def _print_partial_state(self, state: RunState, failed_step: Step) -> None:
        print(f"\n! Step {state.step_index}/{len(self.steps)} failed: {failed_step.describe()}")
        if state.records:
            print("Contracts deployed during this run:")
            for record in state.records.values():
                print(f"\t{record.name}: {record.address}")
        if state.unrecorded:
            print("Contracts deployed but not recorded:")
            for name, address in state.unrecorded.items():
                print(f"\t{name}: {address}")
        if state.completed_calls:
            print("Wiring transactions confirmed during this run:")
            for call in state.completed_calls:
                print(f"\t{call}")
        print("The deployment is incomplete; nothing has been rolled back.")
