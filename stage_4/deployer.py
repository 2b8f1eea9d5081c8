"""
Deployment Orchestrator
=======================

Drives one deployment attempt through

    VALIDATING -> CONNECTING -> ESTIMATING -> DEPLOYING -> CONFIRMING -> SUCCEEDED

with FAILED reachable from every stage. Every failure ends in a
DeployResult carrying a user-facing message; the signing key is cleared
when the attempt ends, whatever the outcome.
"""

import math
import time
from dataclasses import replace
from decimal import ROUND_CEILING, Decimal
from typing import Callable, Dict, Optional

from eth_account import Account
from eth_utils import to_checksum_address

import config
from workflow.errors import (
    ConfirmationTimeoutError,
    EstimationError,
    InsufficientFundsError,
    NetworkExhaustedError,
    PipelineError,
    RevertedError,
    RpcError,
    SubmissionError,
    ValidationError,
)
from workflow.gate import blocked_message
from workflow.models import CompileArtifact, DeployResult, WorkflowState, content_hash
from workflow.store import WorkflowStateStore

from .artifacts import resolve_artifact
from .credentials import derive_address, validate_key_format
from .errors import friendly_error
from .models import DeployConfig, DeployStage, GasPlan
from .networks import NetworkConfig
from .rpc_proxy import FORWARD_FAILURE_CODE, EndpointError, RpcFailoverProxy, RpcProvider

WEI_PER_ETHER = Decimal(10) ** 18
WEI_PER_GWEI = Decimal(10) ** 9

StageCallback = Callable[[DeployStage], None]


def to_hex(data: bytes) -> str:
    return "0x" + bytes(data).hex()


def hex_to_int(value) -> int:
    """Quantity from a JSON-RPC result; null or non-hex values are malformed answers"""
    if isinstance(value, int) and not isinstance(value, bool):
        return value
    try:
        return int(value, 16)
    except (TypeError, ValueError):
        raise RpcError(FORWARD_FAILURE_CODE, f"malformed result {value!r}") from None


def format_ether(wei: int) -> str:
    return f"{(Decimal(wei) / WEI_PER_ETHER).normalize():f}"


def apply_safety_margin(estimated_gas: int, margin: Decimal = config.GAS_SAFETY_MARGIN) -> int:
    """ceil(estimate * margin)"""
    return int((Decimal(estimated_gas) * margin).to_integral_value(rounding=ROUND_CEILING))


class DeploymentOrchestrator:
    """
    Deploys the approved contract from a WorkflowStateStore.

    Reads go through the failover proxy; the signed transaction is sent
    exactly once through a single-endpoint provider.
    """

    def __init__(
        self,
        store: WorkflowStateStore,
        proxy: Optional[RpcFailoverProxy] = None,
        on_stage: Optional[StageCallback] = None,
        min_balance_wei: int = config.MIN_BALANCE_WEI,
        default_gas_limit: int = config.DEFAULT_GAS_LIMIT,
        safety_margin: Decimal = config.GAS_SAFETY_MARGIN,
        confirmation_timeout: float = config.CONFIRMATION_TIMEOUT,
        poll_interval: float = config.RECEIPT_POLL_INTERVAL,
        allow_placeholder: bool = False,
        verbose: bool = False,
    ):
        self.store = store
        self.proxy = proxy or RpcFailoverProxy(verbose=verbose)
        self.on_stage = on_stage
        self.min_balance_wei = min_balance_wei
        self.default_gas_limit = default_gas_limit
        self.safety_margin = safety_margin
        self.confirmation_timeout = confirmation_timeout
        self.poll_interval = poll_interval
        self.allow_placeholder = allow_placeholder
        self.verbose = verbose

        self.stage: Optional[DeployStage] = None
        self.last_error: Optional[PipelineError] = None
        self.gas_plan: Optional[GasPlan] = None
        self.estimation_error: Optional[EstimationError] = None
        self.artifact_origin: Optional[str] = None

    def _enter(self, stage: DeployStage) -> None:
        self.stage = stage
        if stage.is_terminal:
            print(f"\n  → {stage.value}")
        else:
            print(f"\n  [{stage.value}]")
        if self.on_stage is not None:
            self.on_stage(stage)

    def deploy(self, deploy_config: DeployConfig) -> DeployResult:
        """
        Run one deployment attempt.

        Returns:
            DeployResult (also written to the store unless the generated
            code changed while the attempt was in flight)
        """
        print("\n" + "=" * 80)
        print("STAGE 4: DEPLOYMENT")
        print("=" * 80)

        working = replace(deploy_config)
        snapshot = self.store.snapshot
        lineage = content_hash(snapshot.generated_code)
        self.last_error = None
        self.gas_plan = None
        self.estimation_error = None
        tx_hash = None
        network = None

        try:
            self._enter(DeployStage.VALIDATING)
            network = self._validate(snapshot, working)

            self._enter(DeployStage.CONNECTING)
            address = derive_address(working.signing_key)
            print(f"  ✓ Deployer: {address}")
            print(f"  ✓ Network: {network.name} (chain {network.chain_id})")

            self._enter(DeployStage.ESTIMATING)
            artifact, self.artifact_origin = resolve_artifact(snapshot, self.allow_placeholder)
            print(f"  ✓ Artifact: {artifact.contract_name} ({self.artifact_origin})")
            self._check_balance(network, address)
            self.gas_plan = self._plan_gas(network, address, artifact, working)

            self._enter(DeployStage.DEPLOYING)
            provider = self.proxy.provider_for(network.key)
            tx_hash = self._submit(provider, network, address, artifact, working)

            self._enter(DeployStage.CONFIRMING)
            receipt = self._wait_for_receipt(provider, tx_hash)
            result = self._result_from_receipt(network, tx_hash, receipt)
            self._enter(DeployStage.SUCCEEDED)

        except PipelineError as e:
            self.last_error = e
            result = DeployResult(
                success=False,
                tx_hash=getattr(e, "tx_hash", None) or tx_hash,
                error=friendly_error(e),
            )
            print(f"  ✗ {type(e).__name__}: {e}")
            self._enter(DeployStage.FAILED)
            if result.tx_hash and network is not None:
                print(f"  • Transaction: {network.tx_url(result.tx_hash)}")

        finally:
            working.clear_secret()
            deploy_config.clear_secret()

        if content_hash(self.store.snapshot.generated_code) == lineage:
            self.store.set_deployment_result(result)
        else:
            print("  ⚠️  Contract code changed during deployment; result not recorded")
        return result

    # ------------------------------------------------------------------ stages

    def _validate(self, snapshot: WorkflowState, working: DeployConfig) -> NetworkConfig:
        network = self.proxy.network(working.network)

        if not snapshot.current_code.strip():
            raise ValidationError("No contract code to deploy")
        if not snapshot.is_ready_for_deployment:
            raise ValidationError(blocked_message(snapshot.latest_report))

        working.signing_key = validate_key_format(working.signing_key)

        report = snapshot.latest_report
        if report is not None and report.code_hash:
            if report.code_hash != content_hash(snapshot.current_code):
                raise ValidationError("Security report does not match the current contract code")
            artifact = snapshot.compile_artifact
            if artifact is not None and artifact.source_hash and artifact.source_hash != report.code_hash:
                raise ValidationError("Compiled artifact does not match the analyzed contract code")

        if working.gas_limit is not None and working.gas_limit <= 0:
            raise ValidationError("Gas limit must be positive")
        if working.gas_price_hint is not None and working.gas_price_hint <= 0:
            raise ValidationError("Gas price must be positive")

        print("  ✓ Contract approved for deployment")
        return network

    def _check_balance(self, network: NetworkConfig, address: str) -> int:
        balance = hex_to_int(self.proxy.call(network.key, "eth_getBalance", [address, "latest"]))
        print(f"  • Balance: {format_ether(balance)} {network.currency}")
        if balance <= 0 or balance < self.min_balance_wei:
            raise InsufficientFundsError(
                f"Balance {format_ether(balance)} {network.currency} is below the required "
                f"{format_ether(self.min_balance_wei)} {network.currency}",
                balance=balance,
                required=self.min_balance_wei,
            )
        return balance

    def _fee_data(self, network: NetworkConfig, gas_price_hint: Optional[Decimal]) -> Dict[str, int]:
        if gas_price_hint is not None:
            return {"gasPrice": int((gas_price_hint * WEI_PER_GWEI).to_integral_value(rounding=ROUND_CEILING))}

        block = self.proxy.call(network.key, "eth_getBlockByNumber", ["latest", False])
        if not isinstance(block, dict):
            block = {}
        base_fee = block.get("baseFeePerGas")
        if base_fee is not None:
            base_fee = hex_to_int(base_fee)
            priority = hex_to_int(self.proxy.call(network.key, "eth_maxPriorityFeePerGas"))
            return {"maxFeePerGas": 2 * base_fee + priority, "maxPriorityFeePerGas": priority}

        return {"gasPrice": hex_to_int(self.proxy.call(network.key, "eth_gasPrice"))}

    def _plan_gas(
        self,
        network: NetworkConfig,
        address: str,
        artifact: CompileArtifact,
        working: DeployConfig,
    ) -> GasPlan:
        fees = self._fee_data(network, working.gas_price_hint)

        try:
            estimated = hex_to_int(self.proxy.call(
                network.key, "eth_estimateGas", [{"from": address, "data": artifact.bytecode}]
            ))
        except (RpcError, NetworkExhaustedError) as e:
            fallback = working.gas_limit or self.default_gas_limit
            self.estimation_error = EstimationError(f"Gas estimation failed ({e}); using gas limit {fallback}")
            print(f"  ⚠️  {self.estimation_error}")
            return GasPlan(gas_limit=fallback, fees=fees)

        gas_limit = apply_safety_margin(estimated, self.safety_margin)
        print(f"  ✓ Estimated gas: {estimated} (limit {gas_limit})")
        return GasPlan(gas_limit=gas_limit, fees=fees, estimated_gas=estimated)

    def _submit(
        self,
        provider: RpcProvider,
        network: NetworkConfig,
        address: str,
        artifact: CompileArtifact,
        working: DeployConfig,
    ) -> str:
        try:
            nonce = hex_to_int(provider.request("eth_getTransactionCount", [address, "pending"]))
        except EndpointError as e:
            raise SubmissionError(f"Could not read the pending transaction count: {e}")

        tx = {
            "nonce": nonce,
            "gas": self.gas_plan.gas_limit,
            "value": 0,
            "data": artifact.bytecode,
            "chainId": network.chain_id,
        }
        tx.update(self.gas_plan.fees)

        signed = Account.sign_transaction(tx, working.signing_key)
        tx_hash = to_hex(signed.hash)
        print(f"  • Transaction: {tx_hash}")

        try:
            returned = provider.request("eth_sendRawTransaction", [to_hex(signed.raw_transaction)])
        except EndpointError as e:
            raise SubmissionError(f"Broadcast failed: {e}", tx_hash=tx_hash)
        except RpcError as e:
            raise SubmissionError(f"Broadcast failed: {e.rpc_message}", tx_hash=tx_hash)

        if isinstance(returned, str) and returned and returned.lower() != tx_hash.lower():
            if self.verbose:
                print(f"    [DEBUG] Node returned hash {returned}")
            tx_hash = returned
        print("  ✓ Transaction submitted")
        return tx_hash

    def _wait_for_receipt(self, provider: RpcProvider, tx_hash: str) -> Dict:
        deadline = time.monotonic() + self.confirmation_timeout
        print(f"  ⏳ Waiting for confirmation (up to {math.ceil(self.confirmation_timeout)}s)...")

        while True:
            try:
                receipt = provider.request("eth_getTransactionReceipt", [tx_hash])
            except EndpointError as e:
                print(f"    ⚠️  Receipt poll failed: {e}")
                receipt = None
            if receipt and not isinstance(receipt, dict):
                raise RpcError(FORWARD_FAILURE_CODE, f"malformed receipt {receipt!r}")
            if receipt:
                return receipt
            if time.monotonic() >= deadline:
                raise ConfirmationTimeoutError(
                    f"No receipt for {tx_hash} after {self.confirmation_timeout}s", tx_hash=tx_hash
                )
            time.sleep(self.poll_interval)

    def _result_from_receipt(self, network: NetworkConfig, tx_hash: str, receipt: Dict) -> DeployResult:
        if hex_to_int(receipt.get("status") or "0x1") == 0:
            raise RevertedError(f"Transaction {tx_hash} reverted", tx_hash=tx_hash, receipt=receipt)

        address = receipt.get("contractAddress")
        if not address:
            raise RevertedError(f"Transaction {tx_hash} created no contract", tx_hash=tx_hash, receipt=receipt)

        try:
            contract_address = to_checksum_address(address)
        except (TypeError, ValueError):
            raise RpcError(FORWARD_FAILURE_CODE, f"malformed contract address {address!r}") from None

        result = DeployResult(
            success=True,
            contract_address=contract_address,
            tx_hash=tx_hash,
            block_number=hex_to_int(receipt["blockNumber"]) if receipt.get("blockNumber") is not None else None,
            gas_used=hex_to_int(receipt["gasUsed"]) if receipt.get("gasUsed") is not None else None,
        )
        print(f"  ✓ Contract deployed at {result.contract_address}")
        print(f"  • Block: {result.block_number}  Gas used: {result.gas_used}")
        print(f"  • Explorer: {network.address_url(result.contract_address)}")
        return result
