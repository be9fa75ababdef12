import pytest
from eth_utils import keccak, to_checksum_address

from bridge_deployment.config import ApprovalConfig, TokenBridgeConfig
from bridge_deployment.configure import BridgeConfigurator
from bridge_deployment.constants import BRIDGE_ERC20_CONTRACT_TYPE
from bridge_deployment.orchestrator import BridgeOrchestrator
from tests.conftest import DEPLOYER, OPEN_TOKEN_CONFIG, OTHER_APPROVER, TOKEN_ADDRESS

ROLE = keccak(text="BRIDGE_APPROVER_ROLE")


@pytest.fixture
def deploy(make_config, make_context):
    def _deploy(**settings):
        context = make_context(make_config(**settings))
        result = BridgeOrchestrator(context).run()
        return context, result

    return _deploy


def _steps(result):
    return {step.step: step.transactions for step in result.steps}


def test_steps_run_in_order(deploy):
    _, result = deploy()
    assert [step.step for step in result.steps] == list(BridgeConfigurator.STEPS)
    assert sum(_steps(result).values()) == 0


def test_grant_approvers(deploy, chain):
    _, result = deploy(bridgeApprovers=["deployer", OTHER_APPROVER])

    grants = chain.calls_to("grantRole")
    assert [t.args for t in grants] == [(ROLE, DEPLOYER), (ROLE, OTHER_APPROVER)]
    assert all(t.address == result.bridge.address for t in grants)
    assert _steps(result)["grant_bridge_approvers"] == 2


def test_grant_skips_existing_holders(deploy, chain):
    context, result = deploy(bridgeApprovers=["deployer"])
    chain.contracts[result.bridge.address].roles.add((ROLE, OTHER_APPROVER))

    _, rerun = deploy(bridgeApprovers=["deployer", OTHER_APPROVER])
    assert len(chain.calls_to("grantRole")) == 1
    assert _steps(rerun)["grant_bridge_approvers"] == 0


@pytest.mark.parametrize("amount, expected", [(None, None), (0, None), (5, 5 * 10**18)])
def test_deposit(deploy, chain, amount, expected):
    settings = dict() if amount is None else dict(depositNativeTokensAmountEther=amount)
    _, result = deploy(**settings)

    deposits = chain.calls_to("depositNativeTokens")
    if expected is None:
        assert deposits == []
    else:
        (deposit,) = deposits
        assert deposit.value == expected
        assert deposit.args == ()
        assert chain.get_balance(result.bridge.address) == expected


def test_deposit_skipped_when_funded(deploy, chain):
    deploy(depositNativeTokensAmountEther=5)
    _, rerun = deploy(depositNativeTokensAmountEther=5)
    assert len(chain.calls_to("depositNativeTokens")) == 1
    assert _steps(rerun)["deposit_native_tokens"] == 0


def test_deposit_once_per_run(deploy, chain):
    context, result = deploy(depositNativeTokensAmountEther=5)
    configurator = BridgeConfigurator(
        config=context.config,
        bridge=result.bridge,
        deployer=context.deployer,
        token_table=context.token_table,
    )
    configurator._deposited = True
    chain.balances[result.bridge.address] = 0
    assert configurator.deposit_native_tokens().transactions == 0


def test_erc20_tokens_deployed_and_recorded(deploy, chain):
    erc20 = {"name": "BridgePDT", "symbol": "BPDT", "decimals": 18, "totalSupplyWithDecimals": 1000}
    context, result = deploy(
        bridgeERC20DeployConfigs=[erc20],
        bridgeableTokens=[{"token": "BridgePDT", "targetChainId": 4, "config": OPEN_TOKEN_CONFIG}],
    )

    (token_deploy,) = chain.deployments_of(BRIDGE_ERC20_CONTRACT_TYPE)
    token = result.deployments["BridgePDT"]
    assert token_deploy.args == ("BridgePDT", "BPDT", 18, 1000 * 10**18, result.bridge.address)
    assert context.token_table.read() == {"BridgePDT": token.address}
    assert context.ledger.resolve("BridgePDT").address == token.address

    # the name resolves through the token table
    (registration,) = chain.calls_to("addBridgeableTokens")
    tokens, chain_ids, configs = registration.args
    assert tokens == [token.address]
    assert chain_ids == [4]
    assert configs == [tuple(TokenBridgeConfig(True, False, 0, 0, 0))]

    # the table keeps entries it did not write
    context.token_table.update({"Other": TOKEN_ADDRESS})
    deploy(bridgeERC20DeployConfigs=[erc20])
    assert len(chain.deployments_of(BRIDGE_ERC20_CONTRACT_TYPE)) == 1
    assert set(context.token_table.read()) == {"BridgePDT", "Other"}


def test_bridgeable_tokens_batched_and_idempotent(deploy, chain):
    other = "0x" + "8" * 40
    entries = [
        {"token": TOKEN_ADDRESS, "targetChainId": 4, "config": OPEN_TOKEN_CONFIG},
        {"token": other, "targetChainId": 20211, "config": OPEN_TOKEN_CONFIG},
    ]
    _, result = deploy(bridgeableTokens=entries)
    (registration,) = chain.calls_to("addBridgeableTokens")
    assert len(registration.args[0]) == 2

    changed = dict(OPEN_TOKEN_CONFIG, bridgeFee=7)
    _, rerun = deploy(bridgeableTokens=[entries[0], dict(entries[1], config=changed)])
    registrations = chain.calls_to("addBridgeableTokens")
    assert len(registrations) == 2
    assert registrations[1].args[0] == [to_checksum_address(other)]
    assert registrations[1].args[1] == [20211]
    assert _steps(rerun)["add_bridgeable_tokens"] == 1


def test_approval_configs(deploy, chain):
    entry = {"token": TOKEN_ADDRESS, "config": {"enabled": True, "transferAllowed": False}}
    _, result = deploy(bridgeApprovalConfigs=[entry])

    (call,) = chain.calls_to("addBridgeApprovalConfig")
    assert call.args == ([TOKEN_ADDRESS], [tuple(ApprovalConfig(True, False))])

    deploy(bridgeApprovalConfigs=[entry])
    assert len(chain.calls_to("addBridgeApprovalConfig")) == 1


def test_flags_and_native_config(deploy, chain):
    native = dict(OPEN_TOKEN_CONFIG, maxBridgeAmount="max")
    _, result = deploy(
        globalFeeStatus=True,
        bridgeToNativeApprovalStatus=True,
        nativeTokensBridgeConfig=native,
    )
    bridge = chain.contracts[result.bridge.address]
    assert bridge.global_fee_status is True
    assert bridge.bridge_to_native_approval_status is True
    assert TokenBridgeConfig(*bridge.native_config).max_bridge_amount == 2**256 - 1

    _, rerun = deploy(globalFeeStatus=True, bridgeToNativeApprovalStatus=True)
    assert sum(_steps(rerun).values()) == 0
    _, disabled = deploy(globalFeeStatus=False)
    assert _steps(disabled)["set_global_fee_status"] == 1
    assert bridge.global_fee_status is False


def test_apply_twice(deploy):
    context, result = deploy()
    configurator = BridgeConfigurator(
        config=context.config,
        bridge=result.bridge,
        deployer=context.deployer,
        token_table=context.token_table,
    )
    configurator.apply()
    with pytest.raises(RuntimeError):
        configurator.apply()
