import sys
from pathlib import Path
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import pytest

BACKEND_ROOT = Path(__file__).resolve().parents[1]
if str(BACKEND_ROOT) not in sys.path:
    sys.path.insert(0, str(BACKEND_ROOT))

from interfaces import ChainExecutionError
from services.chain_execution import (
    Web3ChainExecutionService,
    load_deployments,
    map_dex_name,
)

# Well-known local development key (hardhat / anvil account #0).
DEV_PRIVATE_KEY = "0xac0974bec39a17e36ba4a6b4d238ff944bacb478cbed5efcae784d7bf4f2ff80"
DEV_ADDRESS = "0xf39Fd6e51aad88F6F4ce6aB8827279cffFb92266"
CONTRACT = "0x5FbDB2315678afecb367f032d93F642f64180aa3"


class FakeEth:
    def __init__(self, block_number=100, gas_price=2_000_000_000, error=None):
        self._block_number = block_number
        self._gas_price = gas_price
        self._error = error
        self.get_balance = AsyncMock(return_value=1_500_000_000_000_000_000)
        self.get_transaction_count = AsyncMock(return_value=7)
        self.send_raw_transaction = AsyncMock(return_value=bytes.fromhex("ab" * 32))
        self.wait_for_transaction_receipt = AsyncMock(return_value={"status": 1, "blockNumber": 101})

    async def _read(self, value):
        if self._error is not None:
            raise self._error
        return value

    @property
    def block_number(self):
        return self._read(self._block_number)

    @property
    def gas_price(self):
        return self._read(self._gas_price)


@pytest.fixture
def deployments_dir(tmp_path):
    (tmp_path / "base.json").write_text(json.dumps({"contractAddress": CONTRACT.lower()}))
    (tmp_path / "ethereum.json").write_text("{broken")
    return tmp_path


def _service(networks, deployments_dir, private_key=DEV_PRIVATE_KEY):
    return Web3ChainExecutionService(
        networks,
        private_key=private_key,
        deployments_dir=str(deployments_dir),
        gas_buffer_percent=20,
        receipt_timeout_seconds=5,
    )


def test_map_dex_name():
    assert map_dex_name("1inch") == "uniswap"
    assert map_dex_name("0x Protocol") == "sushiswap"
    assert map_dex_name("Curve") == "curve"
    assert map_dex_name("Balancer") == "balancer"
    assert map_dex_name("SomethingNew") == "uniswap"


def test_load_deployments_skips_missing_and_invalid(networks, deployments_dir):
    found = load_deployments(str(deployments_dir), networks)

    assert found == {"base": CONTRACT}


def test_wallet_and_deployment_state(networks, deployments_dir):
    service = _service(networks, deployments_dir)

    assert service.wallet_address() == DEV_ADDRESS
    assert service.is_deployed("base")
    assert not service.is_deployed("ethereum")
    assert service.contract_address("base") == CONTRACT
    assert service.contract_address("ethereum") is None


def test_read_only_mode_has_no_executable_contracts(networks, deployments_dir):
    service = _service(networks, deployments_dir, private_key="")

    assert service.wallet_address() is None
    assert not service.is_deployed("base")
    assert service.contract_address("base") == CONTRACT


@pytest.mark.asyncio
async def test_commit_applies_gas_buffer_and_returns_hash(networks, deployments_dir):
    service = _service(networks, deployments_dir)
    eth = FakeEth()
    service._w3["base"] = SimpleNamespace(eth=eth)

    call = MagicMock()
    call.estimate_gas = AsyncMock(return_value=100_000)
    call.build_transaction = AsyncMock(side_effect=lambda tx: {**tx, "to": CONTRACT, "data": "0x"})
    contract = MagicMock()
    contract.functions.executeArbitrage.return_value = call
    service._contracts["base"] = contract
    account = MagicMock(address=DEV_ADDRESS)
    account.sign_transaction.return_value = SimpleNamespace(raw_transaction=b"\x01\x02")
    service._account = account

    tx_hash = await service.commit(
        "base",
        "0x4200000000000000000000000000000000000006",
        "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
        10000.0,
        "1inch",
        "0x Protocol",
        min_profit=160.0,
    )

    assert tx_hash == "0x" + "ab" * 32
    args = contract.functions.executeArbitrage.call_args.args
    assert args[2] == 10000 * 10**18
    assert args[3:5] == ("uniswap", "sushiswap")
    assert args[5] == 160 * 10**18
    built = call.build_transaction.await_args.args[0]
    assert built["gas"] == 120_000
    assert built["nonce"] == 7
    assert built["chainId"] == 8453
    eth.send_raw_transaction.assert_awaited_once_with(b"\x01\x02")


@pytest.mark.asyncio
async def test_commit_reverted_receipt_raises(networks, deployments_dir):
    service = _service(networks, deployments_dir)
    eth = FakeEth()
    eth.wait_for_transaction_receipt = AsyncMock(return_value={"status": 0, "blockNumber": 101})
    service._w3["base"] = SimpleNamespace(eth=eth)
    call = MagicMock()
    call.estimate_gas = AsyncMock(return_value=100_000)
    call.build_transaction = AsyncMock(side_effect=lambda tx: tx)
    contract = MagicMock()
    contract.functions.executeArbitrage.return_value = call
    service._contracts["base"] = contract
    account = MagicMock(address=DEV_ADDRESS)
    account.sign_transaction.return_value = SimpleNamespace(raw_transaction=b"\x01")
    service._account = account

    with pytest.raises(ChainExecutionError, match="revert"):
        await service.commit(
            "base",
            "0x4200000000000000000000000000000000000006",
            "0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913",
            10000.0,
            "1inch",
            "0x Protocol",
            min_profit=1.0,
        )


@pytest.mark.asyncio
async def test_commit_on_undeployed_network_raises(networks, deployments_dir):
    service = _service(networks, deployments_dir)

    with pytest.raises(ChainExecutionError):
        await service.commit("ethereum", CONTRACT, CONTRACT, 1.0, "1inch", "0x Protocol", 0.0)


@pytest.mark.asyncio
async def test_estimate_profit_converts_from_wei(networks, deployments_dir):
    service = _service(networks, deployments_dir)
    call = MagicMock()
    call.call = AsyncMock(return_value=250 * 10**18)
    contract = MagicMock()
    contract.functions.getEstimatedProfit.return_value = call
    service._contracts["base"] = contract

    profit = await service.estimate_profit(
        "base", CONTRACT, CONTRACT, 10000.0, "0x Protocol", "1inch"
    )

    assert profit == 250.0
    args = contract.functions.getEstimatedProfit.call_args.args
    assert args[3:] == ("sushiswap", "uniswap")


@pytest.mark.asyncio
async def test_estimate_profit_failure_raises_chain_error(networks, deployments_dir):
    service = _service(networks, deployments_dir)
    call = MagicMock()
    call.call = AsyncMock(side_effect=ValueError("execution reverted"))
    contract = MagicMock()
    contract.functions.getEstimatedProfit.return_value = call
    service._contracts["base"] = contract

    with pytest.raises(ChainExecutionError):
        await service.estimate_profit("base", CONTRACT, CONTRACT, 1.0, "1inch", "0x Protocol")


@pytest.mark.asyncio
async def test_network_health_and_balance(networks, deployments_dir):
    service = _service(networks, deployments_dir)
    service._w3["base"] = SimpleNamespace(eth=FakeEth(block_number=555, gas_price=42))
    service._w3["ethereum"] = SimpleNamespace(eth=FakeEth(error=OSError("rpc down")))

    base = await service.network_health("base")
    ethereum = await service.network_health("ethereum")
    unknown = await service.network_health("solana")

    assert (base.is_active, base.block_number, base.gas_price, base.contract_deployed) == (
        True,
        555,
        42,
        True,
    )
    assert ethereum.is_active is False
    assert unknown.is_active is False
    assert await service.wallet_balance("base") == "1.5"
