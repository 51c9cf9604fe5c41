"""
On-chain execution adapter.

Talks to the flash-arbitrage contract deployed on each network through
AsyncWeb3. The signing wallet comes from PRIVATE_KEY; without it the
service runs read-only (health and balances work, commits do not).
"""

from __future__ import annotations

import json
from decimal import Decimal
from pathlib import Path
from typing import Optional, Sequence

from eth_account import Account
from web3 import AsyncHTTPProvider, AsyncWeb3, Web3

from config import settings
from interfaces import ChainExecutionError
from models.network import NetworkConfig, NetworkHealth
from utils.logger import chain_logger as logger
from utils.validation import validate_eth_address

# Aggregator labels -> router identifiers registered on the contract.
DEX_ROUTER_NAMES = {
    "1inch": "uniswap",
    "0x Protocol": "sushiswap",
    "Uniswap V3": "uniswap",
    "Sushiswap": "sushiswap",
    "Curve": "curve",
    "Balancer": "balancer",
}
DEFAULT_DEX_ROUTER = "uniswap"

FLASH_ARBITRAGE_ABI = [
    {
        "name": "executeArbitrage",
        "type": "function",
        "stateMutability": "nonpayable",
        "inputs": [
            {"name": "tokenA", "type": "address"},
            {"name": "tokenB", "type": "address"},
            {"name": "flashLoanAmount", "type": "uint256"},
            {"name": "buyDEX", "type": "string"},
            {"name": "sellDEX", "type": "string"},
            {"name": "minProfitAmount", "type": "uint256"},
        ],
        "outputs": [],
    },
    {
        "name": "getEstimatedProfit",
        "type": "function",
        "stateMutability": "view",
        "inputs": [
            {"name": "tokenA", "type": "address"},
            {"name": "tokenB", "type": "address"},
            {"name": "amount", "type": "uint256"},
            {"name": "buyDEX", "type": "string"},
            {"name": "sellDEX", "type": "string"},
        ],
        "outputs": [{"name": "", "type": "uint256"}],
    },
]


def map_dex_name(dex_name: str) -> str:
    return DEX_ROUTER_NAMES.get(dex_name, DEFAULT_DEX_ROUTER)


def load_deployments(deployments_dir: str, networks: Sequence[NetworkConfig]) -> dict[str, str]:
    """Read ``{deployments_dir}/{network}.json`` files; returns network -> contract address."""
    found: dict[str, str] = {}
    base = Path(deployments_dir)
    for network in networks:
        path = base / f"{network.name}.json"
        if not path.exists():
            continue
        try:
            deployment = json.loads(path.read_text(encoding="utf-8"))
            address = validate_eth_address(deployment["contractAddress"])
            found[network.name] = Web3.to_checksum_address(address)
        except (OSError, ValueError, KeyError, TypeError) as e:
            logger.error("Invalid deployment file", network=network.name, path=str(path), error=str(e))
    return found


def _to_base_units(amount: float) -> int:
    # The contract takes 18-decimal fixed point amounts.
    return int(Web3.to_wei(Decimal(str(amount)), "ether"))


class Web3ChainExecutionService:
    def __init__(
        self,
        networks: Sequence[NetworkConfig],
        private_key: Optional[str] = None,
        deployments_dir: Optional[str] = None,
        gas_buffer_percent: Optional[int] = None,
        receipt_timeout_seconds: Optional[float] = None,
    ):
        self._networks = {n.name: n for n in networks}
        self._gas_buffer = (
            settings.GAS_LIMIT_BUFFER_PERCENT if gas_buffer_percent is None else gas_buffer_percent
        )
        self._receipt_timeout = receipt_timeout_seconds or settings.COMMIT_TIMEOUT_SECONDS
        self._w3: dict[str, AsyncWeb3] = {
            n.name: AsyncWeb3(AsyncHTTPProvider(n.rpc_url)) for n in networks
        }

        self._account = None
        key = private_key if private_key is not None else settings.PRIVATE_KEY
        if key:
            try:
                self._account = Account.from_key(key)
                logger.info("Wallet initialized", wallet_address=self._account.address)
            except (ValueError, TypeError) as e:
                logger.error("Failed to initialize wallet", error=str(e))
        else:
            logger.warning("No private key provided, running in read-only mode")

        self._addresses = load_deployments(
            deployments_dir or settings.DEPLOYMENTS_DIR, list(networks)
        )
        self._contracts = {}
        if self._account is not None:
            for name, address in self._addresses.items():
                self._contracts[name] = self._w3[name].eth.contract(
                    address=address, abi=FLASH_ARBITRAGE_ABI
                )
                logger.info("Contract loaded", network=name, contract_address=address)

    def is_deployed(self, network: str) -> bool:
        return network in self._contracts

    def contract_address(self, network: str) -> Optional[str]:
        return self._addresses.get(network)

    def wallet_address(self) -> Optional[str]:
        return self._account.address if self._account else None

    def _contract(self, network: str):
        contract = self._contracts.get(network)
        if contract is None:
            raise ChainExecutionError(f"Contract not deployed on {network}")
        return contract

    async def estimate_profit(
        self,
        network: str,
        token_a: str,
        token_b: str,
        amount: float,
        buy_source: str,
        sell_source: str,
    ) -> float:
        contract = self._contract(network)
        try:
            raw = await contract.functions.getEstimatedProfit(
                Web3.to_checksum_address(token_a),
                Web3.to_checksum_address(token_b),
                _to_base_units(amount),
                map_dex_name(buy_source),
                map_dex_name(sell_source),
            ).call()
        except Exception as e:
            raise ChainExecutionError(str(e)) from e
        return float(Web3.from_wei(raw, "ether"))

    async def commit(
        self,
        network: str,
        token_a: str,
        token_b: str,
        amount: float,
        buy_source: str,
        sell_source: str,
        min_profit: float,
    ) -> str:
        contract = self._contract(network)
        if self._account is None:
            raise ChainExecutionError("Wallet not initialized - cannot execute transactions")

        w3 = self._w3[network]
        sender = self._account.address
        call = contract.functions.executeArbitrage(
            Web3.to_checksum_address(token_a),
            Web3.to_checksum_address(token_b),
            _to_base_units(amount),
            map_dex_name(buy_source),
            map_dex_name(sell_source),
            _to_base_units(min_profit),
        )

        logger.info(
            "Executing arbitrage",
            network=network,
            token_a=token_a,
            token_b=token_b,
            buy_dex=map_dex_name(buy_source),
            sell_dex=map_dex_name(sell_source),
            min_profit=min_profit,
        )

        try:
            gas_estimate = await call.estimate_gas({"from": sender})
            tx = await call.build_transaction(
                {
                    "from": sender,
                    "nonce": await w3.eth.get_transaction_count(sender),
                    "gas": gas_estimate * (100 + self._gas_buffer) // 100,
                    "chainId": self._networks[network].chain_id,
                }
            )
            signed = self._account.sign_transaction(tx)
            tx_hash = await w3.eth.send_raw_transaction(signed.raw_transaction)
            logger.info("Transaction submitted", network=network, tx_hash=Web3.to_hex(tx_hash))
            receipt = await w3.eth.wait_for_transaction_receipt(
                tx_hash, timeout=self._receipt_timeout
            )
        except Exception as e:
            logger.error("Arbitrage execution failed", network=network, error=str(e))
            raise ChainExecutionError(str(e)) from e

        if receipt.get("status") == 0:
            raise ChainExecutionError("execution reverted")

        logger.info(
            "Transaction confirmed",
            network=network,
            tx_hash=Web3.to_hex(tx_hash),
            block_number=receipt.get("blockNumber"),
        )
        return Web3.to_hex(tx_hash)

    async def network_health(self, network: str) -> NetworkHealth:
        w3 = self._w3.get(network)
        if w3 is None:
            return NetworkHealth(is_active=False)
        try:
            block_number = await w3.eth.block_number
            gas_price = await w3.eth.gas_price
        except Exception as e:
            logger.warning("Network status read failed", network=network, error=str(e))
            return NetworkHealth(is_active=False, contract_deployed=self.is_deployed(network))
        return NetworkHealth(
            is_active=True,
            block_number=block_number,
            gas_price=gas_price,
            contract_deployed=self.is_deployed(network),
        )

    async def wallet_balance(self, network: str) -> str:
        w3 = self._w3.get(network)
        if self._account is None or w3 is None:
            return "0"
        try:
            balance = await w3.eth.get_balance(self._account.address)
        except Exception as e:
            logger.warning("Wallet balance read failed", network=network, error=str(e))
            return "0"
        return str(Web3.from_wei(balance, "ether"))

    async def close(self) -> None:
        for w3 in self._w3.values():
            disconnect = getattr(w3.provider, "disconnect", None)
            if disconnect is not None:
                await disconnect()
