from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings

from models.network import NetworkConfig, TokenConfig, TokenPairConfig

# Get the directory where this config file is located.
_BACKEND_DIR = Path(__file__).parent.resolve()


def _detect_project_root(backend_dir: Path) -> Path:
    """Resolve project root from the backend directory in the repo layout."""
    return backend_dir.parent.resolve()


_PROJECT_ROOT = _detect_project_root(_BACKEND_DIR)
_DEFAULT_DEPLOYMENTS_DIR = (_PROJECT_ROOT / "deployments").resolve()


class Settings(BaseSettings):
    # Aggregator APIs (the two independent quote sources)
    ONEINCH_API_URL: str = "https://api.1inch.io/v5.0"
    ONEINCH_API_KEY: Optional[str] = None
    ZEROX_API_KEY: Optional[str] = None
    ZEROX_ETHEREUM_URL: str = "https://api.0x.org"
    ZEROX_BASE_URL: str = "https://base.api.0x.org"
    ZEROX_POLYGON_URL: str = "https://polygon.api.0x.org"

    # RPC endpoints
    ETHEREUM_RPC_URL: str = "https://eth.llamarpc.com"
    BASE_RPC_URL: str = "https://mainnet.base.org"
    POLYGON_RPC_URL: str = "https://polygon-rpc.com"

    # Execution wallet / contract deployments
    PRIVATE_KEY: Optional[str] = None
    DEPLOYMENTS_DIR: str = str(_DEFAULT_DEPLOYMENTS_DIR)

    # Scanner Settings
    SCAN_INTERVAL_SECONDS: float = 5.0
    OPPORTUNITY_TTL_SECONDS: float = 30.0
    MIN_PROFIT_PERCENT: float = 0.5  # Spread (%) required to emit an opportunity
    NOTIONAL_UNITS: float = 100.0  # Simulated position size used for profit_amount
    FLOOR_CAPITAL: float = 10000.0
    CAPITAL_SCALE: float = 1000.0
    OPPORTUNITY_RETENTION_MINUTES: int = 60  # Prune expired/inactive records after this

    # Execution Settings
    PROFIT_DECAY_TOLERANCE: float = 0.8  # Live estimate must keep 80% of advertised profit
    GAS_LIMIT_BUFFER_PERCENT: int = 20  # Added on top of eth_estimateGas
    QUOTE_TIMEOUT_SECONDS: float = 10.0
    EXECUTION_TIMEOUT_SECONDS: float = 30.0  # Live profit estimate
    COMMIT_TIMEOUT_SECONDS: float = 180.0  # Submit + wait for receipt

    # Background loops
    BROADCAST_INTERVAL_SECONDS: float = 3.0
    NETWORK_REFRESH_INTERVAL_SECONDS: float = 10.0
    RECENT_TRADES_ON_CONNECT: int = 10
    WS_RECONNECT_DELAY_SECONDS: float = 3.0
    FEED_URL: str = "ws://localhost:8000/ws"  # Dashboard feed tailed by spreadhawk-feed

    # Trading settings defaults (per user, read/write only)
    DEFAULT_MIN_PROFIT_THRESHOLD: str = "1.5"
    DEFAULT_MAX_GAS_PRICE: str = "50"
    DEFAULT_MAX_TRADE_AMOUNT: str = "10000"
    DEFAULT_ENABLED_NETWORKS: list[str] = ["ethereum", "base"]

    # API
    CORS_ORIGINS: list[str] = ["*"]
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True

    @field_validator(
        "ONEINCH_API_URL",
        "ZEROX_ETHEREUM_URL",
        "ZEROX_BASE_URL",
        "ZEROX_POLYGON_URL",
        "ETHEREUM_RPC_URL",
        "BASE_RPC_URL",
        "POLYGON_RPC_URL",
        mode="before",
    )
    @classmethod
    def _normalize_url_field(cls, value: object) -> object:
        """Trim accidental quotes/whitespace from URL env vars."""
        if value is None:
            return value
        text = str(value).strip().strip('"').strip("'")
        if not text:
            return text
        return text.rstrip("/")

    @field_validator(
        "SCAN_INTERVAL_SECONDS",
        "BROADCAST_INTERVAL_SECONDS",
        "NETWORK_REFRESH_INTERVAL_SECONDS",
        "WS_RECONNECT_DELAY_SECONDS",
    )
    @classmethod
    def _clamp_interval(cls, value: float) -> float:
        # Loops spinning faster than this only hammer the aggregators.
        return max(0.25, float(value))

    @field_validator("PROFIT_DECAY_TOLERANCE")
    @classmethod
    def _validate_tolerance(cls, value: float) -> float:
        if not 0.0 < value <= 1.0:
            raise ValueError("PROFIT_DECAY_TOLERANCE must be in (0, 1]")
        return value

    class Config:
        # Load project-root .env first, then backend/.env as an override.
        env_file = (
            str(_PROJECT_ROOT / ".env"),
            str(_BACKEND_DIR / ".env"),
        )
        env_file_encoding = "utf-8"


settings = Settings()


# Token catalogue. Addresses are mainnet deployments.
_ETH_WETH = TokenConfig(symbol="WETH", address="0xC02aaA39b223FE8D0A0e5C4F27eAD9083C756Cc2", decimals=18)
_ETH_USDC = TokenConfig(symbol="USDC", address="0xA0b86991c6218b36c1d19D4a2e9Eb0cE3606eB48", decimals=6)
_ETH_WBTC = TokenConfig(symbol="WBTC", address="0x2260FAC5E5542a773Aa44fBCfeDf7C193bc2C599", decimals=8)
_ETH_USDT = TokenConfig(symbol="USDT", address="0xdAC17F958D2ee523a2206206994597C13D831ec7", decimals=6)
_BASE_WETH = TokenConfig(symbol="WETH", address="0x4200000000000000000000000000000000000006", decimals=18)
_BASE_USDC = TokenConfig(symbol="USDC", address="0x833589fCD6eDb6E08f4c7C32D4f71b54bdA02913", decimals=6)
_POLYGON_WETH = TokenConfig(symbol="WETH", address="0x7ceB23fD6bC0adD59E62ac25578270cFf1b9f619", decimals=18)
_POLYGON_USDC = TokenConfig(symbol="USDC", address="0x2791Bca1f2de4661ED88A30C99A7a9449Aa84174", decimals=6)


def configured_networks(cfg: Settings = settings) -> list[NetworkConfig]:
    """Networks scanned by the detector, in scan order."""
    return [
        NetworkConfig(
            name="ethereum",
            chain_id=1,
            rpc_url=cfg.ETHEREUM_RPC_URL,
            native_currency="ETH",
            token_pairs=[
                TokenPairConfig(token_a=_ETH_WETH, token_b=_ETH_USDC),
                TokenPairConfig(token_a=_ETH_WBTC, token_b=_ETH_USDT),
            ],
        ),
        NetworkConfig(
            name="base",
            chain_id=8453,
            rpc_url=cfg.BASE_RPC_URL,
            native_currency="ETH",
            token_pairs=[TokenPairConfig(token_a=_BASE_WETH, token_b=_BASE_USDC)],
        ),
        NetworkConfig(
            name="polygon",
            chain_id=137,
            rpc_url=cfg.POLYGON_RPC_URL,
            native_currency="MATIC",
            token_pairs=[TokenPairConfig(token_a=_POLYGON_WETH, token_b=_POLYGON_USDC)],
        ),
    ]


def zerox_base_url(chain_id: int, cfg: Settings = settings) -> str:
    return {
        1: cfg.ZEROX_ETHEREUM_URL,
        8453: cfg.ZEROX_BASE_URL,
        137: cfg.ZEROX_POLYGON_URL,
    }.get(chain_id, cfg.ZEROX_ETHEREUM_URL)
