import asyncio
import traceback

from fastapi import APIRouter, Depends, Query, Request
from fastapi.responses import JSONResponse

from config import settings
from models.network import NetworkWalletInfo, WalletInfo
from services.container import ServiceContainer
from services.execution import ExecutionResult
from utils.logger import api_logger as logger
from utils.validation import validate_limit

router = APIRouter()

MAX_TRADES_LIMIT = 1000


def get_services(request: Request) -> ServiceContainer:
    return request.app.state.services


# ==================== OPPORTUNITIES ====================


@router.get("/opportunities")
async def get_opportunities(services: ServiceContainer = Depends(get_services)):
    """Active, unexpired opportunities, best profit first"""
    return [o.to_wire() for o in services.store.list_active()]


@router.get("/scanner/status")
async def get_scanner_status(services: ServiceContainer = Depends(get_services)):
    status = services.detector.status()
    status["active_opportunities"] = len(services.store.list_active())
    return status


# ==================== TRADES ====================


@router.get("/trades")
async def get_trades(
    services: ServiceContainer = Depends(get_services),
    limit: int = Query(50, description="Maximum number of trades to return"),
):
    limit = validate_limit(limit, MAX_TRADES_LIMIT)
    return [t.to_wire() for t in services.ledger.list(limit)]


@router.get("/stats")
async def get_stats(services: ServiceContainer = Depends(get_services)):
    return services.ledger.stats().to_wire()


# ==================== NETWORKS / WALLET ====================


@router.get("/networks")
async def get_networks(services: ServiceContainer = Depends(get_services)):
    return [s.to_wire() for s in services.statuses.list()]


@router.get("/wallet")
async def get_wallet(services: ServiceContainer = Depends(get_services)):
    """Signing wallet and per-network balance / contract deployment"""
    chain = services.chain
    rows = []
    for network in services.networks:
        try:
            balance = await asyncio.wait_for(
                chain.wallet_balance(network.name), timeout=settings.QUOTE_TIMEOUT_SECONDS
            )
        except asyncio.TimeoutError:
            logger.warning("Wallet balance read timed out", network=network.name)
            balance = "0"
        rows.append(
            NetworkWalletInfo(
                network=network.name,
                chain_id=network.chain_id,
                native_currency=network.native_currency,
                balance=balance,
                contract_address=chain.contract_address(network.name),
                is_deployed=chain.is_deployed(network.name),
            )
        )
    return WalletInfo(wallet_address=chain.wallet_address(), networks=rows).to_wire()


# ==================== EXECUTION ====================


@router.post("/execute-arbitrage/{opportunity_id}")
async def execute_arbitrage(
    opportunity_id: str, services: ServiceContainer = Depends(get_services)
):
    """Revalidate and commit one opportunity.

    Business outcomes (not found, profit decayed, rejected on chain) come
    back as HTTP 200 with ``success: false`` and an ``errorCode``.
    """
    try:
        result: ExecutionResult = await services.execution.execute_opportunity(opportunity_id)
    except Exception as e:
        logger.error(
            "Error executing arbitrage",
            opportunity_id=opportunity_id,
            error=str(e),
            traceback=traceback.format_exc(),
        )
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": "Internal server error",
                "errorCode": "internal_error",
            },
        )
    return result.to_wire()
