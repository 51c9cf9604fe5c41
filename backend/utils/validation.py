import re
from typing import TypeVar

from pydantic import BaseModel, ValidationError
from fastapi import HTTPException


# Ethereum address regex
ETH_ADDRESS_REGEX = re.compile(r"^0x[a-fA-F0-9]{40}$")

ModelT = TypeVar("ModelT", bound=BaseModel)


def validate_eth_address(address: str) -> str:
    """Validate Ethereum address format"""
    if not address:
        raise ValueError("Address cannot be empty")

    address = address.strip()

    if not ETH_ADDRESS_REGEX.match(address):
        raise ValueError(f"Invalid Ethereum address format: {address}")

    return address


def validate_limit(value: int, max_limit: int = 1000) -> int:
    """Clamp a pagination limit into [1, max_limit]"""
    if value < 1:
        return 1
    if value > max_limit:
        return max_limit
    return value


def validate_request(model: type[ModelT], data: object, error: str = "Invalid request data") -> ModelT:
    """Validate a raw request body, mapping failures to HTTP 400"""
    if not isinstance(data, dict):
        raise HTTPException(
            status_code=400,
            detail={"error": error, "details": [{"msg": "Request body must be a JSON object"}]},
        )
    try:
        return model.model_validate(data)
    except ValidationError as e:
        raise HTTPException(
            status_code=400,
            detail={
                "error": error,
                "details": e.errors(include_url=False, include_context=False),
            },
        )
