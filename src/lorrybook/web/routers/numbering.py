"""Numbering configuration and allocation endpoints."""

from fastapi import APIRouter
from pydantic import BaseModel, Field

from lorrybook.core.modules.numbering.models import DocumentType, NumberingConfig
from lorrybook.web.deps import AppDep, AuthTokenDep
from lorrybook.web.openapi import ErrorResponse

router = APIRouter(tags=["numbering"])


class SaveConfigRequest(BaseModel):
    type: DocumentType = Field(..., description="Document type to configure")
    starting_number: int = Field(..., ge=1, description="First number to issue; the counter restarts here")
    prefix: str = Field("", max_length=20, description="Text placed before the number, may be empty")


class UpdateCurrentRequest(BaseModel):
    type: DocumentType
    current_number: int = Field(..., ge=1, description="New value of the counter")


class CheckDuplicateRequest(BaseModel):
    type: DocumentType
    number: int = Field(..., ge=1, description="Document number to look up")


class CheckDuplicateResponse(BaseModel):
    is_duplicate: bool = Field(..., description="Whether a stored document already uses the number")


class AllocatedNumber(BaseModel):
    number: int = Field(..., description="Number allocated to the caller")
    current_number: int = Field(..., description="Next number the counter will hand out")


@router.get(
    "/numbering/configs",
    summary="List numbering configurations",
    description="Get the numbering configuration of every document type.",
    operation_id="listNumberingConfigs",
    responses={
        200: {"description": "All configurations"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def list_configs(app: AppDep, auth_token: AuthTokenDep) -> list[NumberingConfig]:
    return await app.get_numbering_configs(auth_token)


@router.post(
    "/numbering/configs",
    summary="Save numbering configuration",
    description="Create or replace the configuration of a document type. The counter is reset to the starting number.",
    operation_id="saveNumberingConfig",
    responses={
        200: {"description": "Configuration saved"},
        400: {"model": ErrorResponse, "description": "Invalid configuration"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        403: {"model": ErrorResponse, "description": "Not an admin"},
    },
)
async def save_config(request: SaveConfigRequest, app: AppDep, auth_token: AuthTokenDep) -> NumberingConfig:
    return await app.save_numbering_config(auth_token, request.type, request.starting_number, request.prefix)


@router.post(
    "/numbering/update-current",
    summary="Advance the counter",
    description="Set the counter of a document type to a new value.",
    operation_id="updateCurrentNumber",
    responses={
        200: {"description": "Counter updated"},
        400: {"model": ErrorResponse, "description": "Value below the starting number"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Configuration not found"},
    },
)
async def update_current(request: UpdateCurrentRequest, app: AppDep, auth_token: AuthTokenDep) -> NumberingConfig:
    return await app.update_current_number(auth_token, request.type, request.current_number)


@router.post(
    "/numbering/check-duplicate",
    summary="Check number for duplicates",
    description="Check whether an invoice or lorry receipt already uses a number.",
    operation_id="checkDuplicateNumber",
    responses={
        200: {"description": "Check completed"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def check_duplicate(
    request: CheckDuplicateRequest, app: AppDep, auth_token: AuthTokenDep
) -> CheckDuplicateResponse:
    is_duplicate = await app.check_duplicate_number(auth_token, request.type, request.number)
    return CheckDuplicateResponse(is_duplicate=is_duplicate)


@router.post(
    "/numbering/next/{document_type}",
    summary="Allocate next number",
    description="Atomically allocate the next number of a document type and advance the counter.",
    operation_id="allocateNextNumber",
    responses={
        200: {"description": "Number allocated"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
        404: {"model": ErrorResponse, "description": "Configuration not found"},
    },
)
async def allocate_next(document_type: DocumentType, app: AppDep, auth_token: AuthTokenDep) -> AllocatedNumber:
    number, config = await app.allocate_next_number(auth_token, document_type)
    return AllocatedNumber(number=number, current_number=config.current_number)
