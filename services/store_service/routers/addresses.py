"""Store address router: the buyer's saved shipping addresses."""

import uuid

from fastapi import APIRouter, Depends, HTTPException, status
from libs.auth.dependencies import require_buyer
from libs.auth.models import AuthUser
from libs.db.session import get_async_db
from services.store_service.models import Address
from services.store_service.schemas import (
    AddressCreate,
    AddressEnvelope,
    AddressListResponse,
    AddressResponse,
    AddressUpdate,
    MessageResponse,
)
from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(tags=["addresses"])


async def list_user_addresses(db: AsyncSession, user_id: str) -> list[Address]:
    """Addresses with the default first, then newest."""
    result = await db.execute(
        select(Address)
        .where(Address.user_id == user_id)
        .order_by(Address.is_default.desc(), Address.created_at.desc())
    )
    return list(result.scalars().all())


async def get_user_address(
    db: AsyncSession, address_id: uuid.UUID, user_id: str
) -> Address:
    address = await db.scalar(
        select(Address).where(Address.id == address_id, Address.user_id == user_id)
    )
    if not address:
        raise HTTPException(status_code=404, detail="Address not found")
    return address


async def unset_default(db: AsyncSession, user_id: str) -> None:
    await db.execute(
        update(Address)
        .where(Address.user_id == user_id, Address.is_default.is_(True))
        .values(is_default=False)
        .execution_options(synchronize_session="fetch")
    )


@router.get("/addresses", response_model=AddressListResponse)
async def list_addresses(
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
):
    addresses = await list_user_addresses(db, current_user.user_id)
    return AddressListResponse(
        count=len(addresses),
        addresses=[AddressResponse.model_validate(a) for a in addresses],
    )


@router.get("/addresses/{address_id}", response_model=AddressEnvelope)
async def get_address(
    address_id: uuid.UUID,
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
):
    address = await get_user_address(db, address_id, current_user.user_id)
    return AddressEnvelope(address=AddressResponse.model_validate(address))


@router.post(
    "/addresses",
    response_model=AddressEnvelope,
    status_code=status.HTTP_201_CREATED,
)
async def add_address(
    address_in: AddressCreate,
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
):
    """Save a new address; the first one becomes the default."""
    has_addresses = await db.scalar(
        select(Address.id).where(Address.user_id == current_user.user_id).limit(1)
    )
    is_default = address_in.is_default or has_addresses is None
    if is_default:
        await unset_default(db, current_user.user_id)

    address = Address(
        user_id=current_user.user_id,
        **address_in.model_dump(exclude={"is_default"}),
        is_default=is_default,
    )
    db.add(address)
    await db.commit()
    await db.refresh(address)

    return AddressEnvelope(
        message="Address added successfully",
        address=AddressResponse.model_validate(address),
    )


@router.put("/addresses/{address_id}", response_model=AddressEnvelope)
async def update_address(
    address_id: uuid.UUID,
    address_in: AddressUpdate,
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
):
    address = await get_user_address(db, address_id, current_user.user_id)

    update_data = address_in.model_dump(exclude_unset=True)
    if update_data.get("is_default"):
        await unset_default(db, current_user.user_id)
    for field, value in update_data.items():
        if value is None and field != "address_line2":
            continue
        setattr(address, field, value)

    await db.commit()
    await db.refresh(address)
    return AddressEnvelope(
        message="Address updated successfully",
        address=AddressResponse.model_validate(address),
    )


@router.delete("/addresses/{address_id}", response_model=MessageResponse)
async def delete_address(
    address_id: uuid.UUID,
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
):
    """Delete an address; the newest remaining one inherits the default."""
    address = await get_user_address(db, address_id, current_user.user_id)
    was_default = address.is_default

    await db.delete(address)
    await db.flush()

    if was_default:
        replacement = await db.scalar(
            select(Address)
            .where(Address.user_id == current_user.user_id)
            .order_by(Address.created_at.desc())
            .limit(1)
        )
        if replacement:
            replacement.is_default = True

    await db.commit()
    return MessageResponse(message="Address deleted successfully")


@router.put("/addresses/{address_id}/default", response_model=AddressEnvelope)
async def set_default_address(
    address_id: uuid.UUID,
    current_user: AuthUser = Depends(require_buyer),
    db: AsyncSession = Depends(get_async_db),
):
    address = await get_user_address(db, address_id, current_user.user_id)
    await unset_default(db, current_user.user_id)
    address.is_default = True

    await db.commit()
    await db.refresh(address)
    return AddressEnvelope(
        message="Default address updated",
        address=AddressResponse.model_validate(address),
    )
