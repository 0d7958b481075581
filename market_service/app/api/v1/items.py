from __future__ import annotations

from typing import Annotated

from fastapi import APIRouter, Depends, File, Form, UploadFile, status
from pydantic import ValidationError as PydanticValidationError

from common.models.user import User

from ..deps import get_current_user, get_current_user_id, require_admin
from ..schemas.items import (
    ApproveRequest,
    ApproveResponse,
    CreateItemResponse,
    ItemResponse,
    RedeemRequest,
    RedeemResponse,
)
from ...errors import ValidationError
from ...models.item import ItemCreateInput
from ...services.items_service import ItemsService, get_items_service
from ...services.redemption_service import RedemptionService, get_redemption_service


router = APIRouter()

REDEEM_TYPE = "redeem"


@router.post(
    "",
    response_model=CreateItemResponse,
    status_code=status.HTTP_201_CREATED,
    summary="아이템 등록 (승인 대기)",
)
def create_item(
    user: Annotated[User, Depends(get_current_user)],
    service: Annotated[ItemsService, Depends(get_items_service)],
    title: Annotated[str | None, Form()] = None,
    description: Annotated[str, Form()] = "",
    category: Annotated[str, Form()] = "",
    type: Annotated[str, Form()] = "",
    size: Annotated[str, Form()] = "",
    condition: Annotated[str, Form()] = "",
    tags: Annotated[str, Form()] = "",
    price: Annotated[str | None, Form()] = None,
    image: Annotated[UploadFile | None, File()] = None,
) -> CreateItemResponse:
    try:
        input_model = ItemCreateInput(
            title=title or "",
            description=description,
            category=category,
            type=type,
            size=size,
            condition=condition,
            tags=tags,
            price=price,
        )
    except PydanticValidationError as exc:
        fields = ", ".join(str(err["loc"][0]) for err in exc.errors() if err.get("loc"))
        raise ValidationError(f"invalid item fields: {fields}") from exc

    upload: tuple[str, bytes] | None = None
    if image is not None and image.filename:
        upload = (image.filename, image.file.read())

    assert user.id is not None
    item = service.create_item(user.id, input_model, upload)
    return CreateItemResponse(
        message="Item submitted for approval",
        item=ItemResponse.from_domain(item),
    )


@router.get("", response_model=list[ItemResponse], summary="교환 가능한 아이템 목록")
def list_items(
    service: Annotated[ItemsService, Depends(get_items_service)],
) -> list[ItemResponse]:
    return [ItemResponse.from_view(view) for view in service.list_available()]


# /user, /pending 은 /{item_id} 보다 먼저 선언해야 한다.
@router.get("/user", response_model=list[ItemResponse], summary="내 아이템 목록")
def list_my_items(
    user_id: Annotated[str, Depends(get_current_user_id)],
    service: Annotated[ItemsService, Depends(get_items_service)],
) -> list[ItemResponse]:
    return [ItemResponse.from_view(view) for view in service.list_by_owner(user_id)]


@router.get("/pending", response_model=list[ItemResponse], summary="승인 대기 목록 (관리자)")
def list_pending_items(
    _admin: Annotated[User, Depends(require_admin)],
    service: Annotated[ItemsService, Depends(get_items_service)],
) -> list[ItemResponse]:
    return [ItemResponse.from_view(view) for view in service.list_pending()]


@router.put("/approve/{item_id}", response_model=ApproveResponse, summary="승인/반려 (관리자)")
def approve_item(
    item_id: str,
    body: ApproveRequest,
    _admin: Annotated[User, Depends(require_admin)],
    service: Annotated[ItemsService, Depends(get_items_service)],
) -> ApproveResponse:
    item = service.set_approval(item_id, body.approve)
    return ApproveResponse(
        message="Item approved" if body.approve else "Item rejected",
        item=ItemResponse.from_domain(item),
    )


@router.post("/redeem/{item_id}", response_model=RedeemResponse, summary="포인트로 교환")
def redeem_item(
    item_id: str,
    body: RedeemRequest,
    user_id: Annotated[str, Depends(get_current_user_id)],
    service: Annotated[RedemptionService, Depends(get_redemption_service)],
) -> RedeemResponse:
    if body.type != REDEEM_TYPE:
        raise ValidationError("invalid action type")
    receipt = service.redeem(user_id, item_id)
    return RedeemResponse.from_domain(receipt)


@router.get("/{item_id}", response_model=ItemResponse, summary="아이템 상세")
def get_item(
    item_id: str,
    service: Annotated[ItemsService, Depends(get_items_service)],
) -> ItemResponse:
    return ItemResponse.from_view(service.get_item(item_id))
