"""
API endpoints для работы с SMM-панелью: услуги, баланс, заказы.
"""

from __future__ import annotations

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Response, status
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder

from panelbridge.admin.dependencies import CurrentUser, get_current_user, get_panel_service
from panelbridge.admin.models.schemas import (
    OrderOut,
    OrdersResponse,
    OrderStatusResponse,
    PlaceOrderRequest,
    PlaceOrderResponse,
    ServicesResponse,
)
from panelbridge.api.panel_client import PanelAPIError
from panelbridge.services.panel_service import OrderNotFoundError, PanelService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/panel", tags=["panel"])


@router.get("/services", response_model=ServicesResponse)
async def list_services(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[PanelService, Depends(get_panel_service)],
):
    """Услуги панели, отфильтрованные по платформе и типу контента."""
    try:
        services, from_cache = await service.list_services()
    except PanelAPIError as e:
        logger.error("services err: %s", e)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "Failed to fetch services from panel", "detail": str(e)},
        )
    if not services:
        return Response(status_code=status.HTTP_204_NO_CONTENT)
    return ServicesResponse(services=services, from_cache=from_cache)


@router.get("/balance")
async def get_balance(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[PanelService, Depends(get_panel_service)],
):
    """Баланс аккаунта панели."""
    try:
        data = await service.get_balance()
    except PanelAPIError as e:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail={"error": "Failed to get balance", "detail": str(e)},
        )
    return {"balance": data}


@router.post("/order", response_model=PlaceOrderResponse)
async def place_order(
    payload: PlaceOrderRequest,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[PanelService, Depends(get_panel_service)],
):
    """
    Размещает заказ.

    При ошибке панели возвращает 502 вместе с локальным заказом в статусе error.
    """
    result = await service.place_order(
        service_id=payload.service_id,
        link=payload.link,
        quantity=payload.quantity,
        runs=payload.runs,
        interval=payload.interval,
        chat_id=payload.chat_id,
    )
    if not result.ok:
        return JSONResponse(
            status_code=status.HTTP_502_BAD_GATEWAY,
            content=jsonable_encoder(
                {
                    "error": "Panel order failed",
                    "detail": result.error,
                    "localOrder": OrderOut.from_record(result.order).model_dump(by_alias=True),
                }
            ),
        )
    return PlaceOrderResponse(
        local_order=OrderOut.from_record(result.order),
        upstream_response=result.upstream_response,
    )


@router.get("/order/{ref}", response_model=OrderStatusResponse)
async def get_order_status(
    ref: str,
    user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[PanelService, Depends(get_panel_service)],
):
    """Локальный заказ (по id или id в панели) и его статус в панели."""
    try:
        data = await service.get_order_status(ref)
    except OrderNotFoundError:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Order not found")
    except PanelAPIError as e:
        raise HTTPException(status_code=status.HTTP_502_BAD_GATEWAY, detail=str(e))
    return OrderStatusResponse(local=OrderOut.from_record(data["local"]), status=data["status"])


@router.get("/orders", response_model=OrdersResponse)
async def list_orders(
    user: Annotated[CurrentUser, Depends(get_current_user)],
    service: Annotated[PanelService, Depends(get_panel_service)],
):
    """Все заказы; попутно синхронизирует незавершённые со статусами панели."""
    orders = await service.list_orders()
    return OrdersResponse(orders=[OrderOut.from_record(order) for order in orders])
