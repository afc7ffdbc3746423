"""
Клиент API SMM-панели: список услуг, заказы, статусы и баланс.
"""

import json
import logging
from typing import Any, Iterable, Optional

import httpx

from panelbridge.core.config import settings
from panelbridge.core.status import normalize_status

logger = logging.getLogger(__name__)

DEFAULT_PLATFORM_KEYWORDS = ("twitter",)
DEFAULT_CONTENT_KEYWORDS = ("view", "impression", "bookmark")


class PanelAPIError(Exception):
    """Ошибка обращения к SMM-панели (сеть, HTTP-статус или error в ответе)."""


class PanelClient:
    """
    Клиент для API SMM-панели (протокол "action + key", form-encoded POST).

    Поддерживает действия services / add / status / balance.
    Каждый вызов - отдельный запрос с собственным таймаутом, без повторов:
    повторная попытка делается вызывающим кодом (например, на следующем
    проходе синхронизации).
    """

    def __init__(
        self,
        api_url: Optional[str] = None,
        timeout: Optional[float] = None,
        platform_keywords: Optional[Iterable[str]] = None,
        content_keywords: Optional[Iterable[str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_url = api_url or settings.PANEL_API_URL
        self.timeout = timeout if timeout is not None else settings.PANEL_TIMEOUT
        self.platform_keywords = tuple(
            k.lower() for k in (platform_keywords or DEFAULT_PLATFORM_KEYWORDS)
        )
        self.content_keywords = tuple(
            k.lower() for k in (content_keywords or DEFAULT_CONTENT_KEYWORDS)
        )
        # transport подменяется в тестах (httpx.MockTransport)
        self._transport = transport

    async def _post(self, payload: dict[str, str]) -> Any:
        """
        Отправляет form-encoded запрос и возвращает разобранный JSON.

        Raises:
            PanelAPIError: при сетевой ошибке, статусе 4xx/5xx или поле error в ответе.
        """
        action = payload.get("action")
        logger.debug("Panel request: action=%s", action)
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(self.api_url, data=payload)
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            raise PanelAPIError(_error_message(_response_body(e.response), str(e))) from e
        except httpx.HTTPError as e:
            raise PanelAPIError(_error_message(None, str(e))) from e
        except ValueError as e:
            # Ответ не является JSON
            raise PanelAPIError(_error_message(None, f"Invalid JSON from panel: {e}")) from e

        # Панель сообщает об ошибках приложения со статусом 200 и полем error
        if isinstance(data, dict) and data.get("error"):
            raise PanelAPIError(_error_message(data, ""))
        return data

    async def list_services(self, key: str) -> list[dict]:
        """
        Возвращает услуги панели, отфильтрованные по платформе и типу контента.

        Услуга проходит фильтр, если категория или название содержит ключевое
        слово платформы и название содержит хотя бы одно слово типа контента.
        Порядок услуг сохраняется.
        """
        data = await self._post({"key": key or "", "action": "services"})
        if not isinstance(data, list):
            logger.warning("Panel returned non-list services payload: %s", type(data).__name__)
            return []

        filtered = []
        for service in data:
            if not isinstance(service, dict):
                continue
            category = str(service.get("category") or "").lower()
            name = str(service.get("name") or "").lower()
            if not any(k in category or k in name for k in self.platform_keywords):
                continue
            if any(k in name for k in self.content_keywords):
                filtered.append(service)
        logger.info("Panel services: %s total, %s after filter", len(data), len(filtered))
        return filtered

    async def place_order(
        self,
        key: str,
        service_id: Any,
        link: str,
        quantity: Optional[int] = None,
        runs: Optional[int] = None,
        interval: Optional[int] = None,
    ) -> Any:
        """
        Создаёт заказ в панели (action=add).

        Необязательные числовые поля отправляются только если они truthy:
        0 и None не передаются вовсе.
        """
        payload = {
            "key": key or "",
            "action": "add",
            "service": str(service_id),
            "link": str(link),
        }
        if quantity:
            payload["quantity"] = str(quantity)
        if runs:
            payload["runs"] = str(runs)
        if interval:
            payload["interval"] = str(interval)
        return await self._post(payload)

    async def get_order_status(self, key: str, upstream_order_id: Any) -> Any:
        """
        Запрашивает статус заказа (action=status).

        Если в ответе есть поле status, к тому же объекту добавляется
        mappedStatus - нормализованный внутренний статус.
        """
        result = await self._post({"key": key or "", "action": "status", "order": str(upstream_order_id)})
        if isinstance(result, dict) and "status" in result:
            result["mappedStatus"] = normalize_status(result["status"]).value
        return result

    async def get_balance(self, key: str) -> Any:
        """Возвращает баланс аккаунта панели как есть (balance, currency)."""
        return await self._post({"key": key or "", "action": "balance"})


def _response_body(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text or None


def _error_message(body: Any, transport_message: str) -> str:
    """Текст ошибки: тело ответа панели, иначе сообщение транспорта, иначе общий текст."""
    if isinstance(body, dict) and "error" in body and body["error"]:
        body = body["error"]
    if body:
        return body if isinstance(body, str) else json.dumps(body, ensure_ascii=False)
    return transport_message or "Panel request failed"
