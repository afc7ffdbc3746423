"""
Обработчики команд Telegram бота: оформление заказа, ключ панели, баланс и статусы.
"""

import html
import logging

from aiogram import F, Router
from aiogram.filters import Command, CommandObject, CommandStart
from aiogram.fsm.context import FSMContext
from aiogram.fsm.state import State, StatesGroup
from aiogram.types import CallbackQuery, InlineKeyboardButton, InlineKeyboardMarkup, Message

from panelbridge.api.panel_client import PanelAPIError
from panelbridge.bot.notifier import format_order_status
from panelbridge.core.config import settings
from panelbridge.services.panel_service import (
    OrderNotFoundError,
    PanelService,
    SettingsValidationError,
)

logger = logging.getLogger(__name__)

# Роутер обработчиков; PanelService приходит через данные диспетчера (panel_service)
router = Router()

ORDERS_LIST_LIMIT = 10

HELP_TEXT = (
    "👋 Добро пожаловать!\n\n"
    "Команды:\n"
    "• /order - оформить новый заказ\n"
    "• /orders - последние заказы\n"
    "• /status &lt;id&gt; - статус заказа\n"
    "• /balance - баланс в панели\n"
    "• /setkey &lt;ключ&gt; - сохранить API ключ панели"
)


class OrderState(StatesGroup):
    """Шаги оформления заказа: ссылка -> количество -> подтверждение"""
    waiting_link = State()
    waiting_quantity = State()
    waiting_confirmation = State()


def build_confirm_keyboard() -> InlineKeyboardMarkup:
    """Клавиатура подтверждения заказа"""
    return InlineKeyboardMarkup(
        inline_keyboard=[
            [InlineKeyboardButton(text="✅ Подтвердить", callback_data="order:confirm")],
            [InlineKeyboardButton(text="❌ Отмена", callback_data="order:cancel")],
        ]
    )


def parse_quantity(text: str | None) -> int | None:
    """Положительное целое из текста или None."""
    try:
        quantity = int((text or "").strip())
    except ValueError:
        return None
    return quantity if quantity > 0 else None


@router.message(CommandStart())
async def cmd_start(message: Message, state: FSMContext):
    await state.clear()
    await message.answer(HELP_TEXT, parse_mode="HTML")


@router.message(Command("order"))
async def cmd_order(message: Message, state: FSMContext):
    await state.clear()
    await state.set_state(OrderState.waiting_link)
    await message.answer("🔗 Отправьте ссылку для заказа:")


@router.message(OrderState.waiting_link, F.text, ~F.text.startswith("/"))
async def process_link(message: Message, state: FSMContext):
    await state.update_data(link=message.text.strip())
    await state.set_state(OrderState.waiting_quantity)
    await message.answer("📦 Принято! Теперь отправьте <b>количество</b>:", parse_mode="HTML")


@router.message(OrderState.waiting_quantity, F.text, ~F.text.startswith("/"))
async def process_quantity(message: Message, state: FSMContext):
    quantity = parse_quantity(message.text)
    if quantity is None:
        await message.answer("❗ Введите положительное число.")
        return

    await state.update_data(quantity=quantity)
    await state.set_state(OrderState.waiting_confirmation)
    data = await state.get_data()
    await message.answer(
        "Подтвердите заказ:\n\n"
        f"🔗 Ссылка: {html.escape(data['link'])}\n"
        f"📦 Количество: {quantity}",
        reply_markup=build_confirm_keyboard(),
        parse_mode="HTML",
    )


@router.callback_query(OrderState.waiting_confirmation, F.data == "order:cancel")
async def cancel_order(callback: CallbackQuery, state: FSMContext):
    await state.clear()
    await callback.message.answer("❌ Заказ отменён.")
    await callback.answer()


@router.callback_query(OrderState.waiting_confirmation, F.data == "order:confirm")
async def confirm_order(callback: CallbackQuery, state: FSMContext, panel_service: PanelService):
    data = await state.get_data()
    await state.clear()
    await callback.answer()
    await callback.message.answer("⏳ Размещаем заказ...")

    try:
        # Итоговый статус придёт через TelegramStatusNotifier
        result = await panel_service.place_order(
            service_id=settings.DEFAULT_SERVICE_ID,
            link=data["link"],
            quantity=data["quantity"],
            chat_id=callback.message.chat.id,
        )
    except Exception:
        logger.exception("Ошибка при размещении заказа из бота")
        await callback.message.answer("❗ Не удалось разместить заказ. Попробуйте ещё раз.")
        return

    if not result.ok:
        logger.info("Заказ %s из бота завершился ошибкой панели: %s", result.order.id, result.error)


@router.callback_query(F.data.startswith("order:"))
async def stale_order_callback(callback: CallbackQuery):
    """Кнопки от старого диалога, состояние которого уже сброшено."""
    await callback.answer("Диалог устарел, начните заново: /order")


@router.message(Command("setkey"))
async def cmd_setkey(message: Message, command: CommandObject, panel_service: PanelService):
    try:
        await panel_service.update_settings(command.args or "")
    except SettingsValidationError:
        await message.answer("❌ Ключ должен быть не короче 10 символов: /setkey &lt;ключ&gt;", parse_mode="HTML")
        return
    except Exception:
        logger.exception("Ошибка при сохранении ключа панели")
        await message.answer("❌ Не удалось обновить ключ.")
        return
    await message.answer("✅ API ключ панели обновлён!")


@router.message(Command("balance"))
async def cmd_balance(message: Message, panel_service: PanelService):
    try:
        data = await panel_service.get_balance()
    except PanelAPIError as e:
        logger.error("Не удалось получить баланс: %s", e)
        await message.answer("⚠️ Не удалось получить баланс.")
        return
    balance = data.get("balance") if isinstance(data, dict) else data
    currency = data.get("currency", "") if isinstance(data, dict) else ""
    await message.answer(f"💰 Баланс: {balance} {currency}".strip())


@router.message(Command("orders"))
async def cmd_orders(message: Message, panel_service: PanelService):
    orders = await panel_service.list_orders()
    own = [order for order in orders if order.chat_id == str(message.chat.id)]
    if not own:
        await message.answer("Заказов пока нет. Оформить: /order")
        return
    blocks = [format_order_status(order) for order in own[:ORDERS_LIST_LIMIT]]
    await message.answer("\n\n".join(blocks), parse_mode="HTML")


@router.message(Command("status"))
async def cmd_status(message: Message, command: CommandObject, panel_service: PanelService):
    ref = (command.args or "").strip()
    if not ref:
        await message.answer("Укажите id заказа: /status &lt;id&gt;", parse_mode="HTML")
        return
    try:
        data = await panel_service.get_order_status(ref)
    except OrderNotFoundError:
        await message.answer("❗ Заказ не найден.")
        return
    except PanelAPIError as e:
        logger.error("Не удалось получить статус заказа %s: %s", ref, e)
        await message.answer("⚠️ Панель не ответила, попробуйте позже.")
        return

    text = format_order_status(data["local"])
    upstream = data["status"]
    if isinstance(upstream, dict):
        if upstream.get("mappedStatus"):
            text += f"\n🔄 В панели: <b>{html.escape(str(upstream['mappedStatus']))}</b>"
        if upstream.get("remains") is not None:
            text += f"\n📉 Осталось: {html.escape(str(upstream['remains']))}"
    await message.answer(text, parse_mode="HTML")
