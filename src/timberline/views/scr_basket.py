from textual import on, work
from textual.app import ComposeResult
from textual.containers import Container, Horizontal, HorizontalGroup, VerticalScroll
from textual.events import ScreenResume
from textual.message import Message
from textual.widgets import Button, Label, Markdown, Rule

from timberline.db import settings as db_settings
from timberline.db.models import BasketLineItem
from timberline.shop import basket
from timberline.utils.errors import TimberlineError
from timberline.utils.messages import BasketChangedMessage, ModeSwitchedMessage, NewOrderMessage
from timberline.utils.pure import format_money, generate_markdown_table
from timberline.views.base_screen import BaseScreen
from timberline.views.modal_checkout import CheckoutModal
from timberline.views.modal_dialog import DialogModal


class BasketItemActionRemoveMessage(Message):
    bubble = True


class BasketItemActionLabel(Label):
    def action_remove(self):
        self.post_message(BasketItemActionRemoveMessage())


class BasketItemWidget(HorizontalGroup):
    def __init__(self, item: BasketLineItem):
        super().__init__()
        self.item = item

    def compose(self):
        with Container(id="div-basket-item-group"):
            with Container(id="div-item"):
                yield Label(self.item.description, id="label-item-name")
                yield Label(format_money(self.item.unit_price), id="label-item-price")
                with Horizontal(id="div-item-qty"):
                    yield Button("-", id="btn-sub-qty", disabled=self.item.quantity <= 1)
                    yield Label(str(self.item.quantity), id="label-item-qty")
                    yield Button("+", id="btn-add-qty")
                yield Label(format_money(self.item.line_total), id="label-item-total")
            with Container(id="div-actions"):
                yield BasketItemActionLabel("[@click=remove()]Remove[/]", id="link-item-remove")

    @on(Button.Pressed, "#btn-add-qty")
    @on(Button.Pressed, "#btn-sub-qty")
    @work(exclusive=True)
    async def handle_qty(self, event: Button.Pressed):
        delta = 1 if event.button.id == "btn-add-qty" else -1
        try:
            await basket.update_quantity(self.item.id, self.item.quantity + delta)
        except TimberlineError as exc:
            self.notify(exc.message, severity="error")
        self.app.state.invalidate_basket()
        self.post_message(BasketChangedMessage())

    @on(BasketItemActionRemoveMessage)
    @work()
    async def handle_remove_item(self):
        remove_confirmed = await self.app.push_screen_wait(
            DialogModal(
                "Do you really want to remove this item from your basket?",
                primary_text="Yes",
                secondary_text="No",
                tone="warning",
            )
        )
        if remove_confirmed:
            await basket.remove(self.item.id)
            self.app.state.invalidate_basket()
            self.post_message(BasketChangedMessage())
            self.notify("Item removed from basket.", severity="information")


class BasketScreen(BaseScreen):
    """
    Basket lines with quantity controls, totals and checkout.
    """

    def compose(self) -> ComposeResult:
        yield from super().compose()
        yield VerticalScroll(id="vertscroll-content")
        yield Markdown("", id="md-basket-totals")
        yield Rule(line_style="dashed")
        with Horizontal(id="hort-buttons"):
            yield Button("Clear Basket", id="btn-clear-basket")
            yield Button("Refresh", id="btn-refresh")
            yield Button("Checkout", id="btn-checkout", variant="primary")

    @on(BasketChangedMessage)
    @on(ModeSwitchedMessage)
    @on(ScreenResume)
    @on(Button.Pressed, "#btn-refresh")
    @work(exclusive=True)  # exclusive, else refreshes race and mount duplicates
    async def handle_basket_change(self):
        items = await self.app.state.basket_items()

        content = self.query_one("#vertscroll-content")
        if [c.item for c in content.children] != items:
            await content.remove_children()
            await content.mount_all([BasketItemWidget(item) for item in items])
        content.set_class(not items, "no-items")

        delivery = await db_settings.get_delivery_settings()
        financial = await db_settings.get_financial_settings()
        totals = basket.totals_for_settings(items, delivery, financial)
        symbol = financial.currency_symbol
        rows = [
            ["Items", str(totals.item_count)],
            ["Subtotal", format_money(totals.subtotal, symbol)],
            [f"VAT ({financial.vat_rate.normalize()}%)", format_money(totals.vat, symbol)],
            ["Delivery", format_money(totals.shipping_cost, symbol) if totals.shipping_cost else "Free"],
            ["**Total**", f"**{format_money(totals.total, symbol)}**"],
        ]
        await self.query_one("#md-basket-totals", Markdown).update(
            generate_markdown_table(["", ""], rows, ["l", "r"])
        )

    @on(Button.Pressed, "#btn-clear-basket")
    @work()
    async def handle_clear_basket(self) -> None:
        if not await self.app.state.basket_items():
            self.app.notify("Basket is empty.", severity="warning")
            return

        if await self.app.push_screen_wait(
            DialogModal(
                "Do you really want to remove all items from your basket?",
                primary_text="Yes",
                secondary_text="No",
                tone="error",
            )
        ):
            await basket.clear(self.app.state.user_id)
            self.app.state.invalidate_basket()
            self.post_message(BasketChangedMessage())

    @on(Button.Pressed, "#btn-checkout")
    @work()
    async def handle_checkout(self) -> None:
        if not await self.app.state.basket_items():
            self.app.notify("Basket is empty.", severity="warning")
            return

        order_id = await self.app.push_screen_wait(CheckoutModal())
        self.app.state.invalidate_basket()
        self.post_message(BasketChangedMessage())
        if order_id:
            self.app.post_message(NewOrderMessage())
