from typing import Any, Dict

from textual import events, on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.screen import ModalScreen
from textual.validation import Number
from textual.widgets import Button, Checkbox, Input, Label, RadioButton, RadioSet, Select

from timberline.shop import basket
from timberline.shop.options import OptionKind, ProductConfigurationOption, get_schema
from timberline.shop.pricing import describe, price
from timberline.utils.errors import TimberlineError, ValidationError
from timberline.utils.logger import get_logger
from timberline.utils.messages import BasketChangedMessage
from timberline.utils.pure import format_money

_logger = get_logger(__name__)


class ConfigureModal(ModalScreen[bool]):
    """
    Option form for one category with a live price.
    Returns True if the basket changed.
    """

    def __init__(self, category: str) -> None:
        super().__init__()
        self.category = category
        self.schema = get_schema(category)

    def compose(self) -> ComposeResult:
        with Vertical(id="div-configure"):
            yield Label(f"[b]{self.schema.title}[/b]", id="label-config-title")
            yield Label(self.schema.description, id="label-config-desc")
            with VerticalScroll(id="div-config-options"):
                for opt in self.schema.options:
                    yield Label(opt.label, classes="option-label")
                    yield from self._option_widgets(opt)
            yield Label("", id="label-config-summary")
            yield Label("Price: -", id="label-config-price")
            with Horizontal(id="div-config-qty"):
                yield Label("Quantity")
                yield Input("1", id="input-quantity", type="integer", validators=[Number(minimum=1)])
            with Horizontal(id="div-config-btns"):
                yield Button("Go Back", id="btn-quit")
                yield Button("Add to Basket", id="btn-addbasket", variant="primary")

    def _option_widgets(self, opt: ProductConfigurationOption):
        wid = f"opt-{opt.id}"
        if opt.kind == OptionKind.SELECT:
            yield Select(
                [(c.label, c.value) for c in opt.choices],
                value=opt.default,
                allow_blank=False,
                id=wid,
            )
        elif opt.kind == OptionKind.RADIO:
            with RadioSet(id=wid):
                for c in opt.choices:
                    yield RadioButton(c.label, value=c.value == opt.default)
        elif opt.kind == OptionKind.SLIDER:
            yield Input(
                str(opt.default),
                id=wid,
                type="integer",
                validators=[Number(minimum=opt.min, maximum=opt.max)],
                placeholder=f"{opt.min} - {opt.max}",
            )
        elif opt.kind == OptionKind.CHECKBOX:
            yield Checkbox(opt.label, value=bool(opt.default), id=wid)
        elif opt.kind == OptionKind.DIMENSIONS:
            with Horizontal(classes="dimension-inputs"):
                for key, value in opt.default.items():
                    yield Input(str(value), id=f"{wid}-{key}", type="number", placeholder=f"{key} ({opt.unit})")
        else:  # AREA
            with Horizontal(classes="dimension-inputs"):
                yield Input(str(opt.default["area"]), id=f"{wid}-area", type="number", placeholder="area (m²)")
                yield Input("", id=f"{wid}-length", type="number", placeholder="or length (m)")
                yield Input("", id=f"{wid}-width", type="number", placeholder="x width (m)")

    def on_mount(self) -> None:
        self.update_price()

    def on_key(self, event: events.Key) -> None:
        if event.key == "escape":
            self.dismiss(False)

    def configuration(self) -> Dict[str, Any]:
        config: Dict[str, Any] = {}
        for opt in self.schema.options:
            wid = f"opt-{opt.id}"
            if opt.kind == OptionKind.SELECT:
                config[opt.id] = self.query_one(f"#{wid}", Select).value
            elif opt.kind == OptionKind.RADIO:
                index = self.query_one(f"#{wid}", RadioSet).pressed_index
                config[opt.id] = opt.choices[index].value if index >= 0 else None
            elif opt.kind == OptionKind.SLIDER:
                config[opt.id] = self.query_one(f"#{wid}", Input).value.strip()
            elif opt.kind == OptionKind.CHECKBOX:
                config[opt.id] = self.query_one(f"#{wid}", Checkbox).value
            elif opt.kind == OptionKind.DIMENSIONS:
                config[opt.id] = {
                    key: self.query_one(f"#{wid}-{key}", Input).value.strip() for key in opt.default
                }
            else:
                config[opt.id] = {
                    key: self.query_one(f"#{wid}-{key}", Input).value.strip() or None
                    for key in ("area", "length", "width")
                }
        return config

    @on(Input.Changed)
    @on(Select.Changed)
    @on(RadioSet.Changed)
    @on(Checkbox.Changed)
    def handle_option_changed(self, event) -> None:
        if getattr(event, "input", None) is not None and event.input.id == "input-quantity":
            return
        self.update_price()

    def update_price(self) -> None:
        config = self.configuration()
        summary = self.query_one("#label-config-summary", Label)
        price_label = self.query_one("#label-config-price", Label)
        add_btn = self.query_one("#btn-addbasket", Button)
        try:
            amount = price(self.category, config)
            summary.update(describe(self.category, config))
        except ValidationError as exc:
            price_label.update("Price: -")
            summary.update(f"[red]{'; '.join(f'{k}: {v[0]}' for k, v in exc.field_errors.items())}[/red]")
            add_btn.disabled = True
            return
        price_label.update(f"Price: [b]{format_money(amount)}[/b] (ex. VAT)")
        add_btn.disabled = amount <= 0

    @on(Button.Pressed, "#btn-quit")
    def handle_quit(self):
        self.dismiss(False)

    @on(Button.Pressed, "#btn-addbasket")
    @work(exclusive=True)
    async def handle_add(self):
        qty_input = self.query_one("#input-quantity", Input)
        if not qty_input.is_valid or not qty_input.value.isdigit():
            qty_input.add_class("-invalid")
            qty_input.focus()
            self.notify("Quantity must be at least 1.", severity="error")
            return

        try:
            item = await basket.add(
                self.app.state.user_id,
                self.category,
                self.configuration(),
                self.category,
                int(qty_input.value),
            )
        except ValidationError as exc:
            for fld, messages in exc.field_errors.items():
                self.notify(f"{fld}: {'; '.join(messages)}", severity="error")
            return
        except TimberlineError as exc:
            _logger.error(f"Add to basket failed: {exc}")
            self.notify(exc.message, severity="error")
            return

        self.app.state.invalidate_basket()
        self.app.notify(f"Added to basket: {item.description}")
        self.app.post_message(BasketChangedMessage())
        self.dismiss(True)
