from __future__ import annotations

import mimetypes
from pathlib import Path
from typing import List, Optional

from textual import on, work
from textual.app import ComposeResult
from textual.containers import Horizontal, Vertical, VerticalScroll
from textual.events import ScreenResume
from textual.validation import Number
from textual.widgets import Button, Input, Label, OptionList, TextArea
from textual.widgets.option_list import Option

from db.models import Product
from services.errors import MarketError
from views.base_screen import BaseScreen
from views.modal_dialog import DialogModal


class ProductsScreen(BaseScreen):
    """
    Artisans list, create, edit and delete their own products.
    Descriptions can be drafted by the AI from a few keywords.
    """

    current_id: Optional[str] = None

    def __init__(self) -> None:
        super().__init__()
        self._products: List[Product] = []

    def compose(self) -> ComposeResult:
        yield from super().compose()
        with Horizontal(id="hort-products"):
            with Vertical(id="vert-product-list"):
                yield OptionList(id="optlist-prods")
                yield Button("New Product", id="btn-new", variant="success")
            with VerticalScroll(id="vert-product-form"):
                yield Label("Name")
                yield Input(id="input-name")
                yield Label("Category")
                yield Input(placeholder="Pottery", id="input-category")
                with Horizontal(id="div-price-stock"):
                    with Vertical():
                        yield Label("Price ($)")
                        yield Input(
                            id="input-price",
                            type="number",
                            validators=[Number(minimum=0.0)],
                        )
                    with Vertical():
                        yield Label("Stock")
                        yield Input(
                            id="input-stock",
                            type="integer",
                            validators=[Number(minimum=0)],
                        )
                yield Label("Image URL")
                yield Input(id="input-image")
                yield Label("Short Description")
                yield Input(id="input-short-desc")
                yield Label("Description")
                yield TextArea(id="textarea-desc")
                yield Label("AI keywords / photo (optional)")
                with Horizontal(id="div-ai"):
                    yield Input(placeholder="rustic, blue glaze", id="input-keywords")
                    yield Button("Generate", id="btn-generate")
                yield Input(placeholder="~/photos/mug.png", id="input-photo")
                with Horizontal(id="div-button"):
                    yield Button("Delete", id="btn-delete", variant="error")
                    yield Button("Save", id="btn-save", variant="primary")

    def on_mount(self) -> None:
        self.clear_form()

    @on(ScreenResume)
    @work(exclusive=True, group="list")
    async def reload_products(self) -> None:
        state = self.app.state
        if not state.profile:
            return
        self._products = await state.catalog.products_by_artisan(state.profile.name)

        opt_list = self.query_one("#optlist-prods", OptionList)
        opt_list.clear_options()
        opt_list.add_options([Option(p.name, id=p.id) for p in self._products])

    def on_option_list_option_selected(self, message: OptionList.OptionSelected):
        for prod in self._products:
            if prod.id == message.option.id:
                self.fill_form(prod)
                break

    def fill_form(self, prod: Product) -> None:
        self.current_id = prod.id
        self.query_one("#input-name", Input).value = prod.name
        self.query_one("#input-category", Input).value = prod.category
        self.query_one("#input-price", Input).value = f"{prod.price:.2f}"
        self.query_one("#input-stock", Input).value = str(prod.stock)
        self.query_one("#input-image", Input).value = prod.image_url
        self.query_one("#input-short-desc", Input).value = prod.short_description
        self.query_one("#textarea-desc", TextArea).text = prod.description
        self.query_one("#btn-delete").disabled = False

    @on(Button.Pressed, "#btn-new")
    def clear_form(self) -> None:
        self.current_id = None
        for input_ in self.query("#vert-product-form Input").results(Input):
            input_.value = ""
        self.query_one("#textarea-desc", TextArea).text = ""
        self.query_one("#btn-delete").disabled = True
        self.query_one("#input-name").focus()

    def read_form(self) -> Optional[Product]:
        name_input = self.query_one("#input-name", Input)
        price_input = self.query_one("#input-price", Input)
        stock_input = self.query_one("#input-stock", Input)

        for required in (name_input, price_input, stock_input):
            if not required.value.strip() or not required.is_valid:
                required.focus()
                required.add_class("-invalid")
                self.notify("Name, price and stock are required.", severity="error")
                return None

        return Product(
            id=self.current_id,
            name=name_input.value.strip(),
            category=self.query_one("#input-category", Input).value.strip(),
            price=float(price_input.value),
            stock=int(stock_input.value),
            image_url=self.query_one("#input-image", Input).value.strip(),
            description=self.query_one("#textarea-desc", TextArea).text.strip(),
            short_description=self.query_one("#input-short-desc", Input).value.strip(),
            artisan_name=self.app.state.profile.name,
        )

    @on(Button.Pressed, "#btn-save")
    @work(exclusive=True)
    async def handle_save(self) -> None:
        prod = self.read_form()
        if prod is None:
            return
        try:
            saved = await self.app.state.catalog.save_product(prod)
        except MarketError as e:
            self.show_error(e)
            return

        self.notify(f"Saved {saved.name}.")
        self.fill_form(saved)
        self.reload_products()

    @on(Button.Pressed, "#btn-delete")
    @work(exclusive=True)
    async def handle_delete(self) -> None:
        if not self.current_id:
            return
        if not await self.app.push_screen_wait(
            DialogModal(
                "Delete this product? This cannot be undone.",
                primary_text="Delete",
                secondary_text="Cancel",
                tone="error",
            )
        ):
            return
        try:
            await self.app.state.catalog.delete_product(self.current_id)
        except MarketError as e:
            self.show_error(e)
            return

        self.notify("Product deleted.")
        self.clear_form()
        self.reload_products()

    @on(Button.Pressed, "#btn-generate")
    @work(exclusive=True, group="ai")
    async def handle_generate(self) -> None:
        keywords = self.query_one("#input-keywords", Input).value.strip()
        craft_type = (
            self.query_one("#input-category", Input).value.strip()
            or self.app.state.profile.specialty
        )
        if not keywords:
            self.notify("Enter a few keywords first.", severity="warning")
            return

        image, mime_type = None, None
        photo = self.query_one("#input-photo", Input).value.strip()
        if photo:
            path = Path(photo).expanduser()
            mime_type = mimetypes.guess_type(path.name)[0]
            if not path.is_file() or not (mime_type or "").startswith("image/"):
                self.notify(f"Not an image file: {photo}", severity="error")
                return
            image = path.read_bytes()

        btn = self.query_one("#btn-generate", Button)
        btn.disabled = True
        btn.label = "Generating..."
        try:
            description = await self.app.state.ai.generate_description(
                keywords, craft_type, image=image, mime_type=mime_type
            )
        except MarketError as e:
            self.show_error(e)
        else:
            self.query_one("#textarea-desc", TextArea).text = description.strip()
        finally:
            btn.disabled = False
            btn.label = "Generate"
