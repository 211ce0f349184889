from textual.app import ComposeResult
from textual.containers import Container
from textual.events import Resize
from textual.screen import ModalScreen
from textual.widgets import Label


class ResizeScreenPromptModal(ModalScreen[bool]):
    """
    Covers the screen until the terminal is at least min_width x min_height.
    """

    def __init__(self, min_width: int = 80, min_height: int = 24) -> None:
        super().__init__()
        self.min_width = min_width
        self.min_height = min_height

    def compose(self) -> ComposeResult:
        with Container(id="div-resize"):
            yield Label(
                f"Terminal too small. Resize to at least {self.min_width} x {self.min_height}.",
                id="prompt",
            )

    def on_resize(self, event: Resize) -> None:
        if event.size.width >= self.min_width and event.size.height >= self.min_height:
            self.dismiss(True)
