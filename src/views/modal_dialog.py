from typing import Dict, List, Literal, Optional, Tuple

from textual import on
from textual.app import ComposeResult
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Input, Label, Select

from utils.messages import QuitRequestedMessage

Tone = Literal["default", "positive", "warning", "error"]


class DialogModal(ModalScreen[bool]):
    """
    A yes/no dialog box. Dismisses with True for the primary button.
    """

    VARIANT_MAP: Dict[
        str, Tuple[Literal["primary", "default", "success", "warning", "error"], ...]
    ] = {
        "default": ("primary", "default"),
        "positive": ("success", "default"),
        "warning": ("warning", "default"),
        "error": ("error", "primary"),
    }

    def __init__(
        self,
        caption: str,
        primary_text: str = "OK",
        secondary_text: str = "",
        tone: Tone = "default",
    ):
        super().__init__()
        self.caption = caption
        self.primary_text = primary_text
        self.secondary_text = secondary_text
        self.tone = tone

    def compose(self) -> ComposeResult:
        with Container(classes="div-dialog"):
            yield Label(self.caption, classes="caption")
            with Horizontal(classes="dialog-buttons"):
                if self.secondary_text:
                    yield Button(
                        self.secondary_text,
                        variant=DialogModal.VARIANT_MAP[self.tone][1],
                        id="btn-secondary",
                    )
                yield Button(
                    self.primary_text,
                    variant=DialogModal.VARIANT_MAP[self.tone][0],
                    id="btn-primary",
                )

    def on_mount(self):
        # destructive dialogs focus the safe button
        if self.secondary_text and self.tone == "error":
            self.query_one("#btn-secondary").focus()
        else:
            self.query_one("#btn-primary").focus()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn-primary":
            self.dismiss(True)
        if event.button.id == "btn-secondary":
            self.dismiss(False)


class QuitDialogModal(DialogModal):
    def __init__(self):
        super().__init__("Are you sure you want to quit?", "Yes", "No", "error")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "btn-primary":
            self.app.post_message(QuitRequestedMessage())
            self.dismiss(True)
        else:
            self.dismiss(False)


class PromptModal(ModalScreen[Optional[str]]):
    """
    Ask for one line of text. Dismisses with the text, or None on cancel.
    """

    def __init__(
        self,
        caption: str,
        value: str = "",
        placeholder: str = "",
        submit_text: str = "OK",
    ):
        super().__init__()
        self.caption = caption
        self.value = value
        self.placeholder = placeholder
        self.submit_text = submit_text

    def compose(self) -> ComposeResult:
        with Container(classes="div-dialog"):
            yield Label(self.caption, classes="caption")
            yield Input(self.value, placeholder=self.placeholder, id="input-prompt")
            with Horizontal(classes="dialog-buttons"):
                yield Button("Cancel", id="btn-secondary")
                yield Button(self.submit_text, variant="primary", id="btn-primary")

    def on_mount(self):
        self.query_one("#input-prompt", Input).focus()

    @on(Input.Submitted, "#input-prompt")
    @on(Button.Pressed, "#btn-primary")
    def handle_submit(self) -> None:
        self.dismiss(self.query_one("#input-prompt", Input).value)

    @on(Button.Pressed, "#btn-secondary")
    def handle_cancel(self) -> None:
        self.dismiss(None)

    def on_key(self, event) -> None:
        if event.key == "escape":
            self.dismiss(None)


class ChoiceModal(ModalScreen[Optional[str]]):
    """
    Pick one value from a fixed list. Dismisses with the value, or None on
    cancel.
    """

    def __init__(
        self,
        caption: str,
        options: List[Tuple[str, str]],
        value: Optional[str] = None,
        submit_text: str = "OK",
    ):
        super().__init__()
        self.caption = caption
        self.options = options
        self.value = value
        self.submit_text = submit_text

    def compose(self) -> ComposeResult:
        with Container(classes="div-dialog"):
            yield Label(self.caption, classes="caption")
            yield Select(
                self.options,
                value=self.value if self.value is not None else self.options[0][1],
                allow_blank=False,
                id="select-choice",
            )
            with Horizontal(classes="dialog-buttons"):
                yield Button("Cancel", id="btn-secondary")
                yield Button(self.submit_text, variant="primary", id="btn-primary")

    def on_mount(self):
        self.query_one("#select-choice", Select).focus()

    @on(Button.Pressed, "#btn-primary")
    def handle_submit(self) -> None:
        value = self.query_one("#select-choice", Select).value
        self.dismiss(None if value is Select.BLANK else value)

    @on(Button.Pressed, "#btn-secondary")
    def handle_cancel(self) -> None:
        self.dismiss(None)

    def on_key(self, event) -> None:
        if event.key == "escape":
            self.dismiss(None)
