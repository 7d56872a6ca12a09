"""UI screens for modals and secondary screens."""

from typing import Callable, Dict, List, Optional

from rich.text import Text
from textual.app import ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal, ScrollableContainer, Vertical
from textual.screen import ModalScreen, Screen
from textual.widgets import (
    Button,
    DataTable,
    Input,
    Label,
    ListItem,
    ListView,
    Static,
    TextArea,
)

from .collections_config import (
    ChangeRequest,
    CollectionSchema,
    field_placeholder,
    widget_kind,
)
from .errors import BrevozaError
from .moderation import classify_diff_line

DIFF_STYLES = {
    "addition": "green",
    "deletion": "red",
    "hunk": "cyan",
    "context": "",
}


class NewItemScreen(Screen):
    """Form for proposing a new item, generated from the collection schema."""

    BINDINGS = [
        Binding("ctrl+s", "save", "Propose", show=True),
        Binding("escape", "quit_screen", "Cancel", show=True),
    ]

    CSS = """
    #item-form {
        padding: 1 2;
        height: auto;
    }

    .form-label {
        text-style: bold;
        margin-top: 1;
    }

    .form-textarea {
        height: 10;
    }

    .button-group {
        margin-top: 2;
        height: auto;
    }
    """

    def __init__(self, app, collection: str, schema: CollectionSchema, on_created):
        """Initialize the new item screen.

        Args:
            app: The main application (used to submit the proposal)
            collection: Collection the item belongs to
            schema: Parsed collection schema driving the form
            on_created: Callback receiving the ProposalResult
        """
        super().__init__()
        self.app_instance = app
        self.collection = collection
        self.schema = schema
        self.on_created = on_created

    def compose(self) -> ComposeResult:
        """Compose one input per schema property."""
        with ScrollableContainer():
            with Vertical(id="item-form"):
                yield Static(f"New {self.collection} item", classes="form-label")
                if not self.schema.properties:
                    yield Static("This collection declares no fields.")
                for name, spec in self.schema.properties.items():
                    label = name + (" *" if name in self.schema.required else "")
                    if spec.description:
                        label += f" ({spec.description})"
                    yield Static(label, classes="form-label")

                    if widget_kind(spec) == "textarea":
                        yield TextArea(
                            id=f"field-{name}", language="markdown", classes="form-textarea"
                        )
                    else:
                        yield Input(
                            id=f"field-{name}",
                            placeholder=field_placeholder(name, spec),
                            classes="form-input",
                        )
                with Horizontal(classes="button-group"):
                    yield Button("Create Proposal", id="submit-btn", variant="primary")
                    yield Button("Cancel", id="cancel-btn")

    def on_mount(self):
        """Focus the first field."""
        self.title = f"New {self.collection} item"
        if self.schema.properties:
            first = next(iter(self.schema.properties))
            self.query_one(f"#field-{first}").focus()

    def collect_values(self) -> Dict[str, str]:
        """Read the non-empty form values."""
        values: Dict[str, str] = {}
        for name, spec in self.schema.properties.items():
            if widget_kind(spec) == "textarea":
                value = self.query_one(f"#field-{name}", TextArea).text
            else:
                value = self.query_one(f"#field-{name}", Input).value
            if value.strip():
                values[name] = value
        return values

    def action_save(self):
        """Open a pull request for the new item."""
        values = self.collect_values()
        missing = [
            name
            for name in self.schema.required
            if name in self.schema.properties and name not in values
        ]
        if missing:
            self.app.notify(f"Required: {', '.join(missing)}", severity="warning")
            return
        if not values:
            self.app.notify("Fill in at least one field", severity="warning")
            return

        try:
            result = self.app_instance.create_proposal(self.collection, values)
        except BrevozaError as e:
            self.app.notify(f"Error creating proposal: {e.message}", severity="error")
            return

        self.app.pop_screen()
        self.on_created(result)

    def action_quit_screen(self):
        """Leave without proposing anything."""
        self.app.pop_screen()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        """Handle button presses."""
        if event.button.id == "submit-btn":
            self.action_save()
        elif event.button.id == "cancel-btn":
            self.action_quit_screen()


class CollectionSelectScreen(ModalScreen):
    """Modal screen for selecting a collection."""

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", show=False),
    ]

    CSS = """
    CollectionSelectScreen {
        align: center middle;
    }

    CollectionSelectScreen > Vertical {
        width: 50;
        height: 15;
        border: solid $accent;
        background: $panel;
    }

    #collection-list {
        height: 8;
    }
    """

    def __init__(self, on_collection_selected: Callable[[str], None], collection_names: List[str]):
        """Initialize the collection selection modal.

        Args:
            on_collection_selected: Callback receiving the selected collection name
            collection_names: Collections declared in the repository config
        """
        super().__init__()
        self.on_collection_selected = on_collection_selected
        self.collection_names = collection_names

    def compose(self) -> ComposeResult:
        yield Vertical(
            Static("Select Collection", classes="title"),
            ListView(
                *[ListItem(Label(name), name=name) for name in self.collection_names],
                id="collection-list",
            ),
        )

    def on_mount(self):
        self.title = "Change Collection"
        self.query_one("#collection-list", ListView).focus()

    def on_list_view_selected(self, event: ListView.Selected) -> None:
        """Handle collection selection."""
        selected = event.item.name if event.item else None
        if selected:
            self.app.pop_screen()
            self.on_collection_selected(selected)

    def action_cancel(self):
        self.app.pop_screen()


class SearchModal(ModalScreen):
    """Prompt for a search term over the current collection."""

    BINDINGS = [
        Binding("escape", "cancel", "Cancel", show=False),
    ]

    CSS = """
    SearchModal {
        align: center middle;
    }

    SearchModal > Vertical {
        width: 60;
        height: auto;
        border: solid $accent;
        background: $panel;
        padding: 1 2;
    }
    """

    def __init__(self, on_search: Callable[[str], None], current: str = ""):
        super().__init__()
        self.on_search = on_search
        self.current = current

    def compose(self) -> ComposeResult:
        yield Vertical(
            Static("Search items (empty to clear)"),
            Input(id="search-input", value=self.current, placeholder="name or path"),
        )

    def on_mount(self):
        self.query_one("#search-input", Input).focus()

    def on_input_submitted(self, event: Input.Submitted) -> None:
        self.app.pop_screen()
        self.on_search(event.value.strip())

    def action_cancel(self):
        self.app.pop_screen()


class ConfirmModal(ModalScreen):
    """Yes/no confirmation for destructive actions."""

    BINDINGS = [
        Binding("y", "confirm", "Yes", show=True),
        Binding("n,escape", "cancel", "No", show=True),
    ]

    CSS = """
    ConfirmModal {
        align: center middle;
    }

    ConfirmModal > Vertical {
        width: 60;
        height: auto;
        border: solid $error;
        background: $panel;
        padding: 1 2;
    }
    """

    def __init__(self, question: str, on_confirm: Callable[[], None]):
        super().__init__()
        self.question = question
        self.on_confirm = on_confirm

    def compose(self) -> ComposeResult:
        yield Vertical(
            Static(self.question),
            Horizontal(
                Button("Yes", id="yes-btn", variant="error"),
                Button("No", id="no-btn"),
            ),
        )

    def action_confirm(self):
        self.app.pop_screen()
        self.on_confirm()

    def action_cancel(self):
        self.app.pop_screen()

    def on_button_pressed(self, event: Button.Pressed) -> None:
        if event.button.id == "yes-btn":
            self.action_confirm()
        else:
            self.action_cancel()


class ProposalsScreen(Screen):
    """Open proposals with their file changes, and approve/reject actions."""

    BINDINGS = [
        Binding("a", "approve", "Approve", show=True),
        Binding("x", "reject", "Reject", show=True),
        Binding("s", "cycle_state", "State", show=True),
        Binding("r", "refresh", "Refresh", show=True),
        Binding("escape", "close", "Back", show=True),
    ]

    STATES = ["open", "closed", "all"]

    CSS = """
    #proposals-container {
        layout: horizontal;
        height: 1fr;
    }

    #proposals-table {
        width: 40%;
        height: 100%;
        border: solid $accent;
    }

    #proposal-detail-scroll {
        width: 60%;
        height: 100%;
        border: solid $accent;
    }
    """

    def __init__(self, manager):
        """Initialize the proposals screen.

        Args:
            manager: ContentManager for the repository
        """
        super().__init__()
        self.manager = manager
        self.state = "open"
        self.proposals: List[ChangeRequest] = []

    def compose(self) -> ComposeResult:
        with Horizontal(id="proposals-container"):
            yield DataTable(id="proposals-table")
            with ScrollableContainer(id="proposal-detail-scroll"):
                yield Static("Select a proposal", id="proposal-detail")

    def on_mount(self):
        self.load_proposals()
        self.query_one("#proposals-table", DataTable).focus()

    def load_proposals(self) -> None:
        """Fetch proposals in the current state and fill the table."""
        self.title = f"Proposals ({self.state})"
        table = self.query_one("#proposals-table", DataTable)
        table.clear(columns=True)
        table.cursor_type = "row"
        table.add_columns("#", "Title", "State", "Author")

        try:
            self.proposals = self.manager.list_proposals(self.state)
        except BrevozaError as e:
            self.proposals = []
            self.app.notify(f"Error loading proposals: {e.message}", severity="error")

        for proposal in self.proposals:
            table.add_row(
                str(proposal.number),
                proposal.title,
                proposal.state,
                proposal.author or "",
                key=str(proposal.number),
            )
        self.update_detail()

    def selected_proposal(self) -> Optional[ChangeRequest]:
        table = self.query_one("#proposals-table", DataTable)
        row = table.cursor_row
        if self.proposals and row is not None and 0 <= row < len(self.proposals):
            return self.proposals[row]
        return None

    def update_detail(self) -> None:
        """Show the body and file diffs of the highlighted proposal."""
        detail = self.query_one("#proposal-detail", Static)
        proposal = self.selected_proposal()
        if proposal is None:
            detail.update("No proposals found." if not self.proposals else "Select a proposal")
            return

        text = Text()
        text.append(f"#{proposal.number} {proposal.title}\n", style="bold")
        text.append(f"{proposal.head} -> {proposal.base} [{proposal.state}]\n")
        text.append(f"{proposal.url}\n\n")
        if proposal.body:
            text.append(proposal.body.rstrip() + "\n\n")

        try:
            files = self.manager.get_proposal_files(proposal.number)
        except BrevozaError as e:
            text.append(f"Could not load file changes: {e.message}\n", style="red")
            files = []

        if files:
            text.append(f"File Changes ({len(files)})\n", style="bold")
        for changed in files:
            text.append(f"\n{changed.filename}  ", style="bold")
            text.append(f"+{changed.additions}", style="green")
            text.append(f" -{changed.deletions}\n", style="red")
            for line in (changed.patch or "").splitlines():
                text.append(line + "\n", style=DIFF_STYLES[classify_diff_line(line)])

        detail.update(text)

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        event.stop()
        self.update_detail()

    def action_approve(self):
        """Merge the highlighted proposal."""
        proposal = self.selected_proposal()
        if proposal is None:
            self.app.notify("No proposal selected", severity="warning")
            return
        try:
            self.manager.approve(proposal.number)
        except BrevozaError as e:
            self.app.notify(f"Error approving #{proposal.number}: {e.message}", severity="error")
            return
        self.app.notify(f"Proposal #{proposal.number} merged", severity="information")
        self.load_proposals()

    def action_reject(self):
        """Close the highlighted proposal after confirmation."""
        proposal = self.selected_proposal()
        if proposal is None:
            self.app.notify("No proposal selected", severity="warning")
            return

        def do_reject():
            try:
                self.manager.reject(proposal.number)
            except BrevozaError as e:
                self.app.notify(f"Error rejecting #{proposal.number}: {e.message}", severity="error")
                return
            self.app.notify(f"Proposal #{proposal.number} closed", severity="information")
            self.load_proposals()

        self.app.push_screen(
            ConfirmModal(f"Reject and close #{proposal.number} '{proposal.title}'?", do_reject)
        )

    def action_cycle_state(self):
        self.state = self.STATES[(self.STATES.index(self.state) + 1) % len(self.STATES)]
        self.load_proposals()

    def action_refresh(self):
        self.load_proposals()

    def action_close(self):
        self.app.pop_screen()


class AboutScreen(ModalScreen):
    """Modal screen displaying application information."""

    BINDINGS = [
        Binding("escape", "close", "Close", show=False),
    ]

    CSS = """
    AboutScreen {
        align: center middle;
    }

    AboutScreen > Vertical {
        width: 70;
        height: auto;
        border: solid $accent;
        background: $panel;
    }
    """

    def __init__(self, repository: str = ""):
        super().__init__()
        self.repository = repository

    def compose(self) -> ComposeResult:
        from .version import PROJECT_URL, get_release_url, get_version

        yield Vertical(
            Static("Brevoza CMS", classes="title"),
            Static(f"Version: {get_version()}"),
            Static(f"Repository: {self.repository}"),
            Static(f"GitHub: {PROJECT_URL}"),
            Static(f"Release: {get_release_url()}"),
            Static(
                "Browse collections and propose content changes as pull requests.",
                classes="about-description",
            ),
            id="about-content",
        )

    def on_mount(self):
        self.title = "About"

    def action_close(self):
        self.app.pop_screen()
