"""Main TUI application."""

import logging
import sys
from pathlib import Path
from typing import Any, List, Mapping, Optional

from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import DataTable, Footer, Header, TextArea

from .collections_config import ItemFile, Pagination, ProposalResult
from .config import BrevozaConfig, load_settings
from .content_manager import ContentManager
from .errors import BrevozaError
from .github import GitHubClient
from .ui import (
    AboutScreen,
    CollectionSelectScreen,
    NewItemScreen,
    ProposalsScreen,
    SearchModal,
)

logger = logging.getLogger(__name__)


class BrevozaApp(App):
    """Main application."""

    # Configuration constants
    ITEMS_TABLE_WIDTH = "35%"
    PREVIEW_PANEL_WIDTH = "65%"

    BINDINGS = [
        Binding("n", "new_item", "New", show=True),
        Binding("c", "change_collection", "Collection", show=True),
        Binding("p", "proposals", "Proposals", show=True),
        Binding("[", "previous_page", "Prev", show=True),
        Binding("]", "next_page", "Next", show=True),
        Binding("/", "search", "Search", show=True),
        Binding("r", "refresh", "Refresh", show=False),
        Binding("?", "about", "About", show=True),
        Binding("q", "app.quit", "Quit", show=True),
    ]

    CSS = f"""
    Screen {{
        layout: vertical;
    }}

    #main-container {{
        width: 100%;
        height: 1fr;
        layout: horizontal;
    }}

    #items-table {{
        width: {ITEMS_TABLE_WIDTH};
        height: 100%;
        border: solid $accent;
    }}

    #preview-content {{
        width: {PREVIEW_PANEL_WIDTH};
        height: 100%;
        border: solid $accent;
    }}
    """

    def __init__(self, settings: BrevozaConfig, manager: Optional[ContentManager] = None):
        """Initialize the app.

        Args:
            settings: Resolved TUI settings
            manager: ContentManager to use (built from settings if omitted)
        """
        super().__init__()
        self.settings = settings
        self.manager = manager or ContentManager(
            GitHubClient(token=settings.token, api_url=settings.api_url),
            settings.owner,
            settings.repo,
            branch=settings.branch,
            config_path=settings.config_path,
            max_workers=settings.max_workers,
        )
        self.collection_names: List[str] = []
        self.current_collection: Optional[str] = None
        self.items: List[ItemFile] = []
        self.pagination: Optional[Pagination] = None
        self.page = 1
        self.search_term = ""

    def compose(self) -> ComposeResult:
        """Compose the app."""
        yield Header()
        with Horizontal(id="main-container"):
            yield DataTable(id="items-table")
            yield TextArea(
                text="Select an item to preview",
                id="preview-content",
                read_only=True,
            )
        yield Footer()

    def on_mount(self) -> None:
        """App mounted."""
        self.title = f"Brevoza CMS: {self.settings.repository}"
        try:
            self.collection_names = [entry.name for entry in self.manager.get_collections()]
        except BrevozaError as e:
            self.sub_title = f"Error: {e.message}"
            self.notify(e.message, severity="error")
            return

        if not self.collection_names:
            self.sub_title = "No collections declared"
            self.notify(f"No collections found in {self.settings.config_path}", severity="warning")
            return

        self.current_collection = self.collection_names[0]
        self.load_items()
        self.query_one("#items-table", DataTable).focus()

    def _update_subtitle(self) -> None:
        """Show current collection and page in the subtitle."""
        if not self.current_collection:
            return
        subtitle = f"Browsing {self.current_collection} on {self.settings.branch}"
        if self.pagination and self.pagination.total_pages:
            subtitle += (
                f" | page {self.pagination.page}/{self.pagination.total_pages}"
                f" ({self.pagination.total_count} items)"
            )
        if self.search_term:
            subtitle += f" | filter: {self.search_term}"
        self.sub_title = subtitle

    def load_items(self) -> None:
        """Load the current page of the current collection (metadata only)."""
        if not self.current_collection:
            return
        try:
            listing = self.manager.list_items(
                self.current_collection,
                page=self.page,
                limit=self.settings.page_size,
                search=self.search_term,
            )
            self.items = listing.items
            self.pagination = listing.pagination
        except BrevozaError as e:
            self.items = []
            self.pagination = None
            self.notify(f"Error loading items: {e.message}", severity="error")
        self._update_subtitle()
        self.populate_table()

    def populate_table(self) -> None:
        """Populate the data table with the loaded items."""
        table = self.query_one("#items-table", DataTable)
        table.clear(columns=True)
        table.cursor_type = "row"
        table.add_columns("Name", "Path")

        for item in self.items:
            table.add_row(item.name, item.path, key=item.path)

        self.update_preview()

    def selected_item(self) -> Optional[ItemFile]:
        table = self.query_one("#items-table", DataTable)
        row = table.cursor_row
        if self.items and row is not None and 0 <= row < len(self.items):
            return self.items[row]
        return None

    def update_preview(self) -> None:
        """Show the highlighted item's content, fetching it on first view."""
        preview = self.query_one("#preview-content", TextArea)
        item = self.selected_item()
        if item is None:
            preview.text = "Select an item to preview"
            return

        if not item.fetched:
            try:
                item.content = self.manager.get_item_content(item.path)
            except BrevozaError as e:
                item.error = e.message

        preview.text = item.content if item.content is not None else f"Error: {item.error}"

    def on_data_table_row_highlighted(self, event: DataTable.RowHighlighted) -> None:
        """Update preview when row is highlighted."""
        if event.data_table.id == "items-table":
            self.update_preview()

    def create_proposal(self, collection: str, item_data: Mapping[str, Any]) -> ProposalResult:
        """Submit a new item as a pull request.

        Raises:
            BrevozaError: If the proposal could not be created
        """
        return self.manager.create_proposal(collection, item_data)

    def action_new_item(self):
        """Open the new item form for the current collection."""
        if not self.current_collection:
            self.notify("No collection selected", severity="warning")
            return
        try:
            schema = self.manager.get_schema(self.current_collection)
        except BrevozaError as e:
            self.notify(f"Error loading schema: {e.message}", severity="error")
            return

        def on_created(result: ProposalResult):
            self.notify(
                f"Pull request #{result.pr_number} created. An admin will need to approve "
                f"your proposal before the change appears. {result.pr_url}",
                severity="information",
                timeout=10,
            )

        self.push_screen(NewItemScreen(self, self.current_collection, schema, on_created))

    def action_change_collection(self):
        """Open collection selector modal."""

        def on_collection_selected(collection: str):
            if collection != self.current_collection:
                self.current_collection = collection
                self.page = 1
                self.search_term = ""
                self.load_items()
                self.notify(f"Switched to {collection}", severity="information")

        self.push_screen(CollectionSelectScreen(on_collection_selected, self.collection_names))

    def action_next_page(self):
        if self.pagination and self.pagination.has_next_page:
            self.page += 1
            self.load_items()

    def action_previous_page(self):
        if self.pagination and self.pagination.has_previous_page:
            self.page -= 1
            self.load_items()

    def action_search(self):
        """Filter the whole collection by a search term."""

        def on_search(term: str):
            self.search_term = term
            self.page = 1
            self.load_items()

        self.push_screen(SearchModal(on_search, self.search_term))

    def action_refresh(self):
        self.load_items()

    def action_proposals(self):
        """Open the proposals review screen."""
        self.push_screen(ProposalsScreen(self.manager))

    def action_about(self):
        """Open the about screen."""
        self.push_screen(AboutScreen(self.settings.repository))


def configure_logging(settings: BrevozaConfig) -> None:
    """Send logs to a file; the terminal belongs to the TUI."""
    if not settings.log_file:
        logging.getLogger("brevoza_tui").addHandler(logging.NullHandler())
        return
    logging.basicConfig(
        filename=settings.log_file,
        level=getattr(logging, settings.log_level, logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run(project_root: Optional[Path] = None):
    """Run the brevoza TUI."""
    settings = load_settings(project_root)
    configure_logging(settings)
    logger.info("Starting brevoza-tui for %s@%s", settings.repository, settings.branch)
    app = BrevozaApp(settings)
    app.run()


def main():
    """Entry point."""
    try:
        run()
    except (FileNotFoundError, KeyError, ValueError) as e:
        print(f"brevoza-tui: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
