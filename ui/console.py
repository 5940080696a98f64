"""
ConsoleUI - Rich-based console interface.

Provides the banner, discovery summaries and error display for the CLI.
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.tree import Tree

from ..protocol.errors import DatabaseError
from ..protocol.schema import SchemaInfo, TableInfo

# Maximum columns listed under one relation in the tree view
MAX_TREE_COLUMNS = 12


class ConsoleUI:
    """
    Rich console interface for pg_transfer.
    """

    def __init__(self, quiet: bool = False, console: Optional[Console] = None):
        self.quiet = quiet
        self.console = console or Console()
        self.err_console = console or Console(stderr=True)

    def print(self, *args, **kwargs):
        """Print to console."""
        if self.quiet:
            return
        self.console.print(*args, **kwargs)

    def print_header(self, title: str):
        """Print a section header."""
        if self.quiet:
            return
        self.console.print()
        self.console.rule(f"[bold blue]{title}[/]")

    def print_banner(self, version: str):
        """Print application banner."""
        if self.quiet:
            return

        banner = f"""
[bold cyan]PostgreSQL Transfer Tool[/] [dim]v{version}[/]
[dim]Schema discovery for PostgreSQL databases[/]
        """
        self.console.print(Panel(banner.strip(), border_style="cyan"))

    @contextmanager
    def status(self, message: str) -> Iterator[None]:
        """Show a spinner while a long step runs."""
        if self.quiet:
            yield
            return
        with self.console.status(message):
            yield

    def print_summary(self, snapshot: SchemaInfo, label: str = "Schema Summary"):
        """Display object counts for one snapshot."""
        if self.quiet:
            return

        self.print_header(label)
        counts = snapshot.counts()

        table = Table(show_header=False, box=None)
        table.add_column("Key", style="dim")
        table.add_column("Value")

        table.add_row("Database", escape(snapshot.database_name))
        table.add_row("Tables", str(counts["tables"]))
        table.add_row("Views", str(counts["views"]))
        table.add_row("Materialized Views", str(counts["materialized_views"]))
        table.add_row(
            "Columns",
            str(sum(len(obj.columns) for obj in snapshot.all_objects())),
        )
        table.add_row(
            "Foreign Keys",
            str(sum(len(obj.foreign_keys) for obj in snapshot.tables)),
        )

        self.console.print(table)

    def print_schema_tree(self, snapshot: SchemaInfo):
        """Display every relation grouped by kind, then schema."""
        if self.quiet:
            return

        root = Tree(f"[bold]{escape(snapshot.database_name)}[/]")
        groups = (
            ("Tables", snapshot.tables),
            ("Views", snapshot.views),
            ("Materialized Views", snapshot.materialized_views),
        )
        for label, objects in groups:
            if not objects:
                continue
            branch = root.add(f"[bold cyan]{label}[/] [dim]({len(objects)})[/]")
            schemas: Dict[str, Any] = {}
            for obj in objects:
                if obj.schema not in schemas:
                    schemas[obj.schema] = branch.add(f"[blue]{escape(obj.schema)}[/]")
                self._add_relation(schemas[obj.schema], obj)

        self.console.print()
        self.console.print(root)

    def _add_relation(self, parent, obj: TableInfo):
        label = f"[bold]{escape(obj.name)}[/]"
        if obj.comment:
            label += f" [dim]- {escape(obj.comment)}[/]"
        node = parent.add(label)

        for column in obj.columns[:MAX_TREE_COLUMNS]:
            flags = []
            if column.is_primary_key:
                flags.append("[yellow]PK[/]")
            elif column.is_unique:
                flags.append("[green]UQ[/]")
            if not column.is_nullable:
                flags.append("[dim]NOT NULL[/]")
            node.add(f"{escape(column.name)} [dim]{escape(column.data_type)}[/] {' '.join(flags)}".rstrip())

        hidden = len(obj.columns) - MAX_TREE_COLUMNS
        if hidden > 0:
            node.add(f"[dim]... {hidden} more columns[/]")

        for fk in obj.foreign_keys:
            node.add(
                f"[magenta]FK[/] {escape(fk.column_name)} -> "
                f"{escape(fk.referenced_schema)}.{escape(fk.referenced_table)}"
                f"({escape(fk.referenced_column)})"
            )

    def print_json(self, payload: str):
        """Print a JSON document (ignores quiet mode)."""
        self.console.print_json(payload)

    def print_success(self, message: str):
        if self.quiet:
            return
        self.console.print(f"[green]:heavy_check_mark:[/] {escape(message)}")

    def print_warning(self, message: str):
        """Display warning message."""
        if self.quiet:
            return
        self.console.print(f"[yellow]Warning:[/] {escape(message)}")

    def print_error(self, message: str, exception: Optional[BaseException] = None):
        """Display error message (never suppressed by quiet mode)."""
        self.err_console.print(f"[bold red]Error:[/] {escape(message)}")
        if exception is None:
            return
        if isinstance(exception, DatabaseError):
            detail = f"{type(exception).__name__} [{exception.code}]: {exception.message}"
        else:
            detail = f"{type(exception).__name__}: {exception}"
        self.err_console.print(f"[dim]{escape(detail)}[/]")
        if exception.__cause__ is not None:
            cause = exception.__cause__
            self.err_console.print(f"[dim]  caused by {type(cause).__name__}: {escape(str(cause).strip())}[/]")
