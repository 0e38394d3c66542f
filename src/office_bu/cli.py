import typer
from pathlib import Path
from typing import List, Optional

import pandas as pd
from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn

from office_bu.config.settings import AppConfig, ConfigLoader
from office_bu.database.connection import DatabaseConfig, DatabaseManager
from office_bu.domain.enums import ThemeType, TransactionType
from office_bu.domain.models import Transaction
from office_bu.domain.validation import ValidationError, build_draft, parse_type
from office_bu.logging_setup import configure_logging
from office_bu.repositories.local_transaction_repository import LocalTransactionRepository
from office_bu.services.backup import parse_backup_file, write_backup_file
from office_bu.services.models import ChangeResult, SyncResult
from office_bu.services.settings import SettingsStore
from office_bu.services.transaction_service import TransactionService
from office_bu.storage.local_store import LocalStore, StorageKeys
from office_bu.sync.outbox import SyncOutbox

app = typer.Typer(
    name="office-bu",
    help="Track shared office tea, coffee and snack purchases and who paid for them",
    add_completion=False,
)

console = Console()

TYPE_STYLES = {
    TransactionType.TEA: "green",
    TransactionType.COFFEE: "yellow",
    TransactionType.SNACKS: "magenta",
    TransactionType.PAYMENT: "cyan",
}

class State:
    verbose: bool = False
    service: Optional[TransactionService] = None


state = State()


def build_service(config: AppConfig, user: Optional[str] = None) -> TransactionService:
    """Wire the local store, repository, outbox and settings together"""
    store = LocalStore(DatabaseManager(DatabaseConfig(config.db_path)))
    keys = StorageKeys(prefix=config.key_prefix, user=user)
    return TransactionService(
        repository=LocalTransactionRepository(store, keys.transactions),
        settings=SettingsStore(store, keys),
        outbox=SyncOutbox(store, keys.outbox, keys.outbox_seq),
        config=config,
    )


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose", "-v",
        help="Enable verbose output",
    ),
    user: Optional[str] = typer.Option(
        None,
        "--user", "-u",
        help="Keep a separate collection for this user",
    ),
    db_path: Optional[Path] = typer.Option(
        None,
        "--db",
        help="Path to the local store database",
    ),
):
    """
    Office BU - log office purchases and payments, keep the balance, sync to Google Sheets.
    """
    configure_logging("DEBUG" if verbose else None)

    if state.service is None:
        config = ConfigLoader.load_app_config()
        if db_path is not None:
            config.db_path = db_path
        state.service = build_service(config, user=user)

    state.verbose = verbose


def fail(e: Exception) -> None:
    console.print(f"[bold red]Error:[/bold red] {e}")
    if state.verbose:
        console.print_exception()
    raise typer.Exit(code=1)


def print_sync(result: SyncResult) -> None:
    if not result.attempted:
        if state.verbose:
            console.print(f"[dim]→ {result}[/dim]")
        return
    if result.success:
        console.print(f"[green]☁ {result}[/green]")
    else:
        console.print(f"[bold red]☁ {result}[/bold red]")


def print_change(result: ChangeResult, done: str) -> None:
    if not result.changed:
        console.print(f"[yellow]Nothing {done}[/yellow]")
    else:
        console.print(f"[bold green]✓ {done.capitalize()} {result.count} transaction(s)[/bold green]")
    print_sync(result.sync)


def transactions_table(transactions: List[Transaction], title: Optional[str] = None) -> Table:
    icons = state.service.state.icon_mapping
    table = Table(title=title, show_header=True, padding=(0, 1))
    table.add_column("ID", style="dim", no_wrap=True)
    table.add_column("Date", style="cyan", width=12)
    table.add_column("User", style="white")
    table.add_column("Type", no_wrap=True)
    table.add_column("Note", max_width=40)
    table.add_column("Qty", justify="right")
    table.add_column("Price", justify="right")
    table.add_column("Amount", justify="right")

    for txn in transactions:
        style = TYPE_STYLES[txn.type]
        amount_color = "green" if txn.type is TransactionType.PAYMENT else "red"
        table.add_row(
            str(txn.id),
            txn.date.strftime("%Y-%m-%d"),
            txn.user,
            f"[{style}]{txn.type.value}[/{style}] [dim]{icons.get(txn.type.value, '')}[/dim]",
            txn.note[:37] + "..." if len(txn.note) > 40 else txn.note,
            str(txn.quantity),
            f"₹{txn.price:,.2f}",
            f"[{amount_color}]₹{txn.amount:,.2f}[/{amount_color}]",
        )
    return table


@app.command(name="add")
def add_transaction(
    txn_type: str = typer.Argument(..., help="tea, coffee, snacks or payment"),
    price: float = typer.Option(..., "--price", "-p", help="Price per item (or the amount paid)"),
    by: str = typer.Option(..., "--by", "-b", help="Who bought or paid"),
    quantity: Optional[float] = typer.Option(None, "--quantity", "-q", help="Number of items (ignored for payments)"),
    note: str = typer.Option("", "--note", "-n", help="Free text note"),
    when: Optional[str] = typer.Option(None, "--date", "-d", help="ISO date to backdate the entry"),
):
    """
    Record a purchase or a payment.

    Examples:
        office-bu add tea -q 2 -p 10 --by Alice
        office-bu add payment -p 150 --by Bob --note "settled March"
    """
    try:
        if quantity is None and parse_type(txn_type) is not TransactionType.PAYMENT:
            quantity = 1
        draft = build_draft(txn_type, price=price, user=by, quantity=quantity, note=note, date=when)
        result = state.service.add_transactions([draft])
        txn = result.transactions[0]
        console.print(f"[bold green]✓ Added {txn.type.value} #{txn.id}: ₹{txn.amount:,.2f} by {txn.user}[/bold green]")
        print_sync(result.sync)
    except Exception as e:
        fail(e)


@app.command(name="import")
def import_transactions(
    filepath: Path = typer.Argument(
        ...,
        help="CSV file with type, quantity, price, user, note and date columns",
        exists=True,
        file_okay=True,
        dir_okay=False,
    ),
):
    """
    Add many transactions at once from a CSV file. Every row is validated
    before anything is saved.
    """
    try:
        df = pd.read_csv(filepath, dtype=str, keep_default_na=False)
        df.columns = [c.strip().lower() for c in df.columns]

        drafts = []
        for position, row in enumerate(df.to_dict(orient="records"), start=2):
            try:
                drafts.append(build_draft(
                    row.get("type", ""),
                    price=row.get("price"),
                    user=row.get("user"),
                    quantity=row.get("quantity") or None,
                    note=row.get("note"),
                    date=row.get("date") or None,
                ))
            except ValidationError as e:
                raise ValidationError(f"Row {position}: {e}")

        result = state.service.add_transactions(drafts)
        print_change(result, "imported")
    except Exception as e:
        fail(e)


@app.command(name="edit")
def edit_transaction(
    transaction_id: int = typer.Argument(..., help="ID of the transaction to edit"),
    txn_type: Optional[str] = typer.Option(None, "--type", "-t"),
    price: Optional[float] = typer.Option(None, "--price", "-p"),
    by: Optional[str] = typer.Option(None, "--by", "-b"),
    quantity: Optional[float] = typer.Option(None, "--quantity", "-q"),
    note: Optional[str] = typer.Option(None, "--note", "-n"),
    when: Optional[str] = typer.Option(None, "--date", "-d"),
):
    """Change fields of a transaction; the amount is recalculated."""
    try:
        existing = state.service.get_transaction(transaction_id)
        if existing is None:
            console.print(f"[yellow]No transaction with id {transaction_id}[/yellow]")
            return

        draft = build_draft(
            txn_type or existing.type,
            price=price if price is not None else existing.price,
            user=by or existing.user,
            quantity=quantity if quantity is not None else existing.quantity,
            note=note if note is not None else existing.note,
            date=when or existing.date,
        )
        result = state.service.update_transaction(transaction_id, draft)
        print_change(result, "updated")
    except Exception as e:
        fail(e)


@app.command(name="delete")
def delete_transaction(
    transaction_id: int = typer.Argument(..., help="ID of the transaction to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Don't ask for confirmation"),
):
    """Delete one transaction."""
    try:
        if not yes:
            typer.confirm("Delete this record?", abort=True)
        print_change(state.service.delete_transaction(transaction_id), "deleted")
    except typer.Abort:
        raise
    except Exception as e:
        fail(e)


@app.command(name="bulk-delete")
def bulk_delete(
    transaction_ids: List[int] = typer.Argument(..., help="IDs to delete"),
    yes: bool = typer.Option(False, "--yes", "-y", help="Don't ask for confirmation"),
):
    """Delete several transactions."""
    try:
        if not yes:
            typer.confirm(f"Delete {len(transaction_ids)} record(s)?", abort=True)
        print_change(state.service.bulk_delete(transaction_ids), "deleted")
    except typer.Abort:
        raise
    except Exception as e:
        fail(e)


@app.command(name="categorize")
def categorize(
    transaction_ids: List[int] = typer.Argument(..., help="IDs to move"),
    txn_type: str = typer.Option(..., "--type", "-t", help="New category"),
):
    """Move several transactions to another category."""
    try:
        result = state.service.bulk_categorize(transaction_ids, parse_type(txn_type))
        print_change(result, "updated")
    except Exception as e:
        fail(e)


@app.command(name="clear")
def clear_all(
    yes: bool = typer.Option(False, "--yes", "-y", help="Don't ask for confirmation"),
):
    """Delete ALL transactions locally and in the Google Sheet."""
    try:
        if not yes:
            typer.confirm("Delete ALL transactions locally and in Google Sheets?", abort=True)
        result = state.service.clear_all()
        console.print(f"[bold green]✓ Cleared {result.count} transaction(s)[/bold green]")
        print_sync(result.sync)
    except typer.Abort:
        raise
    except Exception as e:
        fail(e)


@app.command(name="list")
def list_transactions(
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Match note, user or amount"),
    by: Optional[str] = typer.Option(None, "--by", "-b", help="Only this person's entries"),
    txn_type: Optional[str] = typer.Option(None, "--type", "-t", help="Only this category"),
    limit: int = typer.Option(20, "--limit", "-l", min=1, help="Rows to show"),
):
    """List transactions, newest first."""
    try:
        if search:
            transactions = state.service.search(search)
        else:
            transactions = state.service.get_transactions()
        if by:
            transactions = [t for t in transactions if t.user.lower() == by.strip().lower()]
        if txn_type:
            wanted = parse_type(txn_type)
            transactions = [t for t in transactions if t.type is wanted]

        if not transactions:
            console.print(Panel(
                "[yellow]No transactions found[/yellow]",
                title="Empty",
                border_style="yellow"
            ))
            return

        console.print(transactions_table(transactions[:limit]))
        if len(transactions) > limit:
            console.print(f"\n[dim]Showing {limit} of {len(transactions)} transactions[/dim]")
    except Exception as e:
        fail(e)


@app.command(name="summary")
def summary(
    by: Optional[str] = typer.Option(None, "--by", "-b", help="Only this person's entries"),
):
    """Show the balance: what was spent, what was paid, what is outstanding."""
    try:
        result = state.service.get_summary(user=by)

        if result.total_transactions == 0:
            console.print(Panel(
                "[yellow]No transactions yet[/yellow]",
                title="Empty Report",
                border_style="yellow"
            ))
            return

        summary_text = (
            f"[bold]Transactions:[/bold] {result.total_transactions}\n\n"
            f"[red]💸 Spent:[/red]  ₹{result.total_spent:>10,.2f}\n"
            f"[green]💰 Paid:[/green]   ₹{result.total_paid:>10,.2f}\n"
            f"{'─' * 30}\n"
            f"[bold]Net balance:[/bold] ₹{result.balance:>10,.2f}"
        )
        title = f"Balance for {by}" if by else "Balance"
        console.print(Panel(summary_text, title=f"[bold]{title}[/bold]", border_style="cyan", padding=(1, 2)))

        if result.spent_by_category:
            console.print(f"\n[bold]Spending Breakdown[/bold]")
            category_table = Table(show_header=True, box=None, padding=(0, 2))
            category_table.add_column("Category", style="cyan", no_wrap=True)
            category_table.add_column("Amount", justify="right", style="red")
            category_table.add_column("% of Total", justify="right", style="dim")

            for category, amount in sorted(result.spent_by_category.items(), key=lambda x: x[1], reverse=True):
                percentage = amount / result.total_spent * 100
                category_table.add_row(category.value, f"₹{amount:,.2f}", f"{percentage:.1f}%")
            console.print(category_table)

        people = sorted(set(result.spent_by_user) | set(result.paid_by_user))
        if not by and people:
            console.print(f"\n[bold]By Person[/bold]")
            people_table = Table(show_header=True, box=None, padding=(0, 2))
            people_table.add_column("User", style="cyan", no_wrap=True)
            people_table.add_column("Spent", justify="right", style="red")
            people_table.add_column("Paid", justify="right", style="green")
            people_table.add_column("Balance", justify="right")

            for person in people:
                spent = result.spent_by_user.get(person, 0)
                paid = result.paid_by_user.get(person, 0)
                people_table.add_row(person, f"₹{spent:,.2f}", f"₹{paid:,.2f}", f"₹{spent - paid:,.2f}")
            console.print(people_table)

        console.print(f"\n[bold]Total items purchased:[/bold] {result.total_quantity}")
    except Exception as e:
        fail(e)


@app.command(name="sync")
def sync(
    discard: bool = typer.Option(False, "--discard", help="Drop pending changes instead of sending them"),
):
    """Send pending changes to the Google Sheet webhook, oldest first."""
    try:
        service = state.service
        if discard:
            dropped = service.outbox.discard()
            console.print(f"[yellow]Discarded {dropped} pending change(s)[/yellow]")
            return

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Syncing changes...", total=None)
            result = service.flush_outbox()
            progress.update(task, completed=True)

        if not result.attempted:
            console.print(f"[yellow]{result}[/yellow]")
            return
        print_sync(result)
        if not result.success:
            raise typer.Exit(code=1)
    except typer.Exit:
        raise
    except Exception as e:
        fail(e)


@app.command(name="fetch")
def fetch(
    yes: bool = typer.Option(False, "--yes", "-y", help="Don't ask for confirmation"),
):
    """Replace local transactions with the contents of the Google Sheet."""
    try:
        if not yes:
            typer.confirm("Overwrite local transactions with the sheet's?", abort=True)

        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            console=console,
        ) as progress:
            task = progress.add_task("Fetching from Google Sheets...", total=None)
            transactions = state.service.fetch_from_sheet()
            progress.update(task, completed=True)

        console.print(f"[bold green]✓ Fetched {len(transactions)} transaction(s)[/bold green]")
    except typer.Abort:
        raise
    except Exception as e:
        fail(e)


@app.command(name="configure")
def configure(
    api_key: Optional[str] = typer.Option(None, "--api-key", help="Google API key for reading the sheet"),
    client_id: Optional[str] = typer.Option(None, "--client-id", help="Google OAuth client id"),
    webhook_url: Optional[str] = typer.Option(None, "--webhook-url", help="Deployed Apps Script (or serve-sheet) URL"),
    spreadsheet_id: Optional[str] = typer.Option(None, "--spreadsheet-id", help="ID of the Google Spreadsheet"),
    access_token: Optional[str] = typer.Option(None, "--access-token", help="OAuth access token for private sheets"),
):
    """
    Set remote sync credentials (stored in plaintext). Pass an empty string
    to remove a value. Without options, show the current settings.
    """
    try:
        service = state.service
        values = dict(
            api_key=api_key,
            client_id=client_id,
            webhook_url=webhook_url,
            spreadsheet_id=spreadsheet_id,
            access_token=access_token,
        )
        if any(v is not None for v in values.values()):
            service.save_sync_settings(**values)
            console.print("[bold green]✓ Sync settings saved[/bold green]")

        sync = service.state.sync
        table = Table(show_header=False, box=None, padding=(0, 2))
        table.add_column("Setting", style="cyan")
        table.add_column("Value")
        for label, value, secret in (
            ("API key", sync.api_key, True),
            ("Client id", sync.client_id, False),
            ("Webhook URL", sync.webhook_url, False),
            ("Spreadsheet id", sync.spreadsheet_id, False),
            ("Access token", sync.access_token, True),
        ):
            if value and secret:
                value = value[:4] + "…"
            table.add_row(label, value or "[dim]not set[/dim]")
        console.print(Panel(table, title="Sync settings", border_style="cyan"))
        console.print(f"[dim]{service.describe()}[/dim]")
    except Exception as e:
        fail(e)


@app.command(name="theme")
def theme(
    name: Optional[str] = typer.Argument(None, help="matcha, dark, hibiscus, chai or ocean"),
):
    """Show or change the theme."""
    try:
        if name is None:
            console.print(f"Theme: [bold]{state.service.state.theme.value}[/bold]")
            return
        try:
            chosen = ThemeType(name.strip().lower())
        except ValueError:
            available = ", ".join(t.value for t in ThemeType)
            raise ValidationError(f"Unknown theme '{name}'. Available themes: {available}")
        state.service.set_theme(chosen)
        console.print(f"[bold green]✓ Theme set to {chosen.value}[/bold green]")
    except Exception as e:
        fail(e)


@app.command(name="icon")
def icon(
    txn_type: str = typer.Argument(..., help="Category to change"),
    icon_name: str = typer.Argument(..., help="Icon name, e.g. fa-mug-hot"),
):
    """Choose the icon shown for a category."""
    try:
        state.service.set_icon(parse_type(txn_type), icon_name)
        console.print(f"[bold green]✓ {txn_type} now uses {icon_name}[/bold green]")
    except Exception as e:
        fail(e)


@app.command(name="backup")
def backup(
    directory: Path = typer.Option(Path("."), "--dir", help="Where to write the backup"),
):
    """Write a JSON backup of transactions and settings."""
    try:
        service = state.service
        data = service.create_backup()
        path = write_backup_file(data, directory, now=service.clock())
        console.print(f"[bold green]✓ Backed up {len(data.transactions)} transaction(s) to {path}[/bold green]")
    except Exception as e:
        fail(e)


@app.command(name="restore")
def restore(
    filepath: Path = typer.Argument(..., exists=True, file_okay=True, dir_okay=False),
    yes: bool = typer.Option(False, "--yes", "-y", help="Don't ask for confirmation"),
):
    """Replace local transactions and settings with a backup."""
    try:
        data = parse_backup_file(filepath)
        if not yes:
            typer.confirm(
                f"Replace local data with {len(data.transactions)} transaction(s) from this backup?",
                abort=True,
            )
        count = state.service.restore_backup(data)
        console.print(f"[bold green]✓ Restored {count} transaction(s)[/bold green]")
    except typer.Abort:
        raise
    except Exception as e:
        fail(e)


@app.command(name="export")
def export(
    directory: Path = typer.Option(Path("."), "--dir", help="Where to write the CSV"),
    search: Optional[str] = typer.Option(None, "--search", "-s", help="Only export matching transactions"),
):
    """Export transactions to CSV."""
    try:
        service = state.service
        transactions = service.search(search) if search else None
        path = service.export_csv(directory, transactions)
        console.print(f"[bold green]✓ Exported to {path}[/bold green]")
    except Exception as e:
        fail(e)


@app.command(name="serve-sheet")
def serve_sheet(
    workbook: Path = typer.Option(..., "--workbook", "-w", help=".xlsx file acting as the spreadsheet"),
    sheet_name: Optional[str] = typer.Option(None, "--sheet", help="Tab name (defaults to the configured one)"),
    host: str = typer.Option("127.0.0.1", "--host"),
    port: int = typer.Option(8765, "--port"),
    create: bool = typer.Option(False, "--create", help="Create the workbook if it doesn't exist"),
):
    """
    Run the spreadsheet webhook against a local workbook.

    Point `configure --webhook-url` at it to sync without Google.
    """
    from office_bu.sheets.backends import WorkbookSheet
    from office_bu.sheets.handler import SpreadsheetActionHandler
    from office_bu.sheets.server import create_app

    try:
        tab = sheet_name or state.service.config.sheet_name
        if not workbook.exists():
            if not create:
                raise FileNotFoundError(f"Workbook {workbook} does not exist (use --create)")
            WorkbookSheet.create(workbook, tab)

        handler = SpreadsheetActionHandler(lambda: WorkbookSheet(workbook, tab))
        console.print(Panel.fit(
            f"[bold cyan]Sheet endpoint[/bold cyan]\n"
            f"Workbook: {workbook}\n"
            f"Tab: {tab}\n"
            f"URL: http://{host}:{port}/",
            border_style="cyan"
        ))
        # One request at a time: row deletes are not safe against concurrent writers
        create_app(handler).run(host=host, port=port, threaded=False)
    except Exception as e:
        fail(e)


def cli_main():
    """Entry point for the CLI"""
    app()


if __name__ == "__main__":
    cli_main()
