# cli.py
import sys
from datetime import datetime, date
from typing import List, Dict, Any, Optional

from rich.console import Console
from rich.table import Table
from rich.panel import Panel
from rich.prompt import IntPrompt, Confirm, Prompt
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich import box

from prompt_toolkit import prompt
from prompt_toolkit.completion import WordCompleter
from prompt_toolkit.styles import Style as PromptStyle

from sdk.ledger_client import LedgerClient
from stockledger.core import CATEGORIES

console = Console()
c = LedgerClient()

# Global state for status messages and caching
status_message = "Ready"
product_cache: List[Dict[str, Any]] = []
seller_cache = set()

STATUS_STYLES = {"critical": "bold red", "warning": "yellow", "optimal": "green"}

custom_style = PromptStyle.from_dict({
    'completion-menu.completion': 'bg:#008888 #ffffff',
    'completion-menu.completion.current': 'bg:#00aaaa #000000',
    'scrollbar.background': 'bg:#88aaaa',
    'scrollbar.button': 'bg:#222222',
})


# ---------------------------
# Display helpers
# ---------------------------
def show_products(products: List[Dict[str, Any]]):
    if not products:
        console.print("[italic yellow]No products found[/italic yellow]")
        return

    table = Table(
        title="📦 Inventory",
        box=box.ROUNDED,
        header_style="bold cyan",
        title_style="bold magenta",
        show_lines=True
    )
    table.add_column("ID", style="dim", width=12)
    table.add_column("Name", style="bold", width=24)
    table.add_column("Category", width=12)
    table.add_column("SKU / EAN", width=22)
    table.add_column("Store", justify="right", width=7)
    table.add_column("Warehouse", justify="right", width=9)
    table.add_column("Price", justify="right", width=10)
    table.add_column("Status", width=10)

    for p in products:
        style = STATUS_STYLES.get(p.get("status"), "white")
        table.add_row(
            p.get("id", "N/A")[:12],
            p.get("name", "N/A"),
            p.get("category", "N/A"),
            f"{p.get('sku', '')}\n[dim]{p.get('ean', '')}[/dim]",
            str(p.get("store_stock", 0)),
            str(p.get("warehouse_stock", 0)),
            f"€{p.get('price', 0):.2f}",
            f"[{style}]{p.get('status', 'N/A')}[/{style}]"
        )
    console.print(table)


def show_summary(summary: Dict[str, Any]):
    counts = summary.get("status_counts", {})
    console.print(Panel.fit(
        f"Products: [bold]{summary.get('total_products', 0)}[/bold]   "
        f"[bold red]{counts.get('critical', 0)} critical[/bold red]  "
        f"[yellow]{counts.get('warning', 0)} warning[/yellow]  "
        f"[green]{counts.get('optimal', 0)} optimal[/green]\n"
        f"Store stock: {summary.get('total_store_stock', 0)}   "
        f"Warehouse stock: {summary.get('total_warehouse_stock', 0)}",
        title="📊 Stock Summary",
        border_style="cyan"
    ))

    table = Table(box=box.ROUNDED, header_style="bold blue")
    table.add_column("Category", width=14)
    for col in ("Count", "Critical", "Warning", "Optimal"):
        table.add_column(col, justify="right", width=9)
    for row in summary.get("categories", []):
        table.add_row(row["category"], str(row["count"]), str(row["critical"]), str(row["warning"]), str(row["optimal"]))
    console.print(table)


def show_dashboard(dash: Dict[str, Any]):
    stats = dash.get("stats", {})
    change = stats.get("revenue_change_pct", 0)
    change_style = "green" if change >= 0 else "red"
    sales_line = (
        f"€{stats.get('today_revenue', 0):.2f} "
        f"[{change_style}]({'+' if change >= 0 else ''}{change:.1f}%)[/{change_style}]"
        if stats.get("today_sales") else "No sales"
    )
    console.print(Panel.fit(
        f"Today's sales: {sales_line}\n"
        f"Products: {stats.get('total_products', 0)} ([bold red]{stats.get('critical_products', 0)} critical[/bold red])\n"
        f"Store stock: {stats.get('total_store_stock', 0)} units, worth €{stats.get('stock_value', 0):.2f}",
        title="🏬 Dashboard",
        border_style="green"
    ))

    daily = Table(title="Last 7 days", box=box.SIMPLE)
    daily.add_column("Date")
    daily.add_column("Revenue", justify="right")
    daily.add_column("Units", justify="right")
    for d in dash.get("daily", []):
        daily.add_row(d["date"], f"€{d['revenue']:.2f}", str(d["units"]))
    console.print(daily)

    performers = dash.get("top_performers", [])
    if performers:
        top = Table(title="Top performers", box=box.SIMPLE)
        top.add_column("Seller")
        top.add_column("Sales", justify="right")
        top.add_column("Revenue", justify="right")
        for row in performers:
            top.add_row(row["name"], str(row["sales"]), f"€{row['revenue']:.2f}")
        console.print(top)


def show_status(message: str, is_success: bool = True):
    style = "green" if is_success else "red"
    return Panel.fit(f"[{style}]{message}[/{style}]", title="Status")


# ---------------------------
# API wrapper with exception handling
# ---------------------------
def try_api(fn, *args, success_msg: Optional[str] = None, **kwargs):
    """
    Calls fn(*args, **kwargs) behind a spinner. Returns the result, or None
    after printing the error.
    """
    global status_message
    try:
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            transient=True,
        ) as progress:
            progress.add_task(description="Processing...", total=None)
            result = fn(*args, **kwargs)

        if success_msg:
            status_message = success_msg
            console.print(show_status(success_msg, True))
        return result
    except Exception as e:
        status_message = f"Error: {e}"
        console.print(show_status(f"Error: {e}", False))
        return None


def _error_detail(resp) -> str:
    try:
        body = resp.json()
        return body.get("message") or str(body.get("detail"))
    except ValueError:
        return f"HTTP {resp.status_code}"


# ---------------------------
# Autocompletion helpers
# ---------------------------
def get_product_completer():
    global product_cache
    if not product_cache:
        product_cache = try_api(c.list_products) or []
    ids = [p.get("id", "") for p in product_cache]
    eans = [p.get("ean", "") for p in product_cache]
    return WordCompleter([v for v in (ids + eans) if v], ignore_case=True)


def get_seller_completer():
    return WordCompleter(list(seller_cache), ignore_case=True)


def resolve_product(ref: str) -> Optional[Dict[str, Any]]:
    """Accept a product id or a barcode."""
    for p in product_cache:
        if p.get("id") == ref:
            return p
    return try_api(c.find_by_barcode, ref)


def refresh_cache():
    global product_cache
    product_cache = try_api(c.list_products) or []


# ---------------------------
# Layout and input
# ---------------------------
def create_header():
    header = Table(show_header=False, box=box.ROUNDED)
    header.add_column("left", width=30)
    header.add_column("center", width=40)
    header.add_column("right", width=30)

    now = datetime.now().strftime("%Y-%m-%d %H:%M:%S")
    header.add_row(
        "🏬 Stock Ledger",
        "[bold blue]Store Operations Console[/bold blue]",
        f"[dim]{now}[/dim]"
    )
    return Panel(header, style="bold blue")


def prompt_with_autocomplete(message: str, completer=None, default: str = ""):
    return prompt(f"{message} ", completer=completer, style=custom_style, default=default)


def ask_float(message: str, default: float = 0.0) -> float:
    while True:
        raw = Prompt.ask(message, default=str(default))
        try:
            value = float(raw)
        except ValueError:
            console.print("[red]Please enter a valid number.[/red]")
            continue
        if value < 0:
            console.print("[red]Value must not be negative.[/red]")
            continue
        return value


def ask_stock(message: str, default: int = 0) -> int:
    while True:
        value = IntPrompt.ask(message, default=default)
        if value >= 0:
            return value
        console.print("[red]Stock cannot be negative.[/red]")


# ---------------------------
# Menu actions
# ---------------------------
def register_product():
    name = prompt_with_autocomplete("Product name")
    category = prompt_with_autocomplete("🏷️ Category", completer=WordCompleter(list(CATEGORIES)), default=CATEGORIES[0])
    sku = prompt_with_autocomplete("SKU")
    ean = prompt_with_autocomplete("EAN")
    store_stock = ask_stock("📦 Store stock", default=0)
    warehouse_stock = ask_stock("🏭 Warehouse stock", default=0)
    min_stock = ask_stock("Min stock", default=5)
    max_stock = ask_stock("Max stock", default=50)
    price = ask_float("💰 Price", default=0.0)
    resp = try_api(
        c.create_product, name, category, sku, ean, store_stock,
        warehouse_stock=warehouse_stock, min_stock=min_stock, max_stock=max_stock, price=price,
        success_msg=f"Product '{name}' registered"
    )
    if resp:
        show_products([resp])
        refresh_cache()


def edit_stock():
    ref = prompt_with_autocomplete("Product ID or EAN", completer=get_product_completer())
    product = resolve_product(ref)
    if not product:
        console.print(f"[yellow]No product for '{ref}'[/yellow]")
        return
    product["store_stock"] = ask_stock("📦 Store stock", default=product["store_stock"])
    product["warehouse_stock"] = ask_stock("🏭 Warehouse stock", default=product["warehouse_stock"])
    product["price"] = ask_float("💰 Price", default=product["price"])
    resp = try_api(c.update_product, product, success_msg=f"Product {product['name']} updated")
    if resp:
        show_products([resp])
        refresh_cache()


def sell_units():
    ref = prompt_with_autocomplete("Product ID or EAN", completer=get_product_completer())
    product = resolve_product(ref)
    if not product:
        console.print(f"[yellow]No product for '{ref}'[/yellow]")
        return
    qty = IntPrompt.ask("Units sold", default=1)
    resp = try_api(c.sell, product["id"], qty)
    if resp is None:
        return
    if resp.status_code == 200:
        console.print(show_status(f"Sold {qty} x {product['name']}", True))
        show_products([resp.json()])
        refresh_cache()
    elif resp.status_code == 409:
        console.print(Panel.fit(f"[red]Not enough stock:[/red] {_error_detail(resp)}", title="❌ Sale Rejected"))
    else:
        console.print(Panel.fit(f"[red]Sale failed:[/red] {_error_detail(resp)}", title="❌ Sale Failed"))


def log_sale():
    ref = prompt_with_autocomplete("Product ID or EAN", completer=get_product_completer())
    product = resolve_product(ref)
    if not product:
        console.print(f"[yellow]No product for '{ref}'[/yellow]")
        return
    seller = prompt_with_autocomplete("Seller", completer=get_seller_completer())
    seller_cache.add(seller)
    category = "Computers" if product.get("category") == "Mac" else "Smartphones"
    category = Prompt.ask("Sale category", choices=["Smartphones", "Computers"], default=category)
    qty = IntPrompt.ask("Units sold", default=1)
    resp = try_api(
        c.record_sale, date.today().isoformat(), product["name"], category, qty, seller,
        round(product["price"] * qty, 2), product_id=product["id"]
    )
    if resp is None:
        return
    if resp.status_code == 201:
        console.print(show_status(f"Sale logged for {seller}", True))
        refresh_cache()
    else:
        console.print(Panel.fit(f"[red]Sale not logged:[/red] {_error_detail(resp)}", title="❌ Sale Rejected"))


def delete_product():
    ref = prompt_with_autocomplete("Product ID or EAN", completer=get_product_completer())
    product = resolve_product(ref)
    if not product:
        console.print(f"[yellow]No product for '{ref}'[/yellow]")
        return
    if Confirm.ask(f"[red]Delete {product['name']} permanently?[/red]"):
        try_api(c.delete_product, product["id"], success_msg=f"Product {product['name']} deleted")
        refresh_cache()


# ---------------------------
# Main menu
# ---------------------------
def menu():
    global status_message, product_cache, seller_cache

    console.clear()
    console.print(create_header())
    refresh_cache()

    while True:
        if status_message:
            console.print(show_status(status_message, "Error" not in status_message))

        menu_table = Table.grid(padding=(0, 2))
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)
        menu_table.add_column("Key", style="bold cyan", width=4)
        menu_table.add_column("Option", width=30)

        options = [
            ("1", "📦 List products", "6", "🧾 Log sale"),
            ("2", "🔍 Filter products", "7", "🗑️ Delete product"),
            ("3", "🏷️ Find by barcode", "8", "📊 Stock summary"),
            ("4", "➕ Register product", "9", "🏬 Dashboard"),
            ("5", "✏️ Edit stock / price", "10", "🔄 Reset store"),
            ("11", "💸 Sell from floor", "q", "👋 Quit")
        ]
        for row in options:
            menu_table.add_row(*row)

        console.print(Panel(menu_table, title="📋 Menu", border_style="yellow"))

        choice = prompt_with_autocomplete(
            "\nChoose an option",
            completer=WordCompleter([str(i) for i in range(1, 12)] + ["q", "quit", "exit"])
        ).strip()

        if choice == "1":
            products = try_api(c.list_products, success_msg="Products loaded")
            if products is not None:
                product_cache = products
                show_products(products)

        elif choice == "2":
            term = prompt_with_autocomplete("Search (name, SKU, EAN)")
            status = Prompt.ask("Status", choices=["all", "critical", "warning", "optimal"], default="all")
            stock = Prompt.ask("Stock level", choices=["all", "low", "high"], default="all")
            products = try_api(c.list_products, term or None, None,
                               None if status == "all" else status, None if stock == "all" else stock)
            if products is not None:
                show_products(products)

        elif choice == "3":
            ean = prompt_with_autocomplete("Scan or type EAN")
            product = try_api(c.find_by_barcode, ean)
            if product:
                show_products([product])
            elif product is None and "Error" not in status_message:
                console.print(f"[yellow]No product with barcode {ean}[/yellow]")

        elif choice == "4":
            register_product()

        elif choice == "5":
            edit_stock()

        elif choice == "6":
            log_sale()

        elif choice == "7":
            delete_product()

        elif choice == "8":
            summary = try_api(c.inventory_summary)
            if summary:
                show_summary(summary)

        elif choice == "9":
            dash = try_api(c.dashboard)
            if dash:
                show_dashboard(dash)

        elif choice == "10":
            if Confirm.ask("[red]This will clear every collection in the store. Continue?[/red]"):
                try_api(c.reset, success_msg="Store reset")
                product_cache = []
                seller_cache = set()

        elif choice == "11":
            sell_units()

        elif choice.lower() in ("q", "quit", "exit"):
            if Confirm.ask("Are you sure you want to quit?"):
                console.print(Panel.fit("[bold green]Bye 👋[/bold green]", title="Goodbye"))
                sys.exit(0)

        console.print()
        console.rule(style="dim")


if __name__ == "__main__":
    try:
        menu()
    except KeyboardInterrupt:
        console.print("\n\n[bold red]Interrupted by user[/bold red]")
        sys.exit(1)
    except Exception as e:
        console.print(f"\n\n[bold red]Unexpected error: {e}[/bold red]")
        sys.exit(1)
