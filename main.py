"""
Main entry point for carddav2fb.

Interactive CLI for running synchronization steps individually or as a
full pass. Pass a command for non-interactive use (e.g. from cron):

    python main.py run
    python main.py download contacts.vcf
    python main.py upload contacts.vcf
    python main.py backup
    python main.py background

File: main.py
Created: 2026-10-15
Last Modified: 2026-10-17
"""

import argparse
import logging
import sys
from datetime import datetime
from pathlib import Path

from dotenv import load_dotenv
from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, MofNCompleteColumn, Progress, SpinnerColumn, TextColumn
from rich.prompt import Confirm, Prompt
from rich.table import Table
from rich import box

from carddav2fb.carddav import CardDavBackend, read_vcard_file, write_vcard_file
from carddav2fb.config import load_config
from carddav2fb.exceptions import Carddav2FbError
from carddav2fb.sync import SyncResult, backup_attributes, fetch_contacts, refresh_background, run

console = Console()

load_dotenv()

LOG_DIR = Path("logs")

# Command definitions
COMMANDS = {
    "run": {
        "name": "Synchronize",
        "description": "Download vCards, upload images and phonebook, refresh keypad image",
        "requires": "CardDAV + FRITZ!Box",
    },
    "download": {
        "name": "Download",
        "description": "Save vCards from the CardDAV server to a local file",
        "requires": "CardDAV",
    },
    "upload": {
        "name": "Upload",
        "description": "Upload a local vCard file as phonebook",
        "requires": "FRITZ!Box",
    },
    "backup": {
        "name": "Backup",
        "description": "Save quickdial, vanity and internal numbers from the router",
        "requires": "FRITZ!Box + FTP",
    },
    "background": {
        "name": "Background",
        "description": "Upload the quickdial keypad image to FRITZ!Fon handsets",
        "requires": "FRITZ!Box",
    },
}


def setup_logging(verbose: bool = False) -> None:
    LOG_DIR.mkdir(exist_ok=True)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format='%(asctime)s | %(levelname)-8s | %(message)s',
        handlers=[
            logging.FileHandler(LOG_DIR / f"carddav2fb_{datetime.now().strftime('%Y-%m-%d')}.log"),
            logging.StreamHandler(),
        ],
    )
    for name in ("urllib3", "requests", "PIL"):
        logging.getLogger(name).setLevel(logging.WARNING)


def show_menu():
    """Display the main menu."""
    console.print()
    console.print(
        Panel.fit(
            "[bold cyan]carddav2fb[/] - CardDAV address book to FRITZ!Box phonebook",
            border_style="cyan",
        )
    )
    console.print()

    table = Table(box=box.ROUNDED, show_header=True, header_style="bold")
    table.add_column("Command", style="cyan")
    table.add_column("Name", style="white")
    table.add_column("Description", style="dim")
    table.add_column("Requires", style="yellow")

    for key, command in COMMANDS.items():
        table.add_row(key, command["name"], command["description"], command["requires"])

    console.print(table)
    console.print()


def show_result(result: SyncResult):
    table = Table(box=box.ROUNDED, show_header=False)
    table.add_column("Item", style="cyan")
    table.add_column("Value", style="white")
    table.add_row("Contacts", f"{result.contacts:,}")
    table.add_row("Phonebook entries", f"{result.entries:,}")
    table.add_row("Images uploaded", f"{result.images_uploaded:,} of {result.images_total:,}")
    table.add_row("Special attributes", f"{result.attributes:,}")
    for phone, ok in result.keypad_uploads.items():
        table.add_row(f"Keypad FRITZ!Fon #{phone}", "[green]ok[/]" if ok else "[red]failed[/]")
    console.print(table)


def _run(config):
    with Progress(
        SpinnerColumn(),
        TextColumn("[bold blue]{task.description}"),
        BarColumn(),
        MofNCompleteColumn(),
        console=console,
        transient=True,
    ) as progress:
        task = progress.add_task("[cyan]Downloading vCards...", total=None)
        records = fetch_contacts(config, progress=lambda: progress.advance(task))
        progress.update(task, description="[cyan]Processing contacts...", total=len(records), completed=0)
        result = run(config, records=records, progress=lambda: progress.advance(task))

    show_result(result)
    console.print("[green]Synchronization complete![/]")


def _download(config, path: Path):
    backend = CardDavBackend(config.server)
    count = write_vcard_file(path, backend.get_raw_vcards())
    console.print(f"[green]Saved {count:,} vCards to {path}[/]")


def _upload(config, path: Path):
    records = read_vcard_file(path)
    # Local files carry no router image URLs, so photos are not synchronized here
    config.phonebook.imagepath = None
    result = run(config, records=records)
    show_result(result)
    console.print("[green]Upload complete![/]")


def _backup(config):
    records = backup_attributes(config)
    console.print(f"[green]Saved special attributes of {len(records):,} contacts[/]")


def _background(config):
    results = refresh_background(config)
    if not results:
        console.print("[yellow]No keypad image uploaded.[/]")
    for phone, ok in results.items():
        status = "[green]ok[/]" if ok else "[red]failed[/]"
        console.print(f"FRITZ!Fon #{phone}: {status}")


def run_command(command: str, config_path: Path, vcf: Path) -> int:
    """Run one command; returns the process exit code."""
    try:
        config = load_config(config_path)
        console.rule(f"[bold]{COMMANDS[command]['name']}")
        if command == "run":
            _run(config)
        elif command == "download":
            _download(config, vcf)
        elif command == "upload":
            _upload(config, vcf)
        elif command == "backup":
            _backup(config)
        elif command == "background":
            _background(config)
    except (Carddav2FbError, FileNotFoundError) as e:
        logging.getLogger(__name__).error(str(e))
        console.print(f"[red]{e}[/]")
        return 1
    return 0


def main() -> int:
    """Main entry point with interactive menu."""
    parser = argparse.ArgumentParser(description="Synchronize CardDAV contacts to a FRITZ!Box")
    parser.add_argument("command", nargs="?", choices=list(COMMANDS.keys()))
    parser.add_argument("vcf", nargs="?", type=Path, default=Path("contacts.vcf"), help="vCard file for download/upload")
    parser.add_argument("-c", "--config", type=Path, default=Path("config.json"), help="Path to config file")
    parser.add_argument("-v", "--verbose", action="store_true", help="Debug logging")
    args = parser.parse_args()

    setup_logging(args.verbose)

    if args.command:
        return run_command(args.command, args.config, args.vcf)

    # Interactive mode
    while True:
        show_menu()

        choice = Prompt.ask(
            "Select command",
            choices=list(COMMANDS.keys()) + ["q"],
            default="q",
        )

        if choice == "q":
            console.print("[dim]Goodbye![/]")
            return 0

        vcf = args.vcf
        if choice in ("download", "upload"):
            vcf = Path(Prompt.ask("vCard file", default=str(args.vcf)))
        run_command(choice, args.config, vcf)

        console.print()
        if not Confirm.ask("Continue?", default=True):
            console.print("[dim]Goodbye![/]")
            return 0


if __name__ == "__main__":
    sys.exit(main())
