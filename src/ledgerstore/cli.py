#!/usr/bin/env python3
"""ledgerstore CLI for inspecting and editing ledger documents."""

import argparse
import json

import questionary
from rich.console import Console
from rich.table import Table

from ledgerstore.config import config, configure_logging
from ledgerstore.datasource import LedgerDatasource

console = Console()


def parse_object(text: str) -> dict:
    """Parse a JSON object argument."""
    value = json.loads(text) if text else {}
    if not isinstance(value, dict):
        raise argparse.ArgumentTypeError("expected a JSON object")
    return value


def confirm(message: str, assume_yes: bool) -> bool:
    if assume_yes:
        return True
    if not questionary.confirm(message).ask():
        console.print("[dim]Cancelled.[/]")
        return False
    return True


def print_documents(documents: list[dict], id_field_name: str) -> None:
    """Render documents as a table keyed by their id field."""
    if not documents:
        console.print("[yellow]No documents found.[/]")
        return

    table = Table(show_lines=False)
    table.add_column(id_field_name, style="bold")
    table.add_column("document")
    for document in documents:
        body = {k: v for k, v in document.items() if k != id_field_name}
        table.add_row(str(document.get(id_field_name, "")), json.dumps(body, default=str))
    console.print(table)


def print_result(result) -> None:
    console.print_json(data=result)


def list_documents(datasource: LedgerDatasource, args) -> None:
    documents = datasource.read({"table": args.table, "json": args.where})
    print_documents(documents, datasource.config.id_field_name)


def get_document(datasource: LedgerDatasource, args) -> None:
    document = datasource.read_by_id({"table": args.table, "id": args.id})
    if not document:
        console.print(f"[red]Document {args.id} not found.[/]")
        return
    print_result(document)


def create_document(datasource: LedgerDatasource, args) -> None:
    document = datasource.create({"table": args.table, "json": args.document})
    console.print("[green]Created document.[/]")
    print_result(document)


def update_documents(datasource: LedgerDatasource, args) -> None:
    repository = datasource.repository(args.table)
    summary = (
        f"Will update documents in [bold]{repository.table}[/] matching {json.dumps(args.where)}."
    )
    console.print(f"[yellow]{summary}[/]")
    if not confirm("Proceed with these changes?", args.yes):
        return

    result = datasource.update(
        {"table": args.table, "document": args.document, "where": args.where}
    )
    console.print(f"[green]Updated {len(result)} document(s).[/]")


def upsert_document(datasource: LedgerDatasource, args) -> None:
    result = datasource.upsert(
        {"table": args.table, "document": args.document, "where": args.where}
    )
    console.print("[green]Upserted document.[/]")
    print_result(result)


def delete_documents(datasource: LedgerDatasource, args) -> None:
    repository = datasource.repository(args.table)
    summary = (
        f"Will delete documents in [bold]{repository.table}[/] matching {json.dumps(args.where)}."
    )
    console.print(f"[yellow]{summary}[/]")
    if not confirm("Proceed with these changes?", args.yes):
        return

    result = datasource.delete({"table": args.table, "json": args.where})
    console.print(f"[green]Deleted {len(result)} document(s).[/]")


COMMANDS = {
    "list": list_documents,
    "get": get_document,
    "create": create_document,
    "update": update_documents,
    "upsert": upsert_document,
    "delete": delete_documents,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="ledgerstore CLI")
    parser.add_argument("--table", default=config.table, help="Table name (QLDB_TABLE)")
    parser.add_argument("--ledger", default=config.ledger, help="Ledger name (QLDB_LEDGER)")
    parser.add_argument("--region", default=config.region, help="AWS region (AWS_REGION)")
    parser.add_argument("-y", "--yes", action="store_true", help="Skip confirmation prompts")
    subparsers = parser.add_subparsers(dest="command", required=True)

    list_parser = subparsers.add_parser("list", help="List documents")
    list_parser.add_argument("--where", type=parse_object, default={}, help="JSON predicate")

    get_parser = subparsers.add_parser("get", help="Show a document by id")
    get_parser.add_argument("id")

    create_parser = subparsers.add_parser("create", help="Insert a document")
    create_parser.add_argument("document", type=parse_object, help="JSON document")

    for name, help_text in (("update", "Update matching documents"), ("upsert", "Upsert a document")):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument("document", type=parse_object, help="JSON document")
        sub.add_argument("--where", type=parse_object, required=True, help="JSON predicate")

    delete_parser = subparsers.add_parser("delete", help="Delete matching documents")
    delete_parser.add_argument("--where", type=parse_object, required=True, help="JSON predicate")

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)
    configure_logging()

    datasource = LedgerDatasource(
        {"table": args.table, "ledger": args.ledger, "region": args.region}
    )
    COMMANDS[args.command](datasource, args)


if __name__ == "__main__":
    main()
