#!/usr/bin/env python3
"""
CLI Interface - Interactive command-line chatbot.

This module provides a terminal interface for asking questions about the
active document. It supports:
- Free-form questions (same pipeline as the web API)
- Switching the active namespace (/namespace)
- Listing query rules (/rules)
- Index statistics (/stats)
- Help and commands (/help)

Run with:
    python -m doc_tutor
"""

import asyncio

from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt
from rich.table import Table

from doc_tutor import configure_logging
from doc_tutor.config import TAG_DOCUMENT, TAG_ERROR
from doc_tutor.errors import ValidationError
from doc_tutor.rag.generator import TutorPipeline, provenance_tag

# Rich console for beautiful output
console = Console()

_TAG_STYLES = {TAG_DOCUMENT: "green", TAG_ERROR: "red"}


def print_welcome():
    """Print welcome message and instructions."""
    welcome_text = """
[bold blue]Welcome to Document Tutor![/bold blue]

Ask me anything about the uploaded document. Answers are tagged with
where they came from:

• [green]Document Reference[/green] - taken from the document
• [yellow]GENERATED - NO RELEVANT INFORMATION[/yellow] - the document didn't cover it
• [red]ERROR[/red] - something went wrong

[dim]Type /help for all commands[/dim]
"""
    console.print(Panel(welcome_text, border_style="blue"))


def print_help():
    """Print help message with available commands."""
    table = Table(title="Available Commands", show_header=True, header_style="bold cyan")
    table.add_column("Command", style="cyan")
    table.add_column("Description", style="white")
    table.add_column("Example", style="dim")

    commands = [
        ("(any question)", "Ask about the document", "Who signed the order?"),
        ("/namespace [name]", "Show or set the active namespace", "/namespace lease-2024"),
        ("/rules", "List query override rules", "/rules"),
        ("/stats", "Show index statistics", "/stats"),
        ("/clear", "Clear the screen", "/clear"),
        ("/help", "Show this help message", "/help"),
        ("/exit", "Exit the chatbot", "/exit"),
    ]

    for cmd, desc, example in commands:
        table.add_row(cmd, desc, example)

    console.print(table)


def parse_command(user_input: str) -> tuple[str, list[str]]:
    """
    Parse user input into command and arguments.

    Returns:
        Tuple of (command, arguments)
        For regular questions, command is 'ask'
    """
    user_input = user_input.strip()

    if not user_input:
        return ("empty", [])

    if user_input.startswith("/"):
        parts = user_input[1:].split(maxsplit=1)
        command = parts[0].lower() if parts else ""
        args = parts[1].split() if len(parts) > 1 else []
        return (command, args)

    return ("ask", [user_input])


def handle_ask(pipeline: TutorPipeline, question: str, loop: asyncio.AbstractEventLoop):
    """
    Run a question through the pipeline and show the answer.

    The loop must live for the whole session: the Ollama client keeps
    pooled connections that are bound to the loop that opened them.
    """
    with console.status("[bold green]Searching the document...", spinner="dots"):
        response = loop.run_until_complete(pipeline.ask(question))

    answer = response["aiResponse"]
    tag = provenance_tag(answer)
    style = _TAG_STYLES.get(tag, "yellow")

    console.print(Panel(Markdown(answer), title=f"[bold]{tag}[/bold]", border_style=style))

    if response["results"]:
        table = Table(title="Matched Excerpts", show_header=True, header_style="bold cyan")
        table.add_column("Chunk", style="cyan")
        table.add_column("Score", style="green")
        table.add_column("Preview", style="white")
        for result in response["results"]:
            preview = result["text"].split("\n", 1)[-1][:80].replace("\n", " ")
            table.add_row(result["chunkNumber"], f"{result['score']:.4f}", preview)
        console.print(table)


def handle_namespace(pipeline: TutorPipeline, args: list[str]):
    """Handle /namespace command."""
    store = pipeline.retriever.namespace_store

    if not args:
        pointer = store.read_pointer()
        if pointer:
            console.print(f"Active namespace: [cyan]{pointer.namespace}[/cyan] "
                          f"[dim](updated {pointer.last_updated or '?'})[/dim]")
        else:
            console.print("[yellow]No active namespace - searching the default index.[/yellow]")
        return

    try:
        pointer = store.set_active_namespace(" ".join(args))
    except ValidationError as e:
        console.print(f"[red]{e.message}[/red]")
        return
    console.print(f"[green]Active namespace set to {pointer.namespace}[/green]")


def handle_rules(pipeline: TutorPipeline):
    """Handle /rules command."""
    rules = list(pipeline.retriever.rules)
    if not rules:
        console.print("[yellow]No query rules configured.[/yellow]")
        return

    table = Table(title="Query Rules", show_header=True, header_style="bold cyan")
    table.add_column("Phrase", style="cyan")
    table.add_column("Top K", style="white")
    table.add_column("Min Score", style="white")
    table.add_column("Canned Answer", style="dim")
    for rule in rules:
        table.add_row(
            rule.phrase,
            str(rule.top_k or "-"),
            str(rule.min_score if rule.min_score is not None else "-"),
            "yes" if rule.answer else "no",
        )
    console.print(table)


def handle_stats(pipeline: TutorPipeline):
    """Handle /stats command."""
    namespace = pipeline.retriever.namespace_store.get_active_namespace()
    stats = pipeline.retriever.vector_store.get_stats(namespace)

    table = Table(title="Index Statistics", show_header=True, header_style="bold cyan")
    table.add_column("Metric", style="white")
    table.add_column("Value", style="green")

    table.add_row("Default Index", stats["index_name"])
    table.add_row("Active Namespace", stats["namespace"] or "-")
    table.add_row("Chunks", str(stats["document_count"]))
    table.add_row("Namespaces", ", ".join(stats["namespaces"]) or "-")
    table.add_row("Storage Location", stats["location"])

    console.print(table)


def main():
    """Main CLI loop."""
    configure_logging("WARNING")
    print_welcome()

    try:
        pipeline = TutorPipeline()
    except Exception as e:
        console.print(f"[red]Error initializing: {e}[/red]")
        return

    console.print()

    loop = asyncio.new_event_loop()
    try:
        chat_loop(pipeline, loop)
    finally:
        loop.close()


def chat_loop(pipeline: TutorPipeline, loop: asyncio.AbstractEventLoop):
    """Read commands until the user exits."""
    while True:
        try:
            user_input = Prompt.ask("[bold cyan]You[/bold cyan]")
            command, args = parse_command(user_input)

            if command == "empty":
                continue

            elif command == "exit" or command == "quit":
                console.print("\n[bold blue]Goodbye![/bold blue]")
                break

            elif command == "help":
                print_help()

            elif command == "clear":
                console.clear()
                print_welcome()

            elif command == "namespace":
                handle_namespace(pipeline, args)

            elif command == "rules":
                handle_rules(pipeline)

            elif command == "stats":
                handle_stats(pipeline)

            elif command == "ask":
                handle_ask(pipeline, args[0], loop)

            else:
                full_input = f"/{command} {' '.join(args)}".strip()
                console.print("[yellow]Unknown command. Treating as question...[/yellow]")
                handle_ask(pipeline, full_input, loop)

            console.print()

        except KeyboardInterrupt:
            console.print("\n\n[bold blue]Goodbye![/bold blue]")
            break
        except Exception as e:
            console.print(f"[red]Error: {e}[/red]")
            console.print("[dim]Type /help for available commands[/dim]")


if __name__ == "__main__":
    main()
