"""CLI interface for docfill."""

import asyncio
import logging
from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from docfill.config import DocfillConfig
from docfill.errors import DraftNotFoundError, MissingFieldsError, SchemaError, ValidationError

app = typer.Typer(
    name="docfill",
    help="Fill legal document templates through a conversation",
    add_completion=True,
    rich_markup_mode="rich",
)

console = Console()

SUPPORTED_DOCUMENTS = {".txt", ".md", ".html", ".htm"}
EXIT_WORDS = {"quit", "exit", ":q"}


def _setup_logging(verbose: bool = False) -> None:
    """Configure logging level."""
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=level,
        format="%(levelname)s: %(message)s",
    )
    # Suppress noisy libraries
    logging.getLogger("litellm").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)


def _config(output: str | None) -> DocfillConfig:
    if output:
        return DocfillConfig(output_dir=Path(output))
    return DocfillConfig()


def _store(config: DocfillConfig):
    from docfill.store import DraftStore

    return DraftStore(config.output_dir)


def _resolve_draft_id(store, draft_id: str) -> str:
    """Accept an explicit id or 'latest'."""
    if draft_id != "latest":
        return draft_id
    ids = store.list_ids()
    if not ids:
        console.print("[yellow]No drafts found.[/yellow] Run [cyan]docfill new[/cyan] first.")
        raise typer.Exit(1)
    return ids[0]


def _load_draft(store, draft_id: str):
    try:
        return store.load(draft_id)
    except DraftNotFoundError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None


def _build_reconciler(config: DocfillConfig, model: str | None):
    from docfill.oracle import LLMClient, LLMExtractionOracle, OracleAdapter
    from docfill.reconciler import CollectionReconciler

    effective_model = model or config.default_model
    try:
        config.validate_api_keys(effective_model)
    except ValueError as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    llm = LLMClient(model=effective_model, rpm=config.rpm)
    oracle = LLMExtractionOracle(llm, document_kind=config.document_kind)
    return CollectionReconciler(OracleAdapter(oracle), history_turns=config.history_turns)


def _print_progress(completeness: int, status: str, missing_labels: list[str]) -> None:
    color = "green" if completeness == 100 else "cyan"
    console.print(f"[{color}]{completeness}% complete[/{color}] ({status})")
    if missing_labels:
        console.print(f"  [dim]Still needed:[/dim] {', '.join(missing_labels)}")


def _run_one_turn(store, draft_id: str, message: str, reconciler, locks) -> bool:
    """Apply one message. Returns True when the draft reached completion."""
    from docfill.pipeline import run_turn

    try:
        outcome = asyncio.run(run_turn(store, draft_id, message, reconciler, locks))
    except ValidationError as e:
        console.print(f"[red]Sorry, something went wrong ({e}). Please try again.[/red]")
        return False
    except RuntimeError as e:
        console.print(f"[red]LLM error:[/red] {e}. Your draft is unchanged; please resend.")
        return False

    console.print(f"\n[bold magenta]Assistant:[/bold magenta] {outcome.assistant_message}\n")
    draft = store.load(draft_id)
    labels = [draft.field_schema.label_for(k) for k in outcome.missing_field_keys]
    _print_progress(outcome.completeness, outcome.status, labels)
    return outcome.status == "complete"


# ============================================================================
# Draft Commands
# ============================================================================


@app.command()
def new(
    document: str = typer.Argument(..., help="Template document (.txt, .md or .html)"),
    schema: str | None = typer.Option(None, "--schema", "-s", help="Field schema YAML/JSON (skips LLM discovery)"),
    save_schema: str | None = typer.Option(None, "--save-schema", help="Write the discovered schema to this YAML path"),
    model: str = typer.Option(None, help="LLM model (e.g. openai/gpt-4o-mini)"),
    output: str | None = typer.Option(None, "-o", help="Output directory"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
) -> None:
    """Create a draft from a template document."""
    _setup_logging(verbose)
    config = _config(output)

    doc_path = Path(document)
    if not doc_path.is_file():
        console.print(f"[red]Error:[/red] Not a file: {document}")
        raise typer.Exit(1)
    if doc_path.suffix.lower() not in SUPPORTED_DOCUMENTS:
        console.print(
            f"[red]Error:[/red] Unsupported document type {doc_path.suffix!r}. "
            "Convert it to text or HTML first."
        )
        raise typer.Exit(1)

    text = doc_path.read_text(encoding="utf-8")
    if not text.strip():
        console.print(f"[red]Error:[/red] Empty document: {document}")
        raise typer.Exit(1)

    from docfill.pipeline import create_draft, create_draft_from_schema
    from docfill.schema.loader import load_schema

    effective_model = model or config.default_model
    if not schema:
        try:
            config.validate_api_keys(effective_model)
        except ValueError as e:
            console.print(f"[red]Error:[/red] {e}")
            raise typer.Exit(1) from None

    try:
        if schema:
            draft = create_draft_from_schema(text, load_schema(Path(schema)), config.document_kind)
        else:
            from docfill.oracle import LLMClient

            console.print(f"[cyan]Discovering fields with[/cyan] {effective_model}...")
            llm = LLMClient(model=effective_model, rpm=config.rpm)
            draft = asyncio.run(create_draft(text, llm, config.document_kind))
            console.print(f"  Cost: ${llm.total_cost_usd:.4f}")
    except SchemaError as e:
        console.print(f"[red]Schema error:[/red] {e}")
        raise typer.Exit(1) from None
    except (RuntimeError, ValueError) as e:
        console.print(f"[red]Failed to process document:[/red] {e}")
        raise typer.Exit(1) from None

    if save_schema:
        from docfill.schema.loader import save_schema as write_schema

        write_schema(draft.field_schema, Path(save_schema))

    store = _store(config)
    path = store.save(draft)

    console.print()
    console.print(f"[green]Draft created:[/green] {draft.id}")
    console.print(f"  Fields: {len(draft.field_schema)} ({len(draft.field_schema.required_keys())} required)")
    console.print(f"  Saved: {path}")
    console.print()
    console.print(f"[bold magenta]Assistant:[/bold magenta] {draft.conversation.all()[-1].content}")
    console.print()
    console.print(f"Next: [cyan]docfill chat {draft.id}[/cyan]")


@app.command()
def chat(
    draft_id: str = typer.Argument("latest", help="Draft id (default: most recent)"),
    model: str = typer.Option(None, help="LLM model (e.g. openai/gpt-4o-mini)"),
    output: str | None = typer.Option(None, "-o", help="Output directory"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
) -> None:
    """Fill a draft interactively. Type 'quit' to stop."""
    _setup_logging(verbose)
    config = _config(output)
    store = _store(config)
    draft_id = _resolve_draft_id(store, draft_id)
    draft = _load_draft(store, draft_id)

    from docfill.pipeline import DraftLocks

    reconciler = _build_reconciler(config, model)
    locks = DraftLocks()

    last = draft.conversation.tail(1)
    if last and last[0].role == "assistant":
        console.print(f"[bold magenta]Assistant:[/bold magenta] {last[0].content}\n")

    while True:
        message = typer.prompt("You").strip()
        if not message:
            continue
        if message.lower() in EXIT_WORDS:
            break
        if _run_one_turn(store, draft_id, message, reconciler, locks):
            console.print()
            console.print(f"Next: [cyan]docfill render {draft_id}[/cyan]")
            break


@app.command()
def say(
    message: str = typer.Argument(..., help="Message to send"),
    draft_id: str = typer.Option("latest", "--draft", help="Draft id (default: most recent)"),
    model: str = typer.Option(None, help="LLM model (e.g. openai/gpt-4o-mini)"),
    output: str | None = typer.Option(None, "-o", help="Output directory"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
) -> None:
    """Send a single message to a draft."""
    _setup_logging(verbose)
    config = _config(output)
    store = _store(config)
    draft_id = _resolve_draft_id(store, draft_id)
    _load_draft(store, draft_id)

    from docfill.pipeline import DraftLocks

    reconciler = _build_reconciler(config, model)
    _run_one_turn(store, draft_id, message, reconciler, DraftLocks())


@app.command()
def status(
    draft_id: str = typer.Argument("latest", help="Draft id (default: most recent)"),
    output: str | None = typer.Option(None, "-o", help="Output directory"),
) -> None:
    """Show collection progress and field values for a draft."""
    config = _config(output)
    store = _store(config)
    draft = _load_draft(store, _resolve_draft_id(store, draft_id))

    from docfill.progress import is_filled, missing_required

    table = Table(title=f"Draft {draft.id}", show_header=True, header_style="bold cyan")
    table.add_column("Key", style="dim")
    table.add_column("Label")
    table.add_column("Type")
    table.add_column("Required", justify="center")
    table.add_column("Value")

    for f in draft.field_schema.fields:
        value = draft.collected_data.get(f.key)
        shown = value if is_filled(draft.collected_data, f.key) else "[dim]-[/dim]"
        table.add_row(f.key, f.label, f.type, "yes" if f.required else "", shown)

    console.print(table)
    missing = [f.label for f in missing_required(draft.field_schema, draft.collected_data)]
    _print_progress(draft.completeness, draft.status, missing)
    console.print(f"  Turns: {len(draft.conversation)}")
    if draft.is_rendered:
        console.print("  [green]Rendered[/green]")


@app.command()
def history(
    draft_id: str = typer.Argument("latest", help="Draft id (default: most recent)"),
    last: int = typer.Option(0, "-n", help="Only show the last N turns (0 = all)"),
    output: str | None = typer.Option(None, "-o", help="Output directory"),
) -> None:
    """Print the conversation for a draft."""
    config = _config(output)
    store = _store(config)
    draft = _load_draft(store, _resolve_draft_id(store, draft_id))

    turns = draft.conversation.tail(last) if last else draft.conversation.all()
    for turn in turns:
        who = "[bold magenta]Assistant[/bold magenta]" if turn.role == "assistant" else "[bold]You[/bold]"
        console.print(f"{who}: {turn.content}\n")


@app.command()
def render(
    draft_id: str = typer.Argument("latest", help="Draft id (default: most recent)"),
    to: str | None = typer.Option(None, "--to", help="Where to write the rendered document"),
    output: str | None = typer.Option(None, "-o", help="Output directory"),
    verbose: bool = typer.Option(False, "-v", "--verbose", help="Verbose logging"),
) -> None:
    """Substitute collected values into the template."""
    _setup_logging(verbose)
    config = _config(output)
    store = _store(config)
    draft_id = _resolve_draft_id(store, draft_id)
    _load_draft(store, draft_id)

    from docfill.pipeline import run_render

    try:
        text = run_render(store, draft_id, missing_marker=config.missing_marker)
    except MissingFieldsError as e:
        console.print("[yellow]Some required fields are still missing:[/yellow]")
        for label in e.missing_labels:
            console.print(f"  - {label}")
        console.print()
        console.print(f"Continue with: [cyan]docfill chat {draft_id}[/cyan]")
        raise typer.Exit(1) from None

    dest = Path(to) if to else config.output_dir / "rendered" / f"{draft_id}.txt"
    dest.parent.mkdir(parents=True, exist_ok=True)
    dest.write_text(text, encoding="utf-8")

    console.print("[green]Document rendered![/green]")
    console.print(f"  Output: {dest}")


@app.command()
def drafts(
    output: str | None = typer.Option(None, "-o", help="Output directory"),
) -> None:
    """List stored drafts."""
    config = _config(output)
    store = _store(config)
    ids = store.list_ids()

    if not ids:
        console.print("[yellow]No drafts found.[/yellow]")
        raise typer.Exit(0)

    table = Table(title="Drafts", show_header=True, header_style="bold cyan")
    table.add_column("Id", style="green")
    table.add_column("Status")
    table.add_column("Complete", justify="right")
    table.add_column("Fields", justify="right")
    table.add_column("Updated")

    for draft_id in ids:
        draft = store.load(draft_id)
        state = "rendered" if draft.is_rendered else draft.status
        table.add_row(
            draft.id, state, f"{draft.completeness}%",
            str(len(draft.field_schema)), draft.updated_at[:19],
        )

    console.print(table)


# ============================================================================
# Utility Commands
# ============================================================================


@app.command()
def init() -> None:
    """Initialize a docfill project in the current directory."""
    from docfill.config import PROJECT_FILE

    env_example_path = Path(".env.example")
    project_path = Path(PROJECT_FILE)

    if not env_example_path.exists() or typer.confirm("Overwrite existing .env.example?", default=False):
        env_template = """# docfill Configuration
# Copy this file to .env and fill in your API keys

# === LLM API Keys ===
# At least one required. Ollama needs no key (local models).
DOCFILL_OPENAI_API_KEY=
DOCFILL_ANTHROPIC_API_KEY=

# === Model Configuration ===
# Format: provider/model-name
DOCFILL_DEFAULT_MODEL=openai/gpt-4o-mini
"""
        env_example_path.write_text(env_template)
        console.print("[green]Created .env.example[/green]")

    if not project_path.exists() or typer.confirm(f"Overwrite existing {PROJECT_FILE}?", default=False):
        project_path.write_text(
            "# docfill project config\n"
            "# All commands pick up these settings automatically.\n\n"
            "# model: openai/gpt-4o-mini\n"
            "# output: output\n"
            "# document_kind: SAFE agreement\n"
            "# history_turns: 10\n"
            "# missing_marker: \"[MISSING]\"\n"
        )
        console.print(f"[green]Created {PROJECT_FILE}[/green]")

    console.print("\nNext steps:")
    console.print("  1. cp .env.example .env")
    console.print("  2. Add your API key to .env")
    console.print("  3. docfill new ./template.html")
    raise typer.Exit(0)


@app.command()
def info() -> None:
    """Display project configuration."""
    config = DocfillConfig()

    table = Table(title="docfill Project Info", show_header=True, header_style="bold cyan")
    table.add_column("Setting", style="dim")
    table.add_column("Value")

    table.add_row("Default Model", config.default_model)
    table.add_row("Document Kind", config.document_kind)
    table.add_row("History Turns", str(config.history_turns))
    table.add_row("Missing Marker", config.missing_marker or "(keep placeholder)")
    table.add_row("Output Directory", str(config.output_dir))
    table.add_row("Drafts", str(len(_store(config).list_ids())))

    console.print(table)
    raise typer.Exit(0)


if __name__ == "__main__":
    app()
