"""CLI entry point.

Provides the ``orgflow`` command with:
- validate / create: check or build a workflow from a JSON or YAML file
- generate: build a workflow from a natural-language prompt
- preset / presets: instantiate or list ready-made workflows
- show / list: browse persisted workflows
- serve: run the API server
"""

import asyncio
import json
from pathlib import Path
from typing import Annotated, Any, Optional

import typer
import yaml
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from orgflow.exceptions import OrgflowError, ValidationError
from orgflow.logging_config import configure_logging

app = typer.Typer(
    name="orgflow",
    help="Build organization workflow templates from declarative definitions",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


@app.callback()
def main(
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Enable debug logging"),
    ] = False,
) -> None:
    """Configure logging before any command runs."""
    configure_logging("DEBUG" if verbose else None)


def _load_definition(path: Path) -> dict[str, Any]:
    """Read a definition file (JSON is parsed as YAML)."""
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as e:
        console.print(f"[red]Could not read {path}: {e}[/red]")
        raise typer.Exit(code=1) from e

    if not isinstance(data, dict):
        console.print(f"[red]{path} does not contain a workflow definition object[/red]")
        raise typer.Exit(code=1)
    return data


def _print_validation_errors(exc: ValidationError) -> None:
    table = Table(title=f"Invalid definition ({len(exc.errors)} errors)", show_header=True)
    table.add_column("Problem", style="red")
    for error in exc.errors:
        table.add_row(error)
    console.print(table)


def _print_build_result(result: Any) -> None:
    workflow = result.workflow
    initial = workflow.initial_step.name if workflow.initial_step else "-"
    console.print(
        Panel(
            f"[bold]Name:[/bold] {workflow.name}\n"
            f"[bold]Organization:[/bold] {workflow.organization_id}\n"
            f"[bold]Department:[/bold] {workflow.department_id or 'N/A'}\n"
            f"[bold]Initial step:[/bold] {initial}\n"
            f"[bold]Steps:[/bold] {len(workflow.steps)}\n"
            f"[bold]Transitions:[/bold] {result.transitions_created}",
            title=f"Workflow {workflow.id}",
            border_style="green",
        )
    )

    if result.skipped_transitions:
        table = Table(title="Skipped transitions", show_header=True)
        table.add_column("From", style="cyan")
        table.add_column("To")
        table.add_column("Action")
        table.add_column("Reason", style="yellow")
        for skipped in result.skipped_transitions:
            table.add_row(
                skipped.from_step,
                skipped.to_step,
                skipped.action_name or "-",
                skipped.reason,
            )
        console.print(table)


def _run_build(coro: Any) -> None:
    """Run a build coroutine and report its outcome."""
    try:
        result = asyncio.run(coro)
    except ValidationError as e:
        _print_validation_errors(e)
        raise typer.Exit(code=1) from e
    except OrgflowError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(code=1) from e

    _print_build_result(result)


@app.command()
def validate(
    file: Annotated[Path, typer.Argument(help="Definition file (JSON or YAML)")],
) -> None:
    """Validate a workflow definition without persisting it."""
    from orgflow.workflows.validator import find_unresolved_references, validate_definition

    data = _load_definition(file)
    try:
        defn = validate_definition(data)
    except ValidationError as e:
        _print_validation_errors(e)
        raise typer.Exit(code=1) from e

    console.print(
        f"[green]✅ '{defn.workflow_name}' is valid "
        f"({len(defn.steps)} steps, {defn.transition_count} transitions)[/green]"
    )
    for ref in find_unresolved_references(defn):
        console.print(f"[yellow]⚠ Transition will be skipped: {ref}[/yellow]")


@app.command()
def create(
    file: Annotated[Path, typer.Argument(help="Definition file (JSON or YAML)")],
    strict: Annotated[
        Optional[bool],  # noqa: UP007
        typer.Option(
            "--strict/--lenient",
            help="Fail on unresolvable transitions instead of skipping them",
        ),
    ] = None,
) -> None:
    """Build a workflow from a definition file."""
    from orgflow.workflows.builder import create_structured_workflow

    data = _load_definition(file)
    _run_build(create_structured_workflow(data, strict=strict))


@app.command()
def generate(
    prompt: Annotated[str, typer.Argument(help="Description of the workflow")],
    org: Annotated[str, typer.Option("--org", "-o", help="Organization ID")],
    dept: Annotated[
        Optional[str],  # noqa: UP007
        typer.Option("--dept", "-d", help="Department ID"),
    ] = None,
    dry_run: Annotated[
        bool,
        typer.Option("--dry-run", help="Print the generated definition without building it"),
    ] = False,
) -> None:
    """Generate a workflow from a natural-language prompt."""
    from orgflow.workflows import generator

    if not dry_run:
        _run_build(generator.generate_and_create_workflow(prompt, org, dept))
        return

    try:
        defn = asyncio.run(generator.generate_workflow_definition(prompt, org, dept))
    except ValidationError as e:
        _print_validation_errors(e)
        raise typer.Exit(code=1) from e
    except OrgflowError as e:
        console.print(f"[red]❌ {e}[/red]")
        raise typer.Exit(code=1) from e

    console.print_json(json.dumps(defn.to_wire()))


@app.command()
def preset(
    name: Annotated[str, typer.Argument(help="Preset name (see 'orgflow presets')")],
    org: Annotated[str, typer.Option("--org", "-o", help="Organization ID")],
    dept: Annotated[
        Optional[str],  # noqa: UP007
        typer.Option("--dept", "-d", help="Department ID"),
    ] = None,
) -> None:
    """Build a ready-made workflow for an organization."""
    from orgflow.workflows.presets import PRESETS, create_preset_workflow

    if name not in PRESETS:
        console.print(f"[red]Unknown preset '{name}'. Available: {', '.join(sorted(PRESETS))}[/red]")
        raise typer.Exit(code=1)

    _run_build(create_preset_workflow(name, org, department_id=dept))


@app.command()
def presets() -> None:
    """List available presets."""
    from orgflow.workflows.presets import list_presets

    table = Table(title="Presets", show_header=True)
    table.add_column("Name", style="cyan")
    table.add_column("Description")
    for name, description in list_presets().items():
        table.add_row(name, description)
    console.print(table)


@app.command()
def show(
    workflow_id: Annotated[str, typer.Argument(help="Workflow ID")],
) -> None:
    """Show a workflow with its steps and transitions."""
    asyncio.run(_show_workflow(workflow_id))


async def _show_workflow(workflow_id: str) -> None:
    """Render a workflow graph."""
    from orgflow.dal import WorkflowRepository
    from orgflow.storage import get_session

    async with get_session() as session:
        workflow = await WorkflowRepository(session).get_with_graph(workflow_id)

        if not workflow:
            console.print(f"[red]Workflow {workflow_id} not found.[/red]")
            return

        step_names = {step.id: step.name for step in workflow.steps}
        action_names = {
            action.id: action.name for step in workflow.steps for action in step.actions
        }

        steps_table = Table(title="Steps", show_header=True)
        steps_table.add_column("#", justify="right")
        steps_table.add_column("Name", style="cyan")
        steps_table.add_column("Assignee")
        steps_table.add_column("Fields")
        steps_table.add_column("Actions")
        for step in workflow.steps:
            rule = step.assignee_logic
            assignee = "-"
            if rule is not None:
                target = rule.specific_role_id or rule.specific_member_id
                assignee = f"{rule.assignee_type.value}" + (f" ({target})" if target else "")
            marker = " [green]●[/green]" if step.id == workflow.initial_step_id else ""
            steps_table.add_row(
                str(step.order),
                step.name + marker,
                assignee,
                ", ".join(f.field_name for f in step.form_fields) or "-",
                ", ".join(a.name for a in step.actions) or "-",
            )

        transitions_table = Table(title="Transitions", show_header=True)
        transitions_table.add_column("From", style="cyan")
        transitions_table.add_column("To", style="cyan")
        transitions_table.add_column("Action")
        transitions_table.add_column("Priority", justify="right")
        transitions_table.add_column("Conditions")
        for transition in workflow.transitions:
            conditions = "; ".join(
                f"{c.source_field_name or c.source_type.value} {c.operator.value} "
                f"{c.comparison_value!r}"
                for c in transition.conditions
            )
            transitions_table.add_row(
                step_names.get(transition.from_step_id, transition.from_step_id),
                step_names.get(transition.to_step_id, transition.to_step_id),
                action_names.get(transition.action_id, "-") if transition.action_id else "-",
                str(transition.priority),
                conditions or "-",
            )

        header = (
            f"[bold]Name:[/bold] {workflow.name}\n"
            f"[bold]Organization:[/bold] {workflow.organization_id}\n"
            f"[bold]Trigger:[/bold] {workflow.trigger_type.value}\n"
            f"[bold]Active:[/bold] {'yes' if workflow.is_active else 'no'}\n"
            f"[bold]Description:[/bold] {workflow.description or 'N/A'}"
        )

    console.print(Panel(header, title=f"Workflow {workflow_id}", border_style="blue"))
    console.print(steps_table)
    console.print(transitions_table)


@app.command(name="list")
def list_workflows(
    org: Annotated[str, typer.Option("--org", "-o", help="Organization ID")],
    limit: Annotated[
        int,
        typer.Option("--limit", "-l", help="Maximum workflows to show"),
    ] = 50,
) -> None:
    """List an organization's workflows."""
    asyncio.run(_list_workflows(org, limit))


async def _list_workflows(organization_id: str, limit: int) -> None:
    """List workflows from database."""
    from orgflow.dal import WorkflowRepository
    from orgflow.storage import get_session

    async with get_session() as session:
        repo = WorkflowRepository(session)
        workflows = await repo.list_by_organization(organization_id, limit=limit)
        total = await repo.count(organization_id)

        if not workflows:
            console.print(f"[yellow]No workflows found for organization {organization_id}.[/yellow]")
            return

        # Extract data while session is active
        rows = [
            (
                w.id,
                w.name,
                w.trigger_type.value,
                "[green]active[/green]" if w.is_active else "[dim]inactive[/dim]",
                w.created_at.strftime("%Y-%m-%d %H:%M") if w.created_at else "-",
            )
            for w in workflows
        ]

    table = Table(title=f"Workflows ({len(rows)}/{total})", show_header=True)
    table.add_column("ID", style="cyan")
    table.add_column("Name")
    table.add_column("Trigger")
    table.add_column("Status", justify="center")
    table.add_column("Created")
    for row in rows:
        table.add_row(*row)

    console.print(table)


@app.command()
def serve(
    host: Annotated[
        Optional[str],  # noqa: UP007
        typer.Option("--host", "-h", help="Host to bind to"),
    ] = None,
    port: Annotated[
        Optional[int],  # noqa: UP007
        typer.Option("--port", "-p", help="Port to bind to"),
    ] = None,
    reload: Annotated[
        bool,
        typer.Option("--reload", "-r", help="Enable auto-reload for development"),
    ] = False,
) -> None:
    """Start the orgflow API server."""
    import uvicorn

    from orgflow.settings import get_settings

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    console.print(
        Panel(
            f"[bold green]Starting orgflow API Server[/bold green]\n"
            f"Host: {host}\n"
            f"Port: {port}\n"
            f"Reload: {reload}",
            title="orgflow",
            border_style="green",
        )
    )

    uvicorn.run(
        "orgflow.api.main:get_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        log_level="info",
    )


if __name__ == "__main__":
    app()
