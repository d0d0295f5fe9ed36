"""Command-line interface for tt."""

import functools
import json
import logging
import sys
from datetime import date
from pathlib import Path
from typing import List, Optional

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .completion import CompleteResult
from .config import ConfigModel, load_config
from .dates import parse_date
from .exceptions import TTError
from .storage import Storage
from .tasks import CreateOptions, ListFilter, TaskService, describe_recurrence
from .todo import Task
from .views import View

console = Console()
err_console = Console(stderr=True)


def setup_logging(level: str, verbose: bool = False) -> None:
    """Route tt_cli logs through rich."""
    logger = logging.getLogger("tt_cli")
    logger.setLevel(logging.DEBUG if verbose else getattr(logging, level.upper(), logging.WARNING))
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(console=err_console, show_path=False))


def reports_errors(func):
    """Turn domain errors into a one-line message and exit status 1."""
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except TTError as e:
            err_console.print(f"[red]Error:[/red] {e}")
            sys.exit(1)
    return wrapper


def get_service(ctx: click.Context) -> TaskService:
    return ctx.obj["service"]


def parse_date_arg(value: Optional[str]) -> Optional[date]:
    if value is None:
        return None
    return parse_date(value)


def date_or_clear(words, clear: bool) -> Optional[date]:
    """Parse a date given as one or more words, or None with --clear."""
    text = " ".join(words).strip()
    if clear and text:
        raise click.UsageError("give a date or --clear, not both")
    if clear:
        return None
    if not text:
        raise click.UsageError("give a date or --clear")
    return parse_date(text)


def format_task_for_display(task: Task, config: ConfigModel) -> str:
    """Format a task as a single rich-markup line."""
    parts = [f"[dim]{task.id}[/dim]"]
    parts.append("[green]✓[/green]" if task.is_done else "○")
    parts.append(f"[bold]{task.title}[/bold]" if task.is_container else task.title)
    if task.planned_date:
        parts.append(f"[blue]{task.planned_date.strftime(config.date_format)}[/blue]")
    if task.due_date:
        parts.append(f"[red]⚑ {task.due_date.strftime(config.date_format)}[/red]")
    if task.has_recurrence:
        parts.append(f"[magenta]↻ {describe_recurrence(task)}[/magenta]")
    if task.tags:
        parts.append(f"[cyan]{' '.join('#' + tag for tag in task.tags)}[/cyan]")
    return " ".join(parts)


def render_tasks(tasks: List[Task], title: str, config: ConfigModel) -> None:
    if not tasks:
        console.print(f"[dim]No tasks in {title}.[/dim]")
        return

    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("ID", justify="right", style="dim")
    table.add_column("Title")
    table.add_column("Planned", style="blue")
    table.add_column("Due", style="red")
    table.add_column("Repeats", style="magenta")
    table.add_column("Tags", style="cyan")
    for task in tasks:
        table.add_row(
            str(task.id),
            task.title,
            task.planned_date.strftime(config.date_format) if task.planned_date else "",
            task.due_date.strftime(config.date_format) if task.due_date else "",
            describe_recurrence(task) if task.has_recurrence else "",
            " ".join(task.tags),
        )
    console.print(table)


@click.group()
@click.option("--data-dir", type=click.Path(file_okay=False), help="Directory holding tasks and config")
@click.option("--verbose", "-v", is_flag=True, help="Verbose output")
@click.pass_context
def main(ctx, data_dir, verbose):
    """tt - a personal task manager."""
    config_path = Path(data_dir).expanduser() / "config.yaml" if data_dir else None
    config = load_config(config_path)
    if data_dir:
        config.data_dir = str(Path(data_dir).expanduser())
    setup_logging(config.log_level, verbose)

    storage = Storage(config)
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["service"] = TaskService(storage, strict_regeneration=config.strict_regeneration)


@main.command()
@click.argument("title", nargs=-1, required=True)
@click.option("--description", "-d", default="", help="Task notes")
@click.option("--project", "-p", help="Project name")
@click.option("--area", "-a", help="Area name")
@click.option("--plan", "planned", help="Planned date (today, +3d, friday, 2025-01-15)")
@click.option("--due", help="Due date")
@click.option("--someday", is_flag=True, help="Park the task in someday")
@click.option("--every", "recurrence", help="Recurrence (daily, every mon,fri, 3d after done)")
@click.option("--end", help="Recurrence end date")
@click.option("--tag", "-t", "tags", multiple=True, help="Tag (repeatable)")
@click.pass_context
@reports_errors
def add(ctx, title, description, project, area, planned, due, someday, recurrence, end, tags):
    """Add a task."""
    options = CreateOptions(
        description=description,
        project=project,
        area=area,
        planned_date=parse_date_arg(planned),
        due_date=parse_date_arg(due),
        someday=someday,
        recurrence=recurrence,
        recurrence_end=parse_date_arg(end),
        tags=list(tags),
    )
    task = get_service(ctx).create_task(" ".join(title), options)
    console.print(f"[green]Added[/green] {format_task_for_display(task, ctx.obj['config'])}")


def print_completion(result: CompleteResult, config: ConfigModel) -> None:
    console.print(f"[green]Completed[/green] {format_task_for_display(result.completed, config)}")
    if result.next_task is not None:
        console.print(f"  [magenta]Next:[/magenta] {format_task_for_display(result.next_task, config)}")
    elif result.regeneration_error is not None:
        console.print(f"  [yellow]Warning:[/yellow] {result.regeneration_error}")


@main.command()
@click.argument("ids", nargs=-1, type=int, required=True)
@click.pass_context
def done(ctx, ids):
    """Complete tasks; recurring tasks get their next occurrence."""
    config = ctx.obj["config"]
    try:
        results = get_service(ctx).complete(list(ids))
    except TTError as e:
        for result in e.partial_results:
            print_completion(result, config)
        err_console.print(f"[red]Error:[/red] {e}")
        sys.exit(1)

    for result in results:
        print_completion(result, config)


@main.command()
@click.argument("ids", nargs=-1, type=int, required=True)
@click.pass_context
@reports_errors
def undo(ctx, ids):
    """Reopen completed tasks."""
    for task in get_service(ctx).uncomplete(list(ids)):
        console.print(f"[yellow]Reopened[/yellow] {format_task_for_display(task, ctx.obj['config'])}")


@main.command()
@click.argument("ids", nargs=-1, type=int, required=True)
@click.pass_context
@reports_errors
def delete(ctx, ids):
    """Delete tasks."""
    for task in get_service(ctx).delete(list(ids)):
        console.print(f"[red]Deleted[/red] {task.id} {task.title}")


@main.command()
@click.argument("task_id", type=int)
@click.pass_context
@reports_errors
def defer(ctx, task_id):
    """Move a task to someday."""
    task = get_service(ctx).defer(task_id)
    console.print(f"Deferred {format_task_for_display(task, ctx.obj['config'])}")


@main.command()
@click.argument("task_id", type=int)
@click.pass_context
@reports_errors
def activate(ctx, task_id):
    """Move a someday task back to active."""
    task = get_service(ctx).activate(task_id)
    console.print(f"Activated {format_task_for_display(task, ctx.obj['config'])}")


@main.command()
@click.argument("task_id", type=int)
@click.argument("when", nargs=-1)
@click.option("--clear", is_flag=True, help="Remove the planned date")
@click.pass_context
@reports_errors
def plan(ctx, task_id, when, clear):
    """Set or clear a task's planned date.

    \b
    Examples:
      tt plan 5 tomorrow
      tt plan 5 next friday
      tt plan 5 --clear
    """
    task = get_service(ctx).set_planned_date(task_id, date_or_clear(when, clear))
    console.print(f"Planned {format_task_for_display(task, ctx.obj['config'])}")


@main.command()
@click.argument("task_id", type=int)
@click.argument("when", nargs=-1)
@click.option("--clear", is_flag=True, help="Remove the due date")
@click.pass_context
@reports_errors
def due(ctx, task_id, when, clear):
    """Set or clear a task's due date."""
    task = get_service(ctx).set_due_date(task_id, date_or_clear(when, clear))
    console.print(f"Due {format_task_for_display(task, ctx.obj['config'])}")


@main.command()
@click.argument("task_id", type=int)
@click.option("--title", help="New title")
@click.option("--description", help="New notes")
@click.option("--project", "-p", help="Move into a project")
@click.option("--area", "-a", help="Move into an area")
@click.option("--plan", "planned", help="Planned date")
@click.option("--due", help="Due date")
@click.option("--tag", "-t", "add_tags", multiple=True, help="Add a tag (repeatable)")
@click.option("--untag", "remove_tags", multiple=True, help="Remove a tag (repeatable)")
@click.option("--clear-project", is_flag=True, help="Take the task out of its project")
@click.option("--clear-area", is_flag=True, help="Take the task out of its area")
@click.option("--clear-plan", is_flag=True, help="Remove the planned date")
@click.option("--clear-due", is_flag=True, help="Remove the due date")
@click.pass_context
@reports_errors
def edit(ctx, task_id, title, description, project, area, planned, due, add_tags, remove_tags,
         clear_project, clear_area, clear_plan, clear_due):
    """Edit a task's details; without options, show the task.

    \b
    Examples:
      tt edit 1 --title "New title"
      tt edit 1 --project Work
      tt edit 1 --due tomorrow --tag urgent
      tt edit 1 --clear-project
    """
    for value, flag, option in [(project, clear_project, "project"), (area, clear_area, "area"),
                                (planned, clear_plan, "plan"), (due, clear_due, "due")]:
        if value and flag:
            raise click.UsageError(f"cannot use both --{option} and --clear-{option}")
    if project and area:
        raise click.UsageError("cannot use both --project and --area")

    # Parse dates before changing anything
    planned_date = parse_date_arg(planned)
    due_date = parse_date_arg(due)

    service = get_service(ctx)
    task = service.get(task_id)
    changes = []
    if title is not None:
        task = service.set_title(task_id, title)
        changes.append("title")
    if description is not None:
        task = service.set_description(task_id, description)
        changes.append("description")
    if project or clear_project:
        task = service.set_project(task_id, project)
        changes.append("project" if project else "project cleared")
    if area or clear_area:
        task = service.set_area(task_id, area)
        changes.append("area" if area else "area cleared")
    if planned_date or clear_plan:
        task = service.set_planned_date(task_id, planned_date)
        changes.append("planned date" if planned_date else "planned date cleared")
    if due_date or clear_due:
        task = service.set_due_date(task_id, due_date)
        changes.append("due date" if due_date else "due date cleared")
    if add_tags or remove_tags:
        tags = (set(task.tags) | {t.strip() for t in add_tags}) - {t.strip() for t in remove_tags}
        task = service.set_tags(task_id, list(tags))
        changes.append("tags")

    config = ctx.obj["config"]
    if not changes:
        console.print(format_task_for_display(task, config))
        if task.description:
            console.print(task.description)
        return
    console.print(f"Edited {', '.join(changes)}: {format_task_for_display(task, config)}")


@main.command()
@click.argument("task_id", type=int)
@click.argument("pattern", nargs=-1)
@click.option("--clear", is_flag=True, help="Clear recurrence from task")
@click.option("--pause", is_flag=True, help="Pause recurrence (keeps rule)")
@click.option("--resume", is_flag=True, help="Resume paused recurrence")
@click.option("--end", help="Set recurrence end date")
@click.option("--show", is_flag=True, help="Show current recurrence info")
@click.pass_context
@reports_errors
def recur(ctx, task_id, pattern, clear, pause, resume, end, show):
    """Set, clear, or manage task recurrence.

    \b
    Examples:
      tt recur 5 every monday
      tt recur 5 3d after done
      tt recur 5 --pause
      tt recur 5 --end 2025-12-31
    """
    service = get_service(ctx)
    if show:
        task = service.get(task_id)
    elif clear:
        task = service.clear_recurrence(task_id)
    elif pause:
        task = service.pause_recurrence(task_id)
    elif resume:
        task = service.resume_recurrence(task_id)
    elif pattern:
        task = service.set_recurrence(task_id, " ".join(pattern), parse_date_arg(end))
    elif end:
        task = service.set_recurrence_end(task_id, parse_date(end))
    else:
        raise click.UsageError("recurrence pattern required (e.g. 'daily', 'every monday', '3d after done')")

    console.print(f"{task.id} {task.title}: [magenta]{describe_recurrence(task)}[/magenta]")


@main.command(name="list")
@click.argument("view", required=False, type=click.Choice([v.value for v in View]))
@click.option("--sort", "sort_spec", help="Sort spec, e.g. due:desc,title")
@click.option("--project", "-p", help="Only tasks in this project")
@click.option("--area", "-a", help="Only tasks in this area")
@click.option("--tag", "-t", "tag_name", help="Only tasks with this tag")
@click.option("--search", "-S", "query", help="Only tasks whose title contains this text")
@click.option("--json", "as_json", is_flag=True, help="Output JSON")
@click.pass_context
@reports_errors
def list_tasks(ctx, view, sort_spec, project, area, tag_name, query, as_json):
    """List tasks in a view (default from config)."""
    config = ctx.obj["config"]
    view = View(view or config.default_view)
    service = get_service(ctx)
    filters = ListFilter(project=project, area=area, tag=tag_name, search=query)
    if view == View.LOGBOOK:
        tasks = service.filter_tasks(service.list_completed(), filters)
    else:
        tasks = service.list_view(view, sort_spec or config.get_sort(view.value), filters=filters)

    if as_json:
        click.echo(json.dumps([task.to_dict() for task in tasks], indent=2))
    else:
        render_tasks(tasks, view.value.title(), config)


@main.command()
@click.argument("query", nargs=-1, required=True)
@click.option("--sort", "sort_spec", help="Sort spec, e.g. due:desc,title")
@click.pass_context
@reports_errors
def search(ctx, query, sort_spec):
    """Find open tasks by title."""
    text = " ".join(query)
    tasks = get_service(ctx).search(text, sort_spec)
    render_tasks(tasks, f"Search: {text}", ctx.obj["config"])


@main.command()
@click.option("--since", help="Only tasks completed on or after this date")
@click.pass_context
@reports_errors
def log(ctx, since):
    """Show completed tasks, newest first."""
    config = ctx.obj["config"]
    tasks = get_service(ctx).list_completed(parse_date_arg(since))
    render_tasks(tasks, "Logbook", config)


@main.command()
@click.argument("task_id", type=int)
@click.argument("tag")
@click.pass_context
@reports_errors
def tag(ctx, task_id, tag):
    """Add a tag to a task."""
    task = get_service(ctx).add_tag(task_id, tag)
    console.print(format_task_for_display(task, ctx.obj["config"]))


@main.command()
@click.argument("task_id", type=int)
@click.argument("tag")
@click.pass_context
@reports_errors
def untag(ctx, task_id, tag):
    """Remove a tag from a task."""
    task = get_service(ctx).remove_tag(task_id, tag)
    console.print(format_task_for_display(task, ctx.obj["config"]))


@main.command()
@click.pass_context
def tags(ctx):
    """List tags with their open task counts."""
    for name, count in get_service(ctx).list_tags().items():
        console.print(f"[cyan]#{name}[/cyan] {count}")


@main.group()
def project():
    """Manage projects."""


@project.command(name="add")
@click.argument("name", nargs=-1, required=True)
@click.option("--area", "-a", help="Area name")
@click.pass_context
@reports_errors
def project_add(ctx, name, area):
    """Create a project."""
    created = get_service(ctx).create_project(" ".join(name), area)
    console.print(f"[green]Added project[/green] {created.id} {created.title}")


@project.command(name="list")
@click.pass_context
def project_list(ctx):
    """List open projects."""
    render_tasks(get_service(ctx).list_projects(), "Projects", ctx.obj["config"])


@project.command(name="rename")
@click.argument("name")
@click.argument("new_name")
@click.pass_context
@reports_errors
def project_rename(ctx, name, new_name):
    """Rename a project."""
    renamed = get_service(ctx).rename_project(name, new_name)
    console.print(f"Renamed project {renamed.id} to {renamed.title}")


@project.command(name="delete")
@click.argument("name")
@click.pass_context
@reports_errors
def project_delete(ctx, name):
    """Delete a project and its tasks."""
    for task in get_service(ctx).delete_project(name):
        console.print(f"[red]Deleted[/red] {task.id} {task.title}")


@main.group()
def area():
    """Manage areas."""


@area.command(name="add")
@click.argument("name", nargs=-1, required=True)
@click.pass_context
@reports_errors
def area_add(ctx, name):
    """Create an area."""
    created = get_service(ctx).create_area(" ".join(name))
    console.print(f"[green]Added area[/green] {created.id} {created.name}")


@area.command(name="list")
@click.pass_context
def area_list(ctx):
    """List areas."""
    for item in get_service(ctx).list_areas():
        console.print(f"[dim]{item.id}[/dim] {item.name}")


@area.command(name="rename")
@click.argument("name")
@click.argument("new_name")
@click.pass_context
@reports_errors
def area_rename(ctx, name, new_name):
    """Rename an area."""
    renamed = get_service(ctx).rename_area(name, new_name)
    console.print(f"Renamed area {renamed.id} to {renamed.name}")


@area.command(name="delete")
@click.argument("name")
@click.pass_context
@reports_errors
def area_delete(ctx, name):
    """Delete an area; its tasks stay but leave the area."""
    deleted = get_service(ctx).delete_area(name)
    console.print(f"[red]Deleted area[/red] {deleted.id} {deleted.name}")


if __name__ == "__main__":
    main()
