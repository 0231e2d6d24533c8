#!/usr/bin/env python3

import json
import logging
from pathlib import Path

import click
from pydantic import ValidationError

import config
from lektion.models.lessons import Lesson
from lektion.utils.html_codec import html_to_rich_doc
from lektion.utils.migration import lesson_block_pages, migrate_lesson
from lektion.utils.reading_focus import html_lines
from lektion.utils.rich_doc import count_words


def _read_text(path: Path) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except UnicodeDecodeError as e:
        raise click.ClickException(f"{path} is not valid UTF-8: {e}")


def _read_json(path: Path):
    try:
        return json.loads(_read_text(path))
    except json.JSONDecodeError as e:
        raise click.ClickException(f"{path} is not valid JSON: {e}")


def _load_lesson(raw) -> Lesson:
    if not isinstance(raw, dict):
        raise click.ClickException("Each lesson must be a JSON object.")
    try:
        return Lesson.model_validate(raw)
    except ValidationError as e:
        raise click.ClickException(f"Invalid lesson: {e}")


@click.group()
@click.option("--env", "env_name", help="the config environment to use")
@click.pass_context
def cli(ctx, env_name):
    try:
        cfg = config.load_config_object(env_name)
    except ValueError as e:
        raise click.ClickException(str(e))
    logging.basicConfig(level=cfg.LOG_LEVEL.upper(), format="%(levelname)s %(name)s: %(message)s")
    ctx.obj = cfg


@cli.command("migrate-lesson")
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--to",
    "target",
    type=click.Choice(["rich", "blocks"]),
    default="rich",
    help="the page shape to write",
)
@click.option("--force", is_flag=True, help="re-migrate lessons that are already migrated")
@click.option(
    "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="where to write the migrated JSON (default: stdout)",
)
def migrate_lesson_file(path, target, force, output):
    """Migrate the lessons in a JSON file.

    The file holds one lesson object or a list of them. We print the migration
    log for each lesson, then write the migrated lessons as JSON.
    """
    raw = _read_json(path)
    is_list = isinstance(raw, list)
    lessons = [_load_lesson(item) for item in (raw if is_list else [raw])]

    migrated = []
    num_failed = 0
    for i, lesson in enumerate(lessons, start=1):
        click.echo(f"--- Migrating lesson {i}/{len(lessons)}: {lesson.title} ---", err=True)
        result = migrate_lesson(lesson, force=force)
        for line in result.log:
            click.echo(line, err=True)
        if result.errors:
            num_failed += 1

        data = result.lesson.to_json()
        if target == "blocks":
            data["blockPages"] = [p.to_json() for p in lesson_block_pages(result.lesson)]
        migrated.append(data)

    click.echo(
        f"Total: {len(lessons)}, Success: {len(lessons) - num_failed}, Failed: {num_failed}",
        err=True,
    )

    out = json.dumps(migrated if is_list else migrated[0], ensure_ascii=False, indent=2)
    if output:
        output.write_text(out + "\n", encoding="utf-8")
    else:
        click.echo(out)


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
def word_count(path):
    """Count the words in an HTML file."""
    doc = html_to_rich_doc(_read_text(path))
    click.echo(count_words(doc))


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--width", type=click.IntRange(min=1), help="the column budget per line")
@click.option(
    "--window",
    type=click.IntRange(min=1),
    help="print a blank line after every WINDOW lines",
)
@click.pass_obj
def reading_lines(cfg, path, width, window):
    """Print an HTML file as reading-focus lines."""
    width = width or cfg.LINE_WIDTH
    window = window or cfg.READING_FOCUS_LINES
    lines = html_lines(_read_text(path), width)
    for i, line in enumerate(lines):
        if i and i % window == 0:
            click.echo()
        click.echo(line)


if __name__ == "__main__":
    cli()
