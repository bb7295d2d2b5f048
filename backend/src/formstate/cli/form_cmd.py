"""Form definition CLI commands: fields and check."""

import asyncio
import importlib
from pathlib import Path

import click
import yaml

from formstate.form.controller import FormController, SubmitStatus
from formstate.metadata.loader import FormDefinition, FormLoader
from formstate.validation.types import ValidationMode


def _load_definition(path: Path, form_name: str | None) -> FormDefinition:
    """Load the requested form, or the only form found at ``path``."""
    loader = FormLoader(path)
    try:
        loader.load_all()
    except ValueError as e:
        click.echo(click.style(f"Error: {e}", fg="red"), err=True)
        raise SystemExit(1)

    forms = loader.list_forms()
    if form_name is None:
        if len(forms) != 1:
            click.echo(
                f"Error: {len(forms)} forms found at {path}; choose one with --form "
                f"({', '.join(sorted(forms)) or 'none'})",
                err=True,
            )
            raise SystemExit(1)
        form_name = forms[0]

    definition = loader.get_form(form_name)
    if definition is None:
        click.echo(f"Error: form '{form_name}' not found at {path}", err=True)
        raise SystemExit(1)
    return definition


@click.command()
@click.argument("path", type=click.Path(exists=True, path_type=Path))
@click.option("--form", "form_name", default=None, help="Form name when PATH holds several.")
@click.option(
    "--import",
    "modules",
    multiple=True,
    help="Module to import before loading (registers @validator functions).",
)
def fields(path: Path, form_name: str | None, modules: tuple[str, ...]):
    """List the fields of a form definition."""
    _import_modules(modules)
    definition = _load_definition(path, form_name)

    click.echo(f"{definition.display_name} ({definition.name}, mode: {definition.mode.value})")
    for field_def in definition.fields:
        checks = ", ".join(field_def.rule.describe()) if field_def.rule else "no rules"
        click.echo(f"  {field_def.name}: {checks}")


@click.command()
@click.argument("path", type=click.Path(exists=True, path_type=Path))
@click.option(
    "--values",
    "values_path",
    required=True,
    type=click.Path(exists=True, path_type=Path),
    help="YAML or JSON file with field values.",
)
@click.option("--form", "form_name", default=None, help="Form name when PATH holds several.")
@click.option(
    "--mode",
    type=click.Choice([m.value for m in ValidationMode]),
    default=None,
    envvar="FORMSTATE_MODE",
    help="Override the form's validation mode.",
)
@click.option(
    "--import",
    "modules",
    multiple=True,
    help="Module to import before loading (registers @validator functions).",
)
def check(
    path: Path,
    values_path: Path,
    form_name: str | None,
    mode: str | None,
    modules: tuple[str, ...],
):
    """Validate a set of values against a form definition."""
    _import_modules(modules)
    definition = _load_definition(path, form_name)

    with open(values_path) as f:
        values = yaml.safe_load(f) or {}
    if not isinstance(values, dict):
        click.echo(f"Error: {values_path} must contain a mapping of field values", err=True)
        raise SystemExit(1)

    overrides = {"mode": ValidationMode(mode)} if mode else {}
    form = FormController.from_definition(definition, **overrides)

    for name in values:
        if definition.get_field(name) is None:
            click.echo(click.style(f"Warning: '{name}' is not a field of this form", fg="yellow"))

    async def run():
        for name, value in values.items():
            if definition.get_field(name) is not None:
                form.set_field_value(name, value)
        await form.wait_for_validation()
        return await form.submit()

    result = asyncio.run(run())

    if result.status is SubmitStatus.INVALID:
        for name, error in result.errors.items():
            click.echo(click.style(f"  ✗ {name}: {error}", fg="red"))
        click.echo(
            click.style(f"\n{len(result.errors)} invalid field(s)", fg="red", bold=True)
        )
        raise SystemExit(1)

    click.echo(click.style("All fields are valid.", fg="green", bold=True))


def _import_modules(modules: tuple[str, ...]) -> None:
    for module in modules:
        try:
            importlib.import_module(module)
        except ImportError as e:
            click.echo(click.style(f"Error: cannot import '{module}': {e}", fg="red"), err=True)
            raise SystemExit(1)
