import click
from flask import current_app
from flask.cli import AppGroup

from blockcms.extensions import custom_elements
from blockcms.application.cms.manage_custom_elements import import_custom_elements

custom_elements_cli = AppGroup("custom-elements", help="Manage custom element definitions.")


@custom_elements_cli.command("refresh")
def refresh_command():
    """Drop the registry cache and reload definitions."""
    definitions = custom_elements().refresh()
    click.echo(f"Loaded {len(definitions)} custom element definition(s).")


@custom_elements_cli.command("import")
@click.argument("path", required=False)
@click.option("--system", is_flag=True, help="Mark imported definitions as system elements.")
@click.option("--overwrite", is_flag=True, help="Replace definitions that already exist.")
def import_command(path, system, overwrite):
    """Import JSON definition files from PATH (default CUSTOM_ELEMENTS_PATH)."""
    path = path or current_app.config.get("CUSTOM_ELEMENTS_PATH")
    if not path:
        raise click.UsageError("No PATH given and CUSTOM_ELEMENTS_PATH is not set.")

    counts = import_custom_elements(path=path, is_system=system, overwrite=overwrite)
    click.echo(
        f"Imported custom elements: {counts['created']} created, "
        f"{counts['updated']} updated, {counts['skipped']} skipped."
    )


def register_cli(app):
    app.cli.add_command(custom_elements_cli)
