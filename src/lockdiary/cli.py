"""lockdiary CLI - PIN-locked personal diary."""

import json
import logging
import sys

import click

from .config import load_config
from .core.entries import DiaryEntry
from .errors import AuthError, DiaryError
from .workflows import (
    add_entry,
    edit_entry,
    get_attachments,
    get_gate,
    get_store,
    list_entries,
    remove_entry,
    resolve_image,
)


def _fail(e: Exception) -> None:
    click.echo(f"Error: {e}", err=True)
    sys.exit(1)


def _entry_to_dict(entry: DiaryEntry, image: str | None) -> dict:
    return {
        "id": entry.id,
        "created_at": entry.created_at,
        "text": entry.text,
        "image_ref": entry.image_ref,
        "image": image,
    }


def _show_entry(entry: DiaryEntry, image: str | None) -> None:
    click.echo(f"[{entry.id}] {entry.created_at}")
    if entry.text:
        click.echo(f"  {entry.text}")
    if entry.image_ref:
        click.echo(f"  image: {image or '(image unavailable)'}")


def _warn_grant(saved) -> None:
    if saved.grant_failed:
        click.echo(
            f"Warning: {saved.attachment.error}. The image may not be available after a restart.",
            err=True,
        )


@click.group()
@click.version_option()
@click.option("--pin", envvar="LOCKDIARY_PIN", default=None, help="Unlock PIN (prompted if omitted)")
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def main(ctx, pin: str | None, debug: bool):
    """lockdiary - a PIN-locked personal diary."""
    if debug:
        logging.basicConfig(
            format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            level=logging.DEBUG,
        )

    config = load_config()
    gate = get_gate(config)

    if pin is None:
        if gate.is_set:
            pin = click.prompt("Enter your PIN", hide_input=True)
        else:
            pin = click.prompt(
                f"Set a new {gate.length}-digit PIN", hide_input=True, confirmation_prompt=True
            )

    try:
        if gate.unlock(pin):
            click.echo("PIN set.", err=True)
    except AuthError as e:
        _fail(e)

    ctx.obj = {"config": config, "gate": gate, "pin": pin}


@main.command("list")
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def list_cmd(obj, as_json: bool):
    """List entries, most recent first."""
    store = get_store(obj["config"])
    attachments = get_attachments(obj["config"])
    try:
        entries = list_entries(store)
    except DiaryError as e:
        _fail(e)

    if store.last_corruption:
        click.echo(f"Warning: {store.last_corruption}", err=True)

    rows = []
    for entry in entries:
        resource = resolve_image(attachments, entry)
        rows.append((entry, str(resource) if resource else None))

    if as_json:
        click.echo(json.dumps([_entry_to_dict(e, img) for e, img in rows], indent=2))
        return

    if not rows:
        click.echo("No entries yet.")
        return

    for entry, image in rows:
        _show_entry(entry, image)
        click.echo()


@main.command()
@click.argument("text", required=False, default="")
@click.option("--image", "image_locator", default=None, help="Path or URL of an image to attach")
@click.pass_obj
def add(obj, text: str, image_locator: str | None):
    """Write a new entry."""
    try:
        saved = add_entry(
            get_store(obj["config"]), get_attachments(obj["config"]), text, image_locator
        )
    except DiaryError as e:
        _fail(e)

    _warn_grant(saved)
    click.echo(f"Entry {saved.entry.id} saved.")


@main.command()
@click.argument("entry_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def show(obj, entry_id: int, as_json: bool):
    """Show one entry."""
    try:
        entry = get_store(obj["config"]).get(entry_id)
    except DiaryError as e:
        _fail(e)

    resource = resolve_image(get_attachments(obj["config"]), entry)
    image = str(resource) if resource else None
    if as_json:
        click.echo(json.dumps(_entry_to_dict(entry, image), indent=2))
    else:
        _show_entry(entry, image)


@main.command()
@click.argument("entry_id", type=int)
@click.option("--text", default=None, help="New text (default: keep current text)")
@click.option("--image", "image_locator", default=None, help="Replace the image")
@click.option("--remove-image", is_flag=True, help="Remove the image")
@click.pass_obj
def edit(obj, entry_id: int, text: str | None, image_locator: str | None, remove_image: bool):
    """Edit an entry's text or image."""
    if image_locator and remove_image:
        raise click.UsageError("--image and --remove-image are mutually exclusive")

    try:
        saved = edit_entry(
            get_store(obj["config"]),
            get_attachments(obj["config"]),
            entry_id,
            text=text,
            image_locator=image_locator,
            remove_image=remove_image,
        )
    except DiaryError as e:
        _fail(e)

    _warn_grant(saved)
    click.echo(f"Entry {entry_id} updated.")


@main.command()
@click.argument("entry_id", type=int)
@click.option("--yes", is_flag=True, help="Do not ask for confirmation")
@click.pass_obj
def delete(obj, entry_id: int, yes: bool):
    """Delete an entry."""
    if not yes:
        click.confirm(
            "Are you sure you want to delete this diary entry? This action cannot be undone.",
            abort=True,
        )

    try:
        remove_entry(get_store(obj["config"]), get_attachments(obj["config"]), entry_id)
    except DiaryError as e:
        _fail(e)

    click.echo(f"Entry {entry_id} deleted.")


@main.command()
@click.pass_obj
def grants(obj):
    """List persisted image grants."""
    items = get_attachments(obj["config"]).grants()
    if not items:
        click.echo("No image grants.")
        return

    for grant in items:
        click.echo(f"{grant.granted_at:%Y-%m-%d %H:%M}  {grant.kind:4}  {grant.ref}")


@main.command("set-pin")
@click.option("--new-pin", prompt="New PIN", hide_input=True, confirmation_prompt=True)
@click.pass_obj
def set_pin(obj, new_pin: str):
    """Change the unlock PIN."""
    try:
        obj["gate"].change(obj["pin"], new_pin)
    except AuthError as e:
        _fail(e)

    click.echo("PIN changed.")
