"""
Donation repair utility - Fix legacy donation records in a registry file.

Repairs:
- missing visibility flags (default: shown)
- missing display handle (derived from the email local-part)
- missing name (``Anonymous``)
- fully anonymous records: if both name and handle are hidden, the amount
  is always shown

Accepts either a registry document or a legacy bare list of donations.
Writes ``<stem>_fixed.json`` next to the input unless ``--in-place``.
"""

import json
import logging
from pathlib import Path
from typing import Any

import click

from soulmark.domain.ledger import derive_display_handle
from soulmark.domain.models import enforce_visibility

logger = logging.getLogger(__name__)

_VISIBILITY_KEYS = {
    "show_name": "showName",
    "show_username": "showUsername",
    "show_amount": "showAmount",
}


def repair_donation(entry: dict[str, Any]) -> dict[str, Any]:
    """Return a repaired copy of one donation record."""
    repaired = dict(entry)

    visibility = repaired.get("visibility")
    visibility = dict(visibility) if isinstance(visibility, dict) else {}
    flags = {}
    for key, legacy in _VISIBILITY_KEYS.items():
        value = visibility.get(key, visibility.get(legacy))
        flags[key] = value if isinstance(value, bool) else True
    show_name, show_username, show_amount = enforce_visibility(
        flags["show_name"], flags["show_username"], flags["show_amount"]
    )
    repaired["visibility"] = {
        "show_name": show_name,
        "show_username": show_username,
        "show_amount": show_amount,
    }

    handle = repaired.pop("display_handle", None) or repaired.pop("username", None)
    repaired.pop("username", None)
    if not isinstance(handle, str) or not handle.strip():
        handle = derive_display_handle(repaired.get("email"))
    repaired["display_handle"] = handle

    name = repaired.get("name")
    if not isinstance(name, str) or not name.strip():
        repaired["name"] = "Anonymous"

    return repaired


def repair_payload(raw: Any) -> tuple[Any, int]:
    """
    Repair every donation in a parsed registry file.

    Returns:
        The repaired payload (same shape as the input) and the record count
    """
    if isinstance(raw, list):
        fixed = [repair_donation(d) for d in raw if isinstance(d, dict)]
        return fixed, len(fixed)

    if isinstance(raw, dict):
        donations = raw.get("donations")
        donations = donations if isinstance(donations, list) else []
        fixed = [repair_donation(d) for d in donations if isinstance(d, dict)]
        return {**raw, "donations": fixed}, len(fixed)

    raise click.ClickException("Registry file must contain a JSON object or list")


@click.command()
@click.argument("registry", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option("--output", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Output file path")
@click.option("--in-place", is_flag=True, help="Overwrite the input file")
def main(registry: Path, output: Path | None, in_place: bool) -> None:
    """Repair legacy donation records in REGISTRY."""
    logging.basicConfig(level=logging.INFO)

    try:
        raw = json.loads(registry.read_text(encoding="utf-8"))
    except ValueError as e:
        raise click.ClickException(f"Cannot parse {registry}: {e}") from e

    fixed, count = repair_payload(raw)

    if in_place:
        target = registry
    else:
        target = output or registry.with_name(f"{registry.stem}_fixed.json")
    target.write_text(json.dumps(fixed, indent=2), encoding="utf-8")

    logger.info("Repaired %d donation(s) from %s", count, registry)
    click.echo(f"Repair complete: {count} donation(s) saved to {target}")
    if not in_place:
        click.echo("Replace the original file only after verifying the entries.")


if __name__ == "__main__":
    main()
