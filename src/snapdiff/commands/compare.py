"""snapdiff compare command -- reference vs candidate snapshot check."""

from __future__ import annotations

import json
import sys
from pathlib import Path

import click
from PIL import Image

from snapdiff.compare import DEFAULT_SUBPIXEL_THRESHOLD, ComparisonConfig
from snapdiff.image import PillowImage
from snapdiff.strategy import Attachment, ImageDiffing


def _write_attachments(attachments: list[Attachment], directory: Path) -> None:
    """Write each attachment as <name>.png into *directory*."""
    directory.mkdir(parents=True, exist_ok=True)
    for attachment in attachments:
        (directory / f"{attachment.name}.png").write_bytes(attachment.png_bytes())


def _json_output(
    reference: PillowImage,
    candidate: PillowImage,
    config: ComparisonConfig,
    message: str | None,
    diff_path: Path | None,
) -> str:
    """Format the comparison outcome as JSON string."""
    return json.dumps(
        {
            "match": message is None,
            "message": message,
            "precision": config.precision,
            "subpixel_threshold": config.subpixel_threshold,
            "diff_image": str(diff_path) if diff_path else None,
            "reference_size": list(reference.size),
            "candidate_size": list(candidate.size),
        }
    )


@click.command("compare")
@click.argument("reference", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.argument("candidate", type=click.Path(exists=True, dir_okay=False, path_type=Path))
@click.option(
    "--precision",
    default=1.0,
    show_default=True,
    envvar="SNAPDIFF_PRECISION",
    type=click.FloatRange(0.0, 1.0),
    help="Fraction of pixels that must match.",
)
@click.option(
    "--subpixel-threshold",
    default=DEFAULT_SUBPIXEL_THRESHOLD,
    show_default=True,
    envvar="SNAPDIFF_SUBPIXEL_THRESHOLD",
    type=click.IntRange(0, 255),
    help="Byte difference at which two subpixels count as different.",
)
@click.option(
    "--diff-output",
    default=None,
    type=click.Path(dir_okay=False, path_type=Path),
    help="Write diff visualization PNG on mismatch.",
)
@click.option(
    "--attachments-dir",
    default=None,
    type=click.Path(file_okay=False, path_type=Path),
    help="Write reference, failure and difference PNGs on mismatch.",
)
@click.option("--json", "use_json", is_flag=True, help="JSON output.")
def compare_cmd(
    reference: Path,
    candidate: Path,
    precision: float,
    subpixel_threshold: int,
    diff_output: Path | None,
    attachments_dir: Path | None,
    use_json: bool,
) -> None:
    """Compare a CANDIDATE image against a REFERENCE snapshot.

    Exit 0 if the images match, exit 1 if they differ,
    exit 2 if either file cannot be read as an image or a diff
    artifact cannot be written.
    """
    try:
        old = PillowImage.open(reference)
        new = PillowImage.open(candidate)
    except (OSError, Image.DecompressionBombError) as exc:
        click.echo(f"error: {exc}", err=True)
        sys.exit(2)

    config = ComparisonConfig(precision=precision, subpixel_threshold=subpixel_threshold)
    outcome = ImageDiffing(config).diff(old, new)

    message: str | None = None
    diff_path: Path | None = None
    if outcome is not None:
        message, attachments = outcome
        difference = next((a for a in attachments if a.name == "difference"), None)
        try:
            if diff_output is not None and difference is not None:
                diff_output.write_bytes(difference.png_bytes())
                diff_path = diff_output
            if attachments_dir is not None:
                _write_attachments(attachments, attachments_dir)
        except OSError as exc:
            click.echo(f"error: {exc}", err=True)
            sys.exit(2)

    if use_json:
        click.echo(_json_output(old, new, config, message, diff_path))
    elif message is None:
        click.echo("match")
    else:
        click.echo(f"mismatch: {message}")

    sys.exit(0 if message is None else 1)
