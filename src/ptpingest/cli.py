"""Command-line interface for ptpingest."""

from __future__ import annotations

import logging
import sys
from pathlib import Path

import click

from .camera import discover_cameras
from .config import DEFAULT_CHUNK_SIZE, MIB, IngestConfig, TransferMode
from .errors import SessionCloseError
from .orchestrator import Ingestor, RunSummary
from .ptp.transport import USBTransportError


def _parse_usb_id(ctx: click.Context, param: click.Parameter, value: str | None) -> int | None:
    """Parse a hex USB vendor or product ID."""
    if value is None:
        return None
    try:
        return int(value, 16)
    except ValueError:
        raise click.BadParameter(f"{value!r} is not a hexadecimal USB ID") from None


@click.command()
@click.version_option(package_name="ptpingest")
@click.option(
    "--dest",
    type=click.Path(file_okay=False, path_type=Path),
    default=".",
    show_default=True,
    help="Root directory of the year/month/day tree",
)
@click.option(
    "--chunk-size",
    type=click.IntRange(min=1),
    default=DEFAULT_CHUNK_SIZE // MIB,
    show_default=True,
    help="Largest partial transfer, in MiB",
)
@click.option(
    "--mode",
    type=click.Choice([m.value for m in TransferMode]),
    default=TransferMode.AUTO.value,
    show_default=True,
    help="Whole-object or chunked retrieval",
)
@click.option(
    "--vendor-id",
    type=str,
    default=None,
    callback=_parse_usb_id,
    help="Only cameras with this USB vendor ID (hex, e.g., 0x04a9)",
)
@click.option(
    "--product-id",
    type=str,
    default=None,
    callback=_parse_usb_id,
    help="Only cameras with this USB product ID (hex, e.g., 0x32f7)",
)
@click.option("-v", "--verbose", is_flag=True, help="Log protocol details")
def main(
    dest: Path,
    chunk_size: int,
    mode: str,
    vendor_id: int | None,
    product_id: int | None,
    verbose: bool,
) -> None:
    """ptpingest - download photos from PTP cameras.

    Copies every file from every attached camera into DEST/year/month/day,
    skipping files already downloaded.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    config = IngestConfig(destination=dest, chunk_size=chunk_size * MIB, mode=TransferMode(mode))

    try:
        cameras = discover_cameras(vendor_id, product_id)
    except USBTransportError as e:
        click.echo(f"Error: {e}", err=True)
        click.echo("\nTroubleshooting:", err=True)
        click.echo("  1. Install libusb for your platform", err=True)
        click.echo("  2. Check USB permissions (may need udev rules on Linux)", err=True)
        sys.exit(1)

    if not cameras:
        click.echo("No PTP cameras found.")
        click.echo("Set the camera's USB mode to PTP (not Mass Storage) and connect it.")
        return

    try:
        summary = Ingestor(config).run(cameras)
    except SessionCloseError as e:
        click.echo(f"Fatal: {e}", err=True)
        click.echo("The camera may be in an inconsistent state; power-cycle it.", err=True)
        sys.exit(1)

    _output_summary(summary)


def _output_summary(summary: RunSummary) -> None:
    """Output run results in human-readable format."""
    click.echo(f"Cameras:    {summary.devices} processed, {summary.devices_skipped} skipped")
    click.echo(f"Storages:   {summary.volumes} processed, {summary.volumes_skipped} skipped")
    click.echo(
        f"Downloaded: {summary.downloaded:,} files ({summary.bytes_written / MIB:,.2f} MiB)"
    )
    click.echo(f"Duplicates: {summary.duplicates:,}")
    click.echo(f"Failed:     {summary.failed:,}")


if __name__ == "__main__":
    main()
