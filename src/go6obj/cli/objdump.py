"""
go6objdump - Object Stream Lister
=================================

This module implements the command-line interface for listing the records
of an object stream, with symbol handles resolved to names and virtual
lines resolved to source positions.

Usage Examples
--------------
List all instruction records:
    $ go6objdump main.6

Include name declarations:
    $ go6objdump main.6 --names

Show the files and imports reconstructed from HISTORY records:
    $ go6objdump main.6 --history

Limit output and write to a file:
    $ go6objdump main.6 --count 50 -o listing.txt

One JSON object per record:
    $ go6objdump main.6 --json
"""

import json
import logging
from pathlib import Path
from typing import Optional

import click

from go6obj import __version__
from go6obj.cli.errors import handle_cli_exception
from go6obj.constants import OpcodeSpace
from go6obj.errors import DecodeError
from go6obj.reader import ObjectReader
from go6obj.records import format_record


def setup_logging(verbose: bool) -> None:
    """Configure logging based on verbosity."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )


def printable(text: str) -> str:
    """Show undecodable name bytes as \\xNN escapes."""
    return text.encode("utf-8", "surrogateescape").decode("utf-8", "backslashreplace")


def history_summary(reader: ObjectReader) -> list[str]:
    """Format the files and imports a reader has reconstructed so far."""
    history, imports = reader.files()
    lines = ["", "Files:"]
    for name in history.files():
        lines.append(f"  {name}")
    lines.append("Imports:")
    for line, library in sorted(imports.items()):
        lines.append(f"  {line:>6}  {library}")
    return lines


# =============================================================================
# CLI Definition
# =============================================================================

@click.command()
@click.argument(
    "input_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
)
@click.option(
    "-o", "--output",
    type=click.Path(dir_okay=False, path_type=Path),
    help="Output file (default: stdout)",
)
@click.option(
    "-c", "--count",
    type=click.IntRange(min=0),
    default=None,
    help="Maximum number of records to list (default: all)",
)
@click.option(
    "--names/--no-names",
    default=False,
    help="List name declaration records too (default: instructions only)",
)
@click.option(
    "--history",
    is_flag=True,
    help="Append the reconstructed file list and imports",
)
@click.option(
    "--json", "as_json",
    is_flag=True,
    help="Emit one JSON object per record",
)
@click.option(
    "-v", "--verbose",
    is_flag=True,
    help="Verbose output (debug logging)",
)
@click.version_option(version=__version__, prog_name="go6objdump")
def main(
    input_file: Path,
    output: Optional[Path],
    count: Optional[int],
    names: bool,
    history: bool,
    as_json: bool,
    verbose: bool,
) -> None:
    """
    List the records of an object stream.

    INPUT_FILE is the object file to decode.

    Opcode values can be overridden with the GO6OBJ_OP_LOW, GO6OBJ_OP_HISTORY,
    GO6OBJ_OP_NAME, GO6OBJ_OP_SIGNED_NAME and GO6OBJ_OP_HIGH environment
    variables.
    """
    setup_logging(verbose)

    try:
        opcodes = OpcodeSpace.from_env()
        reader = ObjectReader.from_file(input_file, opcodes=opcodes)
    except (OSError, ValueError) as e:
        handle_cli_exception(click.BadParameter(str(e)), verbose)

    output_lines = []
    failure: Optional[DecodeError] = None
    listed = 0
    try:
        for record in reader:
            if record.is_declaration and not names:
                continue
            if count is not None and listed >= count:
                break
            if as_json:
                output_lines.append(json.dumps(record.to_dict(), allow_nan=False))
            else:
                output_lines.append(format_record(record, opcodes))
            listed += 1
    except DecodeError as e:
        failure = e

    if history and not as_json:
        output_lines.extend(history_summary(reader))

    result = printable("\n".join(output_lines) + "\n") if output_lines else ""
    if output:
        try:
            output.write_text(result, encoding="utf-8")
        except OSError as e:
            handle_cli_exception(e, verbose)
        if verbose:
            click.echo(f"Output written to: {output}", err=True)
    else:
        click.echo(result, nl=False)

    if verbose:
        click.echo(f"Records decoded: {reader.record_count}", err=True)

    if failure is not None:
        handle_cli_exception(failure, verbose)


# =============================================================================
# Entry Point
# =============================================================================

if __name__ == "__main__":
    main()
