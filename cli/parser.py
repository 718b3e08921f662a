"""Command parser for CLI input."""

import shlex

from cli.models import CommandRequest, DownloadCommand, InfoCommand, LinkCommand


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


def parse_command(input_line: str) -> CommandRequest:
    """Parse user input into a command object.

    Args:
        input_line: Raw user input from REPL

    Returns:
        InfoCommand, LinkCommand or DownloadCommand

    Raises:
        ParseError: If command syntax is invalid
    """
    if not input_line.strip():
        raise ParseError("Empty command")

    try:
        tokens = shlex.split(input_line)
    except ValueError as e:
        raise ParseError(f"Invalid syntax: {e}")

    if not tokens:
        raise ParseError("Empty command")

    command_name = tokens[0]
    args = tokens[1:]

    if command_name == "info":
        return InfoCommand(share_url=_single_url(command_name, args))
    elif command_name == "link":
        return LinkCommand(share_url=_single_url(command_name, args))
    elif command_name == "download":
        return _parse_download(args)
    else:
        raise ParseError(f"Unknown command: {command_name}")


def _single_url(command_name: str, args: list[str]) -> str:
    if len(args) != 1:
        raise ParseError(f"{command_name} requires exactly one share URL")
    return args[0]


def _parse_download(args: list[str]) -> DownloadCommand:
    """Parse 'download <share-url> [output_path]' command."""
    if not args:
        raise ParseError("download requires a share URL")
    if len(args) > 2:
        raise ParseError("download accepts a share URL and an optional output path")

    output_path = args[1] if len(args) == 2 else None
    return DownloadCommand(share_url=args[0], output_path=output_path)
