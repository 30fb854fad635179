"""Command parser for CLI input."""

import shlex

from cli.models import (
    BlobsCommand,
    CommandRequest,
    CopyCommand,
    DeleteCommand,
    FetchCommand,
    ListCommand,
    SendCommand,
    StageCommand,
    UploadCommand,
)


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


def parse_command(input_line: str) -> CommandRequest:
    """Parse user input into a CommandRequest object.

    Args:
        input_line: Raw user input from REPL

    Returns:
        CommandRequest object

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

    if command_name == "upload":
        return _parse_upload(args)
    elif command_name == "send":
        return SendCommand(path=_single_arg("send", "<path>", args))
    elif command_name == "list":
        if args:
            raise ParseError("list takes no arguments")
        return ListCommand()
    elif command_name == "blobs":
        if len(args) > 1:
            raise ParseError("blobs takes at most 1 argument: [container]")
        return BlobsCommand(container=args[0] if args else None)
    elif command_name == "copy":
        file_name, container = _name_and_optional("copy", "<file> [container]", args)
        return CopyCommand(file_name=file_name, container=container)
    elif command_name == "delete":
        return DeleteCommand(file_name=_single_arg("delete", "<file>", args))
    elif command_name == "fetch":
        file_name, output_path = _name_and_optional("fetch", "<file> [output_path]", args)
        return FetchCommand(file_name=file_name, output_path=output_path)
    elif command_name == "stage":
        blob_name, container = _name_and_optional("stage", "<blob> [container]", args)
        return StageCommand(blob_name=blob_name, container=container)
    else:
        raise ParseError(f"Unknown command: {command_name}")


def _parse_upload(args: list[str]) -> UploadCommand:
    """Parse 'upload <path> [container] [--no-relay]' command."""
    relay = True
    if "--no-relay" in args:
        relay = False
        args = [a for a in args if a != "--no-relay"]

    if not args or len(args) > 2:
        raise ParseError("upload requires 1 or 2 arguments: <path> [container] [--no-relay]")
    if not relay and len(args) == 2:
        raise ParseError("upload cannot take a container together with --no-relay")

    return UploadCommand(
        path=args[0],
        container=args[1] if len(args) > 1 else None,
        relay=relay,
    )


def _single_arg(command: str, usage: str, args: list[str]) -> str:
    if len(args) != 1:
        raise ParseError(f"{command} requires exactly 1 argument: {usage}")
    return args[0]


def _name_and_optional(command: str, usage: str, args: list[str]) -> tuple[str, str | None]:
    if not args or len(args) > 2:
        raise ParseError(f"{command} requires 1 or 2 arguments: {usage}")
    return args[0], args[1] if len(args) > 1 else None
