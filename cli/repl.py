"""REPL with prompt_toolkit for user interaction."""

import os
import sys
from prompt_toolkit import PromptSession
from prompt_toolkit.history import InMemoryHistory

from cli.commands import (
    close_client,
    handle_blobs,
    handle_copy,
    handle_delete,
    handle_fetch,
    handle_list,
    handle_send,
    handle_stage,
    handle_upload,
)
from cli.completer import RelayCompleter
from cli.constants import (
    HELP_TEXT,
    LOGO,
    PROMPT_TEXT,
    STYLE,
    WELCOME_HELP,
    WELCOME_TITLE,
)
from cli.models import (
    BlobsCommand,
    CopyCommand,
    DeleteCommand,
    FetchCommand,
    ListCommand,
    SendCommand,
    StageCommand,
    UploadCommand,
)
from cli.parser import ParseError, parse_command


def clear_screen() -> None:
    """Clear the terminal screen (cross-platform)."""
    if sys.platform == "win32":
        os.system("cls")
    else:
        os.system("clear")


def show_welcome() -> None:
    """Display logo and welcome text."""
    print(LOGO)
    print(WELCOME_TITLE)
    print(WELCOME_HELP)


async def dispatch_command(cmd_obj) -> str:
    """Dispatch parsed command to appropriate handler."""
    if isinstance(cmd_obj, UploadCommand):
        return await handle_upload(cmd_obj)
    elif isinstance(cmd_obj, SendCommand):
        return await handle_send(cmd_obj)
    elif isinstance(cmd_obj, ListCommand):
        return await handle_list(cmd_obj)
    elif isinstance(cmd_obj, BlobsCommand):
        return await handle_blobs(cmd_obj)
    elif isinstance(cmd_obj, CopyCommand):
        return await handle_copy(cmd_obj)
    elif isinstance(cmd_obj, DeleteCommand):
        return await handle_delete(cmd_obj)
    elif isinstance(cmd_obj, FetchCommand):
        return await handle_fetch(cmd_obj)
    elif isinstance(cmd_obj, StageCommand):
        return await handle_stage(cmd_obj)
    else:
        return f"Unknown command type: {type(cmd_obj)}"


async def repl_loop() -> None:
    """Start interactive REPL with prompt_toolkit."""
    history = InMemoryHistory()
    session: PromptSession = PromptSession(
        completer=RelayCompleter(), history=history, style=STYLE
    )

    clear_screen()
    show_welcome()

    try:
        while True:
            try:
                user_input = await session.prompt_async([("class:prompt", PROMPT_TEXT)])

                if not user_input.strip():
                    continue

                if user_input.strip() == "exit":
                    print("Goodbye!")
                    break

                if user_input.strip() == "help":
                    print(HELP_TEXT)
                    continue

                if user_input.strip() == "clear":
                    clear_screen()
                    show_welcome()
                    continue

                cmd_obj = parse_command(user_input)
                result = await dispatch_command(cmd_obj)
                print(result)

            except ParseError as e:
                print(f"Error: {e}")
            except KeyboardInterrupt:
                continue
            except EOFError:
                print("\nGoodbye!")
                break
    finally:
        await close_client()
