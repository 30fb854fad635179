"""CLI constants and configuration."""

from prompt_toolkit.styles import Style

COMMANDS = ["upload", "send", "list", "blobs", "copy", "delete", "fetch", "stage", "clear", "exit", "help"]

PATH_COMMANDS = ("upload", "send")

STYLE = Style.from_dict(
    {
        "prompt": "#2E86DE bold",
        "command": "#0088ff bold",
    }
)

BLUE = "\033[38;2;46;134;222m"
GREEN = "\033[32m"
RESET = "\033[0m"

LOGO = f"""{BLUE}
  ___ _             _   ___     _
 / __| |_ _  _ _ _ | |_| _ \\___| |__ _ _  _
| (__| ' \\ || | ' \\| / /   / -_) / _` | || |
 \\___|_||_\\_,_|_||_|_\\_\\_|_\\___|_\\__,_|\\_, |
                                       |__/
{RESET}"""

WELCOME_TITLE = "ChunkRelay CLI - chunked uploads to cloud storage"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "chunkrelay> "

HELP_TEXT = """Available commands:
  upload <path> [container] [--no-relay]   Upload file in chunks, then copy it to a container
  send <path>                              Upload file in a single request (small files)
  list                                     List files staged on the relay
  blobs [container]                        List blobs in a cloud container
  copy <file> [container]                  Copy a staged file to a cloud container
  delete <file>                            Delete a staged file
  fetch <file> [output_path]               Download a staged file
  stage <blob> [container]                 Pull a blob into the relay's staging directory
  clear                                    Clear screen and redisplay welcome message
  help                                     Show this help
  exit                                     Exit REPL

The container defaults to 'default_container' in ~/.chunkrelay/config.json.
Examples:
  upload ./video.mp4
  upload report.pdf archive
  upload big.iso --no-relay
  blobs archive
  fetch report-638412345678901234.pdf downloads/report.pdf"""
