"""CLI constants and configuration."""

from prompt_toolkit.styles import Style

COMMANDS = [
    "token", "logout", "info", "preview", "preview-public", "close", "download",
    "upload", "uploads", "dismiss", "share", "unshare", "share-folder",
    "unshare-folder", "clear", "exit", "help",
]

STYLE = Style.from_dict(
    {
        "prompt": "#2E86DE bold",
        "command": "#0088ff bold",
    }
)

BLUE = "\033[38;2;46;134;222m"
GREEN = "\033[32m"
RED = "\033[31m"
RESET = "\033[0m"

LOGO = f"""{BLUE}
 ███████╗███████╗ ██████╗██╗   ██╗██████╗ ███████╗██╗   ██╗ █████╗ ██╗   ██╗██╗  ████████╗
 ██╔════╝██╔════╝██╔════╝██║   ██║██╔══██╗██╔════╝██║   ██║██╔══██╗██║   ██║██║  ╚══██╔══╝
 ███████╗█████╗  ██║     ██║   ██║██████╔╝█████╗  ██║   ██║███████║██║   ██║██║     ██║
 ╚════██║██╔══╝  ██║     ██║   ██║██╔══██╗██╔══╝  ╚██╗ ██╔╝██╔══██║██║   ██║██║     ██║
 ███████║███████╗╚██████╗╚██████╔╝██║  ██║███████╗ ╚████╔╝ ██║  ██║╚██████╔╝███████╗██║
 ╚══════╝╚══════╝ ╚═════╝ ╚═════╝ ╚═╝  ╚═╝╚══════╝  ╚═══╝  ╚═╝  ╚═╝ ╚═════╝ ╚══════╝╚═╝
{RESET}"""

WELCOME_TITLE = "SecureVault CLI - File Preview, Upload and Sharing"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "vault> "

CONFIG_DIR = ".securevault"
CONFIG_FILENAME = "config.json"

TEXT_PREVIEW_MAX_LINES = 40

HELP_TEXT = """Available commands:
  token <bearer-token>                       Store the bearer token for authenticated requests
  logout                                     Forget the stored token
  info <file-id>                             Show file metadata
  preview <file-id>                          Preview a file (images, text, PDF, audio, video)
  preview-public <share-token>               Preview a publicly shared file
  close                                      Close the current preview
  download <file-id> [output_dir]            Download a file (defaults to the configured download dir)
  upload [--folder ID] [--tags a,b] files... Upload local files, optionally into a folder
  uploads                                    Show active uploads
  dismiss <upload-id>                        Cancel or remove an upload from the list
  share <file-id>                            Make a file public and print its share link
  unshare <file-id>                          Make a file private
  share-folder <folder-id>                   Create a folder share link
  unshare-folder <folder-id>                 Remove a folder share link
  clear                                      Clear screen and redisplay welcome message
  help                                       Show this help
  exit                                       Exit REPL

Examples:
  token eyJhbGciOiJIUzI1NiJ9...
  upload --folder 42 --tags work,q3 report.pdf notes.txt
  preview 8c1f
  download 8c1f ~/Downloads
  share-folder 42"""
