"""CLI constants and configuration."""

from prompt_toolkit.styles import Style

COMMANDS = ["info", "link", "download", "clear", "exit", "help"]

STYLE = Style.from_dict(
    {
        "prompt": "#2E9BF0 bold",
        "command": "#0088ff bold",
    }
)

BLUE = "\033[38;2;46;155;240m"
GREEN = "\033[32m"
RESET = "\033[0m"

LOGO = f"""{BLUE}
     _                    __      _       _
 ___| |__   __ _ _ __ ___ / _| ___| |_ ___| |__
/ __| '_ \\ / _` | '__/ _ \\ |_ / _ \\ __/ __| '_ \\
\\__ \\ | | | (_| | | |  __/  _|  __/ || (__| | | |
|___/_| |_|\\__,_|_|  \\___|_|  \\___|\\__\\___|_| |_|
{RESET}"""

WELCOME_TITLE = "sharefetch - share link downloader"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "sharefetch> "

HELP_TEXT = """Available commands:
  info <share-url>                    Show file name, size and checksum
  link <share-url>                    Print the direct download link
  download <share-url> [output_path]  Download the file (defaults to the download directory)
  clear                               Clear screen and redisplay welcome message
  help                                Show this help
  exit                                Exit REPL

Share links look like https://www.terabox.com/s/1AbCdEf or
https://www.terabox.app/sharing/link?surl=AbCdEf
Examples:
  info https://www.terabox.com/s/1AbCdEfGh
  download https://www.terabox.app/sharing/link?surl=AbCdEfGh
  download https://www.terabox.com/s/1AbCdEfGh videos/clip.mp4"""
