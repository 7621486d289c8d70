"""Main application entry point for SpeakWrite."""

import sys
import asyncio
import argparse
import getpass
import logging
import threading
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table

from .config import SpeakWriteConfig
from .client.api_client import ApiClient
from .errors import SpeakWriteError
from .models.session import SessionState

logger = logging.getLogger(__name__)

console = Console()


def setup_logging(config, level: str = "INFO") -> None:
    """Set up logging configuration from YAML config."""
    log_file_path = config.get('logging.file_path', 'data/logs/speakwrite.log')
    console_output = config.get('logging.console_output', True)

    log_dir = Path(log_file_path).parent
    log_dir.mkdir(parents=True, exist_ok=True)

    handlers = []

    # File handler - always write to file
    file_handler = logging.FileHandler(log_file_path)
    file_handler.setLevel(logging.DEBUG)
    file_formatter = logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - %(funcName)s:%(lineno)d - %(message)s'
    )
    file_handler.setFormatter(file_formatter)
    handlers.append(file_handler)

    # Console handler - warnings only, the recorder screen owns stdout
    if console_output:
        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setLevel(logging.WARNING)
        console_formatter = logging.Formatter('%(asctime)s - %(name)s - %(levelname)s - %(message)s')
        console_handler.setFormatter(console_formatter)
        handlers.append(console_handler)

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(getattr(logging, level.upper()))
    for handler in handlers:
        root_logger.addHandler(handler)

    logger.info("=" * 50)
    logger.info("SpeakWrite starting up")
    logger.info(f"Log file: {log_file_path}")
    logger.info(f"Log level set to: {level}")
    logger.info("=" * 50)


# Token file

def load_token(config: SpeakWriteConfig) -> Optional[str]:
    token_file = config.get_token_file()
    if not token_file.exists():
        return None
    return token_file.read_text(encoding='utf-8').strip() or None


def save_token(config: SpeakWriteConfig, token: str) -> None:
    token_file = config.get_token_file()
    token_file.parent.mkdir(parents=True, exist_ok=True)
    token_file.write_text(token, encoding='utf-8')
    token_file.chmod(0o600)
    logger.info(f"Saved token to {token_file}")


def make_client(config: SpeakWriteConfig) -> ApiClient:
    return ApiClient(config.get('client.server_url'), token=load_token(config))


# Commands

async def cmd_signup(config: SpeakWriteConfig, args) -> None:
    password = args.password or getpass.getpass("Password: ")
    async with make_client(config) as client:
        payload = await client.signup(args.email, password, args.name)
    save_token(config, payload["token"])
    console.print(f"✅ Signed up as [bold]{payload['user']['email']}[/bold]")


async def cmd_login(config: SpeakWriteConfig, args) -> None:
    password = args.password or getpass.getpass("Password: ")
    async with make_client(config) as client:
        payload = await client.login(args.email, password)
    save_token(config, payload["token"])
    console.print(f"✅ Logged in as [bold]{payload['user']['email']}[/bold]")


def wait_for_enter(loop: asyncio.AbstractEventLoop) -> asyncio.Future:
    """Return a future that resolves once the user presses Enter.

    stdin is read on a daemon thread so a session that ends on its own does
    not leave interpreter shutdown waiting for input.
    """
    future = loop.create_future()

    def resolve() -> None:
        if not future.done():
            future.set_result(None)

    def read_line() -> None:
        sys.stdin.readline()
        if not loop.is_closed():
            loop.call_soon_threadsafe(resolve)

    threading.Thread(target=read_line, name="stdin_reader", daemon=True).start()
    return future


async def cmd_record(config: SpeakWriteConfig, args) -> None:
    # pyaudio is only needed on the recording machine
    from .audio.capture import AudioCapture
    from .services.recording_session import RecordingSession
    from .ui.recorder_screen import RecorderScreen

    capture = AudioCapture(
        sample_rate=config.get('audio.sample_rate', 16000),
        chunk_size=config.get('audio.chunk_size', 1024),
        channels=config.get('audio.channels', 1),
    )

    async with make_client(config) as client:
        await client.verify()
        session = RecordingSession(
            capture,
            client,
            chunk_interval=config.get('recording.chunk_interval_seconds', 8.0),
            display_interval=config.get('recording.display_interval_seconds', 1.0),
            min_upload_bytes=config.get('recording.min_upload_bytes', 80000),
            min_flush_bytes=config.get('recording.min_flush_bytes', 1024),
            deduplicate=config.get('transcription.merge.deduplicate', False),
        )

        with RecorderScreen(console):
            async with session:
                await session.start()
                result = await wait_for_session(session, args.duration)

    if result.capture_error:
        console.print(f"⚠️  Recording stopped early: {result.capture_error}")
    if result.text:
        console.print(result.text)
    else:
        console.print("[dim]Nothing was transcribed.[/dim]")
    if result.error:
        console.print(f"❌ Not saved: {result.error}")
    elif result.saved:
        console.print("💾 Saved to history")


async def wait_for_session(session, duration: Optional[float] = None):
    """Record until the duration passes, Enter is pressed or the session ends itself."""
    if duration:
        user_stop = asyncio.ensure_future(asyncio.sleep(duration))
    else:
        user_stop = wait_for_enter(asyncio.get_running_loop())

    await asyncio.wait({user_stop, session.stopped}, return_when=asyncio.FIRST_COMPLETED)
    user_stop.cancel()

    if session.state == SessionState.RECORDING:
        return await session.stop()
    return await session.stopped


async def cmd_history(config: SpeakWriteConfig, args) -> None:
    async with make_client(config) as client:
        if args.delete is not None:
            await client.delete_transcription(args.delete)
            console.print(f"🗑️  Deleted transcription {args.delete}")
            return
        records = await client.list_transcriptions()

    if not records:
        console.print("[dim]No transcriptions yet.[/dim]")
        return

    table = Table(title="Transcriptions")
    table.add_column("ID", justify="right")
    table.add_column("Created")
    table.add_column("Duration", justify="right")
    table.add_column("Text")
    for record in records:
        table.add_row(record["id"], record["createdAt"][:19], f"{record['durationSeconds']}s", record["text"])
    console.print(table)


async def cmd_dictionary(config: SpeakWriteConfig, args) -> None:
    async with make_client(config) as client:
        if args.action == "add":
            word = await client.add_word(args.word, args.pronunciation)
            console.print(f"➕ Added [bold]{word['word']}[/bold]")
            return
        if args.action == "delete":
            await client.delete_word(args.id)
            console.print(f"🗑️  Deleted word {args.id}")
            return
        words = await client.list_words()

    table = Table(title="Dictionary")
    table.add_column("ID", justify="right")
    table.add_column("Word")
    table.add_column("Pronunciation")
    for word in words:
        table.add_row(word["id"], word["word"], word["pronunciation"] or "")
    console.print(table)


COMMANDS = {
    "signup": cmd_signup,
    "login": cmd_login,
    "record": cmd_record,
    "history": cmd_history,
    "dictionary": cmd_dictionary,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="SpeakWrite - Voice to text with saved history",
    )
    parser.add_argument(
        "--config",
        type=str,
        help="Path to configuration YAML file (default: built-in settings)"
    )
    parser.add_argument(
        "--log-level",
        type=str,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Set logging level (default: from config)"
    )
    parser.add_argument(
        "--version",
        action="version",
        version="SpeakWrite v0.1.0"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("serve", help="Run the API server")

    for name in ("signup", "login"):
        sub = subparsers.add_parser(name, help=f"{name.capitalize()} and store the token")
        sub.add_argument("email")
        sub.add_argument("--password", help="Prompted for when omitted")
        if name == "signup":
            sub.add_argument("--name")

    record = subparsers.add_parser("record", help="Record from the microphone until Enter is pressed")
    record.add_argument(
        "--duration",
        type=int,
        help="Stop automatically after this many seconds"
    )

    history = subparsers.add_parser("history", help="List saved transcriptions")
    history.add_argument("--delete", type=int, metavar="ID", help="Delete a transcription")

    dictionary = subparsers.add_parser("dictionary", help="Manage custom words")
    actions = dictionary.add_subparsers(dest="action")
    actions.add_parser("list")
    add = actions.add_parser("add")
    add.add_argument("word")
    add.add_argument("--pronunciation")
    delete = actions.add_parser("delete")
    delete.add_argument("id", type=int)

    return parser


def main() -> None:
    """Main entry point for SpeakWrite."""
    args = build_parser().parse_args()

    try:
        config = SpeakWriteConfig(args.config)
        setup_logging(config, args.log_level or config.get('logging.level', 'INFO'))

        if args.command == "serve":
            from .server.app import run_server
            run_server(config)
        else:
            asyncio.run(COMMANDS[args.command](config, args))
    except KeyboardInterrupt:
        print("\n👋 Goodbye!")
    except SpeakWriteError as e:
        console.print(f"❌ {e.message}")
        sys.exit(1)
    except Exception as e:
        print(f"❌ Error: {str(e) or type(e).__name__}")
        logging.error(f"Application error: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
