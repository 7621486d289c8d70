"""Live terminal display for a recording session."""

import logging
from typing import Optional

from pubsub import pub
from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from ..models.events import SESSION_STATE_TOPIC, SESSION_DRAFT_TOPIC, SESSION_TICK_TOPIC
from ..models.session import SessionState, SessionStatus

logger = logging.getLogger(__name__)


def format_time(seconds: int) -> str:
    """Format elapsed seconds as MM:SS."""
    mins, secs = divmod(max(seconds, 0), 60)
    return f"{mins:02d}:{secs:02d}"


class RecorderScreen:
    """Renders session status, a level meter and the running draft.

    Subscribes to the session topics while running; use as a context manager.
    """

    def __init__(self, console: Optional[Console] = None):
        self.console = console or Console()
        self.status = SessionStatus()
        self.live: Optional[Live] = None

    def __enter__(self) -> "RecorderScreen":
        for topic in (SESSION_STATE_TOPIC, SESSION_DRAFT_TOPIC, SESSION_TICK_TOPIC):
            pub.subscribe(self.on_status, topic)
        self.live = Live(self.render(), console=self.console, refresh_per_second=4)
        self.live.__enter__()
        return self

    def __exit__(self, *exc_info) -> None:
        for topic in (SESSION_STATE_TOPIC, SESSION_DRAFT_TOPIC, SESSION_TICK_TOPIC):
            try:
                pub.unsubscribe(self.on_status, topic)
            except Exception as e:
                logger.warning(f"Error during unsubscribe: {e}")
        if self.live is not None:
            self.live.__exit__(*exc_info)
            self.live = None

    def on_status(self, status: SessionStatus) -> None:
        self.status = status
        if self.live is not None:
            self.live.update(self.render())

    def render(self) -> Panel:
        status = self.status
        if status.state == SessionState.RECORDING:
            header = Text(f"🔴 Recording  {format_time(status.elapsed_seconds)}", style="bold red")
        elif status.state == SessionState.STOPPING:
            header = Text("⏳ Processing...", style="bold yellow")
        else:
            header = Text("⏹️  Ready", style="bold green")

        peak_bar = "█" * int(status.peak_level * 20)
        level = Text(f"Audio: [{peak_bar:<20}] {status.peak_level:.3f}")
        if status.pending_uploads:
            level.append(f"   uploads pending: {status.pending_uploads}", style="dim")

        draft = Text(status.draft or "(nothing transcribed yet)",
                     style="white" if status.draft else "dim")

        lines = [header, level]
        if status.capture_error:
            lines.append(Text(f"⚠️  {status.capture_error}", style="bold red"))
        return Panel(Group(*lines, Text(), draft),
                     title="🎙️  SpeakWrite", subtitle="Press Enter to stop")
