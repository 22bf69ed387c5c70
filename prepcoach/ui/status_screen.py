"""Console status screen for a live interview session."""

import logging
from typing import Optional

from pubsub import pub
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from ..models.events import SessionEvent
from ..models.session import SessionResult, SessionState

logger = logging.getLogger(__name__)

STATE_STYLES = {
    SessionState.IDLE.value: "dim",
    SessionState.CONNECTING.value: "blue",
    SessionState.ACTIVE.value: "green",
    SessionState.ENDED.value: "cyan",
    SessionState.FAILED.value: "red",
}


class SessionStatusScreen:
    """Prints session status changes, model transcripts and the final summary."""

    def __init__(self, topic: str, console: Optional[Console] = None):
        """Initialize status screen.

        Args:
            topic: Topic carrying SessionEvents
            console: rich Console to print to
        """
        self.topic = topic
        self.console = console or Console()
        self.last_result: Optional[SessionResult] = None

        pub.subscribe(self._on_event, topic)
        logger.info(f"SessionStatusScreen subscribed to {topic}")

    def _on_event(self, event: SessionEvent) -> None:
        style = STATE_STYLES.get(event.state, "white")

        if event.event_type == "error":
            self.console.print(f"❌ {event.message}", style="bold red")
            if event.metadata.get("error"):
                self.console.print(f"   {event.metadata['error']}", style="red")
        elif event.event_type == "transcript":
            self.console.print(f"🎙️  Interviewer: {event.message}", style="magenta")
        elif event.event_type == "completed":
            self.last_result = event.metadata.get("result")
            if self.last_result is not None:
                self.print_summary(self.last_result)
        else:
            self.console.print(f"[{event.state.upper()}] {event.message}", style=style)

    def print_summary(self, result: SessionResult) -> None:
        """Print the completion summary of a session."""
        table = Table(show_header=False, box=None)
        table.add_column("Field", style="bold")
        table.add_column("Value")
        table.add_row("Role", result.role or "-")
        table.add_row("Outcome", result.state.value)
        table.add_row("Duration", f"{result.duration_seconds:.1f}s")
        table.add_row("Audio chunks sent", str(result.chunks_sent))
        table.add_row("Audio chunks received", str(result.chunks_received))
        if result.chunks_dropped or result.chunks_undecodable:
            table.add_row("Dropped / undecodable", f"{result.chunks_dropped} / {result.chunks_undecodable}")
        table.add_row("Interruptions", str(result.interruptions))
        if result.final_message:
            table.add_row("Interviewer's last words", result.final_message)
        if result.error:
            table.add_row("Error", result.error)

        border = "red" if result.state is SessionState.FAILED else "green"
        self.console.print(Panel(table, title="Interview Summary", border_style=border))

    def shutdown(self) -> None:
        try:
            pub.unsubscribe(self._on_event, self.topic)
        except Exception as e:
            logger.warning(f"Error during unsubscribe: {e}")
