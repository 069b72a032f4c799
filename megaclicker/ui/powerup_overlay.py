"""Power-up overlay — the floating bonus, the active boost, and ad pauses."""

from __future__ import annotations

from rich.text import Text
from textual.widget import Widget
from textual.reactive import reactive


class PowerUpOverlay(Widget):
    """Banner for the power-up lifecycle."""

    DEFAULT_CSS = """
    PowerUpOverlay {
        width: 100%;
        height: auto;
        min-height: 3;
        content-align: center middle;
        text-align: center;
        padding: 0 1;
    }
    """

    event_text: reactive[str] = reactive("")

    def render(self) -> Text:
        if not self.event_text:
            return Text("")

        text = Text()
        text.append(self.event_text, style="bold")
        return text

    def update_from_snapshot(self, snap: dict) -> None:
        """Update overlay based on the power-up and ad state."""
        powerup = snap["powerup"]
        phase = powerup["phase"]

        if snap["paused"]:
            self.event_text = "📺 Showing ad... the game is paused"
            self.styles.background = "darkblue"
            self.styles.color = "white"
            self.styles.display = "block"

        elif phase == "visible":
            self.event_text = (
                f"⚡ POWER-UP! ⚡  "
                f"Press [G] to catch!  "
                f"({powerup['ends_in']:.1f}s)"
            )
            self.styles.background = "gold"
            self.styles.color = "black"
            self.styles.display = "block"

        elif phase == "active":
            self.event_text = (
                f"🔥 x1.5 CLICKS!  "
                f"{powerup['boost_remaining']}s left"
            )
            self.styles.background = "darkorange"
            self.styles.color = "white"
            self.styles.display = "block"

        else:
            self.event_text = ""
            self.styles.display = "none"
