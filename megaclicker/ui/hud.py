"""HUD widget — coins, level progress, earn rates, daily reward."""

from __future__ import annotations

from rich.text import Text
from textual.widget import Widget
from textual.reactive import reactive

from megaclicker.engine.economy import format_number


class HUD(Widget):
    """Heads-up display showing core game stats."""

    DEFAULT_CSS = """
    HUD {
        width: 100%;
        height: 100%;
        padding: 1;
    }
    """

    coins: reactive[str] = reactive("0")
    level: reactive[int] = reactive(1)
    level_pct: reactive[float] = reactive(0.0)
    next_level: reactive[str] = reactive("100")
    per_click: reactive[str] = reactive("1")
    per_second: reactive[str] = reactive("0")
    boosted: reactive[bool] = reactive(False)
    daily_text: reactive[str] = reactive("")
    user_id: reactive[str] = reactive("")
    referrals: reactive[int] = reactive(0)

    def render(self) -> Text:
        text = Text()
        text.append(f"  === Level {self.level} ===\n\n", style="bold cyan")

        text.append("  Coins: ", style="dim")
        text.append(f"{self.coins}\n", style="bold yellow")

        # Level progress bar
        bar_width = 16
        filled = int(self.level_pct / 100 * bar_width)
        bar = "#" * filled + "." * (bar_width - filled)
        text.append(f"  [{bar}] {self.level_pct:.0f}%\n", style="green")
        text.append(f"  Next: {self.next_level}\n\n", style="dim")

        text.append("  Per Click: ", style="dim")
        click_style = "bold magenta" if self.boosted else "green"
        text.append(f"{self.per_click}", style=click_style)
        if self.boosted:
            text.append("  x1.5!", style="bold magenta")
        text.append("\n")

        text.append("  Per Second: ", style="dim")
        text.append(f"{self.per_second}\n\n", style="green")

        if self.daily_text:
            text.append(f"  {self.daily_text}\n\n", style="bold yellow")

        text.append("  Your id: ", style="dim")
        text.append(f"{self.user_id}\n", style="cyan")
        text.append(f"  Referrals: {self.referrals}\n\n", style="dim")

        text.append("  [Space] Click  [1-3] Buy\n", style="dim italic")
        text.append("  [G] Catch  [D] Daily\n", style="dim italic")
        text.append("  [Q] Quit\n", style="dim italic")
        return text

    def update_from_snapshot(self, snap: dict) -> None:
        """Sync HUD with the session snapshot."""
        self.coins = format_number(snap["coins"])
        self.level = snap["level"]
        self.level_pct = snap["level_progress"]
        nxt = snap["next_level"]
        self.next_level = nxt if isinstance(nxt, str) else format_number(nxt)
        self.per_click = format_number(snap["effective_click_power"])
        self.per_second = format_number(snap["auto_click_power"])
        self.boosted = snap["boost_active"]
        daily = snap["daily"]
        if daily["available"]:
            self.daily_text = f"Daily reward: +{daily['amount']} (day {daily['streak']}) [D]"
        else:
            self.daily_text = ""
        self.user_id = snap["user_id"]
        self.referrals = snap["referrals_count"]
