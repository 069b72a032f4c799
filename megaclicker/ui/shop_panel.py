"""Shop panel — the three boosts with level, effect and price."""

from __future__ import annotations

from rich.text import Text
from textual.widget import Widget
from textual.reactive import reactive

from megaclicker.engine.economy import format_number


def effect_lines(boost: dict) -> list[str]:
    """The "Now"/"Next" lines for one boost entry of the session snapshot.

    Passive Income stacks a growing amount per purchase and is reset by the
    next Auto Clicker, so only the amount the next purchase adds is shown.
    """
    if boost["id"] == "clickMultiplier":
        unit = " coins per click"
        now, nxt = f"{boost['effect']}", f"{boost['next_effect']}"
    else:
        unit = "/s"
        now, nxt = f"+{boost['effect']}", f"+{boost['next_effect']}"

    lines = []
    if boost["level"] > 0 and boost["id"] != "passiveIncome":
        lines.append(f"Now: {now}{unit}")
    lines.append(f"Next: {nxt}{unit}")
    return lines


class ShopPanel(Widget):
    """Displays the boosts with cost and affordability."""

    DEFAULT_CSS = """
    ShopPanel {
        width: 100%;
        height: 100%;
        padding: 1;
        overflow-y: auto;
    }
    """

    # Serialized boost data for reactivity
    boosts_text: reactive[str] = reactive("")

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self._boosts: list[dict] = []

    def render(self) -> Text:
        text = Text()
        text.append("  ═══ Boosts ═══\n\n", style="bold magenta")

        for boost in self._boosts:
            affordable = boost["can_afford"]
            text.append(f"  [{boost['hotkey']}] ", style="bold")
            text.append(f"{boost['name']} ", style="bold green" if affordable else "bold red")
            text.append(f"Lv.{boost['level']}\n", style="dim")
            text.append(f"      {boost['description']}\n", style="dim italic")

            for line in effect_lines(boost):
                text.append(f"      {line}\n", style="cyan" if line.startswith("Now") else "dim cyan")

            if boost["funding"] == "rewarded_ad":
                text.append("      Watch an ad to upgrade\n", style="yellow")
            else:
                cost_style = "green" if affordable else "red"
                text.append(f"      Cost: {format_number(boost['cost'])} coins\n", style=cost_style)
            text.append("\n")

        return text

    def update_from_snapshot(self, snap: dict) -> None:
        """Sync panel with the session snapshot."""
        self._boosts = snap["boosts"]
        # Trigger re-render via reactive
        self.boosts_text = "|".join(
            f"{b['id']}:{b['level']}:{b['can_afford']}" for b in self._boosts
        )
