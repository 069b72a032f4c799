"""Entry point for Mega Clicker: python -m megaclicker"""

import argparse
import logging
from pathlib import Path

from megaclicker.app import MegaClickerApp
from megaclicker.engine.save import SAVE_DIR, Storage
from megaclicker.engine.session import GameSession


def main() -> None:
    parser = argparse.ArgumentParser(description="Mega Clicker — terminal version")
    parser.add_argument("--save-dir", type=Path, default=SAVE_DIR, help=f"Save directory (default: {SAVE_DIR})")
    parser.add_argument("--ref", default=None, help="Referral token (a friend's user id)")
    parser.add_argument("--log-level", default="INFO", help="Logging level (default: INFO)")
    args = parser.parse_args()

    # The TUI owns the terminal, so logs go to a file next to the save
    args.save_dir.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=str(args.save_dir / "megaclicker.log"),
        level=args.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    session = GameSession(Storage(args.save_dir))
    app = MegaClickerApp(session, referral_token=args.ref)
    app.run()


if __name__ == "__main__":
    main()
