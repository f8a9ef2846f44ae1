#!/usr/bin/env python3

from __future__ import annotations

from signal import SIGINT, signal
from typing import TYPE_CHECKING

from dotenv import load_dotenv

from syncnexus.ui.cli import main as cli_main, sigint_handler

if TYPE_CHECKING:
    from collections.abc import Sequence


def main(argv: Sequence[str] | None = None) -> None:
    """Console entry point: load ``.env``, install the SIGINT handler, run the CLI."""
    load_dotenv()
    signal(SIGINT, sigint_handler)
    cli_main(argv)


if __name__ == "__main__":
    main()
