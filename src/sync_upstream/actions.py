"""Console output for GitHub Actions runs.

Everything the run reports goes through here: plain log lines, collapsible
groups, the single failure message and step outputs. Lines are written as
GitHub workflow commands (``::group::``, ``::error::`` ...) so the runner
renders them; outside Actions they read as ordinary log output.
"""

from __future__ import annotations

import os
from pathlib import Path
from uuid import uuid4

from rich.console import Console

console = Console(soft_wrap=True, highlight=False, markup=False, emoji=False)

_secrets: set[str] = set()


def _emit(line: str) -> None:
    console.print(line)


def mask(text: str) -> str:
    for secret in _secrets:
        if secret:
            text = text.replace(secret, "***")
    return text


def add_mask(secret: str) -> None:
    """Register a value that must never appear in the log."""
    if not secret:
        return
    _secrets.add(secret)
    _emit(f"::add-mask::{secret}")


def info(message: str) -> None:
    _emit(mask(message))


def debug(message: str) -> None:
    _emit(f"::debug::{mask(message)}")


def command(args: list[str]) -> None:
    """Echo a process invocation the way the Actions toolkit does."""
    _emit(f"[command]{mask(' '.join(args))}")


def start_group(name: str) -> None:
    _emit(f"::group::{name}")


def end_group() -> None:
    _emit("::endgroup::")


def set_failed(message: str) -> None:
    """Report the run's failure. Only the last message matters to the runner."""
    _emit(f"::error::{_single_line(mask(message))}")


def reset() -> None:
    """Forget registered masks (used between runs in one process)."""
    _secrets.clear()


def set_output(name: str, value: object) -> None:
    """Append a step output to ``$GITHUB_OUTPUT`` when running under Actions."""
    text = str(value)
    output_file = os.environ.get("GITHUB_OUTPUT")
    if not output_file:
        debug(f"output {name}={text}")
        return
    with open(Path(output_file), "a") as f:
        if "\n" in text:
            delimiter = f"ghadelimiter_{uuid4()}"
            f.write(f"{name}<<{delimiter}\n{text}\n{delimiter}\n")
        else:
            f.write(f"{name}={text}\n")


def _single_line(message: str) -> str:
    # Workflow command values are percent-encoded for CR/LF.
    return message.replace("%", "%25").replace("\r", "%0D").replace("\n", "%0A")
