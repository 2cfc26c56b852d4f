from __future__ import annotations

import sys
from typing import Callable, Iterable, Optional


class Colors:
    RESET = "\033[0m"
    RED = "\033[91m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    BLUE = "\033[94m"


CHECK = f"{Colors.GREEN}✓{Colors.RESET}"
WARN = f"{Colors.YELLOW}⚠{Colors.RESET}"
CROSS = f"{Colors.RED}✗{Colors.RESET}"
GEAR = f"{Colors.BLUE}⚙{Colors.RESET}"


def ok(msg: str) -> None:
    print(f"{CHECK} {msg}")


def step(msg: str) -> None:
    print(f"{GEAR} {msg}")


def warn(msg: str) -> None:
    print(f"{WARN} {msg}")


def error(msg: str) -> None:
    print(f"{CROSS} {msg}", file=sys.stderr)


def show_packages(title: str, names: Iterable[str]) -> None:
    items = sorted(names)
    print(f"\n{title} ({len(items)}):")
    for n in items:
        print(f"  {n}")


def ask(prompt: str, *, default: bool, reader: Callable[[str], str] = input) -> bool:
    suffix = "[Y/n]" if default else "[y/N]"
    try:
        ans = reader(f"{prompt} {suffix}: ").strip().lower()
    except EOFError:
        return False
    if not ans:
        return default
    return ans in {"y", "yes"}


def ask_text(prompt: str, *, reader: Callable[[str], str] = input) -> Optional[str]:
    try:
        return reader(f"{prompt}: ").strip()
    except EOFError:
        return None


def plan_confirmer(assume_yes: bool) -> Callable[[str], bool]:
    """Confirmation for proposed install/remove sets (defaults to yes)."""
    if assume_yes:
        return lambda _q: True
    return lambda q: ask(q, default=True)


def retry_confirmer() -> Callable[[str], bool]:
    """Confirmation after a fatal command failure (defaults to no)."""
    return lambda q: ask(q, default=False)
