"""Inline markdown helpers used when rendering the onboarding message."""

from __future__ import annotations


def bold(text: str) -> str:
    return f"**{text}**"


def italics(text: str) -> str:
    return f"_{text}_"


def sub(text: str) -> str:
    return f"<sub>{text}</sub>"


__all__ = ["bold", "italics", "sub"]
