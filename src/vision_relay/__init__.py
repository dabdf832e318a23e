"""HTTP relay that forwards image URLs or uploads to a computer-vision API."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:  # pragma: no cover
	from fastapi import FastAPI


def create_app() -> "FastAPI":
	from .app import create_app as _create_app

	return _create_app()


__all__ = ["create_app"]
