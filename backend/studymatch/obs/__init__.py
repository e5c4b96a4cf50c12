"""Observability package bootstrap."""

from __future__ import annotations

from fastapi import FastAPI

from studymatch.obs import logging as obs_logging
from studymatch.obs import middleware
from studymatch.settings import settings

_initialised = False


def init(app: FastAPI) -> None:
	global _initialised
	if _initialised or not settings.obs_enabled:
		return
	obs_logging.configure_logging()
	_initialised = True


def install(app: FastAPI) -> None:
	"""Attach the request middleware; must run before the app starts serving."""
	if settings.obs_enabled:
		middleware.install(app)


__all__ = ["init", "install"]
