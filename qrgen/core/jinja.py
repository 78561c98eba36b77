"""Template environment shared by the HTML routers."""

from __future__ import annotations

from pathlib import Path

from fastapi import Request
from fastapi.templating import Jinja2Templates


def build_templates(directory: Path) -> Jinja2Templates:
    """Create the ``Jinja2Templates`` instance ``create_app`` stores on ``app.state``."""

    return Jinja2Templates(directory=str(directory))


def get_templates(request: Request) -> Jinja2Templates:
    return request.app.state.templates
