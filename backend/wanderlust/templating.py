"""
Wanderlust: Template Rendering
==============================

What:  Jinja2 environment for the server-rendered pages.
How:   Wraps FastAPI's Jinja2Templates. A context processor merges the
       per-request locals (flash queues, current_user) built by
       LocalsMiddleware into every template context.
"""

from pathlib import Path
from typing import Any, Dict, Optional

from fastapi.templating import Jinja2Templates
from starlette.requests import Request
from starlette.responses import Response

TEMPLATE_DIR = Path(__file__).parent / "templates"

_EMPTY_LOCALS = {"success": [], "error": [], "current_user": None}


def request_locals(request: Request) -> Dict[str, Any]:
    """Template globals for this request; empty when locals were never built."""
    return dict(getattr(request.state, "locals", None) or _EMPTY_LOCALS)


class Templates:

    def __init__(self, directory: Path = TEMPLATE_DIR):
        self._templates = Jinja2Templates(
            directory=str(directory),
            context_processors=[request_locals],
        )
        self._templates.env.filters["price"] = format_price

    @property
    def env(self):
        return self._templates.env

    def render(
        self,
        request: Request,
        name: str,
        context: Optional[Dict[str, Any]] = None,
        status_code: int = 200,
    ) -> Response:
        return self._templates.TemplateResponse(
            request=request,
            name=name,
            context=context or {},
            status_code=status_code,
        )


def format_price(value: Any) -> str:
    """1200 → '1,200'. Matches the listing cards' "₹1,200 / night"."""
    try:
        return f"{float(value):,.0f}"
    except (TypeError, ValueError):
        return str(value)
