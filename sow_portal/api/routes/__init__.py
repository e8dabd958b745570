"""API route handlers for the SOW portal."""

from sow_portal.api.routes import health as health
from sow_portal.api.routes import sow as sow
