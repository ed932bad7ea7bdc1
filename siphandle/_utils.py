"""Utilities and constants for the SIP plugin handle."""

import logging
from rich.console import Console
from rich.logging import RichHandler

# Rich Console for pretty printing
console = Console()

# Configure logging with RichHandler
logging.basicConfig(
    level=logging.INFO,
    format="%(message)s",
    datefmt="[%X]",
    handlers=[RichHandler(console=console, rich_tracebacks=True, show_path=False)],
)

# Get logger for the package
logger = logging.getLogger("siphandle")

# Plugin identifier used when attaching to the gateway
PLUGIN_ID = "janus.plugin.sip"

# Requests understood by the SIP plugin
REQUEST_REGISTER = "register"
REQUEST_CALL = "call"
REQUEST_ACCEPT = "accept"
REQUEST_HANGUP = "hangup"
REQUEST_DECLINE = "decline"

# Envelope fields
MESSAGE = "message"
TRANSACTION = "transaction"

# Optional register fields and the Python type each must have to be sent
REGISTER_OPTIONS = {
    "type": str,
    "send_register": bool,
    "force_udp": bool,
    "force_tcp": bool,
    "sips": bool,
    "rfc2543_cancel": bool,
    "secret": str,
    "ha1_secret": str,
    "display_name": str,
    "proxy": str,
    "outbound_proxy": str,
    "register_ttl": (int, float),
}

# Optional call fields
CALL_OPTIONS = {
    "call_id": str,
    "authuser": str,
    "secret": str,
    "ha1_secret": str,
}
