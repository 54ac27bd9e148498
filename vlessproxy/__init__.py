"""An asyncio VLESS proxy server relaying TCP and UDP traffic."""

__version__ = "0.1.0"