"""Port allocation, control and proxy registries, HTTP plugin hooks and UDP forwarding for a reverse proxy server."""

__version__ = "0.1.0"