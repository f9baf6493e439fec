"""
ConvertEase: a file conversion proxy and the client that drives it.

The proxy (``convertease.app``) relays base64 file payloads to the
Cloudmersive API. The orchestrator (``convertease.orchestrator``) validates
a selection locally, submits it to the proxy and polls provider jobs.
"""

__version__ = "1.0.0"
