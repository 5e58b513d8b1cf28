"""
WhatsApp Gateway - HTTP API over a single WhatsApp Web session

A service that pairs one WhatsApp Web session by QR code and relays
outbound messages for HTTP clients.

Architecture:
- Each module is self-contained with clear interfaces
- Modules are completely replaceable
- No module knows the internals of another
- All communication through defined interfaces

Modules:
- auth: Bearer token validation
- session: WhatsApp session lifecycle (pairing, status, disconnect, send)
- pairing: QR code cache with lazy expiry
- provider: Bridge to the external WhatsApp Web worker
- api: REST API request/response models
- config: Environment configuration
- middleware: Request logging
"""

__version__ = "1.0.0"
