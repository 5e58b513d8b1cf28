"""
WhatsApp Gateway Modules

Each module owns one concern of the gateway (session lifecycle, pairing
cache, worker bridge, auth, config, HTTP contracts, request logging) and
is used only through the names it exports.
"""
