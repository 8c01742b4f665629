"""Core gateway components: credentials, session, transport, fallback, errors."""
