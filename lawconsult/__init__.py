"""lawconsult — lifecycle engine for client/lawyer consultation appointments."""

__version__ = "0.1.0"
