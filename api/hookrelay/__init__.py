"""hookrelay: route JSON events to webhooks and SNMP traps."""

__version__ = "0.1.0"
