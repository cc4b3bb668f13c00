"""Gateway: mapping table, inbound/outbound routers, run loop."""

from mqttbridge.gateway.admin import AdminCommands
from mqttbridge.gateway.inbound import InboundRouter
from mqttbridge.gateway.outbound import OutboundRouter
from mqttbridge.gateway.router import MappingEntry, MappingTable
from mqttbridge.gateway.runner import BridgeRunner, RunState

__all__ = [
    "AdminCommands",
    "BridgeRunner",
    "InboundRouter",
    "MappingEntry",
    "MappingTable",
    "OutboundRouter",
    "RunState",
]
