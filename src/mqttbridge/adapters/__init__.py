"""Protocol adapters. Each implements base.AdapterBase."""

from mqttbridge.adapters.base import AdapterBase, BusAdapter, BusClient, ChatAdapter, ChatClient
from mqttbridge.adapters.mqtt import MQTTAdapter
from mqttbridge.adapters.telegram import TelegramAdapter

__all__ = ["AdapterBase", "BusAdapter", "BusClient", "ChatAdapter", "ChatClient", "MQTTAdapter", "TelegramAdapter"]
