"""Mapping table: Telegram group <-> MQTT topic, plus per-topic destination names."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from types import MappingProxyType

from loguru import logger

from mqttbridge.core.constants import MAPPING_FORMAT_HINT
from mqttbridge.core.errors import BridgeConfigurationError


@dataclass(frozen=True)
class MappingEntry:
    """One configured group: ``groupId:topic[:destination]``."""

    group_id: int
    topic: str
    destination: str | None = None


class MappingTable:
    """Read-only lookup tables built once at startup.

    Duplicate group ids or topics are rejected rather than overwritten.
    """

    def __init__(self, entries: list[MappingEntry]) -> None:
        group_to_topic: dict[int, str] = {}
        topic_to_group: dict[str, int] = {}
        topic_to_destination: dict[str, str] = {}
        for entry in entries:
            if entry.group_id in group_to_topic:
                raise BridgeConfigurationError(
                    f"Group {entry.group_id} mapped more than once",
                    code="duplicate_group",
                    details={"group_id": entry.group_id, "topic": entry.topic},
                )
            if entry.topic in topic_to_group:
                raise BridgeConfigurationError(
                    f"Topic {entry.topic} mapped more than once",
                    code="duplicate_topic",
                    details={"group_id": entry.group_id, "topic": entry.topic},
                )
            group_to_topic[entry.group_id] = entry.topic
            topic_to_group[entry.topic] = entry.group_id
            if entry.destination:
                topic_to_destination[entry.topic] = entry.destination

        self._entries = tuple(entries)
        self._group_to_topic: Mapping[int, str] = MappingProxyType(group_to_topic)
        self._topic_to_group: Mapping[str, int] = MappingProxyType(topic_to_group)
        self._topic_to_destination: Mapping[str, str] = MappingProxyType(topic_to_destination)

    @classmethod
    def build(cls, config: str) -> MappingTable:
        """Parse ``groupId:topic[:destination];...`` into a table.

        Raises BridgeConfigurationError for an empty config, a non-integer
        group id, an empty topic, too many fields, or a duplicate key. A
        missing destination is only a warning.
        """
        entries: list[MappingEntry] = []
        for segment in (config or "").split(";"):
            if not segment.strip():
                continue
            entries.append(_parse_entry(segment))

        if not entries:
            raise BridgeConfigurationError(
                f"No group to topic mappings defined (format: {MAPPING_FORMAT_HINT})",
                code="empty_mappings",
            )

        table = cls(entries)
        logger.info("Router: loaded {} mappings ({} with destination)", len(entries), len(table._topic_to_destination))
        return table

    def topic_for_group(self, group_id: int) -> str | None:
        return self._group_to_topic.get(group_id)

    def group_for_topic(self, topic: str) -> int | None:
        return self._topic_to_group.get(topic)

    def destination_for_topic(self, topic: str) -> str | None:
        return self._topic_to_destination.get(topic)

    def entries(self) -> list[MappingEntry]:
        """Return all mapping entries in configuration order."""
        return list(self._entries)

    def topics(self) -> list[str]:
        return [e.topic for e in self._entries]

    def __len__(self) -> int:
        return len(self._entries)


def _parse_entry(segment: str) -> MappingEntry:
    fields = [f.strip() for f in segment.split(":")]
    if len(fields) < 2 or len(fields) > 3:
        raise BridgeConfigurationError(
            f"Invalid mapping entry {segment!r} (format: {MAPPING_FORMAT_HINT})",
            code="invalid_mapping_entry",
            details={"entry": segment},
        )

    try:
        group_id = int(fields[0])
    except ValueError as exc:
        raise BridgeConfigurationError(
            f"Invalid group id {fields[0]!r} in mapping entry {segment!r}",
            code="invalid_group_id",
            details={"entry": segment},
            original_error=exc,
        ) from exc

    topic = fields[1]
    if not topic:
        raise BridgeConfigurationError(
            f"Empty topic in mapping entry {segment!r}",
            code="empty_topic",
            details={"entry": segment},
        )

    logger.info("Mapping Telegram Group {} to MQTT Topic {}", group_id, topic)

    destination = fields[2] if len(fields) > 2 and fields[2] else None
    if destination is None:
        logger.warning(
            "Topic {} does not have a third argument which represents the message to; "
            "chat messages for it will not be forwarded",
            topic,
        )
    return MappingEntry(group_id=group_id, topic=topic, destination=destination)
