"""Test mapping table parsing and lookups."""

import pytest
from hypothesis import given
from hypothesis import strategies as st

from mqttbridge.core.errors import BridgeConfigurationError
from mqttbridge.gateway.router import MappingEntry, MappingTable


class TestMappingTableBuild:
    """Test building the table from a mapping string."""

    def test_scenario_config(self):
        # Arrange & Act
        table = MappingTable.build("100:sensors:alice;200:alerts")

        # Assert
        assert table.topic_for_group(100) == "sensors"
        assert table.topic_for_group(200) == "alerts"
        assert table.group_for_topic("sensors") == 100
        assert table.group_for_topic("alerts") == 200
        assert table.destination_for_topic("sensors") == "alice"
        assert table.destination_for_topic("alerts") is None

    def test_negative_group_ids(self):
        # Telegram supergroup ids are negative
        table = MappingTable.build("-1001234567890:home/door:door-bot")

        assert table.group_for_topic("home/door") == -1001234567890
        assert table.topic_for_group(-1001234567890) == "home/door"

    def test_whitespace_and_trailing_separator(self):
        table = MappingTable.build(" 1 : a : x ; 2:b ;")

        assert table.entries() == [
            MappingEntry(group_id=1, topic="a", destination="x"),
            MappingEntry(group_id=2, topic="b", destination=None),
        ]

    def test_empty_destination_is_absent(self):
        table = MappingTable.build("1:a:")

        assert table.destination_for_topic("a") is None

    def test_topics_in_config_order(self):
        table = MappingTable.build("3:c;1:a;2:b")

        assert table.topics() == ["c", "a", "b"]
        assert len(table) == 3

    def test_unknown_lookups_return_none(self):
        table = MappingTable.build("1:a:x")

        assert table.topic_for_group(2) is None
        assert table.group_for_topic("b") is None
        assert table.destination_for_topic("b") is None

    @pytest.mark.parametrize(
        ("config", "code"),
        [
            ("", "empty_mappings"),
            (" ; ;", "empty_mappings"),
            ("abc:topic", "invalid_group_id"),
            ("100", "invalid_mapping_entry"),
            ("100:a:b:c", "invalid_mapping_entry"),
            ("100: :x", "empty_topic"),
            ("100:a;100:b", "duplicate_group"),
            ("100:a;200:a", "duplicate_topic"),
        ],
    )
    def test_invalid_config_raises(self, config, code):
        with pytest.raises(BridgeConfigurationError) as exc_info:
            MappingTable.build(config)

        assert exc_info.value.code == code

    def test_indexes_are_read_only(self):
        table = MappingTable.build("1:a:x")

        with pytest.raises(TypeError):
            table._group_to_topic[2] = "b"  # type: ignore[index]


_topic = st.text(
    alphabet=st.characters(exclude_characters=":;", exclude_categories=("Cs", "Cc", "Zs", "Zl", "Zp")),
    min_size=1,
    max_size=20,
)


class TestMappingTableProperties:
    """Property-based tests for lookup invariants."""

    @given(st.dictionaries(st.integers(min_value=-(10**13), max_value=10**13), _topic, min_size=1, max_size=20))
    def test_group_topic_roundtrip(self, mapping):
        # Arrange: unique topics per group
        seen: set[str] = set()
        pairs = []
        for group, topic in mapping.items():
            if topic in seen:
                continue
            seen.add(topic)
            pairs.append((group, topic))
        config = ";".join(f"{g}:{t}" for g, t in pairs)

        # Act
        table = MappingTable.build(config)

        # Assert
        for group, topic in pairs:
            assert table.group_for_topic(table.topic_for_group(group)) == group
            assert table.topic_for_group(table.group_for_topic(topic)) == topic
