"""Shared fixtures: mock domain objects and their definitions."""

import pytest

from sluice.core.coercion import CoerceTo
from sluice.serialization import DefinitionRegistry, FieldDefinition, ObjectDefinition, Serializer, SerializerOptions
from sluice.validation import Chain, ValidatorRegistry

NODE = ObjectDefinition("Node", fields=(
    FieldDefinition("id", src="hash_id", desc="hash ID for the node", attribute=True),
    FieldDefinition("is_active", src="active", desc="is the node active?", coerce_to=CoerceTo.BOOLEAN),
    FieldDefinition("name", src="get_name", desc="name", attribute=True),
    FieldDefinition("agent_name"),
    FieldDefinition("ipaddress", src="get_public_address"),
    FieldDefinition("public_ips", singular="ip", filter_from=frozenset({"public"}), coerce_to=CoerceTo.ARRAY),
    FieldDefinition(
        "state",
        enumerated={"inactive": 0, "active": 1, "full_no_new_checks": 2},
        filter_from=frozenset({"public", "test1"}),
    ),
    FieldDefinition("opts", src="options"),
    FieldDefinition("data"),
), plural="nodes")

NODE_OPTS = ObjectDefinition("NodeOpts", fields=(
    FieldDefinition("option1", src="opt1"),
    FieldDefinition("option2", src="opt2"),
    FieldDefinition("option3", src="opt3"),
), singular="nodeOpts")

NOTIFICATION_TYPES = ObjectDefinition("notification_types", fields=(
    FieldDefinition("key", attribute=True, ignore_public=True),
    FieldDefinition(
        "fields",
        validator=Chain().is_array(Chain().is_hash(Chain().is_string(), Chain().not_empty())),
        singular="field",
        plural="fields",
    ),
), singular="notification_type", plural="notification_types")

ACCOUNTING = ObjectDefinition("accounting", fields=(
    FieldDefinition("monitoring_zones", validator=Chain().is_int()),
    FieldDefinition("notification_plans", validator=Chain().is_int()),
    FieldDefinition("notification_types", validator=Chain().is_int()),
    FieldDefinition("entities", validator=Chain().is_int()),
), singular="accounting", plural="accountings")

DEFINITIONS = (NODE, NODE_OPTS, NOTIFICATION_TYPES, ACCOUNTING)


class NodeOpts:
    def __init__(self):
        self.opt1 = "defaultval"
        self.opt2 = "defaultval"

    async def opt3(self):
        return "something"

    def get_serializer_type(self):
        return "NodeOpts"


class Node:
    """Mock domain object with plain, deferred and nested fields."""

    def __init__(self):
        self.hash_id = 15245
        self.active = True
        self.agent_name = "gl<ah"
        self.public_ips = ["123.45.55.44", "122.123.32.2"]
        self.public_address = "123.33.22.1"
        self.state = 1
        self.options = NodeOpts()
        self.data = {"foo": "thingone", "bar": "thingtwo"}

    async def get_name(self):
        return "gggggg"

    def get_public_address(self):
        return self.public_address

    def get_serializer_type(self):
        return "Node"


def notification_types() -> list[dict]:
    """Raw maps tagged with a ``serializerType`` key instead of a getter."""
    return [
        {
            "key": "web_hook",
            "serializerType": "notification_types",
            "fields": [
                {"name": "host", "description": "Fully qualified hostname to connect to", "optional": False},
                {"name": "port", "description": "TCP port to connect to", "optional": False},
                {"name": "path", "description": "The absolute path to POST to", "optional": False},
                {"name": "ssl", "description": "Use SSL/TLS", "optional": True},
            ],
        },
        {
            "key": "email",
            "serializerType": "notification_types",
            "fields": [
                {"name": "address", "description": "Email address to send notifications to", "optional": False},
            ],
        },
    ]


@pytest.fixture
def registry() -> DefinitionRegistry:
    return DefinitionRegistry(DEFINITIONS)


@pytest.fixture
def node() -> Node:
    return Node()


@pytest.fixture
def serializer(registry: DefinitionRegistry) -> Serializer:
    return Serializer(registry, SerializerOptions(strip_nulls=True, strip_serializer_type=True))


@pytest.fixture
def validators() -> ValidatorRegistry:
    """Fresh custom-validator registry, isolated from the default one."""
    return ValidatorRegistry()
